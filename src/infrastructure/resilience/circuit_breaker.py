"""Circuit breaker for completion backends.

Stops hammering a backend that keeps failing and gives it time to recover.

States:
- CLOSED: requests pass through
- OPEN: requests are rejected immediately with CircuitOpenError
- HALF_OPEN: trial requests decide whether to close again
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")

_registry_lock = threading.Lock()


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised instead of calling the backend while the circuit is open."""


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    success_threshold: int = 2
    tracked_exceptions: tuple[type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.recovery_timeout <= 0:
            raise ValueError("recovery_timeout must be > 0")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")

    def is_tracked(self, exc: BaseException) -> bool:
        """Cancellation and interpreter exits never count as backend failures."""
        if isinstance(exc, (asyncio.CancelledError, SystemExit, KeyboardInterrupt, GeneratorExit)):
            return False
        return isinstance(exc, self.tracked_exceptions)


@dataclass
class CircuitBreaker:
    """Usage:

        breaker = get_circuit_breaker("ollama")
        try:
            result = await breaker.call(client.chat, model=..., messages=...)
        except CircuitOpenError:
            ...
    """

    name: str
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _success_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def state(self) -> CircuitState:
        return self._state

    def _retry_in(self) -> float:
        return max(0.0, self.config.recovery_timeout - (time.monotonic() - self._opened_at))

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Await func(*args, **kwargs) through the breaker.

        Raises:
            CircuitOpenError: The circuit is open and the recovery timeout has not elapsed.

        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if self._retry_in() > 0:
                    raise CircuitOpenError(f"Circuit '{self.name}' is open, retry in {self._retry_in():.1f}s")
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
                logger.debug("Circuit '%s' half-open", self.name)

        try:
            result = await func(*args, **kwargs)
        except BaseException as e:
            if self.config.is_tracked(e):
                await self._record_failure()
            raise
        await self._record_success()
        return result

    async def _record_success(self) -> None:
        async with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    self._state = CircuitState.CLOSED
                    self._failure_count = 0
                    self._success_count = 0
                    logger.info("Circuit '%s' closed", self.name)
            else:
                self._failure_count = 0

    async def _record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.config.failure_threshold:
                if self._state != CircuitState.OPEN:
                    logger.warning("Circuit '%s' opened after %d failure(s)", self.name, self._failure_count)
                self._state = CircuitState.OPEN
                self._opened_at = time.monotonic()

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at = 0.0

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
        }


_breakers: dict[str, CircuitBreaker] = {}


def get_circuit_breaker(name: str, config: CircuitBreakerConfig | None = None) -> CircuitBreaker:
    """Get or create the process-wide breaker with this name."""
    with _registry_lock:
        if name not in _breakers:
            _breakers[name] = CircuitBreaker(name=name, config=config or CircuitBreakerConfig())
        return _breakers[name]


def get_all_breakers() -> dict[str, dict]:
    with _registry_lock:
        return {name: b.get_stats() for name, b in _breakers.items()}


def reset_all_breakers() -> None:
    with _registry_lock:
        for breaker in _breakers.values():
            breaker.reset()
