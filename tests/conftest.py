"""Pytest configuration and shared fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.container import Container, reset_container, set_container
from src.api.dependencies import limiter
from src.domain.ports.config import AppConfig, PersistenceConfig
from src.infrastructure.resilience import reset_all_breakers
from src.main import app
from tests.fakes import FakeLLM


@pytest.fixture(autouse=True)
def _isolated_state():
    """Fresh rate limits and breakers per test; no container leaks between tests."""
    limiter.reset()
    reset_all_breakers()
    yield
    reset_container()


@pytest.fixture
def container(tmp_path) -> Container:
    """Container with sessions under tmp_path and a scripted backend (runtime disabled)."""
    c = Container(config=AppConfig(persistence=PersistenceConfig(sessions_dir=str(tmp_path / "sessions"))))
    c.llm = FakeLLM()
    set_container(c)
    return c


@pytest.fixture
async def client(container):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

