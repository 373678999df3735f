"""Local process runtime - previews a mounted project with local subprocesses."""

import asyncio
import logging
import re
from pathlib import Path

from src.domain.errors import RuntimeUnavailableError
from src.domain.services.mount_projector import MountDescriptor

logger = logging.getLogger(__name__)

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_URL_RE = re.compile(r"https?://(?:localhost|127\.0\.0\.1|0\.0\.0\.0|\[::1?\]|[\w.-]+):\d+/?")
# Wildcard binds are not routable from a browser.
_WILDCARD_HOSTS = ("0.0.0.0", "[::]")


def extract_url(line: str) -> str | None:
    """First http(s)://host:port address printed on a line of dev-server output."""
    match = _URL_RE.search(_ANSI_RE.sub("", line))
    if match is None:
        return None
    url = match.group(0)
    for host in _WILDCARD_HOSTS:
        url = url.replace(host, "localhost", 1)
    return url


def _write_tree(base: Path, entries: MountDescriptor) -> None:
    for name, entry in entries.items():
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise RuntimeUnavailableError(f"Refusing to write entry {name!r} under {base}")
        target = base / name
        if "file" in entry:
            target.write_text(entry["file"].get("contents", ""), encoding="utf-8")
        else:
            target.mkdir(exist_ok=True)
            _write_tree(target, entry.get("directory", {}))


class LocalProcessRuntime:
    """RuntimePort backed by a working directory and shell subprocesses.

    mount() writes files over the previous round's; files that are no longer
    in the descriptor are left on disk.
    """

    def __init__(self, workdir: str | Path, command_timeout: float = 600.0) -> None:
        self._workdir = Path(workdir)
        self._command_timeout = command_timeout
        self._server: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task | None = None
        self._ready: asyncio.Future[str] | None = None

    @property
    def workdir(self) -> Path:
        return self._workdir

    async def mount(self, descriptor: MountDescriptor) -> None:
        def _materialize() -> None:
            self._workdir.mkdir(parents=True, exist_ok=True)
            _write_tree(self._workdir, descriptor)

        try:
            await asyncio.to_thread(_materialize)
        except (OSError, ValueError) as e:
            raise RuntimeUnavailableError(f"Cannot write project to {self._workdir}: {e}") from e
        logger.debug("Mounted %d top-level entries into %s", len(descriptor), self._workdir)

    async def run(self, command: str) -> int:
        """Run command in the workdir and wait for it to exit."""
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=self._workdir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise RuntimeUnavailableError(f"Cannot run {command!r}: {e}") from e
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self._command_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise RuntimeUnavailableError(f"{command!r} timed out after {self._command_timeout}s") from None
        if proc.returncode:
            tail = stdout.decode("utf-8", errors="replace")[-2000:]
            logger.warning("Command %r exited with %s: %s", command, proc.returncode, tail)
        return proc.returncode or 0

    async def start(self, command: str) -> None:
        """Start a long-running process; readiness is resolved from its output."""
        if self._server is not None and self._server.returncode is None:
            logger.info("Dev server already running, not restarting")
            return
        loop = asyncio.get_running_loop()
        self._ready = loop.create_future()
        try:
            self._server = await asyncio.create_subprocess_shell(
                command,
                cwd=self._workdir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise RuntimeUnavailableError(f"Cannot start {command!r}: {e}") from e
        self._reader = asyncio.create_task(self._watch_output(self._server, self._ready))

    async def _watch_output(self, proc: asyncio.subprocess.Process, ready: "asyncio.Future[str]") -> None:
        while True:
            line = await proc.stdout.readline()
            if not line:
                break
            if ready.done():
                continue
            url = extract_url(line.decode("utf-8", errors="replace"))
            if url:
                ready.set_result(url)
        code = await proc.wait()
        if not ready.done():
            ready.set_exception(RuntimeUnavailableError(f"Dev server exited with code {code} before listening"))

    async def wait_ready(self, timeout: float | None = None) -> str:
        if self._ready is None:
            raise RuntimeUnavailableError("No process started")
        try:
            return await asyncio.wait_for(asyncio.shield(self._ready), timeout=timeout)
        except asyncio.TimeoutError:
            raise RuntimeUnavailableError(f"Dev server not ready after {timeout}s") from None

    async def close(self) -> None:
        """Stop the dev server (app shutdown)."""
        if self._server is not None and self._server.returncode is None:
            self._server.terminate()
            try:
                await asyncio.wait_for(self._server.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                self._server.kill()
        if self._reader is not None:
            self._reader.cancel()

