"""Session store - one JSON file per session under sessions_dir."""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from src.domain.entities.workspace_session import SessionSummary, WorkspaceSession
from src.domain.errors import PersistenceError, SessionNotFoundError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FileSessionStore:
    """File-backed SessionStorePort.

    Record layout: {id, owner_id, created_at, updated_at, session}. Writes go
    to a temp file first and are renamed into place, so a failed write keeps
    the previous record intact.
    """

    def __init__(self, sessions_dir: str | Path = "output/sessions") -> None:
        self._base = Path(sessions_dir)
        self._lock = threading.RLock()

    def _path(self, session_id: str) -> Path:
        # Ids are generated here; reject anything that could leave the directory.
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise SessionNotFoundError(session_id)
        return self._base / f"{session_id}.json"

    def _read(self, session_id: str) -> dict:
        path = self._path(session_id)
        if not path.exists():
            raise SessionNotFoundError(session_id)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupted session file {path.name}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read session {session_id}: {e}") from e

    def _write(self, record: dict) -> None:
        path = self._path(record["id"])
        tmp_file = path.with_suffix(".tmp")
        try:
            self._base.mkdir(parents=True, exist_ok=True)
            tmp_file.write_text(json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_file.replace(path)
        except OSError as e:
            tmp_file.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to save session {record['id']}: {e}") from e

    def create(self, session: WorkspaceSession, owner_id: str) -> str:
        session_id = uuid.uuid4().hex
        now = _now()
        record = {
            "id": session_id,
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
            "session": session.model_copy(update={"id": session_id}).model_dump(mode="json"),
        }
        with self._lock:
            self._write(record)
        logger.info("Created session %s for owner %s", session_id, owner_id)
        return session_id

    def update(self, session_id: str, session: WorkspaceSession) -> None:
        with self._lock:
            record = self._read(session_id)
            record["session"] = session.model_copy(update={"id": session_id}).model_dump(mode="json")
            record["updated_at"] = _now()
            self._write(record)

    def get(self, session_id: str) -> WorkspaceSession:
        with self._lock:
            record = self._read(session_id)
        try:
            return WorkspaceSession.model_validate(record["session"])
        except (KeyError, ValidationError) as e:
            raise PersistenceError(f"Malformed session {session_id}: {e}") from e

    def list_by_owner(self, owner_id: str) -> list[SessionSummary]:
        if not self._base.exists():
            return []
        summaries: list[SessionSummary] = []
        with self._lock:
            for path in self._base.glob("*.json"):
                try:
                    record = json.loads(path.read_text(encoding="utf-8"))
                    if record.get("owner_id") != owner_id:
                        continue
                    session = record["session"]
                    summaries.append(
                        SessionSummary(
                            id=record["id"],
                            title=session.get("title", ""),
                            prompt=session.get("prompt", ""),
                            created_at=record["created_at"],
                        )
                    )
                except (OSError, json.JSONDecodeError, KeyError, ValidationError):
                    logger.warning("Skipping unreadable session file %s", path, exc_info=True)
        summaries.sort(key=lambda s: s.created_at, reverse=True)
        return summaries

    def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                return False
            try:
                path.unlink()
            except OSError as e:
                raise PersistenceError(f"Failed to delete session {session_id}: {e}") from e
        return True
