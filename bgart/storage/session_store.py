from pathlib import Path
import json
import re
from typing import List, Optional

from ..services.session import MockupSession

_SESSION_ID_RE = re.compile(r"^[0-9a-f]{32}$")


class SessionStore:
    """Mockup sessions as JSON on disk: one file per session."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Optional[Path]:
        if not _SESSION_ID_RE.match(session_id or ""):
            return None
        return self.data_dir / f"{session_id}.json"

    def create(self) -> MockupSession:
        session = MockupSession()
        self.save(session)
        return session

    def get(self, session_id: str) -> Optional[MockupSession]:
        p = self._path(session_id)
        if p is None or not p.exists():
            return None
        with p.open("r", encoding="utf-8") as f:
            return MockupSession.from_dict(json.load(f))

    def save(self, session: MockupSession):
        p = self._path(session.id)
        if p is None:
            raise ValueError(f"Invalid session id: {session.id!r}")
        with p.open("w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, ensure_ascii=False)

    def delete(self, session_id: str):
        p = self._path(session_id)
        if p is not None:
            p.unlink(missing_ok=True)

    def list_ids(self) -> List[str]:
        return sorted(p.stem for p in self.data_dir.glob("*.json") if _SESSION_ID_RE.match(p.stem))
