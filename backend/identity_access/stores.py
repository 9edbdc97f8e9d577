"""
In-memory session store for development and tests.

Why: Keep the cookie opaque. The session id maps server-side to the viewer
role; authentication flows that create sessions live outside this service.
For production, replace with a Redis/DB-backed store exposing the same API.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import secrets
import threading
import time

from backend.identity_access.domain import normalize_role


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    role: str
    expires_at: Optional[int] = None


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def create(self, *, role: str, ttl_seconds: int = 3600) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(session_id=sid, role=normalize_role(role), expires_at=_now() + ttl_seconds)
        with self._lock:
            self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            rec = self._data.get(session_id)
            if not rec:
                return None
            if rec.expires_at and rec.expires_at < _now():
                self._data.pop(session_id, None)
                return None
            return rec
