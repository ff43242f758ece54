"""
MovieFinder — Session Manager

In-memory session store. Each session owns one SearchController and acts
as its presentation sink: whatever the controller publishes (results or
an error) is what the session shows, so a superseded search can never
overwrite a newer one.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from moviefinder.config import settings
from moviefinder.models import EnrichedMovie
from moviefinder.pipeline import SearchController, get_source

logger = logging.getLogger(__name__)


@dataclass
class SearchSession:
    session_id: str
    controller: SearchController = field(init=False)
    last_error: Optional[Dict[str, str]] = None
    last_seen: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self.controller = SearchController(
            get_source(),
            on_results=self._show_results,
            on_error=self._show_error,
        )

    def _show_results(self, movies: List[EnrichedMovie]) -> None:
        self.last_error = None
        logger.debug("Session %s shows %d movies", self.session_id, len(movies))

    def _show_error(self, kind: str, message: str) -> None:
        self.last_error = {"kind": kind, "message": message}
        logger.info("Session %s: %s (%s)", self.session_id, kind, message)


# ── In-memory store ───────────────────────────────────────

_sessions: Dict[str, SearchSession] = {}


def _ttl() -> timedelta:
    return timedelta(minutes=settings.session_ttl_minutes)


def get_or_create_session(session_id: Optional[str] = None) -> SearchSession:
    """Return existing session or create a new one."""
    if session_id and session_id in _sessions:
        session = _sessions[session_id]
        session.last_seen = datetime.utcnow()
        return session

    new_id = session_id or str(uuid.uuid4())
    session = SearchSession(session_id=new_id)
    _sessions[new_id] = session
    return session


def get_session(session_id: str) -> Optional[SearchSession]:
    """Get a session by ID."""
    return _sessions.get(session_id)


def delete_session(session_id: str) -> bool:
    """Delete a session. Returns True if it existed."""
    return _sessions.pop(session_id, None) is not None


def cleanup_expired() -> int:
    """Remove sessions idle for longer than the TTL. Returns count removed."""
    now = datetime.utcnow()
    expired = [sid for sid, s in _sessions.items() if now - s.last_seen > _ttl()]
    for sid in expired:
        _sessions.pop(sid, None)
    return len(expired)
