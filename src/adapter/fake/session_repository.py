"""In-memory implementation of SessionRepository for testing."""

import copy
from datetime import datetime, timezone

from domain.model.session import SessionContext


class FakeSessionRepository:
    def __init__(self):
        self.store: dict[str, SessionContext] = {}

    def get(self, session_id: str) -> SessionContext | None:
        session = self.store.get(session_id)
        if not session:
            return None
        if session.expires_at <= datetime.now(timezone.utc):
            del self.store[session_id]
            return None
        loaded = copy.deepcopy(session)
        loaded.previous_id = None
        loaded.dirty = False
        return loaded

    def save(self, session: SessionContext) -> None:
        self.store[session.id] = copy.deepcopy(session)

    def delete(self, session_id: str) -> None:
        self.store.pop(session_id, None)
