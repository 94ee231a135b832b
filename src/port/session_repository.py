from typing import Protocol

from domain.model.session import SessionContext


class SessionRepository(Protocol):
    """Protocol defining the interface for server-side session storage."""
    def get(self, session_id: str) -> SessionContext | None:
        """Load an unexpired session. Return None if missing or expired."""
        ...

    def save(self, session: SessionContext) -> None:
        """Insert or replace the session document."""
        ...

    def delete(self, session_id: str) -> None:
        ...
