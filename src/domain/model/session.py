"""Session domain model: request-scoped authentication and notice state.

A SessionContext is loaded by the session middleware at the start of every
request, handed to route handlers through ``request.state.session`` and
written back to the session store once the response has been produced.
"""

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime

FLASH_CATEGORIES = ('errors', 'success', 'info')


def new_session_id() -> str:
    return uuid.uuid4().hex


def new_csrf_token() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class SessionContext:
    """Server-side session bound to a browser cookie."""

    id: str
    expires_at: datetime
    user_id: str | None = None
    flashes: dict[str, list[str]] = field(default_factory=dict)
    return_to: str | None = None
    csrf_token: str = field(default_factory=new_csrf_token)
    oauth_state: str | None = None
    # Id the session was loaded under; differs from ``id`` after rotation.
    previous_id: str | None = None
    dirty: bool = False

    @classmethod
    def create(cls, expires_at: datetime) -> 'SessionContext':
        return cls(id=new_session_id(), expires_at=expires_at, dirty=True)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    # ── identity ────────────────────────────────────────────

    def login(self, user_id: str) -> None:
        """Bind the session to a user under a fresh session id."""
        self._rotate()
        self.user_id = user_id
        self.dirty = True

    def logout(self) -> None:
        self.user_id = None
        self.return_to = None
        self.dirty = True

    def _rotate(self) -> None:
        if self.previous_id is None:
            self.previous_id = self.id
        self.id = new_session_id()
        self.csrf_token = new_csrf_token()

    # ── flash notices ───────────────────────────────────────

    def flash(self, category: str, message: str) -> None:
        if category not in FLASH_CATEGORIES:
            raise ValueError(f"Unknown flash category: {category}")
        self.flashes.setdefault(category, []).append(message)
        self.dirty = True

    def consume_flashes(self) -> dict[str, list[str]]:
        """Return all queued notices and clear the queue."""
        pending = self.flashes
        self.flashes = {}
        if pending:
            self.dirty = True
        return pending

    # ── navigation ──────────────────────────────────────────

    def remember_return_to(self, path: str) -> None:
        if self.return_to != path:
            self.return_to = path
            self.dirty = True

    def pop_return_to(self, default: str = '/') -> str:
        target = self.return_to or default
        if self.return_to is not None:
            self.return_to = None
            self.dirty = True
        return target

    # ── OAuth handshake ─────────────────────────────────────

    def begin_oauth(self) -> str:
        self.oauth_state = secrets.token_urlsafe(24)
        self.dirty = True
        return self.oauth_state

    def finish_oauth(self, state: str | None) -> bool:
        """Consume the pending OAuth state. Return True if it matches."""
        expected = self.oauth_state
        self.oauth_state = None
        self.dirty = True
        if not expected or not state:
            return False
        return secrets.compare_digest(expected, state)
