"""In-memory implementation of UserRepository for testing."""

import copy
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from domain.model.errors import DuplicateEmailError, DuplicateProviderError
from domain.model.user import OAuthProviderKind, OAuthToken, Profile, User


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}

    def _email_taken(self, email: str | None, exclude_id: str | None = None) -> bool:
        if email is None:
            return False
        return any(u.email == email and u.id != exclude_id for u in self.store.values())

    def _provider_taken(self, kind: OAuthProviderKind, provider_id: str | None, exclude_id: str | None = None) -> bool:
        if provider_id is None:
            return False
        return any(u.linked_id(kind) == provider_id and u.id != exclude_id for u in self.store.values())

    def _snapshot(self, user: User | None) -> User | None:
        # Callers must not mutate stored records behind the repository's back.
        return copy.deepcopy(user) if user else None

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        email: str | None,
        password_hash: str | None,
        profile: Profile | None = None,
        facebook: str | None = None,
        tokens: list[OAuthToken] | None = None,
    ) -> User:
        if self._email_taken(email):
            raise DuplicateEmailError()
        if self._provider_taken(OAuthProviderKind.FACEBOOK, facebook):
            raise DuplicateProviderError()

        now = datetime.now(timezone.utc)
        user = User(
            id=uuid.uuid4().hex,
            email=email,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
            profile=profile or Profile(),
            facebook=facebook,
            tokens=list(tokens or []),
        )
        self.store[user.id] = user
        return self._snapshot(user)

    def update_profile(self, user_id: str, email: str, profile: Profile) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        if self._email_taken(email, exclude_id=user_id):
            raise DuplicateEmailError()

        user.email = email
        user.profile = replace(profile, picture=user.profile.picture)
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def set_password(self, user_id: str, password_hash: str) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False
        user.password_hash = password_hash
        user.updated_at = datetime.now(timezone.utc)
        return True

    def set_reset_token(self, user_id: str, token: str, expires: datetime) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False
        user.password_reset_token = token
        user.password_reset_expires = expires
        user.updated_at = datetime.now(timezone.utc)
        return True

    def consume_reset_token(self, token: str, password_hash: str, now: datetime) -> User | None:
        user = self._find_by_reset_token(token, now)
        if not user:
            return None
        user.password_hash = password_hash
        user.password_reset_token = None
        user.password_reset_expires = None
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def link_provider(
        self, user_id: str, kind: OAuthProviderKind, provider_id: str, token: OAuthToken, profile: Profile,
    ) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        if self._provider_taken(kind, provider_id, exclude_id=user_id):
            raise DuplicateProviderError()
        if kind is OAuthProviderKind.FACEBOOK:
            user.facebook = provider_id
        user.tokens = [t for t in user.tokens if t.kind != kind.value] + [token]
        user.profile = profile
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def unlink_provider(self, user_id: str, kind: OAuthProviderKind) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        if kind is OAuthProviderKind.FACEBOOK:
            user.facebook = None
        user.tokens = [t for t in user.tokens if t.kind != kind.value]
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def delete(self, user_id: str) -> bool:
        return self.store.pop(user_id, None) is not None

    # ── read operations ──────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        return self._snapshot(self.store.get(user_id))

    def get_by_email(self, email: str) -> User | None:
        for user in self.store.values():
            if user.email == email:
                return self._snapshot(user)
        return None

    def get_by_provider(self, kind: OAuthProviderKind, provider_id: str) -> User | None:
        for user in self.store.values():
            if user.linked_id(kind) == provider_id:
                return self._snapshot(user)
        return None

    def get_by_reset_token(self, token: str, now: datetime) -> User | None:
        return self._snapshot(self._find_by_reset_token(token, now))

    def _find_by_reset_token(self, token: str, now: datetime) -> User | None:
        for user in self.store.values():
            if user.password_reset_token == token and user.has_reset_pending(now):
                return user
        return None
