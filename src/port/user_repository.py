from datetime import datetime
from typing import Protocol

from domain.model.user import OAuthProviderKind, OAuthToken, Profile, User


class UserRepository(Protocol):
    """Protocol defining the interface for account data access.

    Write operations raise DuplicateEmailError or DuplicateProviderError when
    the email or provider-id uniqueness constraint is violated, and
    PersistenceError when the store fails.
    """
    def create(
        self,
        email: str | None,
        password_hash: str | None,
        profile: Profile | None = None,
        facebook: str | None = None,
        tokens: list[OAuthToken] | None = None,
    ) -> User:
        """Insert a new user and return it."""
        ...

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    def get_by_email(self, email: str) -> User | None:
        """Find a user by normalized email. Return User or None if not found."""
        ...

    def get_by_provider(self, kind: OAuthProviderKind, provider_id: str) -> User | None:
        """Find the user linked to a provider identity."""
        ...

    def get_by_reset_token(self, token: str, now: datetime) -> User | None:
        """Find the user holding ``token`` whose expiry is after ``now``."""
        ...

    def update_profile(self, user_id: str, email: str, profile: Profile) -> User | None:
        """Overwrite email and profile fields. Return None if the user is gone."""
        ...

    def set_password(self, user_id: str, password_hash: str) -> bool:
        """Replace the stored password hash. Return True if a user was updated."""
        ...

    def set_reset_token(self, user_id: str, token: str, expires: datetime) -> bool:
        """Store a password reset token and its expiry."""
        ...

    def consume_reset_token(self, token: str, password_hash: str, now: datetime) -> User | None:
        """Atomically replace the password and clear the reset fields.

        Matches only an unexpired token. Return the updated user, or None.
        """
        ...

    def link_provider(
        self, user_id: str, kind: OAuthProviderKind, provider_id: str, token: OAuthToken, profile: Profile,
    ) -> User | None:
        """Attach a provider identity and replace the profile."""
        ...

    def unlink_provider(self, user_id: str, kind: OAuthProviderKind) -> User | None:
        """Clear a provider identity and drop its tokens."""
        ...

    def delete(self, user_id: str) -> bool:
        """Remove a user. Return True if a record was deleted."""
        ...
