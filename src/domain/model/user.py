import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class OAuthProviderKind(str, Enum):
    """OAuth providers an account can be linked to."""
    FACEBOOK = 'facebook'

    @classmethod
    def parse(cls, value: str) -> 'OAuthProviderKind | None':
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class Profile:
    name: str = ''
    gender: str = ''
    location: str = ''
    website: str = ''
    picture: str = ''


@dataclass
class OAuthToken:
    """Access token issued by an OAuth provider."""
    kind: str
    access_token: str


@dataclass
class User:
    """Domain model representing a store account."""
    id: str
    email: str | None
    created_at: datetime
    updated_at: datetime
    password_hash: str | None = None
    profile: Profile = field(default_factory=Profile)
    facebook: str | None = None
    tokens: list[OAuthToken] = field(default_factory=list)
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None

    def linked_id(self, kind: OAuthProviderKind) -> str | None:
        """Provider-issued user id for the given provider, if linked."""
        if kind is OAuthProviderKind.FACEBOOK:
            return self.facebook
        return None

    def has_reset_pending(self, now: datetime) -> bool:
        return (
            self.password_reset_token is not None
            and self.password_reset_expires is not None
            and self.password_reset_expires > now
        )

    def gravatar(self, size: int = 200) -> str:
        if not self.email:
            return f'https://gravatar.com/avatar/?s={size}&d=retro'
        digest = hashlib.md5(self.email.lower().encode('utf-8')).hexdigest()
        return f'https://gravatar.com/avatar/{digest}?s={size}&d=retro'

    @property
    def display_name(self) -> str:
        return self.profile.name or self.email or ''


@dataclass(frozen=True)
class ProviderIdentity:
    """Identity returned by an OAuth provider after a successful handshake."""
    kind: OAuthProviderKind
    provider_id: str
    access_token: str
    email: str | None = None
    name: str = ''
    gender: str = ''
    location: str = ''
    picture: str = ''
