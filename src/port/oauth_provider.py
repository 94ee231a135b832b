"""Port definition for OAuth providers."""

from typing import Protocol

from domain.model.user import OAuthProviderKind, ProviderIdentity


class OAuthProvider(Protocol):
    kind: OAuthProviderKind

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        """URL of the provider's consent dialog."""
        ...

    async def fetch_identity(self, code: str, redirect_uri: str) -> ProviderIdentity:
        """Exchange an authorization code and load the provider profile.

        Raises OAuthProviderError when the provider rejects the exchange.
        """
        ...
