"""Scripted implementation of OAuthProvider for testing."""

from domain.model.errors import OAuthProviderError
from domain.model.user import OAuthProviderKind, ProviderIdentity


class FakeOAuthProvider:
    def __init__(self, identity: ProviderIdentity | None = None, kind: OAuthProviderKind = OAuthProviderKind.FACEBOOK):
        self.kind = kind
        self.identity = identity
        self.exchanged_codes: list[str] = []

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        return f"https://provider.test/dialog?state={state}&redirect_uri={redirect_uri}"

    async def fetch_identity(self, code: str, redirect_uri: str) -> ProviderIdentity:
        self.exchanged_codes.append(code)
        if self.identity is None:
            raise OAuthProviderError("Provider rejected the authorization code")
        return self.identity
