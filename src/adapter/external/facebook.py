"""Facebook Login adapter.

Implements OAuthProvider with the Graph API authorization-code flow:
consent dialog → code → access token → /me profile.

API Documentation: https://developers.facebook.com/docs/facebook-login/guides/advanced/manual-flow
"""

import logging
import os
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from domain.model.errors import OAuthProviderError
from domain.model.user import OAuthProviderKind, ProviderIdentity

logger = logging.getLogger(__name__)

FACEBOOK_ID = os.getenv("FACEBOOK_ID", "")
FACEBOOK_SECRET = os.getenv("FACEBOOK_SECRET", "")
GRAPH_API_VERSION = "v19.0"
DIALOG_URL = f"https://www.facebook.com/{GRAPH_API_VERSION}/dialog/oauth"
GRAPH_URL = f"https://graph.facebook.com/{GRAPH_API_VERSION}"
SCOPES = ("email", "public_profile")
PROFILE_FIELDS = "id,name,email,first_name,last_name,gender,location"
API_TIMEOUT_SECONDS = 5.0


class _TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int | None = None


class _Location(BaseModel):
    name: str = ""


class _ProfileResponse(BaseModel):
    id: str
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    gender: str = ""
    location: _Location | None = None

    @property
    def full_name(self) -> str:
        return self.name or f"{self.first_name} {self.last_name}".strip()


class FacebookOAuthAdapter:
    """Adapter that authenticates users against Facebook Login."""

    kind = OAuthProviderKind.FACEBOOK

    def __init__(self, client_id: str = FACEBOOK_ID, client_secret: str = FACEBOOK_SECRET):
        self.client_id = client_id
        self.client_secret = client_secret

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "scope": ",".join(SCOPES),
            "response_type": "code",
        })
        return f"{DIALOG_URL}?{query}"

    async def fetch_identity(self, code: str, redirect_uri: str) -> ProviderIdentity:
        try:
            async with httpx.AsyncClient(timeout=API_TIMEOUT_SECONDS) as client:
                token_response = await _get_with_retry(client, f"{GRAPH_URL}/oauth/access_token", {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": redirect_uri,
                    "code": code,
                })
                token_response.raise_for_status()
                token = _TokenResponse.model_validate(token_response.json())

                profile_response = await _get_with_retry(client, f"{GRAPH_URL}/me", {
                    "fields": PROFILE_FIELDS,
                    "access_token": token.access_token,
                })
                profile_response.raise_for_status()
                profile = _ProfileResponse.model_validate(profile_response.json())
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Facebook API HTTP error",
                extra={"status_code": e.response.status_code, "url": str(e.request.url.copy_with(query=None))},
            )
            raise OAuthProviderError("Facebook recusou a autenticação.") from e
        except httpx.RequestError as e:
            logger.warning("Facebook API request error", extra={"error_type": type(e).__name__})
            raise OAuthProviderError("Não foi possível contatar o Facebook.") from e
        except PydanticValidationError as e:
            logger.warning("Unexpected Facebook API payload", extra={"errors": e.error_count()})
            raise OAuthProviderError("Resposta inesperada do Facebook.") from e

        return ProviderIdentity(
            kind=self.kind,
            provider_id=profile.id,
            access_token=token.access_token,
            email=profile.email,
            name=profile.full_name,
            gender=profile.gender,
            location=profile.location.name if profile.location else "",
            picture=f"{GRAPH_URL}/{profile.id}/picture?type=large",
        )


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=4),
    reraise=True,
)
async def _get_with_retry(client: httpx.AsyncClient, url: str, params: dict) -> httpx.Response:
    """GET with automatic retry on transient failures."""
    return await client.get(url, params=params)
