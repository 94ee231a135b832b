"""OAuth handshake routes (Facebook Login).

Endpoints:
- GET /auth/facebook: redirect to the consent dialog
- GET /auth/facebook/callback: finish the handshake and sign in or link
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_facebook_provider, get_user_repo
from api.rendering import redirect
from api.session import get_session
from domain.model.errors import OAuthLinkError
from domain.model.session import SessionContext
from port.oauth_provider import OAuthProvider
from port.user_repository import UserRepository
from services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["oauth"])


def _callback_url(request: Request) -> str:
    return str(request.url_for("facebook_callback"))


@router.get("/facebook")
async def facebook_login(
    request: Request,
    session: SessionContext = Depends(get_session),
    provider: OAuthProvider = Depends(get_facebook_provider),
):
    state = session.begin_oauth()
    return redirect(provider.authorization_url(state, _callback_url(request)))


@router.get("/facebook/callback", name="facebook_callback")
async def facebook_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    session: SessionContext = Depends(get_session),
    provider: OAuthProvider = Depends(get_facebook_provider),
    repo: UserRepository = Depends(get_user_repo),
):
    state_ok = session.finish_oauth(state)
    if error or not code or not state_ok:
        logger.info("Facebook login aborted", extra={"error": error, "state_ok": state_ok})
        session.flash("errors", "Não foi possível entrar com o Facebook.")
        return redirect("/entrar")

    identity = await provider.fetch_identity(code, _callback_url(request))
    try:
        user, notice = auth_service.authenticate_oauth(repo, identity, session.user_id)
    except OAuthLinkError as e:
        session.flash("errors", str(e))
        return redirect("/conta" if session.is_authenticated else "/entrar")

    if notice:
        session.flash("info", notice)
    if session.user_id != user.id:
        session.login(user.id)
    return redirect(session.pop_return_to())
