"""Request guards: CSRF verification, login requirement and security headers."""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from api.dependencies import get_user_repo
from api.session import get_session
from domain.model.session import SessionContext
from domain.model.user import User
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

CSRF_FORM_FIELD = "_csrf"
CSRF_HEADER = "x-csrf-token"
CSRF_EXEMPT_PATHS = {"/api/upload"}
_SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}
_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

SECURITY_HEADERS = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "1; mode=block",
}


class LoginRequired(Exception):
    """Raised when an anonymous request reaches a page that needs a user."""


async def csrf_protect(request: Request) -> None:
    """Reject unsafe requests that don't echo the session's CSRF token."""
    if request.method in _SAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
        return

    session = get_session(request)
    submitted = request.headers.get(CSRF_HEADER)
    if not submitted and request.headers.get("content-type", "").startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        submitted = form.get(CSRF_FORM_FIELD)

    if not submitted or not secrets.compare_digest(str(submitted), session.csrf_token):
        logger.warning("CSRF token mismatch", extra={"path": request.url.path, "method": request.method})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token")


def get_current_user(
    request: Request,
    session: SessionContext = Depends(get_session),
    user_repo: UserRepository = Depends(get_user_repo),
) -> Optional[User]:
    """Get the signed-in user (optional). Returns None for anonymous sessions."""
    if not session.user_id:
        return None

    user = user_repo.get_by_id(session.user_id)
    if not user:
        # Account removed while the session was alive
        session.logout()
        return None

    request.state.user = user
    return user


def get_current_user_required(user: Optional[User] = Depends(get_current_user)) -> User:
    """Get the signed-in user (required). Anonymous requests are sent to the login page."""
    if user is None:
        raise LoginRequired()
    return user


async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response
