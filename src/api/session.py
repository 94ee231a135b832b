"""Server-side sessions bound to a signed browser cookie.

The cookie carries an HS256 JWT whose ``sid`` claim names a session document
in the session store. The middleware loads the SessionContext before the
route runs and persists it after the response has been produced.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from jose import JWTError, jwt

from api.dependencies import get_session_repo
from domain.model.errors import PersistenceError
from domain.model.session import SessionContext
from port.session_repository import SessionRepository

logger = logging.getLogger(__name__)

SESSION_SECRET = os.getenv("SESSION_SECRET")
if not SESSION_SECRET:
    raise ValueError(
        "SESSION_SECRET environment variable is required. "
        "Generate a secure key with: openssl rand -hex 32"
    )
SESSION_ALGORITHM = "HS256"
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", "1209600"))  # 14 days
COOKIE_NAME = "happe.sid"
COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "0") == "1"

# Anonymous GETs to these pages are not remembered as a post-login destination
_RETURN_TO_EXCLUDED_PATHS = {'/entrar', '/registrar', '/sair', '/esqueci-a-senha', '/health'}
_RETURN_TO_EXCLUDED_PREFIXES = ('/auth/', '/redefinir-senha/')


def _expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=SESSION_MAX_AGE_SECONDS)


def create_session_token(session_id: str, expires_at: datetime) -> str:
    payload = {
        "sid": session_id,
        "exp": expires_at,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, SESSION_SECRET, algorithm=SESSION_ALGORITHM)


def verify_session_token(token: str) -> Optional[str]:
    """Verify a session cookie and extract the session id."""
    try:
        payload = jwt.decode(token, SESSION_SECRET, algorithms=[SESSION_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Session cookie rejected: {e}")
        return None
    return payload.get("sid")


def resolve_session_repo(app: FastAPI) -> SessionRepository:
    """Session repository honoring the app's dependency overrides."""
    factory = app.dependency_overrides.get(get_session_repo, get_session_repo)
    return factory()


def get_session(request: Request) -> SessionContext:
    """Dependency returning the request's session context."""
    return request.state.session


def remember_return_to(request: Request, session: SessionContext) -> None:
    if request.method != "GET":
        return
    path = request.url.path
    if session.is_authenticated:
        if path == '/conta':
            session.remember_return_to(path)
        return
    if (
        path in _RETURN_TO_EXCLUDED_PATHS
        or path.startswith(_RETURN_TO_EXCLUDED_PREFIXES)
        or '.' in path
    ):
        return
    session.remember_return_to(path)


async def session_middleware(request: Request, call_next):
    try:
        repo = resolve_session_repo(request.app)
        session = None
        token = request.cookies.get(COOKIE_NAME)
        session_id = verify_session_token(token) if token else None
        if session_id:
            session = repo.get(session_id)
    except (HTTPException, PersistenceError):
        logger.error("Session store unavailable", extra={"path": request.url.path})
        return PlainTextResponse("Serviço indisponível. Tente novamente mais tarde.", status_code=503)

    if session is None:
        session = SessionContext.create(_expiry())
    request.state.session = session
    remember_return_to(request, session)

    response = await call_next(request)

    if session.dirty:
        session.expires_at = _expiry()
        try:
            if session.previous_id:
                repo.delete(session.previous_id)
            repo.save(session)
        except PersistenceError:
            logger.error("Failed to persist session", extra={"path": request.url.path})
            return PlainTextResponse(
                "Não foi possível completar a operação. Tente novamente mais tarde.", status_code=500,
            )
        response.set_cookie(
            COOKIE_NAME,
            create_session_token(session.id, session.expires_at),
            max_age=SESSION_MAX_AGE_SECONDS,
            httponly=True,
            samesite="lax",
            secure=COOKIE_SECURE,
        )
    return response
