"""FastAPI application entry point."""

import os
import sys
import logging
import tomllib
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import Depends, FastAPI, Request, status
from dotenv import load_dotenv

# Must be called before importing modules that read env vars (like the session cookie secret)
load_dotenv()

# main.py is at <root>/src/api/main.py; src is two levels up
_src_path = Path(__file__).parent.parent
sys.path.insert(0, str(_src_path))

from api.middleware.access_log import access_log_middleware
from api.rendering import redirect, render
from api.routes import account, auth, health, home, oauth
from api.security import LoginRequired, csrf_protect, security_headers_middleware
from api.session import get_session, session_middleware
from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.indexes import ensure_all_indexes
from domain.model.errors import EmailDeliveryError, OAuthProviderError, PersistenceError
from utils.logging import setup_structured_logging

setup_structured_logging()

logger = logging.getLogger(__name__)

# Version lives in pyproject.toml (single source of truth)
_project_root = _src_path.parent
with open(_project_root / "pyproject.toml", "rb") as f:
    VERSION = tomllib.load(f)["project"]["version"]

SERVICE_NAME = "Supermercado HAPPE"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: the credential store must be reachable to start."""
    client = get_mongodb_client()
    if client is None:
        logger.error("MongoDB connection error. Please make sure MongoDB is running.")
        raise RuntimeError("MongoDB unavailable at startup")

    if ensure_all_indexes(client[DATABASE_NAME]):
        logger.info("MongoDB indexes verified/created successfully")
    else:
        logger.warning("Failed to create some MongoDB indexes")

    yield


app = FastAPI(
    title=SERVICE_NAME,
    version=VERSION,
    lifespan=lifespan,
    dependencies=[Depends(csrf_protect)],
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# Last registered runs first: access log → security headers → session
app.middleware("http")(session_middleware)
app.middleware("http")(security_headers_middleware)
app.middleware("http")(access_log_middleware)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return redirect("/entrar")


@app.exception_handler(OAuthProviderError)
async def oauth_provider_error_handler(request: Request, exc: OAuthProviderError):
    get_session(request).flash("errors", str(exc))
    return redirect("/entrar")


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Request failed on the credential store", extra={"path": request.url.path, "error": str(exc)})
    return render(
        request, "error.html",
        {"title": "Erro", "detail": "Não foi possível completar a operação. Tente novamente mais tarde."},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.exception_handler(EmailDeliveryError)
async def email_delivery_error_handler(request: Request, exc: EmailDeliveryError):
    logger.error("Request failed sending email", extra={"path": request.url.path})
    return render(
        request, "error.html",
        {"title": "Erro", "detail": "Não foi possível enviar o email. Tente novamente mais tarde."},
        status_code=status.HTTP_502_BAD_GATEWAY,
    )


app.include_router(home.router)
app.include_router(auth.router)
app.include_router(account.router)
app.include_router(oauth.router)
app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 3000))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        access_log=False  # requests are logged by access_log_middleware
    )
