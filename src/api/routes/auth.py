"""Authentication routes (login, logout, signup, password recovery).

Endpoints:
- GET/POST /entrar: login page / submit
- GET /sair: logout
- GET/POST /registrar: signup page / submit
- GET/POST /esqueci-a-senha: forgot-password page / submit
- GET/POST /redefinir-senha/{token}: reset page / submit
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Form, Request

from api.dependencies import get_mailer, get_user_repo
from api.rendering import redirect, render
from api.session import get_session
from domain.model.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    ValidationError,
)
from domain.model.session import SessionContext
from port.mailer import Mailer
from port.user_repository import UserRepository
from services import auth_service, password_reset_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

# Same notice whether or not the email is registered
FORGOT_NOTICE = (
    "Se existir uma conta vinculada a esse email, enviamos as instruções "
    "para alterar a sua senha."
)


def flash_validation(session: SessionContext, error: ValidationError) -> None:
    for message in error.messages:
        session.flash("errors", message)


# ── login / logout ───────────────────────────────────────────


@router.get("/entrar")
async def get_login(request: Request, session: SessionContext = Depends(get_session)):
    if session.is_authenticated:
        return redirect("/")
    return render(request, "account/login.html", {"title": "Entrar"})


@router.post("/entrar")
async def post_login(
    email: str = Form(""),
    password: str = Form(""),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    try:
        user = auth_service.authenticate(repo, email, password)
    except ValidationError as e:
        flash_validation(session, e)
        return redirect("/entrar")
    except InvalidCredentialsError as e:
        session.flash("errors", str(e))
        return redirect("/entrar")

    target = session.pop_return_to()
    session.login(user.id)
    name = user.profile.name
    session.flash("success", f"Seja bem-vindo {name}!" if name else "Seja bem-vindo!")
    logger.info("User logged in", extra={"userId": user.id})
    return redirect(target)


@router.get("/sair")
async def logout(session: SessionContext = Depends(get_session)):
    if session.user_id:
        logger.info("User logged out", extra={"userId": session.user_id})
    session.logout()
    return redirect("/")


# ── signup ───────────────────────────────────────────────────


@router.get("/registrar")
async def get_signup(request: Request, session: SessionContext = Depends(get_session)):
    if session.is_authenticated:
        return redirect("/")
    return render(request, "account/signup.html", {"title": "Registrar"})


@router.post("/registrar")
async def post_signup(
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    try:
        user = auth_service.signup(repo, email, password, confirm_password)
    except ValidationError as e:
        flash_validation(session, e)
        return redirect("/registrar")
    except DuplicateEmailError as e:
        session.flash("errors", str(e))
        return redirect("/registrar")

    session.login(user.id)
    return redirect("/")


# ── password recovery ────────────────────────────────────────


@router.get("/esqueci-a-senha")
async def get_forgot(request: Request, session: SessionContext = Depends(get_session)):
    if session.is_authenticated:
        return redirect("/")
    return render(request, "account/forgot.html", {"title": "Esqueci a senha"})


@router.post("/esqueci-a-senha")
async def post_forgot(
    request: Request,
    email: str = Form(""),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
    mailer: Mailer = Depends(get_mailer),
):
    try:
        await asyncio.to_thread(
            password_reset_service.request_password_reset, repo, mailer, email, str(request.base_url),
        )
    except ValidationError as e:
        flash_validation(session, e)
        return redirect("/esqueci-a-senha")

    session.flash("info", FORGOT_NOTICE)
    return redirect("/esqueci-a-senha")


@router.get("/redefinir-senha/{token}")
async def get_reset(
    request: Request,
    token: str,
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    if session.is_authenticated:
        return redirect("/")
    try:
        password_reset_service.validate_reset_token(repo, token)
    except InvalidOrExpiredTokenError as e:
        session.flash("errors", str(e))
        return redirect("/esqueci-a-senha")
    return render(request, "account/reset.html", {"title": "Alterar Senha", "token": token})


@router.post("/redefinir-senha/{token}")
async def post_reset(
    token: str,
    password: str = Form(""),
    confirm: str = Form(""),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
    mailer: Mailer = Depends(get_mailer),
):
    try:
        result = await asyncio.to_thread(
            password_reset_service.perform_reset, repo, mailer, token, password, confirm,
        )
    except ValidationError as e:
        flash_validation(session, e)
        return redirect(f"/redefinir-senha/{token}")
    except InvalidOrExpiredTokenError as e:
        session.flash("errors", str(e))
        return redirect("/esqueci-a-senha")

    session.login(result.user.id)
    session.flash("success", "A sua senha foi alterada com sucesso.")
    return redirect("/")
