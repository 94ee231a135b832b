"""Account management routes. All require a signed-in user.

Endpoints:
- GET /conta: profile page
- POST /conta/perfil: update profile
- POST /conta/senha: change password
- POST /conta/excluir: delete account
- GET /conta/desvincular/{provider}: unlink an OAuth provider
"""

import logging

from fastapi import APIRouter, Depends, Form, Request

from api.dependencies import get_user_repo
from api.rendering import redirect, render
from api.routes.auth import flash_validation
from api.security import get_current_user_required
from api.session import get_session
from domain.model.errors import DuplicateEmailError, ValidationError
from domain.model.session import SessionContext
from domain.model.user import OAuthProviderKind, User
from port.user_repository import UserRepository
from services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conta", tags=["account"])


@router.get("")
async def get_account(request: Request, user: User = Depends(get_current_user_required)):
    return render(request, "account/profile.html", {
        "title": "Gerenciar Conta",
        "user": user,
        "providers": list(OAuthProviderKind),
    })


@router.post("/perfil")
async def post_update_profile(
    email: str = Form(""),
    name: str = Form(""),
    gender: str = Form(""),
    location: str = Form(""),
    website: str = Form(""),
    user: User = Depends(get_current_user_required),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    try:
        auth_service.update_profile(repo, user.id, email, name, gender, location, website)
    except ValidationError as e:
        flash_validation(session, e)
        return redirect("/conta")
    except DuplicateEmailError as e:
        session.flash("errors", str(e))
        return redirect("/conta")

    session.flash("success", "As informações do perfil foram atualizadas.")
    return redirect("/conta")


@router.post("/senha")
async def post_update_password(
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    user: User = Depends(get_current_user_required),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    try:
        auth_service.change_password(repo, user.id, password, confirm_password)
    except ValidationError as e:
        flash_validation(session, e)
        return redirect("/conta")

    session.flash("success", "A senha foi alterada.")
    return redirect("/conta")


@router.post("/excluir")
async def post_delete_account(
    user: User = Depends(get_current_user_required),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    auth_service.delete_account(repo, user.id)
    session.logout()
    session.flash("info", "Conta excluída.")
    return redirect("/")


@router.get("/desvincular/{provider}")
async def get_oauth_unlink(
    provider: str,
    user: User = Depends(get_current_user_required),
    session: SessionContext = Depends(get_session),
    repo: UserRepository = Depends(get_user_repo),
):
    kind = OAuthProviderKind.parse(provider)
    if kind is None:
        session.flash("errors", f"Provedor desconhecido: {provider}.")
        return redirect("/conta")

    auth_service.unlink_provider(repo, user.id, kind)
    session.flash("info", f"A conta do {kind.value.capitalize()} foi desvinculada do seu perfil.")
    return redirect("/conta")
