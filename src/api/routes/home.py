"""Home route."""

from fastapi import APIRouter, Depends

from api.rendering import redirect
from api.session import get_session
from domain.model.session import SessionContext

router = APIRouter(tags=["home"])


@router.get("/")
async def index(session: SessionContext = Depends(get_session)):
    """Send signed-in users to their account, everyone else to the login page."""
    if session.is_authenticated:
        return redirect("/conta")
    return redirect("/entrar")
