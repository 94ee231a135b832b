"""Template rendering and redirect helpers for the server-rendered pages."""

from pathlib import Path

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from api.session import get_session

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

SITE_NAME = "Supermercado HAPPE"


def render(request: Request, template_name: str, ctx: dict | None = None, status_code: int = 200):
    """TemplateResponse wrapper injecting session state.

    Queued flash notices are consumed here, so they show exactly once.
    """
    session = get_session(request)
    base_ctx = {
        "site_name": SITE_NAME,
        "current_user": getattr(request.state, "user", None),
        "messages": session.consume_flashes(),
        "csrf_token": session.csrf_token,
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)
