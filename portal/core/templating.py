# portal/core/templating.py
from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates

from portal.core.config import get_settings

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["site_name"] = get_settings().PROJECT_NAME


def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
):
    """Render `name` with `user=None` and no notifications unless given."""
    ctx: dict[str, Any] = {"user": None, "notifications": []}
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)
