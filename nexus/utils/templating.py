"""
Jinja2 template environment shared by every router.
"""
import os
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates

from nexus.utils.flash import get_flashed_messages

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")

templates = Jinja2Templates(directory=TEMPLATE_DIR)
templates.env.globals["get_flashed_messages"] = get_flashed_messages


def _format_money(value: Any) -> str:
    if value is None or value == "":
        return "-"
    try:
        return f"${float(value):,.0f}"
    except (TypeError, ValueError):
        return str(value)


templates.env.filters["money"] = _format_money


def render(request: Request, name: str, context: Optional[Dict[str, Any]] = None, status_code: int = 200):
    """Render a template with the session user available as current_user."""
    data = {"current_user": request.session.get("user") if "session" in request.scope else None}
    data.update(context or {})
    return templates.TemplateResponse(request, name, data, status_code=status_code)
