"""
Public landing page.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from nexus.middleware.auth import SessionUser, get_optional_user
from nexus.utils.templating import render

router = APIRouter(tags=["Home"])


@router.get("/")
def home(request: Request, user: Optional[SessionUser] = Depends(get_optional_user)):
    """Landing page; logged-in users see a link to their dashboard."""
    return render(request, "home.html", {"user": user})
