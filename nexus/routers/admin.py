"""
Admin routes: user overview and verification badges.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from nexus.middleware.auth import SessionUser, require_admin
from nexus.routers.dependencies import get_user_service
from nexus.services.user_service import UserService
from nexus.utils.flash import flash
from nexus.utils.templating import render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("")
def admin_dashboard(
    request: Request,
    user: SessionUser = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    users = user_service.list_users()
    counts = {
        "total": len(users),
        "startup": sum(1 for u in users if u["role"] == "startup"),
        "investor": sum(1 for u in users if u["role"] == "investor"),
        "verified": sum(1 for u in users if u["is_verified"]),
    }
    return render(request, "admin.html", {"users": users, "counts": counts})


@router.post("/users/{user_id}/verify")
def toggle_verification(
    user_id: str,
    request: Request,
    user: SessionUser = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    """Flip a user's verified badge."""
    target = user_service.toggle_verified(user_id)
    state = "verified" if target.is_verified else "unverified"
    flash(request, f"{target.username} is now {state}.", "success")
    logger.info(f"Admin {user.user_id} marked {user_id} {state}")
    return RedirectResponse("/admin", status_code=303)
