"""
Role dashboards: profile summary, top matches and connection activity.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from nexus.adapters.dynamodb import User
from nexus.middleware.auth import SessionUser, get_current_user, require_investor, require_startup
from nexus.routers.dependencies import (
    get_connection_service,
    get_current_account,
    get_matching_service,
    get_profile_service,
)
from nexus.services.connection_service import ConnectionService
from nexus.services.matching_service import MatchingService
from nexus.services.profile_service import ProfileService
from nexus.utils.flash import flash
from nexus.utils.templating import render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"])

DASHBOARD_MATCH_COUNT = 5


@router.get("/dashboard")
def dashboard_redirect(user: SessionUser = Depends(get_current_user)):
    if user.is_admin:
        return RedirectResponse("/admin", status_code=303)
    return RedirectResponse(f"/dashboard/{user.role}", status_code=303)


def _render_dashboard(
    request: Request,
    user: SessionUser,
    profile,
    account: User,
    matching_service: MatchingService,
    connection_service: ConnectionService
):
    if profile is None or not account.has_filled_profile:
        flash(request, "Complete your profile to start matching.", "info")
        return RedirectResponse(f"/profile/{user.role}", status_code=303)

    if user.role == "startup":
        matches = matching_service.rank_investors_for_startup(profile)
    else:
        matches = matching_service.rank_startups_for_investor(profile)
    connections = connection_service.list_for_user(user)

    return render(request, f"dashboard/{user.role}.html", {
        "account": account,
        "profile": profile,
        "matches": matches[:DASHBOARD_MATCH_COUNT],
        "match_count": len(matches),
        "incoming": connections["incoming"],
        "outgoing": connections["outgoing"],
        "pending_incoming": sum(1 for r in connections["incoming"] if r["status"] == "pending"),
    })


@router.get("/dashboard/startup")
def startup_dashboard(
    request: Request,
    user: SessionUser = Depends(require_startup),
    account: User = Depends(get_current_account),
    profile_service: ProfileService = Depends(get_profile_service),
    matching_service: MatchingService = Depends(get_matching_service),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    profile = profile_service.get_startup(user.user_id)
    return _render_dashboard(request, user, profile, account, matching_service, connection_service)


@router.get("/dashboard/investor")
def investor_dashboard(
    request: Request,
    user: SessionUser = Depends(require_investor),
    account: User = Depends(get_current_account),
    profile_service: ProfileService = Depends(get_profile_service),
    matching_service: MatchingService = Depends(get_matching_service),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    profile = profile_service.get_investor(user.user_id)
    return _render_dashboard(request, user, profile, account, matching_service, connection_service)
