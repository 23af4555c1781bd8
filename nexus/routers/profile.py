"""
Profile routes: role-specific profile forms and the counterparty view.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from nexus.middleware.auth import (
    SessionUser,
    get_current_user,
    require_investor,
    require_startup,
)
from nexus.middleware.error_handling import ValidationException
from nexus.routers.dependencies import get_connection_service, get_current_account, get_profile_service
from nexus.schemas.common import first_error_message
from nexus.schemas.profile import (
    REVENUE_STATUSES,
    RISK_TOLERANCES,
    STAGES,
    InvestorProfileForm,
    StartupProfileForm,
)
from nexus.services.connection_service import ConnectionService
from nexus.services.profile_service import ProfileService
from nexus.utils.executor import run_sync
from nexus.utils.flash import flash
from nexus.utils.templating import render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profiles"])

STARTUP_FIELDS = (
    "startup_name", "industry", "stage", "funding_required", "equity_offered",
    "location", "revenue_status", "team_size", "pitch_description", "tags",
)
INVESTOR_FIELDS = (
    "investor_name", "firm_name", "preferred_industries", "investment_type",
    "min_investment", "max_investment", "location_preference", "risk_tolerance",
    "portfolio_tags", "bio",
)


def _form_options():
    return {"stages": STAGES, "revenue_statuses": REVENUE_STATUSES, "risk_tolerances": RISK_TOLERANCES}


@router.get("/profile")
def profile_redirect(user: SessionUser = Depends(get_current_user)):
    """Send members to their role's form; admins have no profile."""
    if user.is_admin:
        return RedirectResponse("/admin", status_code=303)
    return RedirectResponse(f"/profile/{user.role}", status_code=303)


@router.get("/profile/startup")
def startup_profile_page(
    request: Request,
    user: SessionUser = Depends(require_startup),
    profile_service: ProfileService = Depends(get_profile_service)
):
    profile = profile_service.get_startup(user.user_id)
    return render(request, "profile/startup_form.html", {"profile": profile, **_form_options()})


@router.post("/profile/startup", dependencies=[Depends(get_current_account)])
async def save_startup_profile(
    request: Request,
    user: SessionUser = Depends(require_startup),
    profile_service: ProfileService = Depends(get_profile_service)
):
    data = await request.form()
    try:
        form = StartupProfileForm(**{name: data.get(name) for name in STARTUP_FIELDS if data.get(name) is not None})
    except ValidationError as e:
        raise ValidationException(first_error_message(e), redirect_to="/profile/startup")

    await run_sync(profile_service.save_startup_profile, user.user_id, form)
    flash(request, "Startup profile saved.", "success")
    return RedirectResponse("/dashboard/startup", status_code=303)


@router.get("/profile/investor")
def investor_profile_page(
    request: Request,
    user: SessionUser = Depends(require_investor),
    profile_service: ProfileService = Depends(get_profile_service)
):
    profile = profile_service.get_investor(user.user_id)
    return render(request, "profile/investor_form.html", {"profile": profile, **_form_options()})


@router.post("/profile/investor", dependencies=[Depends(get_current_account)])
async def save_investor_profile(
    request: Request,
    user: SessionUser = Depends(require_investor),
    profile_service: ProfileService = Depends(get_profile_service)
):
    data = await request.form()
    values = {name: data.get(name) for name in INVESTOR_FIELDS if data.get(name) is not None}
    # Stages arrive as repeated checkbox values
    values["preferred_stages"] = data.getlist("preferred_stages")
    values["active_mentoring"] = data.get("active_mentoring") is not None
    try:
        form = InvestorProfileForm(**values)
    except ValidationError as e:
        raise ValidationException(first_error_message(e), redirect_to="/profile/investor")

    await run_sync(profile_service.save_investor_profile, user.user_id, form)
    flash(request, "Investor profile saved.", "success")
    return RedirectResponse("/dashboard/investor", status_code=303)


@router.get("/profiles/{user_id}")
def view_profile(
    user_id: str,
    request: Request,
    user: SessionUser = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    """Public view of another member's profile, with a connect button where allowed."""
    public = profile_service.get_public_profile(user_id)
    owner = public["user"]

    can_connect = (
        not user.is_admin
        and owner.user_id != user.user_id
        and {user.role, owner.role} == {"startup", "investor"}
    )
    already_pending = can_connect and owner.user_id in connection_service.pending_counterparts(user)

    return render(request, "profile/view.html", {
        "owner": owner,
        "profile": public["profile"],
        "can_connect": can_connect and not already_pending,
        "already_pending": already_pending,
    })
