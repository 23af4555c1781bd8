"""
Match routes: heuristic ranking and AI-assisted ranking.
"""
import logging

from fastapi import APIRouter, Depends, Request

from nexus.middleware.auth import SessionUser, require_member
from nexus.middleware.rate_limit import limit_strict
from nexus.routers.dependencies import get_connection_service, get_matching_service
from nexus.services.connection_service import ConnectionService
from nexus.services.matching_service import MatchingService
from nexus.utils.executor import run_sync
from nexus.utils.flash import flash
from nexus.utils.templating import render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Matching"])


@router.get("/matches")
def list_matches(
    request: Request,
    user: SessionUser = Depends(require_member),
    matching_service: MatchingService = Depends(get_matching_service),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    """Counterparties ranked by the point heuristic."""
    profile, results = matching_service.matches_for_user(user)
    return render(request, "matches/list.html", {
        "profile": profile,
        "results": results,
        "ai_mode": False,
        "pending": connection_service.pending_counterparts(user),
    })


@router.get("/matches/ai")
@limit_strict
async def ai_matches(
    request: Request,
    user: SessionUser = Depends(require_member),
    matching_service: MatchingService = Depends(get_matching_service),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    """Counterparties ranked by the language model, blended with the heuristic."""
    profile, results = await matching_service.ai_matches_for_user(user)
    pending = await run_sync(connection_service.pending_counterparts, user)
    if results and not any(r.ai_available for r in results):
        flash(request, "AI analysis is unavailable right now. Showing heuristic scores only.", "warning")
    logger.info(f"AI matches for {user.user_id}: {len(results)} candidates")
    return render(request, "matches/list.html", {
        "profile": profile,
        "results": results,
        "ai_mode": True,
        "pending": pending,
    })
