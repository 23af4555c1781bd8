"""
Connection request routes.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from nexus.middleware.auth import SessionUser, require_member
from nexus.routers.dependencies import get_connection_service
from nexus.services.connection_service import CONNECTIONS_URL, ConnectionService
from nexus.utils.executor import run_sync
from nexus.utils.flash import flash
from nexus.utils.templating import render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Connections"])


def _back():
    return RedirectResponse(CONNECTIONS_URL, status_code=303)


@router.get("/connections")
def list_connections(
    request: Request,
    user: SessionUser = Depends(require_member),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    connections = connection_service.list_for_user(user)
    return render(request, "connections.html", connections)


@router.post("/connections/{receiver_id}")
async def send_connection_request(
    receiver_id: str,
    request: Request,
    user: SessionUser = Depends(require_member),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    data = await request.form()
    await run_sync(connection_service.send_request, user, receiver_id, data.get("message"))
    flash(request, "Connection request sent.", "success")
    return _back()


@router.post("/connections/{request_id}/accept")
def accept_connection_request(
    request_id: str,
    request: Request,
    user: SessionUser = Depends(require_member),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    connection_service.accept_request(user, request_id)
    flash(request, "Connection accepted.", "success")
    return _back()


@router.post("/connections/{request_id}/reject")
def reject_connection_request(
    request_id: str,
    request: Request,
    user: SessionUser = Depends(require_member),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    connection_service.reject_request(user, request_id)
    flash(request, "Connection request declined.", "info")
    return _back()


@router.post("/connections/{request_id}/withdraw")
def withdraw_connection_request(
    request_id: str,
    request: Request,
    user: SessionUser = Depends(require_member),
    connection_service: ConnectionService = Depends(get_connection_service)
):
    connection_service.withdraw_request(user, request_id)
    flash(request, "Connection request withdrawn.", "info")
    return _back()
