"""
Session authentication helpers.

The session cookie (Starlette SessionMiddleware) carries a minimal identity:
{"user_id", "username", "role"}. Route dependencies below gate access by
login state and role; failures raise exceptions that the error handlers turn
into a flash message and a redirect.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from nexus.middleware.error_handling import AuthenticationRequired, PermissionDenied

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user"


@dataclass(frozen=True)
class SessionUser:
    """Identity of the logged-in user as stored in the session."""
    user_id: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def login_user(request: Request, user) -> None:
    """Start a fresh session for the given user model."""
    flashes = request.session.get("_flashes", [])
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.to_session()
    if flashes:
        request.session["_flashes"] = flashes
    logger.info(f"User {user.user_id} logged in")


def logout_user(request: Request) -> None:
    user = request.session.get(SESSION_USER_KEY) or {}
    request.session.clear()
    if user:
        logger.info(f"User {user.get('user_id')} logged out")


def get_optional_user(request: Request) -> Optional[SessionUser]:
    """The logged-in user, or None for anonymous requests."""
    data = request.session.get(SESSION_USER_KEY)
    if not data or not data.get("user_id"):
        return None
    return SessionUser(
        user_id=data["user_id"],
        username=data.get("username", ""),
        role=data.get("role", ""),
    )


def get_current_user(user: Optional[SessionUser] = Depends(get_optional_user)) -> SessionUser:
    """Require a logged-in user."""
    if user is None:
        raise AuthenticationRequired()
    return user


def require_role(*roles: str):
    """Dependency factory gating a route to the given roles."""

    def dependency(user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if user.role not in roles:
            logger.info(f"User {user.user_id} ({user.role}) denied; requires {roles}")
            raise PermissionDenied()
        return user

    return dependency


require_startup = require_role("startup")
require_investor = require_role("investor")
require_member = require_role("startup", "investor")
require_admin = require_role("admin")
