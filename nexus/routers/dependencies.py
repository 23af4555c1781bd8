"""
Service dependencies shared by the routers.
Overridden in tests through app.dependency_overrides.
"""
import logging
from functools import lru_cache

from fastapi import Depends, Request

from nexus.adapters.dynamodb import User
from nexus.middleware.auth import SessionUser, get_current_user, logout_user
from nexus.middleware.error_handling import AuthenticationRequired
from nexus.services.connection_service import ConnectionService
from nexus.services.matching_service import MatchingService
from nexus.services.profile_service import ProfileService
from nexus.services.user_service import UserService

logger = logging.getLogger(__name__)


@lru_cache()
def get_user_service() -> UserService:
    """Dependency injection for UserService with caching."""
    return UserService()


@lru_cache()
def get_profile_service() -> ProfileService:
    """Dependency injection for ProfileService with caching."""
    return ProfileService(user_service=get_user_service())


@lru_cache()
def get_matching_service() -> MatchingService:
    """Dependency injection for MatchingService with caching."""
    return MatchingService()


@lru_cache()
def get_connection_service() -> ConnectionService:
    """Dependency injection for ConnectionService with caching."""
    return ConnectionService()


def get_current_account(
    request: Request,
    user: SessionUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> User:
    """
    The stored User behind the session.

    A session can outlive its account (for example after the tables are
    reseeded). Such a session is ended and the visitor is sent to log in.
    """
    account = user_service.find_user(user.user_id)
    if account is None:
        logger.warning(f"Session user {user.user_id} no longer exists; ending session")
        logout_user(request)
        raise AuthenticationRequired("Your account could not be found. Please log in again.")
    return account
