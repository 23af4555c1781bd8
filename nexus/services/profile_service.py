"""Profile service for startup and investor documents."""
import logging
from typing import Dict, Any, Optional

from nexus.adapters.dynamodb import User, Startup, Investor
from nexus.middleware.error_handling import ErrorCode, NotFoundException
from nexus.schemas.profile import StartupProfileForm, InvestorProfileForm
from nexus.services.user_service import UserService

logger = logging.getLogger(__name__)


class ProfileService:
    """Create, update and look up role-specific profiles."""

    def __init__(self, user_service: Optional[UserService] = None):
        self.user_service = user_service or UserService()

    def get_startup(self, user_id: str) -> Optional[Startup]:
        return Startup.find_by_user(user_id)

    def get_investor(self, user_id: str) -> Optional[Investor]:
        return Investor.find_by_user(user_id)

    def get_profile(self, user_id: str, role: str):
        """The profile document for a user of the given role, if any."""
        if role == "startup":
            return self.get_startup(user_id)
        if role == "investor":
            return self.get_investor(user_id)
        return None

    def save_startup_profile(self, user_id: str, form: StartupProfileForm) -> Startup:
        """Upsert the startup document and mark the user's profile complete."""
        startup = Startup.find_by_user(user_id)
        if startup is None:
            startup = Startup(user_id=user_id)
        for field, value in form.model_dump().items():
            setattr(startup, field, value)
        startup.save()
        logger.info(f"Saved startup profile for user {user_id}")
        self.user_service.mark_profile_complete(user_id)
        return startup

    def save_investor_profile(self, user_id: str, form: InvestorProfileForm) -> Investor:
        """Upsert the investor document and mark the user's profile complete."""
        investor = Investor.find_by_user(user_id)
        if investor is None:
            investor = Investor(user_id=user_id)
        for field, value in form.model_dump().items():
            setattr(investor, field, value)
        investor.save()
        logger.info(f"Saved investor profile for user {user_id}")
        self.user_service.mark_profile_complete(user_id)
        return investor

    def get_public_profile(self, user_id: str) -> Dict[str, Any]:
        """User plus profile for the counterparty view."""
        user = User.find_by_id(user_id)
        if user is None or user.role == "admin":
            raise NotFoundException("Profile", user_id, redirect_to="/dashboard")
        profile = self.get_profile(user.user_id, user.role)
        if profile is None:
            raise NotFoundException("Profile", user_id, code=ErrorCode.PROFILE_INCOMPLETE, redirect_to="/dashboard")
        return {"user": user, "profile": profile}
