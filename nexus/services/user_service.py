"""User service for signup, login and account administration."""
import logging
from typing import Dict, Any, List, Optional

from pynamodb.exceptions import PutError
from werkzeug.security import generate_password_hash, check_password_hash

from nexus.adapters.dynamodb import User, Startup, Investor
from nexus.middleware.error_handling import (
    ConflictException,
    ErrorCode,
    ExternalServiceException,
    InvalidCredentials,
    NotFoundException,
)
from nexus.schemas.user import SignupForm, LoginForm

logger = logging.getLogger(__name__)


class UserService:
    """Service for user-related operations."""

    def register_user(self, form: SignupForm) -> User:
        """Create a new account. Username and email must both be unused."""
        if User.find_by_username(form.username):
            raise ConflictException(
                code=ErrorCode.USER_ALREADY_EXISTS,
                message="That username is already taken.",
                redirect_to="/signup"
            )
        if User.find_by_email(form.email):
            raise ConflictException(
                code=ErrorCode.USER_ALREADY_EXISTS,
                message="An account with that email already exists.",
                redirect_to="/signup"
            )

        user = User.create_user(
            username=form.username,
            email=form.email,
            role=form.role,
            password_hash=generate_password_hash(form.password),
        )
        try:
            user.save()
        except PutError as e:
            logger.error(f"Failed to store new user {form.username}: {e}")
            raise ExternalServiceException("DynamoDB", "Could not create your account. Please try again.", original_error=e)
        logger.info(f"Registered {form.role} user {user.user_id}")
        return user

    def authenticate(self, form: LoginForm) -> User:
        """Resolve a username or email and check the password."""
        if "@" in form.identifier:
            user = User.find_by_email(form.identifier)
        else:
            user = User.find_by_username(form.identifier)

        if user is None or not check_password_hash(user.password_hash, form.password):
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        return user

    def find_user(self, user_id: str) -> Optional[User]:
        return User.find_by_id(user_id)

    def get_user(self, user_id: str, redirect_to: str = "/dashboard") -> User:
        user = User.find_by_id(user_id)
        if user is None:
            raise NotFoundException("User", user_id, code=ErrorCode.USER_NOT_FOUND, redirect_to=redirect_to)
        return user

    def mark_profile_complete(self, user_id: str) -> User:
        """Flag that the user has submitted their role profile."""
        user = self.get_user(user_id)
        if not user.has_filled_profile:
            user.has_filled_profile = True
            user.save()
            logger.info(f"User {user_id} completed their profile")
        return user

    def toggle_verified(self, user_id: str) -> User:
        """Flip the admin verification badge."""
        user = self.get_user(user_id, redirect_to="/admin")
        user.is_verified = not user.is_verified
        user.save()
        logger.info(f"User {user_id} verification set to {user.is_verified}")
        return user

    def list_users(self) -> List[Dict[str, Any]]:
        """All users with the display name of their profile, newest first."""
        names = {s.user_id: s.display_name for s in Startup.list_all()}
        names.update({i.user_id: i.display_name for i in Investor.list_all()})

        users = sorted(
            User.list_all(),
            key=lambda u: u.created_at.isoformat() if u.created_at else "",
            reverse=True
        )
        result = []
        for user in users:
            data = user.to_dict()
            data["profile_name"] = names.get(user.user_id)
            result.append(data)
        return result
