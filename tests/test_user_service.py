"""
Unit tests for signup, login and account administration.
"""
from unittest.mock import patch

import pytest
from pynamodb.exceptions import PutError
from werkzeug.security import check_password_hash, generate_password_hash

from conftest import make_investor, make_startup, make_user
from nexus.adapters.dynamodb import Investor, Startup, User
from nexus.middleware.error_handling import (
    ConflictException,
    ErrorCode,
    ExternalServiceException,
    InvalidCredentials,
    NotFoundException,
)
from nexus.schemas.user import LoginForm, SignupForm
from nexus.services.user_service import UserService


@pytest.fixture
def service():
    return UserService()


@pytest.fixture
def signup_form():
    return SignupForm(username="technova", email="Founder@TechNova.io", password="secret123", role="startup")


class TestRegister:

    def test_creates_user_with_hashed_password(self, service, signup_form):
        with patch.object(User, "find_by_username", return_value=None), \
                patch.object(User, "find_by_email", return_value=None), \
                patch.object(User, "save") as save:
            user = service.register_user(signup_form)

        save.assert_called_once()
        assert user.username == "technova"
        assert user.email == "founder@technova.io"
        assert user.role == "startup"
        assert user.password_hash != "secret123"
        assert check_password_hash(user.password_hash, "secret123")
        assert user.has_filled_profile is False
        assert user.is_verified is False

    def test_duplicate_username(self, service, signup_form):
        with patch.object(User, "find_by_username", return_value=make_user()), \
                patch.object(User, "save") as save:
            with pytest.raises(ConflictException) as exc_info:
                service.register_user(signup_form)
        assert exc_info.value.code == ErrorCode.USER_ALREADY_EXISTS
        assert exc_info.value.redirect_to == "/signup"
        save.assert_not_called()

    def test_duplicate_email(self, service, signup_form):
        with patch.object(User, "find_by_username", return_value=None), \
                patch.object(User, "find_by_email", return_value=make_user()), \
                patch.object(User, "save") as save:
            with pytest.raises(ConflictException):
                service.register_user(signup_form)
        save.assert_not_called()

    def test_store_failure(self, service, signup_form):
        with patch.object(User, "find_by_username", return_value=None), \
                patch.object(User, "find_by_email", return_value=None), \
                patch.object(User, "save", side_effect=PutError("throughput exceeded")):
            with pytest.raises(ExternalServiceException) as exc_info:
                service.register_user(signup_form)
        assert exc_info.value.code == ErrorCode.DATABASE_ERROR


class TestAuthenticate:

    @pytest.fixture
    def account(self):
        return make_user(password_hash=generate_password_hash("secret123"))

    def test_login_by_username(self, service, account):
        with patch.object(User, "find_by_username", return_value=account) as find:
            user = service.authenticate(LoginForm(identifier="technova", password="secret123"))
        find.assert_called_once_with("technova")
        assert user is account

    def test_login_by_email(self, service, account):
        with patch.object(User, "find_by_email", return_value=account) as find:
            service.authenticate(LoginForm(identifier="technova@test.com", password="secret123"))
        find.assert_called_once_with("technova@test.com")

    def test_wrong_password(self, service, account):
        with patch.object(User, "find_by_username", return_value=account):
            with pytest.raises(InvalidCredentials):
                service.authenticate(LoginForm(identifier="technova", password="wrong"))

    def test_unknown_user(self, service):
        with patch.object(User, "find_by_username", return_value=None):
            with pytest.raises(InvalidCredentials):
                service.authenticate(LoginForm(identifier="ghost", password="secret123"))


class TestAccountAdministration:

    def test_mark_profile_complete(self, service):
        account = make_user(has_filled_profile=False)
        with patch.object(User, "find_by_id", return_value=account), \
                patch.object(User, "save") as save:
            service.mark_profile_complete("s1")
        assert account.has_filled_profile is True
        save.assert_called_once()

    def test_mark_profile_complete_is_idempotent(self, service):
        with patch.object(User, "find_by_id", return_value=make_user(has_filled_profile=True)), \
                patch.object(User, "save") as save:
            service.mark_profile_complete("s1")
        save.assert_not_called()

    def test_toggle_verified(self, service):
        account = make_user()
        with patch.object(User, "find_by_id", return_value=account), \
                patch.object(User, "save"):
            service.toggle_verified("s1")
            assert account.is_verified is True
            service.toggle_verified("s1")
            assert account.is_verified is False

    def test_toggle_unknown_user(self, service):
        with patch.object(User, "find_by_id", return_value=None):
            with pytest.raises(NotFoundException) as exc_info:
                service.toggle_verified("missing")
        assert exc_info.value.redirect_to == "/admin"

    def test_find_user_returns_none_when_missing(self, service):
        with patch.object(User, "find_by_id", return_value=None):
            assert service.find_user("gone") is None

    def test_list_users_includes_profile_names(self, service):
        users = [make_user("s1", "technova", "startup"), make_user("i1", "vcone", "investor"),
                 make_user("a1", "admin", "admin")]
        with patch.object(User, "list_all", return_value=users), \
                patch.object(Startup, "list_all", return_value=[make_startup("s1")]), \
                patch.object(Investor, "list_all", return_value=[make_investor("i1")]):
            result = service.list_users()

        names = {u["username"]: u["profile_name"] for u in result}
        assert names == {"technova": "TechNova", "vcone": "VentureCapital One", "admin": None}
        assert "password_hash" not in result[0]
