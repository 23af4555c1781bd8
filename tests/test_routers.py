"""
Unit tests for FastAPI routers.
Tests redirects, role gating and rendering with mocked services.
"""
import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import make_investor, make_startup, make_user
from nexus.adapters.dynamodb import User
from nexus.main import app
from nexus.middleware.auth import SessionUser, get_optional_user
from nexus.middleware.error_handling import ConflictException, ErrorCode, InvalidCredentials, PermissionDenied
from nexus.routers.dependencies import (
    get_connection_service,
    get_matching_service,
    get_profile_service,
    get_user_service,
)
from nexus.services.matching_service import MatchResult

STARTUP = SessionUser(user_id="s1", username="technova", role="startup")
INVESTOR = SessionUser(user_id="i1", username="vcone", role="investor")
ADMIN = SessionUser(user_id="a1", username="admin", role="admin")


@pytest.fixture
def services():
    """Mocked services wired in through dependency overrides."""
    mocks = {
        "user": Mock(),
        "profile": Mock(),
        "matching": Mock(),
        "connection": Mock(),
    }
    mocks["connection"].pending_counterparts.return_value = set()
    mocks["connection"].list_for_user.return_value = {"incoming": [], "outgoing": []}
    app.dependency_overrides[get_user_service] = lambda: mocks["user"]
    app.dependency_overrides[get_profile_service] = lambda: mocks["profile"]
    app.dependency_overrides[get_matching_service] = lambda: mocks["matching"]
    app.dependency_overrides[get_connection_service] = lambda: mocks["connection"]
    yield mocks
    app.dependency_overrides.clear()


@pytest.fixture
def client(services):
    return TestClient(app)


def login_as(user):
    app.dependency_overrides[get_optional_user] = lambda: user


class TestPublicPages:

    def test_home(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Sign up" in response.text

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    def test_requests_logged_at_start_and_completion(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="nexus.http"):
            client.get("/health")

        events = {
            record.extra_fields["event"]: record.extra_fields
            for record in caplog.records if hasattr(record, "extra_fields")
        }
        assert events["request_started"]["path"] == "/health"
        assert events["request_completed"]["status_code"] == 200
        assert "duration_ms" in events["request_completed"]

    def test_detailed_health_degraded(self, client):
        with patch.object(User, "exists", side_effect=Exception("no endpoint")):
            response = client.get("/health/detailed")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["checks"]["dynamodb"] is False

    def test_unknown_page_renders_error(self, client):
        response = client.get("/no-such-page")
        assert response.status_code == 404
        assert "404" in response.text


class TestAuthRoutes:

    def test_signup_logs_in_and_redirects_to_profile(self, client, services):
        account = make_user("s1", "technova", "startup", has_filled_profile=False)
        services["user"].register_user.return_value = account

        response = client.post("/signup", data={
            "username": "technova", "email": "s1@test.com", "password": "secret123", "role": "startup",
        }, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/profile/startup"
        form = services["user"].register_user.call_args[0][0]
        assert form.email == "s1@test.com"

    def test_signup_invalid_input_redirects_back(self, client, services):
        response = client.post("/signup", data={
            "username": "technova", "email": "s1@test.com", "password": "123", "role": "startup",
        }, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/signup"
        services["user"].register_user.assert_not_called()

    def test_signup_duplicate_shows_flash(self, client, services):
        services["user"].register_user.side_effect = ConflictException(
            code=ErrorCode.USER_ALREADY_EXISTS, message="That username is already taken.", redirect_to="/signup"
        )
        response = client.post("/signup", data={
            "username": "technova", "email": "s1@test.com", "password": "secret123", "role": "startup",
        })

        assert response.status_code == 200
        assert "That username is already taken." in response.text

    def test_wrong_password_flashes_on_login_page(self, client, services):
        services["user"].authenticate.side_effect = InvalidCredentials()
        response = client.post("/login", data={"identifier": "technova", "password": "nope"})

        assert response.status_code == 200
        assert "Invalid username or password." in response.text

    def test_login_redirects_to_dashboard(self, client, services):
        services["user"].authenticate.return_value = make_user()
        response = client.post("/login", data={"identifier": "technova", "password": "secret123"},
                               follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_logout(self, client):
        response = client.post("/logout", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/"


class TestRoleGating:

    def test_anonymous_dashboard_redirects_to_login(self, client):
        response = client.get("/dashboard", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_investor_cannot_open_startup_form(self, client):
        login_as(INVESTOR)
        response = client.get("/profile/startup", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_dashboard_redirects_by_role(self, client):
        login_as(INVESTOR)
        response = client.get("/dashboard", follow_redirects=False)
        assert response.headers["location"] == "/dashboard/investor"

    def test_admin_dashboard_redirects_to_admin(self, client):
        login_as(ADMIN)
        response = client.get("/dashboard", follow_redirects=False)
        assert response.headers["location"] == "/admin"

    def test_startup_cannot_open_admin(self, client):
        login_as(STARTUP)
        response = client.get("/admin", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"


class TestProfileRoutes:

    def test_profile_redirects_to_role_form(self, client):
        login_as(STARTUP)
        response = client.get("/profile", follow_redirects=False)
        assert response.headers["location"] == "/profile/startup"

    def test_startup_form_renders(self, client, services):
        login_as(STARTUP)
        services["profile"].get_startup.return_value = None
        response = client.get("/profile/startup")
        assert response.status_code == 200
        assert 'name="funding_required"' in response.text

    def test_valid_startup_profile_saved(self, client, services):
        login_as(STARTUP)
        response = client.post("/profile/startup", data={
            "startup_name": "TechNova",
            "industry": "Technology",
            "stage": "Seed",
            "funding_required": "500000",
            "equity_offered": "",
            "location": "Bangalore",
            "team_size": "",
            "revenue_status": "",
            "pitch_description": "AI-driven matchmaking for jobs.",
            "tags": "AI, SaaS",
        }, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard/startup"
        user_id, form = services["profile"].save_startup_profile.call_args[0]
        assert user_id == "s1"
        assert form.tags == ["AI", "SaaS"]

    def test_invalid_stage_not_saved(self, client, services):
        login_as(STARTUP)
        response = client.post("/profile/startup", data={
            "startup_name": "TechNova", "industry": "Technology", "stage": "Series Z",
            "funding_required": "500000", "location": "Bangalore", "pitch_description": "Pitch",
        }, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/profile/startup"
        services["profile"].save_startup_profile.assert_not_called()

    def test_infinite_funding_not_saved(self, client, services):
        login_as(STARTUP)
        response = client.post("/profile/startup", data={
            "startup_name": "TechNova", "industry": "Technology", "stage": "Seed",
            "funding_required": "inf", "location": "Bangalore", "pitch_description": "Pitch",
        }, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/profile/startup"
        services["profile"].save_startup_profile.assert_not_called()

    def test_investor_min_above_max_not_saved(self, client, services):
        login_as(INVESTOR)
        services["profile"].get_investor.return_value = None
        response = client.post("/profile/investor", data={
            "firm_name": "VC One", "min_investment": "500", "max_investment": "100",
        })

        assert response.status_code == 200
        assert "Minimum investment cannot exceed maximum investment" in response.text
        services["profile"].save_investor_profile.assert_not_called()

    def test_investor_profile_stages_from_checkboxes(self, client, services):
        login_as(INVESTOR)
        response = client.post("/profile/investor", data={
            "firm_name": "VC One",
            "preferred_stages": ["Seed", "Early"],
            "min_investment": "100",
            "max_investment": "500",
            "active_mentoring": "on",
        }, follow_redirects=False)

        assert response.headers["location"] == "/dashboard/investor"
        _, form = services["profile"].save_investor_profile.call_args[0]
        assert form.preferred_stages == ["Seed", "Early"]
        assert form.active_mentoring is True

    def test_view_counterparty_profile(self, client, services):
        login_as(STARTUP)
        services["profile"].get_public_profile.return_value = {
            "user": make_user("i1", "vcone", "investor", is_verified=True),
            "profile": make_investor("i1"),
        }
        response = client.get("/profiles/i1")

        assert response.status_code == 200
        assert "VentureCapital One" in response.text
        assert "Request connection" in response.text


class TestDashboard:

    def test_startup_dashboard(self, client, services):
        login_as(STARTUP)
        services["user"].find_user.return_value = make_user()
        services["profile"].get_startup.return_value = make_startup()
        services["matching"].rank_investors_for_startup.return_value = [
            MatchResult("i1", "investor", "VentureCapital One", make_investor("i1"), 100, 100),
        ]
        response = client.get("/dashboard/startup")

        assert response.status_code == 200
        assert "TechNova" in response.text
        assert "VentureCapital One" in response.text

    def test_incomplete_profile_redirects_to_form(self, client, services):
        login_as(STARTUP)
        services["user"].find_user.return_value = make_user(has_filled_profile=False)
        services["profile"].get_startup.return_value = None
        response = client.get("/dashboard/startup", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/profile/startup"


    def test_deleted_account_ends_session(self, client, services):
        services["user"].authenticate.return_value = make_user("gone", "ghost", "startup")
        services["user"].find_user.return_value = None
        client.post("/login", data={"identifier": "ghost", "password": "secret123"}, follow_redirects=False)

        response = client.get("/dashboard/startup", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

        # The session is gone, so the role redirect no longer bounces back
        response = client.get("/dashboard", follow_redirects=False)
        assert response.headers["location"] == "/login"

        response = client.get("/login")
        assert response.status_code == 200
        assert "Your account could not be found. Please log in again." in response.text
        services["matching"].rank_investors_for_startup.assert_not_called()

    def test_deleted_account_cannot_save_profile(self, client, services):
        login_as(STARTUP)
        services["user"].find_user.return_value = None
        response = client.post("/profile/startup", data={
            "startup_name": "TechNova", "industry": "Technology", "stage": "Seed",
            "funding_required": "500000", "location": "Bangalore", "pitch_description": "Pitch",
        }, follow_redirects=False)

        assert response.headers["location"] == "/login"
        services["profile"].save_startup_profile.assert_not_called()


class TestMatchRoutes:

    def test_heuristic_matches(self, client, services):
        login_as(INVESTOR)
        services["matching"].matches_for_user.return_value = (make_investor(), [
            MatchResult("s1", "startup", "TechNova", make_startup("s1"), 100, 100),
            MatchResult("s2", "startup", "GreenEarth", make_startup("s2", startup_name="GreenEarth"), 0, 0),
        ])
        services["connection"].pending_counterparts.return_value = {"s2"}
        response = client.get("/matches")

        assert response.status_code == 200
        assert response.text.index("TechNova") < response.text.index("GreenEarth")
        assert "Request pending" in response.text

    def test_ai_matches(self, client, services):
        login_as(STARTUP)
        result = MatchResult("i1", "investor", "VentureCapital One", make_investor("i1"), 100, 80,
                             ai_score=60, ai_available=True, summary="Strong sector fit.",
                             strengths=["Tech focus"])
        services["matching"].ai_matches_for_user = AsyncMock(return_value=(make_startup(), [result]))
        response = client.get("/matches/ai")

        assert response.status_code == 200
        assert "Strong sector fit." in response.text
        assert "Tech focus" in response.text

    def test_ai_unavailable_warns(self, client, services):
        login_as(STARTUP)
        result = MatchResult("i1", "investor", "VentureCapital One", make_investor("i1"), 100, 100,
                             ai_score=0, summary="AI analysis unavailable")
        services["matching"].ai_matches_for_user = AsyncMock(return_value=(make_startup(), [result]))
        response = client.get("/matches/ai")

        assert "AI analysis is unavailable right now" in response.text


class TestConnectionRoutes:

    def test_send_request(self, client, services):
        login_as(STARTUP)
        response = client.post("/connections/i1", data={"message": "Hello"}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/connections"
        services["connection"].send_request.assert_called_once_with(STARTUP, "i1", "Hello")

    def test_accept_by_non_receiver_flashes(self, client, services):
        login_as(STARTUP)
        services["connection"].accept_request.side_effect = PermissionDenied(
            "Only the recipient can respond to this request.", redirect_to="/connections"
        )
        response = client.post("/connections/r1/accept")

        assert response.status_code == 200
        assert "Only the recipient can respond to this request." in response.text

    def test_reject_and_withdraw(self, client, services):
        login_as(INVESTOR)
        client.post("/connections/r1/reject", follow_redirects=False)
        client.post("/connections/r2/withdraw", follow_redirects=False)
        services["connection"].reject_request.assert_called_once_with(INVESTOR, "r1")
        services["connection"].withdraw_request.assert_called_once_with(INVESTOR, "r2")

    def test_connections_page(self, client, services):
        login_as(INVESTOR)
        services["connection"].list_for_user.return_value = {
            "incoming": [{
                "request_id": "r1", "status": "pending", "message": "Let's talk",
                "counterpart": {"user_id": "s1", "username": "technova", "role": "startup"},
            }],
            "outgoing": [],
        }
        response = client.get("/connections")

        assert response.status_code == 200
        assert "@technova" in response.text
        assert "/connections/r1/accept" in response.text


class TestAdminRoutes:

    def test_user_list(self, client, services):
        login_as(ADMIN)
        services["user"].list_users.return_value = [
            {**make_user().to_dict(), "profile_name": "TechNova"},
            {**make_user("a1", "admin", "admin").to_dict(), "profile_name": None},
        ]
        response = client.get("/admin")

        assert response.status_code == 200
        assert "technova@test.com" in response.text
        assert "/admin/users/s1/verify" in response.text

    def test_toggle_verification(self, client, services):
        login_as(ADMIN)
        services["user"].toggle_verified.return_value = make_user(is_verified=True)
        response = client.post("/admin/users/s1/verify", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/admin"
        services["user"].toggle_verified.assert_called_once_with("s1")
