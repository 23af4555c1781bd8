"""
Unit tests for Pydantic form schemas.
Tests input validation, normalisation and error messages.
"""
import pytest
from pydantic import ValidationError

from nexus.schemas.common import first_error_message
from nexus.schemas.profile import InvestorProfileForm, StartupProfileForm, split_csv
from nexus.schemas.user import LoginForm, SignupForm


class TestSignupForm:
    """Tests for SignupForm validation."""

    def test_valid_signup(self):
        form = SignupForm(username=" tech.nova_1 ", email=" Founder@TechNova.IO ", password="secret1", role="investor")
        assert form.username == "tech.nova_1"
        assert form.email == "founder@technova.io"

    def test_admin_role_not_allowed(self):
        with pytest.raises(ValidationError):
            SignupForm(username="boss", email="boss@test.com", password="secret1", role="admin")

    @pytest.mark.parametrize("username", ["ab", "has space", "semi;colon", "x" * 31])
    def test_invalid_username(self, username):
        with pytest.raises(ValidationError):
            SignupForm(username=username, email="a@test.com", password="secret1", role="startup")

    def test_invalid_email(self):
        with pytest.raises(ValidationError) as exc_info:
            SignupForm(username="technova", email="not-an-email", password="secret1", role="startup")
        assert first_error_message(exc_info.value) == "Email: Invalid email address"

    def test_short_password(self):
        with pytest.raises(ValidationError):
            SignupForm(username="technova", email="a@test.com", password="12345", role="startup")


class TestLoginForm:

    def test_identifier_is_stripped(self):
        assert LoginForm(identifier="  technova ", password="x").identifier == "technova"

    def test_password_required(self):
        with pytest.raises(ValidationError):
            LoginForm(identifier="technova", password="")


class TestStartupProfileForm:
    """Tests for StartupProfileForm validation."""

    def base(self, **overrides):
        data = {
            "startup_name": "TechNova",
            "industry": "Technology",
            "stage": "Seed",
            "funding_required": "500000",
            "location": "Bangalore",
            "pitch_description": "AI-driven matchmaking for jobs.",
        }
        data.update(overrides)
        return data

    def test_valid_form_with_blank_optionals(self):
        form = StartupProfileForm(**self.base(equity_offered="", team_size="", revenue_status="", tags=""))
        assert form.funding_required == 500000
        assert form.equity_offered is None
        assert form.team_size is None
        assert form.revenue_status is None
        assert form.tags == []

    def test_tags_parsed_from_csv(self):
        form = StartupProfileForm(**self.base(tags="AI, SaaS ,,AI"))
        assert form.tags == ["AI", "SaaS"]

    def test_bad_stage(self):
        with pytest.raises(ValidationError):
            StartupProfileForm(**self.base(stage="Series Z"))

    def test_funding_must_be_positive(self):
        with pytest.raises(ValidationError):
            StartupProfileForm(**self.base(funding_required="0"))

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "Infinity"])
    def test_funding_must_be_finite(self, value):
        with pytest.raises(ValidationError):
            StartupProfileForm(**self.base(funding_required=value))

    def test_equity_over_100(self):
        with pytest.raises(ValidationError):
            StartupProfileForm(**self.base(equity_offered="120"))

    def test_whitespace_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            StartupProfileForm(**self.base(startup_name="   "))
        assert first_error_message(exc_info.value) == "Startup name: This field is required"


class TestInvestorProfileForm:
    """Tests for InvestorProfileForm validation."""

    def test_valid_form(self):
        form = InvestorProfileForm(
            firm_name="VC One",
            investor_name="",
            preferred_industries="Technology, SaaS",
            preferred_stages=["Seed"],
            min_investment="200000",
            max_investment="1000000",
            risk_tolerance="",
        )
        assert form.investor_name is None
        assert form.preferred_industries == ["Technology", "SaaS"]
        assert form.preferred_stages == ["Seed"]
        assert form.risk_tolerance is None
        assert form.active_mentoring is False

    def test_min_above_max(self):
        with pytest.raises(ValidationError) as exc_info:
            InvestorProfileForm(firm_name="VC One", min_investment="500", max_investment="100")
        assert "Minimum investment cannot exceed maximum investment" in first_error_message(exc_info.value)

    def test_infinite_ticket_rejected(self):
        with pytest.raises(ValidationError):
            InvestorProfileForm(firm_name="VC One", min_investment="0", max_investment="inf")

    def test_unknown_stage(self):
        with pytest.raises(ValidationError):
            InvestorProfileForm(firm_name="VC One", preferred_stages=["Series Z"],
                                min_investment="0", max_investment="100")


class TestSplitCsv:

    def test_none(self):
        assert split_csv(None) == []

    def test_list_input(self):
        assert split_csv([" a ", "b", "a", ""]) == ["a", "b"]
