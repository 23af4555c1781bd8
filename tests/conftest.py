"""
Pytest configuration and shared fixtures for Nexus tests.
"""
import os
import sys
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set required env vars BEFORE any nexus imports; the limiter, cache and
# table definitions read them at import time.
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['CACHE_ENABLED'] = 'false'
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ.setdefault('LOG_JSON', 'false')
os.environ.setdefault('SESSION_SECRET_KEY', 'test-session-secret')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'test-access-key')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'test-secret-key')
os.environ.setdefault('DYNAMODB_ENDPOINT_URL', 'http://localhost:8000')
os.environ.setdefault('REDIS_URL', 'redis://localhost:6380/0')

from nexus.adapters.dynamodb import ConnectionRequest, Investor, Startup, User
from nexus.middleware.auth import SessionUser


@pytest.fixture(autouse=True)
def mock_environment():
    """Ensure environment variables are set for testing."""
    env_vars = {
        'OPENAI_API_KEY': 'test-openai-key',
        'OPENAI_MODEL': 'gpt-4.1-mini',
        'CACHE_ENABLED': 'false',
        'RATE_LIMIT_ENABLED': 'false',
        'AI_SCORE_WEIGHT': '0.5',
        'MATCH_RESULT_LIMIT': '50',
        'MATCH_MIN_SCORE': '0',
        'AI_MATCH_CANDIDATE_LIMIT': '20',
    }
    with patch.dict(os.environ, env_vars):
        yield


@pytest.fixture
def startup_user():
    return SessionUser(user_id="s1", username="technova", role="startup")


@pytest.fixture
def investor_user():
    return SessionUser(user_id="i1", username="vcone", role="investor")


@pytest.fixture
def admin_user():
    return SessionUser(user_id="a1", username="admin", role="admin")


def make_user(user_id="s1", username="technova", role="startup", email=None, **kwargs):
    """Unsaved User model instance."""
    return User(
        user_id=user_id,
        username=username,
        email=email or f"{username}@test.com",
        role=role,
        password_hash=kwargs.pop("password_hash", "hashed"),
        is_verified=kwargs.pop("is_verified", False),
        has_filled_profile=kwargs.pop("has_filled_profile", True),
        **kwargs
    )


def make_startup(user_id="s1", **overrides):
    """TechNova-like startup profile."""
    data = {
        "startup_name": "TechNova",
        "industry": "Technology",
        "stage": "Seed",
        "funding_required": 500000,
        "equity_offered": 10,
        "location": "Bangalore",
        "revenue_status": "Pre-Revenue",
        "team_size": 5,
        "pitch_description": "AI-driven matchmaking for jobs.",
        "tags": ["AI", "Recruitment", "SaaS"],
    }
    data.update(overrides)
    return Startup(user_id=user_id, **data)


def make_investor(user_id="i1", **overrides):
    """VC One-like investor profile."""
    data = {
        "investor_name": "VentureCapital One",
        "firm_name": "VC One",
        "preferred_industries": ["Technology", "SaaS"],
        "preferred_stages": ["Seed"],
        "investment_type": "Equity",
        "min_investment": 200000,
        "max_investment": 1000000,
        "location_preference": "Bangalore",
        "bio": "Looking for high-growth tech startups.",
    }
    data.update(overrides)
    return Investor(user_id=user_id, **data)


def make_request(request_id="r1", sender_id="s1", receiver_id="i1", status="pending", created_at=None, **kwargs):
    return ConnectionRequest(
        request_id=request_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        status=status,
        match_id=kwargs.pop("match_id", "s1_i1"),
        created_at=created_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
        **kwargs
    )


@pytest.fixture
def mock_redis():
    """Return a mocked Redis client."""
    with patch('redis.from_url') as mock:
        mock_client = Mock()
        mock_client.ping.return_value = True
        mock_client.get.return_value = None
        mock_client.setex.return_value = True
        mock.return_value = mock_client
        yield mock_client
