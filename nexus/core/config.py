"""
Application configuration loaded from environment variables.
"""
import os
from dotenv import load_dotenv

dotenv_override = os.getenv("DOTENV_OVERRIDE", "false").lower() == "true"
load_dotenv(override=dotenv_override)

DEV_SESSION_SECRET = "dev-session-secret-change-in-production"


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Centralized configuration, read once per instance from the environment."""

    def __init__(self):
        self.app_name = os.getenv('APP_NAME', 'Nexus')
        self.app_version = os.getenv('APP_VERSION', '0.1.0')
        self.environment = os.getenv('ENVIRONMENT', 'development').lower()
        self.debug = _as_bool(os.getenv('DEBUG', 'false'))

        # Sessions
        self.session_secret_key = os.getenv('SESSION_SECRET_KEY')
        self.session_max_age = int(os.getenv('SESSION_MAX_AGE', str(8 * 60 * 60)))
        self.session_cookie = os.getenv('SESSION_COOKIE_NAME', 'nexus_session')

        # Matching
        self.match_result_limit = int(os.getenv('MATCH_RESULT_LIMIT', '50'))
        self.match_min_score = int(os.getenv('MATCH_MIN_SCORE', '0'))
        self.ai_score_weight = float(os.getenv('AI_SCORE_WEIGHT', '0.5'))
        self.ai_candidate_limit = int(os.getenv('AI_MATCH_CANDIDATE_LIMIT', '20'))
        self.ai_match_cache_ttl = int(os.getenv('AI_MATCH_CACHE_TTL', '3600'))

        self.sentry_dsn = os.getenv('SENTRY_DSN')

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    def validate(self) -> None:
        """Fail fast on configuration that must never reach production."""
        if self.is_production and not self.session_secret_key:
            raise ValueError("SESSION_SECRET_KEY environment variable is REQUIRED in production")
        if not 0.0 <= self.ai_score_weight <= 1.0:
            raise ValueError("AI_SCORE_WEIGHT must be between 0 and 1")

    @property
    def secret_key(self) -> str:
        return self.session_secret_key or DEV_SESSION_SECRET


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
