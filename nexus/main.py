"""
FastAPI application main module.
"""
import os
import logging

# Initialize Sentry BEFORE importing anything else (for best error capture)
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

sentry_dsn = os.getenv('SENTRY_DSN')
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[
            FastApiIntegration(),
            StarletteIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests traced
        environment=os.getenv('ENVIRONMENT', 'development'),
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error monitoring")

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from nexus.core.config import get_settings
from nexus.middleware.error_handling import setup_error_handling
from nexus.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from nexus.routers.admin import router as admin_router
from nexus.routers.auth import router as auth_router
from nexus.routers.connection import router as connection_router
from nexus.routers.dashboard import router as dashboard_router
from nexus.routers.health import router as health_router
from nexus.routers.home import router as home_router
from nexus.routers.match import router as match_router
from nexus.routers.profile import router as profile_router
from nexus.utils.logging_config import RequestLoggingMiddleware, setup_logging
from nexus.utils.templating import templates

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

setup_logging(json_format=os.getenv('LOG_JSON', 'true').lower() == 'true')
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the web application with middleware, error handlers and routes."""
    settings = get_settings()
    settings.validate()

    # Log non-sensitive configuration (NEVER log secrets/credentials)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} in {settings.environment} environment")
    logger.info(f"AWS region: {os.getenv('AWS_DEFAULT_REGION', 'not set')}")
    if not settings.session_secret_key:
        logger.warning("SESSION_SECRET_KEY not set - using the development secret")

    app = FastAPI(
        title=settings.app_name,
        description="Startup and investor matchmaking platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    setup_error_handling(app, templates)

    # Middleware added last runs first: the session must wrap everything
    # that reads the logged-in user.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.is_production,
    )

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    app.include_router(health_router)
    app.include_router(home_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(dashboard_router)
    app.include_router(match_router)
    app.include_router(connection_router)
    app.include_router(admin_router)

    return app


app = create_app()
