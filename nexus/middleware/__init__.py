"""
Middleware package for the FastAPI application.
"""
from nexus.middleware.auth import SessionUser, get_current_user, require_role

__all__ = ['SessionUser', 'get_current_user', 'require_role']
