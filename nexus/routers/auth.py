"""
Signup, login and logout routes.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from nexus.middleware.auth import SessionUser, get_optional_user, login_user, logout_user
from nexus.middleware.error_handling import ValidationException
from nexus.middleware.rate_limit import limit_strict
from nexus.routers.dependencies import get_user_service
from nexus.schemas.common import first_error_message
from nexus.schemas.user import SignupForm, LoginForm
from nexus.services.user_service import UserService
from nexus.utils.executor import run_sync
from nexus.utils.flash import flash
from nexus.utils.templating import render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.get("/signup")
def signup_page(request: Request, user: Optional[SessionUser] = Depends(get_optional_user)):
    if user:
        return RedirectResponse("/dashboard", status_code=303)
    return render(request, "auth/signup.html")


@router.post("/signup")
@limit_strict
async def signup(request: Request, user_service: UserService = Depends(get_user_service)):
    """Create an account, log it in and send it to the profile form."""
    data = await request.form()
    try:
        form = SignupForm(
            username=data.get("username", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role", ""),
        )
    except ValidationError as e:
        raise ValidationException(first_error_message(e), redirect_to="/signup")

    user = await run_sync(user_service.register_user, form)
    login_user(request, user)
    flash(request, f"Welcome to Nexus, {user.username}! Tell us about yourself.", "success")
    return RedirectResponse(f"/profile/{user.role}", status_code=303)


@router.get("/login")
def login_page(request: Request, user: Optional[SessionUser] = Depends(get_optional_user)):
    if user:
        return RedirectResponse("/dashboard", status_code=303)
    return render(request, "auth/login.html")


@router.post("/login")
@limit_strict
async def login(request: Request, user_service: UserService = Depends(get_user_service)):
    data = await request.form()
    try:
        form = LoginForm(identifier=data.get("identifier", ""), password=data.get("password", ""))
    except ValidationError:
        raise ValidationException("Please enter your username or email and password.", redirect_to="/login")

    user = await run_sync(user_service.authenticate, form)
    login_user(request, user)
    flash(request, f"Welcome back, {user.username}!", "success")
    return RedirectResponse("/dashboard", status_code=303)


@router.post("/logout")
def logout(request: Request):
    logout_user(request)
    flash(request, "You have been logged out.", "info")
    return RedirectResponse("/", status_code=303)
