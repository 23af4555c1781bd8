"""
User-related Pydantic schemas for form validation.
"""
import re
from typing import Literal
from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


class SignupForm(BaseModel):
    """Schema for the signup form. Admin accounts are never self-registered."""
    username: str = Field(..., min_length=3, max_length=30, description="Public handle")
    email: str = Field(..., max_length=254, description="Login email, stored lowercase")
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    role: Literal["startup", "investor"]

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class LoginForm(BaseModel):
    """Schema for the login form; identifier is a username or an email."""
    identifier: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator('identifier')
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        return v.strip()
