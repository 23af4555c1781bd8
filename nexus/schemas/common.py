"""
Common Pydantic schemas used across the application.
"""
from typing import Dict, Any
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Schema for health check response."""
    success: bool = Field(..., description="Whether service is healthy")
    data: Dict[str, Any] = Field(..., description="Health check data")
    message: str = Field(..., description="Health check message")


def first_error_message(exc) -> str:
    """Human-readable first message of a pydantic ValidationError."""
    errors = exc.errors()
    if not errors:
        return "Invalid input."
    error = errors[0]
    message = error.get("msg", "Invalid input.")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    location = [str(part) for part in error.get("loc", ())]
    if location:
        field = location[0].replace("_", " ").capitalize()
        return f"{field}: {message}"
    return message
