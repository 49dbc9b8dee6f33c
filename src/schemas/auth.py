"""Pydantic schemas for authentication."""
from pydantic import BaseModel, Field, field_validator

from schemas.validators import validate_email


class SignInRequest(BaseModel):
    """Credentials posted to /auth/login."""

    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        """Validate email format."""
        return validate_email(v)


class AuthResponse(BaseModel):
    """Successful login response."""

    token: str
