"""Pydantic schemas for client endpoints."""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import validate_email, validate_not_blank


class ClientCreate(BaseModel):
    """Schema for creating a client."""

    name: str = Field(min_length=1)
    email: str
    phone: str = ""

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Name is required."""
        return validate_not_blank(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        """Validate email format."""
        return validate_email(v)


class ClientUpdate(BaseModel):
    """Partial update of a client; same rules as creation, every field optional."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    phone: str | None = None

    @field_validator("name", "email", "phone")
    @classmethod
    def check_not_null(cls, v: str | None) -> str | None:
        """Fields can change but never be cleared."""
        if v is None:
            raise ValueError("This field cannot be empty")
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        """Name may be changed but not blanked."""
        return validate_not_blank(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        """Validate email format."""
        return validate_email(v)
