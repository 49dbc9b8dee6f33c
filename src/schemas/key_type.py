"""Pydantic schemas for key type endpoints."""
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class KeyTypeCreate(BaseModel):
    """Schema for creating a key type with its permissions."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)
    permission_ids: list[UUID] = Field(default_factory=list)


class KeyTypeUpdate(BaseModel):
    """Partial update of a key type."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        """A key type always keeps a name."""
        if v is None:
            raise ValueError("This field cannot be empty")
        return v


class KeyTypePermissionsUpdate(BaseModel):
    """Permissions to attach to (create) and detach from (delete) a key type."""

    create: list[UUID] = Field(default_factory=list)
    delete: list[UUID] = Field(default_factory=list)
