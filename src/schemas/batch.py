"""Pydantic schemas for key batch endpoints."""
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BatchCreate(BaseModel):
    """Schema for creating a batch of keys for a client."""

    title: str = Field(min_length=1, max_length=100)
    quantity: int = Field(gt=0)
    description: str | None = Field(default=None, max_length=255)
    key_type_id: UUID
    client_id: UUID


class BatchUpdate(BaseModel):
    """Partial update of a batch (title and description only)."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """A batch always keeps a title."""
        if v is None:
            raise ValueError("This field cannot be empty")
        return v
