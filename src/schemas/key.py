"""Pydantic schemas for license key endpoints."""
from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.validators import KeyState


class KeyCreate(BaseModel):
    """Schema for creating a single license key."""

    code: str = Field(min_length=1, max_length=100)
    init_date: date
    due_date: date
    state: KeyState = KeyState.PENDING
    key_type_id: UUID
    # None means the key is not assigned to any client
    client_id: UUID | None = None
    permissions: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_date_order(self) -> "KeyCreate":
        """A key cannot expire before it starts."""
        if self.due_date < self.init_date:
            raise ValueError("due_date must not be before init_date")
        return self


class KeyUpdate(BaseModel):
    """
    Partial update of a license key.

    Every field is optional. Dates and client_id accept an explicit None to
    clear them, which is different from leaving the field out.
    """

    model_config = ConfigDict(extra="forbid")

    code: str | None = Field(default=None, min_length=1, max_length=100)
    init_date: date | None = None
    due_date: date | None = None
    state: KeyState | None = None
    key_type_id: UUID | None = None
    client_id: UUID | None = None

    @field_validator("code", "state", "key_type_id")
    @classmethod
    def check_not_null(cls, v: object) -> object:
        """code, state and key_type_id can change but never be cleared."""
        if v is None:
            raise ValueError("This field cannot be empty")
        return v


class BulkKeysCreate(BaseModel):
    """Schema for generating many keys at once."""

    quantity: int = Field(gt=0, le=100)


class GeneratedCode(BaseModel):
    """Response of the key code generator."""

    code: str
