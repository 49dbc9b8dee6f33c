"""Pydantic schemas for the keys report."""
from pydantic import BaseModel, Field


class ClientKeyCount(BaseModel):
    """Keys assigned to one client."""

    name: str
    count: int


class ExpiringKey(BaseModel):
    """A key due within the expiry window."""

    code: str
    client_name: str
    due_date: str
    days_left: int


class KeyReport(BaseModel):
    """Figures for the keys report view, computed from the loaded lists."""

    total: int = 0
    active: int = 0
    inactive: int = 0
    expiring_soon: int = 0
    by_key_type: dict[str, int] = Field(default_factory=dict)
    by_client: list[ClientKeyCount] = Field(default_factory=list)
    expiring_keys: list[ExpiringKey] = Field(default_factory=list)
