"""Pydantic schemas for the dashboard summary."""
from pydantic import BaseModel, Field


class KeyStatusCount(BaseModel):
    """Number of keys in one state."""

    status: str
    count: int


class RecentBatch(BaseModel):
    """Batch summary shown on the dashboard."""

    id: str
    title: str
    quantity: int
    created_at: str


class DashboardStats(BaseModel):
    """Aggregate counters for the dashboard home."""

    total_clients: int = 0
    total_keys: int = 0
    total_batches: int = 0
    total_users: int = 0
    keys_by_status: list[KeyStatusCount] = Field(default_factory=list)
    recent_batches: list[RecentBatch] = Field(default_factory=list)
    keys_expiring_month: int = 0
    active_clients: int = 0
