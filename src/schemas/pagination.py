"""Pagination envelope returned by every list endpoint."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Record = dict[str, Any]


class Paginated(BaseModel):
    """
    One page of records plus the server's totals.

    Records stay plain dicts: the cache and filter never interpret them beyond
    the fields they search. ``pages`` is 0 when the server omits it.
    """

    model_config = ConfigDict(extra="ignore")

    data: list[Record] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    limit: int = Field(default=0, ge=0)
    offset: int = Field(default=0, ge=0)
    pages: int = Field(default=0, ge=0)
