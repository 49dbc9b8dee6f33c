"""Resource fetchers for key batches (not cached)."""
from typing import Any

from core.http_client import ApiClient
from schemas.batch import BatchCreate
from schemas.pagination import Paginated, Record


async def list_batches(
    api: ApiClient,
    limit: int,
    offset: int,
    search: str | None = None,
    search_field: str | None = None,
) -> Paginated:
    """Fetch one page of batches."""
    body = await api.get(
        "/batches",
        params={"limit": limit, "offset": offset, "search": search, "search_field": search_field},
        fallback="Error al obtener los lotes",
    )
    return Paginated.model_validate(body)


async def get_batch(api: ApiClient, batch_id: str) -> Record:
    """Fetch a batch with its per-state key counts."""
    return await api.get(f"/batches/{batch_id}", fallback="Error al obtener el lote")


async def create_batch(api: ApiClient, data: BatchCreate) -> Record | None:
    """Create a batch; the backend generates its keys."""
    return await api.post(
        "/batches", json=data.model_dump(mode="json"), fallback="Error al crear el lote",
    )


async def update_batch(api: ApiClient, batch_id: str, patch: dict[str, Any]) -> Record | None:
    """Send a partial update for a batch."""
    return await api.patch(
        f"/batches/{batch_id}", json=patch, fallback="Error al actualizar el lote",
    )
