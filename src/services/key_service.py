"""Resource fetchers for license keys."""
from typing import Any

from core.http_client import ApiClient
from schemas.key import BulkKeysCreate, GeneratedCode, KeyCreate
from schemas.pagination import Paginated, Record


async def list_keys(
    api: ApiClient,
    limit: int,
    offset: int,
    search: str | None = None,
    search_field: str | None = None,
) -> Paginated:
    """Fetch one page of keys, optionally narrowed by server-side search."""
    body = await api.get(
        "/keys",
        params={"limit": limit, "offset": offset, "search": search, "search_field": search_field},
        fallback="Error al obtener las keys",
    )
    return Paginated.model_validate(body)


async def list_inactive_keys(api: ApiClient) -> list[Record]:
    """Fetch every inactive key as one unbounded list."""
    body = await api.get("/keys/inactive", fallback="Error al obtener las keys inactivas")
    return Paginated.model_validate(body).data


async def list_keys_by_client(
    api: ApiClient, client_id: str, limit: int, offset: int,
) -> Paginated:
    """Fetch one page of the keys assigned to a client."""
    body = await api.get(
        f"/keys/client/{client_id}",
        params={"limit": limit, "offset": offset},
        fallback="Error al obtener las keys del cliente",
    )
    return Paginated.model_validate(body)


async def get_key(api: ApiClient, key_id: str) -> Record:
    """Fetch a single key by id."""
    return await api.get(f"/keys/{key_id}", fallback="Error al obtener la key")


async def get_key_by_code(api: ApiClient, code: str) -> Record:
    """Fetch a single key by its license code."""
    return await api.get(f"/keys/code/{code}", fallback="Error al obtener la key por código")


async def get_key_history(api: ApiClient, key_id: str, limit: int, offset: int) -> Paginated:
    """Fetch one page of a key's change history."""
    body = await api.get(
        f"/keys/{key_id}/history",
        params={"limit": limit, "offset": offset},
        fallback="Error al obtener el historial de la key",
    )
    return Paginated.model_validate(body)


async def generate_key_code(api: ApiClient) -> str:
    """Ask the backend for a fresh, unused key code."""
    body = await api.post("/keys/generate", fallback="Error al generar el código")
    return GeneratedCode.model_validate(body).code


async def create_key(api: ApiClient, data: KeyCreate) -> Record | None:
    """Create a single key."""
    return await api.post(
        "/keys", json=data.model_dump(mode="json"), fallback="Error al crear la key",
    )


async def create_bulk_keys(api: ApiClient, data: BulkKeysCreate) -> Record | None:
    """Generate ``quantity`` unassigned keys."""
    return await api.post(
        "/keys/bulk", json=data.model_dump(mode="json"), fallback="Error al generar las keys",
    )


async def update_key(api: ApiClient, key_id: str, patch: dict[str, Any]) -> Record | None:
    """Send a partial update (only changed fields) for a key."""
    return await api.patch(f"/keys/{key_id}", json=patch, fallback="Error al actualizar la key")


async def delete_key(api: ApiClient, key_id: str) -> None:
    """Delete a key."""
    await api.delete(f"/keys/{key_id}", fallback="Error al eliminar la key")
