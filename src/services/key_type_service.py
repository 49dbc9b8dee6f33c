"""Resource fetchers for key types and permissions (not cached)."""
from typing import Any

from core.http_client import ApiClient
from schemas.key_type import KeyTypeCreate, KeyTypePermissionsUpdate
from schemas.pagination import Paginated, Record


async def list_key_types(
    api: ApiClient,
    limit: int,
    offset: int,
    search: str | None = None,
    search_field: str | None = None,
) -> Paginated:
    """Fetch one page of key types."""
    body = await api.get(
        "/key-types",
        params={"limit": limit, "offset": offset, "search": search, "search_field": search_field},
        fallback="Error al obtener los tipos de key",
    )
    return Paginated.model_validate(body)


async def get_key_type(api: ApiClient, key_type_id: str) -> Record:
    """Fetch a key type with its permissions."""
    return await api.get(f"/key-types/{key_type_id}", fallback="Error al obtener el tipo de key")


async def create_key_type(api: ApiClient, data: KeyTypeCreate) -> Record | None:
    """Create a key type."""
    return await api.post(
        "/key-types", json=data.model_dump(mode="json"), fallback="Error al crear el tipo de key",
    )


async def update_key_type(
    api: ApiClient, key_type_id: str, patch: dict[str, Any],
) -> Record | None:
    """Send a partial update for a key type."""
    return await api.patch(
        f"/key-types/{key_type_id}", json=patch, fallback="Error al actualizar el tipo de key",
    )


async def update_key_type_permissions(
    api: ApiClient, key_type_id: str, data: KeyTypePermissionsUpdate,
) -> Record | None:
    """Attach and detach permissions on a key type."""
    return await api.patch(
        f"/key-types/{key_type_id}/permissions",
        json=data.model_dump(mode="json"),
        fallback="Error al actualizar los permisos de la key",
    )


async def list_permissions(api: ApiClient) -> list[Record]:
    """Fetch every permission (the endpoint is not paginated)."""
    body = await api.get("/permissions", fallback="Error al obtener los permisos")
    if isinstance(body, dict):
        return body.get("data") or []
    return body or []
