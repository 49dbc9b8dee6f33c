"""Resource fetchers for clients."""
from typing import Any

from core.http_client import ApiClient
from schemas.client import ClientCreate
from schemas.pagination import Paginated, Record


async def list_clients(
    api: ApiClient,
    limit: int,
    offset: int,
    search: str | None = None,
    search_field: str | None = None,
) -> Paginated:
    """Fetch one page of clients."""
    body = await api.get(
        "/clients",
        params={"limit": limit, "offset": offset, "search": search, "search_field": search_field},
        fallback="Error al obtener los clientes",
    )
    return Paginated.model_validate(body)


async def get_client(api: ApiClient, client_id: str) -> Record:
    """Fetch a single client by id."""
    return await api.get(f"/clients/{client_id}", fallback="Error al obtener el cliente")


async def create_client(api: ApiClient, data: ClientCreate) -> Record | None:
    """Create a client."""
    return await api.post(
        "/clients", json=data.model_dump(mode="json"), fallback="Error al crear el cliente",
    )


async def update_client(api: ApiClient, client_id: str, patch: dict[str, Any]) -> Record | None:
    """Send a partial update for a client."""
    return await api.patch(
        f"/clients/{client_id}", json=patch, fallback="Error al actualizar el cliente",
    )


async def delete_client(api: ApiClient, client_id: str) -> None:
    """Delete a client."""
    await api.delete(f"/clients/{client_id}", fallback="Error al eliminar el cliente")
