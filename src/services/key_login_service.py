"""Resource fetchers for key login records (reporting views)."""
from core.http_client import ApiClient
from schemas.pagination import Paginated, Record


async def list_key_logins(api: ApiClient, limit: int, offset: int) -> Paginated:
    """Fetch one page of key logins across all keys."""
    body = await api.get(
        "/key-logins",
        params={"limit": limit, "offset": offset},
        fallback="Error al obtener los logins",
    )
    return Paginated.model_validate(body)


async def list_key_logins_for_key(api: ApiClient, key_id: str) -> list[Record]:
    """Fetch every login recorded for one key."""
    body = await api.get(
        f"/key-logins/key/{key_id}", fallback="Error al obtener los logins de la key",
    )
    return body or []
