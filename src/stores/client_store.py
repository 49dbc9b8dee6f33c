"""State for the clients views."""
from collections.abc import Mapping
from functools import partial
from typing import Any

from core.http_client import ApiClient
from schemas.client import ClientCreate
from schemas.pagination import Record
from services import client_service
from services.dirty_fields import CLIENT_EDIT_FORM, NoChanges
from stores.base import CachedResourceStore
from stores.paged_cache import PagedCacheStore, PageResult


class ClientStore(CachedResourceStore):
    """Paged clients list with create/update/delete and free-text filtering."""

    searchable_fields = ("name", "email", "phone")
    edit_form = CLIENT_EDIT_FORM

    def __init__(self, api: ApiClient, page_size: int = 10) -> None:
        cache = PagedCacheStore("clients", fetch_page=partial(client_service.list_clients, api))
        super().__init__(api, cache, page_size)

    async def fetch_clients(
        self,
        limit: int | None = None,
        offset: int = 0,
        force_refresh: bool = False,
    ) -> PageResult:
        """Load one page of clients (cached per page)."""
        return await self.fetch_page(limit, offset, force_refresh)

    async def create_client(self, data: ClientCreate) -> Record | None:
        """Create a client and invalidate the clients cache."""
        return await self._mutate("created", client_service.create_client(self._api, data))

    async def update_client(self, client_id: str, patch: dict[str, Any]) -> Record | None:
        """Send a prepared patch and invalidate the clients cache."""
        return await self._mutate(
            "updated", client_service.update_client(self._api, client_id, patch),
        )

    async def update_client_from_form(
        self, client: Record, submitted: Mapping[str, Any],
    ) -> dict[str, Any] | NoChanges:
        """Send the fields of the edit form that differ from ``client``."""
        return await self._update_from_form(
            client, submitted, partial(client_service.update_client, self._api, client["id"]),
        )

    async def delete_client(self, client_id: str) -> None:
        """Delete a client and invalidate the clients cache."""
        await self._mutate("deleted", client_service.delete_client(self._api, client_id))

    def filtered_clients(self) -> list[Record]:
        """Displayed clients narrowed by the search query."""
        return self.filtered()
