"""State for the keys views: paged keys, inactive keys and selector lookups."""
import time
from collections.abc import Callable, Mapping
from datetime import date
from functools import partial
from typing import Any

from core.http_client import ApiClient
from schemas.key import BulkKeysCreate, KeyCreate
from schemas.pagination import Record
from schemas.report import KeyReport
from services import client_service, key_service, key_type_service
from services.dirty_fields import KEY_EDIT_FORM, NoChanges
from services.key_report import build_key_report
from services.record_filter import filter_records
from stores.base import CachedResourceStore
from stores.paged_cache import WHOLE_COLLECTION_TTL, PagedCacheStore, PageResult


# Selector lists (key types, clients) are small; one large page holds them all
LOOKUP_LIMIT = 100


class KeyStore(CachedResourceStore):
    """
    Keys list, inactive-keys list and the lookups the key forms need.

    Both lists share one cache entry, so any key mutation (including bulk
    generation) forces both to be refetched.
    """

    searchable_fields = (
        "code",
        "key_type.name",
        "state",
        "client.name",
        "client_name",
        "permissions.name",
    )
    edit_form = KEY_EDIT_FORM

    def __init__(
        self,
        api: ApiClient,
        page_size: int = 10,
        whole_collection_ttl: float = WHOLE_COLLECTION_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        cache = PagedCacheStore(
            "keys",
            fetch_page=partial(key_service.list_keys, api),
            fetch_all=partial(key_service.list_inactive_keys, api),
            whole_collection_ttl=whole_collection_ttl,
            clock=clock,
        )
        super().__init__(api, cache, page_size)
        self.inactive_keys: list[Record] = []
        self.key_types: list[Record] = []
        self.permissions: list[Record] = []
        self.clients: list[Record] = []

    async def fetch_keys(
        self,
        limit: int | None = None,
        offset: int = 0,
        force_refresh: bool = False,
    ) -> PageResult:
        """Load one page of keys (cached per page)."""
        return await self.fetch_page(limit, offset, force_refresh)

    async def fetch_inactive_keys(self, force_refresh: bool = False) -> list[Record]:
        """Load every inactive key (cached for five minutes)."""
        self.inactive_keys = await self.cache.fetch_whole_collection(force_refresh)
        return self.inactive_keys

    async def fetch_key_types(self) -> list[Record]:
        """Load key types for the key and batch forms (not cached)."""
        page = await key_type_service.list_key_types(self._api, LOOKUP_LIMIT, 0)
        self.key_types = page.data
        return self.key_types

    async def fetch_permissions(self) -> list[Record]:
        """Load every permission (not cached)."""
        self.permissions = await key_type_service.list_permissions(self._api)
        return self.permissions

    async def fetch_clients(self) -> list[Record]:
        """Load clients for the key form's client selector (not cached)."""
        page = await client_service.list_clients(self._api, LOOKUP_LIMIT, 0)
        self.clients = page.data
        return self.clients

    async def generate_key_code(self) -> str:
        """Ask the backend for an unused code to prefill the create form."""
        return await key_service.generate_key_code(self._api)

    async def create_key(self, data: KeyCreate) -> Record | None:
        """Create a key and invalidate the keys cache."""
        return await self._mutate("created", key_service.create_key(self._api, data))

    async def create_bulk_keys(self, quantity: int) -> Record | None:
        """Generate ``quantity`` keys and invalidate the keys cache."""
        data = BulkKeysCreate(quantity=quantity)
        return await self._mutate("bulk_created", key_service.create_bulk_keys(self._api, data))

    async def update_key(self, key_id: str, patch: dict[str, Any]) -> Record | None:
        """Send a prepared patch and invalidate the keys cache."""
        return await self._mutate("updated", key_service.update_key(self._api, key_id, patch))

    async def update_key_from_form(
        self, key: Record, submitted: Mapping[str, Any],
    ) -> dict[str, Any] | NoChanges:
        """Send the fields of the edit form that differ from ``key``."""
        return await self._update_from_form(
            key, submitted, partial(key_service.update_key, self._api, key["id"]),
        )

    async def delete_key(self, key_id: str) -> None:
        """Delete a key and invalidate the keys cache."""
        await self._mutate("deleted", key_service.delete_key(self._api, key_id))

    def filtered_keys(self) -> list[Record]:
        """Displayed keys narrowed by the search query."""
        return self.filtered()

    def filtered_inactive_keys(self) -> list[Record]:
        """Inactive keys narrowed by the search query."""
        return filter_records(self.inactive_keys, self.search_query, self.searchable_fields)

    async def fetch_report(self, today: date, limit: int | None = None) -> KeyReport:
        """Load the keys page and the inactive collection (both cached) and summarize them."""
        page = await self.fetch_keys(limit)
        inactive = await self.fetch_inactive_keys()
        return build_key_report(page.records, inactive, today)
