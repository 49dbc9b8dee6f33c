"""Base class for stores backed by a paged cache."""
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from core.http_client import ApiClient
from schemas.pagination import Record
from services.dirty_fields import NO_CHANGES, EditForm, NoChanges
from services.record_filter import filter_records, page_view
from stores.paged_cache import PageResult, PagedCacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CachedResourceStore:
    """
    State of one resource's list view: the cache, the page on display and the
    free-text query narrowing it.

    Subclasses set ``searchable_fields`` and ``edit_form``.
    """

    searchable_fields: tuple[str, ...] = ()
    edit_form: EditForm

    def __init__(self, api: ApiClient, cache: PagedCacheStore, page_size: int = 10) -> None:
        self._api = api
        self.cache = cache
        self.page_size = page_size
        self.records: list[Record] = []
        self.search_query = ""

    @property
    def is_loading(self) -> bool:
        """True while the resource has a fetch in flight."""
        return self.cache.is_loading

    @property
    def total_records(self) -> int:
        """Server-side record count from the latest response."""
        return self.cache.total_records

    @property
    def total_pages(self) -> int:
        """Server-side page count from the latest response."""
        return self.cache.total_pages or 0

    @property
    def current_page(self) -> int:
        """Page most recently displayed."""
        return self.cache.current_page_number

    async def fetch_page(
        self,
        limit: int | None = None,
        offset: int = 0,
        force_refresh: bool = False,
    ) -> PageResult:
        """Load a page into ``records``; the page size defaults to the store's."""
        result = await self.cache.fetch(limit or self.page_size, offset, force_refresh)
        self.records = result.records
        self.page_size = limit or self.page_size
        return result

    def set_search_query(self, query: str) -> None:
        """Set the free-text query applied by filtered()."""
        self.search_query = query

    def filtered(self) -> list[Record]:
        """Displayed records narrowed by the current query."""
        return filter_records(self.records, self.search_query, self.searchable_fields)

    def view(self) -> dict[str, Any]:
        """Displayed page with pagination suppressed while a query is active."""
        return page_view(
            self.records,
            self.search_query,
            self.searchable_fields,
            total_records=self.total_records,
            total_pages=self.total_pages,
            page_number=self.current_page,
        )

    def build_patch(
        self, record: Record, submitted: Mapping[str, Any],
    ) -> dict[str, Any] | NoChanges:
        """Validated patch from a record as loaded and the submitted form values."""
        return self.edit_form.build_patch(self.edit_form.initial_values(record), submitted)

    async def _mutate(self, action: str, mutation: Awaitable[T]) -> T:
        result = await self.cache.run_mutation(mutation)
        logger.info("%s_%s", self.cache.name, action)
        return result

    async def _update_from_form(
        self,
        record: Record,
        submitted: Mapping[str, Any],
        send: Callable[[dict[str, Any]], Awaitable[Any]],
    ) -> dict[str, Any] | NoChanges:
        """
        Send only the changed fields of an edit form.

        Returns:
            The patch that was sent, or NO_CHANGES (nothing sent, cache kept).

        Raises:
            PatchValidationError: The patch failed validation; nothing sent.
        """
        patch = self.build_patch(record, submitted)
        if patch is NO_CHANGES:
            logger.debug("%s_update_skipped reason=no_changes", self.cache.name)
            return NO_CHANGES
        await self._mutate("updated", send(patch))
        return patch
