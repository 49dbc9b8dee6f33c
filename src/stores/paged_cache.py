"""Page-keyed cache over a paginated list endpoint."""
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from schemas.pagination import Paginated, Record

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchPage = Callable[[int, int], Awaitable[Paginated]]
FetchAll = Callable[[], Awaitable[list[Record]]]

WHOLE_COLLECTION_TTL = 300  # 5 minutes


@dataclass(frozen=True)
class PageResult:
    """One page as served by the cache, with the server's latest totals."""

    records: list[Record]
    total_records: int
    total_pages: int
    page_number: int


class PagedCacheStore:
    """
    Cache of one resource's pages, keyed by page number under one page size.

    Pages are served from memory until a mutation invalidates them or the
    caller forces a refresh. Totals always come from the latest stored
    response. A failed fetch changes nothing.

    Whole-collection fetches (e.g. every inactive key) are cached separately
    and expire after ``whole_collection_ttl`` seconds.

    In-flight responses are fenced: a response is stored only if no newer
    request for the same page has been applied and no invalidation happened
    while it was in flight. The caller still receives what it fetched.
    """

    def __init__(
        self,
        name: str,
        fetch_page: FetchPage,
        fetch_all: FetchAll | None = None,
        whole_collection_ttl: float = WHOLE_COLLECTION_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._fetch_page = fetch_page
        self._fetch_all = fetch_all
        self._ttl = whole_collection_ttl
        self._clock = clock

        self.pages_by_number: dict[int, list[Record]] = {}
        self.page_size: int | None = None
        self.total_records = 0
        self.total_pages: int | None = None
        self.current_page_number = 1

        self.whole_collection: list[Record] | None = None
        self.last_whole_collection_fetch: float | None = None

        self._in_flight = 0
        self._generation = 0
        self._next_sequence = 0
        self._applied_sequence: dict[tuple[int, int], int] = {}

    @property
    def is_loading(self) -> bool:
        """True while any fetch for this resource is awaiting the network."""
        return self._in_flight > 0

    def cached_page(self, page_size: int, page_number: int) -> list[Record] | None:
        """
        Return the cached page, or None if it may not be served.

        A page is absent if it was stored under another page size or lies
        beyond the latest ``total_pages`` (stale entries are ignored, not purged).
        """
        if page_size != self.page_size:
            return None
        if self.total_pages is not None and page_number > max(self.total_pages, 1):
            return None
        return self.pages_by_number.get(page_number)

    async def fetch(
        self, page_size: int, offset: int, force_refresh: bool = False,
    ) -> PageResult:
        """
        Serve the page containing ``offset``, from cache when possible.

        Args:
            page_size: Records per page (the request's limit).
            offset: Index of the first record; expected to be a multiple of page_size.
            force_refresh: Always hit the network and overwrite the cached page.

        Raises:
            ValueError: Non-positive page_size or negative offset.
            AdminApiError: The fetch failed; the cache is left untouched.
        """
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if offset < 0:
            raise ValueError("offset must not be negative")
        page_number = offset // page_size + 1

        if not force_refresh:
            cached = self.cached_page(page_size, page_number)
            if cached is not None:
                logger.debug("%s_cache_hit page=%s page_size=%s", self.name, page_number, page_size)
                self.current_page_number = page_number
                return PageResult(
                    records=list(cached),
                    total_records=self.total_records,
                    total_pages=self.total_pages or 0,
                    page_number=page_number,
                )

        logger.debug(
            "%s_cache_miss page=%s page_size=%s force=%s",
            self.name, page_number, page_size, force_refresh,
        )
        generation = self._generation
        self._next_sequence += 1
        sequence = self._next_sequence

        page = await self._track(self._fetch_page(page_size, offset))
        total_pages = page.pages or math.ceil(page.total / page_size)

        self._store_page(page_size, page_number, page, total_pages, generation, sequence)
        return PageResult(
            records=list(page.data),
            total_records=page.total,
            total_pages=total_pages,
            page_number=page_number,
        )

    def _store_page(
        self,
        page_size: int,
        page_number: int,
        page: Paginated,
        total_pages: int,
        generation: int,
        sequence: int,
    ) -> None:
        key = (page_size, page_number)
        if generation != self._generation:
            logger.debug("%s_response_dropped reason=invalidated page=%s", self.name, page_number)
            return
        if sequence < self._applied_sequence.get(key, 0):
            logger.debug("%s_response_dropped reason=superseded page=%s", self.name, page_number)
            return

        if page_size != self.page_size:
            # Different page size means different page boundaries
            self.pages_by_number = {}
            self.page_size = page_size
        self.pages_by_number[page_number] = list(page.data)
        self.total_records = page.total
        self.total_pages = total_pages
        self.current_page_number = page_number
        self._applied_sequence[key] = sequence

    async def fetch_whole_collection(self, force_refresh: bool = False) -> list[Record]:
        """
        Serve the unbounded collection, refetching once it is older than the TTL.

        Raises:
            TypeError: This store was built without a whole-collection fetcher.
            AdminApiError: The fetch failed; the cached list is left untouched.
        """
        if self._fetch_all is None:
            raise TypeError(f"{self.name} has no whole-collection fetcher")

        now = self._clock()
        if (
            not force_refresh
            and self.whole_collection is not None
            and self.last_whole_collection_fetch is not None
            and now - self.last_whole_collection_fetch < self._ttl
        ):
            logger.debug(
                "%s_collection_cache_hit age=%.1f",
                self.name, now - self.last_whole_collection_fetch,
            )
            return list(self.whole_collection)

        logger.debug("%s_collection_cache_miss force=%s", self.name, force_refresh)
        generation = self._generation
        records = await self._track(self._fetch_all())
        if generation == self._generation:
            self.whole_collection = list(records)
            self.last_whole_collection_fetch = now
        return list(records)

    def invalidate(self) -> None:
        """
        Forget every cached page and the cached collection.

        Totals are kept until the next fetch replaces them. Responses already
        in flight will not be stored.
        """
        self.pages_by_number = {}
        self.whole_collection = None
        self.last_whole_collection_fetch = None
        self._generation += 1
        self._applied_sequence.clear()
        logger.debug("%s_cache_invalidated", self.name)

    async def run_mutation(self, mutation: Awaitable[T]) -> T:
        """
        Await a create/update/delete call and invalidate only if it succeeded.

        A failed mutation changed nothing server-side, so the cache is kept.
        """
        result = await mutation
        self.invalidate()
        return result

    async def _track(self, call: Awaitable[T]) -> T:
        self._in_flight += 1
        try:
            return await call
        finally:
            self._in_flight -= 1
