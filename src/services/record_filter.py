"""
Client-side narrowing of already-fetched records by a free-text query.

The filter only sees the page (or whole collection) currently held in memory,
so while a query is active the server's totals no longer describe what is
shown. page_view() applies one policy everywhere: with a query active, counts
describe the filtered page and cross-page pagination is suppressed.
"""
from collections.abc import Iterator, Sequence
from typing import Any

from schemas.pagination import Record


def iter_path(value: Any, path: str) -> Iterator[Any]:
    """
    Yield every value reachable from ``value`` by a dot-path.

    Lists fan out, so ``permissions.name`` yields the name of each permission.
    Missing keys and None along the way yield nothing.
    """
    head, _, rest = path.partition(".")
    if isinstance(value, list):
        for item in value:
            yield from iter_path(item, path)
        return
    if not isinstance(value, dict) or head not in value:
        return
    child = value[head]
    if not rest:
        if isinstance(child, list):
            yield from (item for item in child if item is not None)
        elif child is not None:
            yield child
        return
    yield from iter_path(child, rest)


def get_path(record: Record, path: str, default: Any = None) -> Any:
    """Return the first value at a dot-path, or ``default`` when absent."""
    return next(iter_path(record, path), default)


def matches(record: Record, needle: str, searchable_fields: Sequence[str]) -> bool:
    """True if any searchable field contains the (already lowercased) needle."""
    return any(
        needle in str(value).lower()
        for field in searchable_fields
        for value in iter_path(record, field)
    )


def filter_records(
    records: list[Record],
    query: str | None,
    searchable_fields: Sequence[str],
) -> list[Record]:
    """
    Keep the records where at least one searchable field contains the query.

    Matching is case-insensitive and unanchored. Input order is preserved and
    the input list is never modified; an empty query returns it as is.

    Args:
        records: Records currently held in memory.
        query: Free-text query; empty or None disables filtering.
        searchable_fields: Dot-paths to search (e.g. ``key_type.name``).
    """
    if not query:
        return records
    needle = query.lower()
    return [record for record in records if matches(record, needle, searchable_fields)]


def page_view(
    records: list[Record],
    query: str | None,
    searchable_fields: Sequence[str],
    *,
    total_records: int,
    total_pages: int,
    page_number: int,
) -> dict[str, Any]:
    """
    Shape a cached page for display, applying the filter's pagination policy.

    Without a query the server totals pass through. With a query the counts
    describe only the filtered page and ``total_pages`` is None, since the
    other pages were never searched.
    """
    if not query:
        return {
            "records": records,
            "total_records": total_records,
            "total_pages": total_pages,
            "page_number": page_number,
            "filtered": False,
        }
    filtered = filter_records(records, query, searchable_fields)
    return {
        "records": filtered,
        "total_records": len(filtered),
        "total_pages": None,
        "page_number": page_number,
        "filtered": True,
    }
