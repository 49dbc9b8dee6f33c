"""Keys report: expiry window, counts by type and by client."""
from collections import Counter
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from schemas.pagination import Record
from schemas.report import ClientKeyCount, ExpiringKey, KeyReport
from services.record_filter import get_path

EXPIRING_WITHIN_DAYS = 30
TOP_CLIENTS = 5
TOP_EXPIRING = 10
UNASSIGNED_CLIENT = "Sin asignar"


def _due_date(key: Record) -> date | None:
    value = key.get("due_date")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            return None
    return None


def _client_name(key: Record) -> str | None:
    return get_path(key, "client.name") or key.get("client_name") or None


def build_key_report(
    keys: Sequence[Record],
    inactive_keys: Sequence[Record],
    today: date,
) -> KeyReport:
    """
    Summarize the loaded keys lists.

    ``keys`` is the keys list as loaded (its records count as active) and
    ``inactive_keys`` the inactive collection. Expiry and per-client figures
    only look at ``keys``; type counts cover both lists.

    Args:
        keys: Records from the keys list.
        inactive_keys: Records from the inactive keys collection.
        today: First day of the expiry window.

    Returns:
        KeyReport with at most five clients (most keys first) and ten expiring
        keys (soonest first).
    """
    window_end = today + timedelta(days=EXPIRING_WITHIN_DAYS)

    expiring: list[ExpiringKey] = []
    for key in keys:
        due = _due_date(key)
        if due is None or not today <= due <= window_end:
            continue
        expiring.append(
            ExpiringKey(
                code=key.get("code", ""),
                client_name=_client_name(key) or UNASSIGNED_CLIENT,
                due_date=due.isoformat(),
                days_left=(due - today).days,
            ),
        )
    expiring.sort(key=lambda item: item.days_left)

    by_type = Counter(
        name
        for key in [*keys, *inactive_keys]
        if (name := get_path(key, "key_type.name"))
    )
    by_client = Counter(name for key in keys if (name := _client_name(key)))

    return KeyReport(
        total=len(keys) + len(inactive_keys),
        active=len(keys),
        inactive=len(inactive_keys),
        expiring_soon=len(expiring),
        by_key_type=dict(by_type),
        by_client=[
            ClientKeyCount(name=name, count=count)
            for name, count in by_client.most_common(TOP_CLIENTS)
        ],
        expiring_keys=expiring[:TOP_EXPIRING],
    )
