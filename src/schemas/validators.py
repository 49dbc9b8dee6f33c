"""
Shared validation helpers for the request schemas.

Messages mirror the ones the dashboard shows next to each field.
"""
import re
from enum import StrEnum

# Same loose check the dashboard applies before sending; the backend is authoritative.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class KeyState(StrEnum):
    """Lifecycle states of a license key."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    APPROVED = "APPROVED"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"


def validate_email(email: str | None) -> str | None:
    """
    Normalize and validate an email address.

    Raises:
        ValueError: If the address is not of the form name@domain.tld.
    """
    if email is None:
        return None
    normalized = email.strip()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Invalid email address")
    return normalized


def validate_not_blank(value: str | None) -> str | None:
    """Reject strings that are empty once trimmed."""
    if value is not None and not value.strip():
        raise ValueError("This field is required")
    return value
