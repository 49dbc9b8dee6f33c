"""
Dirty-field diffing for edit forms.

An edit form is loaded with a record's values and submitted with the user's
values. Only the fields that actually changed are sent, so an update never
overwrites a field the user did not touch and an unchanged form never hits the
network.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from schemas.batch import BatchUpdate
from schemas.client import ClientUpdate
from schemas.key import KeyUpdate
from schemas.key_type import KeyTypeUpdate
from schemas.pagination import Record
from services.record_filter import get_path
from shared.api_errors import PatchValidationError

NO_CHANGES_MESSAGE = "No hay cambios para guardar"


class NoChanges(Enum):
    """Sentinel type: the submitted form equals the loaded record."""

    NO_CHANGES = "no_changes"


NO_CHANGES = NoChanges.NO_CHANGES


def normalize_date(value: Any) -> Any:
    """
    Reduce a date-like value to an ISO date string for comparison.

    Accepts date, datetime and ISO 8601 strings. The empty string means the
    user cleared the field and becomes None. Unparseable strings are returned
    untouched so schema validation can report them.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date().isoformat()
        except ValueError:
            return value
    return value


def _normalize(
    name: str,
    value: Any,
    date_fields: Sequence[str],
    nullable_fields: Sequence[str],
) -> Any:
    if name in date_fields:
        return normalize_date(value)
    if name in nullable_fields and value == "":
        return None
    return value


def compute_dirty_patch(
    original: Mapping[str, Any],
    submitted: Mapping[str, Any],
    fields: Sequence[str],
    date_fields: Sequence[str] = (),
    nullable_fields: Sequence[str] = (),
) -> dict[str, Any] | NoChanges:
    """
    Compute the minimal patch between loaded and submitted form values.

    A field is included when its (normalized) submitted value differs from the
    original. A cleared date or nullable field yields an explicit None, never an
    omitted key. Fields missing from ``submitted`` are treated as untouched.

    Args:
        original: Values loaded into the form when it was opened.
        submitted: Values at submit time.
        fields: The form's fixed set of field names.
        date_fields: Fields compared by normalized date value.
        nullable_fields: Fields where the empty string means None.

    Returns:
        The patch, or NO_CHANGES when nothing differs.
    """
    patch: dict[str, Any] = {}
    for name in fields:
        if name not in submitted:
            continue
        before = _normalize(name, original.get(name), date_fields, nullable_fields)
        after = _normalize(name, submitted[name], date_fields, nullable_fields)
        if after != before:
            patch[name] = after
    return patch or NO_CHANGES


@dataclass(frozen=True)
class EditForm:
    """
    Description of one resource's edit form.

    ``sources`` maps a form field to the dot-path it is loaded from when the
    record nests it (e.g. ``client_id`` comes from ``client.id``).
    """

    name: str
    fields: tuple[str, ...]
    update_schema: type[BaseModel]
    date_fields: tuple[str, ...] = ()
    nullable_fields: tuple[str, ...] = ()
    sources: dict[str, str] = field(default_factory=dict)

    def initial_values(self, record: Record) -> dict[str, Any]:
        """Values the form shows when opened on ``record``."""
        values = {}
        for name in self.fields:
            value = get_path(record, self.sources.get(name, name))
            if name in self.date_fields:
                value = normalize_date(value)
            values[name] = value
        return values

    def compute_patch(
        self, original: Mapping[str, Any], submitted: Mapping[str, Any],
    ) -> dict[str, Any] | NoChanges:
        """compute_dirty_patch() over this form's fields."""
        return compute_dirty_patch(
            original, submitted, self.fields, self.date_fields, self.nullable_fields,
        )

    def build_patch(
        self, original: Mapping[str, Any], submitted: Mapping[str, Any],
    ) -> dict[str, Any] | NoChanges:
        """
        Compute and validate the patch to send.

        Returns:
            NO_CHANGES, or the JSON-ready patch (explicit None preserved).

        Raises:
            PatchValidationError: The first field failing the update schema.
        """
        patch = self.compute_patch(original, submitted)
        if patch is NO_CHANGES:
            return NO_CHANGES
        try:
            model = self.update_schema.model_validate(patch)
        except ValidationError as e:
            first = e.errors()[0]
            loc = first.get("loc") or ("unknown",)
            raise PatchValidationError(str(loc[0]), first["msg"]) from e
        return model.model_dump(mode="json", exclude_unset=True)


KEY_EDIT_FORM = EditForm(
    name="key",
    fields=("code", "state", "key_type_id", "init_date", "due_date", "client_id"),
    update_schema=KeyUpdate,
    date_fields=("init_date", "due_date"),
    nullable_fields=("client_id",),
    sources={"key_type_id": "key_type.id", "client_id": "client.id"},
)

CLIENT_EDIT_FORM = EditForm(
    name="client",
    fields=("name", "email", "phone"),
    update_schema=ClientUpdate,
)

BATCH_EDIT_FORM = EditForm(
    name="batch",
    fields=("title", "description"),
    update_schema=BatchUpdate,
)

KEY_TYPE_EDIT_FORM = EditForm(
    name="key_type",
    fields=("name", "description"),
    update_schema=KeyTypeUpdate,
)
