"""Entry data model and field validation."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

__all__ = [
    "ENTRY_FIELDS",
    "NAME_MAX_LENGTH",
    "REQUIRED_FIELDS",
    "Entry",
    "merge_entry_fields",
    "normalize_entry_fields",
    "utcnow",
    "validate_entry_fields",
]

ENTRY_FIELDS: tuple[str, ...] = ("name", "description", "date", "value")
REQUIRED_FIELDS: tuple[str, ...] = ("name", "date", "value")
BLANK_MESSAGE = "can't be blank"
NAME_MAX_LENGTH = 255
VALUE_PRECISION = 12
VALUE_SCALE = 2
MAX_VALUE = Decimal(10) ** (VALUE_PRECISION - VALUE_SCALE)


def utcnow() -> dt.datetime:
    """Return timezone-aware UTC timestamp."""

    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class Entry:
    """A single ledger line item."""

    id: int
    name: str
    description: Optional[str]
    date: dt.date
    value: Decimal
    created_at: dt.datetime
    updated_at: dt.datetime

    def fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in ENTRY_FIELDS}

    def with_fields(self, changes: Mapping[str, Any], *, timestamp: dt.datetime) -> "Entry":
        """Apply changed fields; unchanged input returns ``self``."""

        delta = {
            key: value
            for key, value in changes.items()
            if key in ENTRY_FIELDS and getattr(self, key) != value
        }
        if not delta:
            return self
        return replace(self, **delta, updated_at=timestamp)

    def snapshot(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["value"] = str(self.value)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data


def normalize_entry_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep permitted keys only and coerce obvious scalar forms."""

    normalized: Dict[str, Any] = {}
    for key in ENTRY_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if isinstance(value, str):
            value = value.strip()
            if key == "description":
                value = value or None
        if key == "value" and value is not None and not isinstance(value, Decimal):
            try:
                value = Decimal(str(value))
            except InvalidOperation:
                pass
        if key == "date" and isinstance(value, str) and value:
            try:
                value = dt.date.fromisoformat(value)
            except ValueError:
                pass
        normalized[key] = value
    return normalized


def merge_entry_fields(entry: Entry, changes: Mapping[str, Any]) -> Dict[str, Any]:
    merged = entry.fields()
    merged.update(changes)
    return merged


def validate_entry_fields(fields: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Return field-level error messages for a complete entry payload."""

    errors: Dict[str, List[str]] = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    for key in REQUIRED_FIELDS:
        value = fields.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            add(key, BLANK_MESSAGE)

    name = fields.get("name")
    if name is not None and not isinstance(name, str):
        add("name", "must be text")
    elif isinstance(name, str) and len(name) > NAME_MAX_LENGTH:
        add("name", f"is too long (maximum is {NAME_MAX_LENGTH} characters)")

    description = fields.get("description")
    if description is not None and not isinstance(description, str):
        add("description", "must be text")

    entry_date = fields.get("date")
    if entry_date is not None and "date" not in errors:
        if isinstance(entry_date, dt.datetime) or not isinstance(entry_date, dt.date):
            add("date", "is not a valid date")

    value = fields.get("value")
    if value is not None and "value" not in errors:
        if not isinstance(value, Decimal) or not value.is_finite():
            add("value", "is not a number")
        elif abs(value) >= MAX_VALUE:
            add("value", f"must be less than {MAX_VALUE} in magnitude")
        elif value != value.quantize(Decimal(1).scaleb(-VALUE_SCALE)):
            add("value", f"must have at most {VALUE_SCALE} decimal places")

    return errors
