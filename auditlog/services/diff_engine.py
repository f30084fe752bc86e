"""
Field-level diff between the old and new snapshot of one audit record.

Each changed field is labeled, typed and formatted through the field
registry. Sensitive values are masked before any type formatting applies.
Unchanged fields are dropped from the result.
"""
import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from auditlog.models.enums import ChangeType, FieldType
from auditlog.services.field_registry import STORED_MASK, FieldRegistry, default_registry

EMPTY_PLACEHOLDER = "-"
MASK_TOKEN = "******"
MASK_VISIBLE_TAIL = 4
CURRENCY_SUFFIX = "so'm"
BOOLEAN_LABELS = {True: "Ha", False: "Yo'q"}

DATE_FORMAT = "%d.%m.%Y"
DATETIME_FORMAT = "%d.%m.%Y %H:%M:%S"


@dataclass
class FieldChange:
    """One field that differs between two snapshots."""
    field_name: str
    label: str
    old_value: Any
    new_value: Any
    change_type: ChangeType
    field_type: FieldType
    sensitive: bool
    old_formatted: str
    new_formatted: str


def determine_change_type(old_value: Any, new_value: Any) -> ChangeType:
    """Classify a field by its old and new value."""
    if old_value is None and new_value is not None:
        return ChangeType.ADDED
    if old_value is not None and new_value is None:
        return ChangeType.REMOVED
    if old_value is not None and not _values_equal(old_value, new_value):
        return ChangeType.MODIFIED
    return ChangeType.UNCHANGED


def _values_equal(left: Any, right: Any) -> bool:
    # True == 1 in Python; a flag flipping to a number is still a change
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def compute_field_changes(
    entity_type: str,
    old_snapshot: Optional[Dict[str, Any]],
    new_snapshot: Optional[Dict[str, Any]],
    registry: FieldRegistry = default_registry,
) -> List[FieldChange]:
    """
    Compute the ordered list of field changes between two snapshots.

    Keys are visited in the old snapshot's order, followed by keys that only
    exist in the new snapshot. Either snapshot may be None (CREATE / DELETE).
    """
    old_snapshot = old_snapshot or {}
    new_snapshot = new_snapshot or {}

    field_names = list(old_snapshot.keys())
    field_names.extend(key for key in new_snapshot.keys() if key not in old_snapshot)

    changes = []
    for field_name in field_names:
        old_value = old_snapshot.get(field_name)
        new_value = new_snapshot.get(field_name)

        change_type = determine_change_type(old_value, new_value)
        if change_type == ChangeType.UNCHANGED:
            continue

        field_spec = registry.lookup(entity_type, field_name)
        changes.append(FieldChange(
            field_name=field_name,
            label=field_spec.label,
            old_value=old_value,
            new_value=new_value,
            change_type=change_type,
            field_type=field_spec.field_type,
            sensitive=field_spec.sensitive,
            old_formatted=format_value(old_value, field_spec.field_type, field_spec.sensitive),
            new_formatted=format_value(new_value, field_spec.field_type, field_spec.sensitive),
        ))

    return changes


def mask_value(text: str) -> str:
    """Hide a sensitive value, keeping only its last four characters."""
    if len(text) <= MASK_VISIBLE_TAIL:
        return MASK_TOKEN
    return MASK_TOKEN + text[-MASK_VISIBLE_TAIL:]


def format_value(value: Any, field_type: FieldType, sensitive: bool = False) -> str:
    """Render a raw snapshot value for display. Never raises on bad input."""
    if value is None:
        return EMPTY_PLACEHOLDER

    if sensitive:
        if value == STORED_MASK:
            return MASK_TOKEN
        return mask_value(_to_text(value))

    if field_type == FieldType.CURRENCY:
        return format_currency(value)
    if field_type == FieldType.DATE:
        return format_date(value)
    if field_type == FieldType.DATETIME:
        return format_datetime(value)
    if field_type == FieldType.BOOLEAN:
        return format_boolean(value)
    if field_type == FieldType.JSON:
        return format_json(value)
    # ENUM values arrive already display-ready
    return _to_text(value)


def format_currency(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return _to_text(value)
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return _to_text(value)
    return f"{amount:,.2f} {CURRENCY_SUFFIX}"


def format_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime(DATE_FORMAT)
    if not isinstance(value, str):
        return _to_text(value)
    try:
        return date.fromisoformat(value).strftime(DATE_FORMAT)
    except ValueError:
        return value


def format_datetime(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if not isinstance(value, str):
        return _to_text(value)
    try:
        return datetime.fromisoformat(value).strftime(DATETIME_FORMAT)
    except ValueError:
        return value


def format_boolean(value: Any) -> str:
    if isinstance(value, bool):
        return BOOLEAN_LABELS[value]
    return _to_text(value)


def format_json(value: Any) -> str:
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(value)
    return _to_text(value)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
