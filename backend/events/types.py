# events/types.py
"""
Event type definitions for the Dapur ledger.

This module defines THE CANONICAL SCHEMA for all event payloads.
These dataclasses are the CONTRACT, not a "helper". All event emission
MUST use these types, and validation is enforced at emission time.

Naming Convention: {aggregate}.{action}
Examples:
- account.created
- journal_entry.posted

IMPORTANT: Events are a STABLE API
============================================
- Adding optional fields with defaults is safe
- Removing, renaming or retyping fields breaks projections
  (requires a migration of the stored stream)
"""

from dataclasses import dataclass, asdict, field, fields as dataclass_fields, MISSING
from typing import Optional, List, Dict, Any, get_type_hints, get_origin, get_args, Union
from decimal import Decimal, InvalidOperation
from datetime import date, datetime


# =============================================================================
# Event Validation
# =============================================================================

class InvalidEventPayload(Exception):
    """
    Raised when an event payload fails validation.

    This exception is raised at event emission time when the provided
    data does not match the expected schema for the event type.
    """
    def __init__(self, event_type: str, errors: List[str]):
        self.event_type = event_type
        self.errors = errors
        error_list = "\n  - ".join(errors)
        super().__init__(
            f"Invalid payload for event '{event_type}':\n  - {error_list}"
        )


def _is_optional_type(type_hint) -> bool:
    """Check if a type hint is Optional[X] (i.e., Union[X, None])."""
    if get_origin(type_hint) is Union:
        return type(None) in get_args(type_hint)
    return False


def _get_inner_type(type_hint):
    """Get the inner type from Optional[X]."""
    if get_origin(type_hint) is Union:
        non_none_args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none_args) == 1:
            return non_none_args[0]
    return type_hint


def _check_type(field_name: str, value: Any, type_hint, errors: List[str]) -> None:
    if value is None:
        if not _is_optional_type(type_hint):
            errors.append(f"Field '{field_name}' cannot be None (type: {type_hint})")
        return

    check_type = _get_inner_type(type_hint) if _is_optional_type(type_hint) else type_hint
    origin = get_origin(check_type)

    if origin is list or check_type is list:
        if not isinstance(value, list):
            errors.append(f"Field '{field_name}' must be a list, got {type(value).__name__}")
            return
        inner = get_args(check_type)
        if inner and inner[0] in (dict, Dict):
            for idx, item in enumerate(value):
                if not isinstance(item, dict):
                    errors.append(
                        f"Field '{field_name}[{idx}]' must be a dict, got {type(item).__name__}"
                    )
    elif origin is dict or check_type is dict:
        if not isinstance(value, dict):
            errors.append(f"Field '{field_name}' must be a dict, got {type(value).__name__}")
        else:
            for key in value.keys():
                if not isinstance(key, str):
                    errors.append(f"Field '{field_name}' has non-string key: {key!r}")
    elif check_type is str:
        if not isinstance(value, str):
            errors.append(f"Field '{field_name}' must be a string, got {type(value).__name__}")
    elif check_type is int:
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(f"Field '{field_name}' must be an int, got {type(value).__name__}")
    elif check_type is bool:
        if not isinstance(value, bool):
            errors.append(f"Field '{field_name}' must be a bool, got {type(value).__name__}")


def validate_event_payload(event_type: str, data: Dict[str, Any]) -> None:
    """
    Validate that a data dict matches the expected schema for an event type.

    Validates:
    1. Required fields are present (fields without defaults)
    2. No unexpected fields are provided (strict schema)
    3. Field types are correct (basic type checking)
    4. Domain semantics: enum values, decimal strings, ISO dates

    Raises:
        InvalidEventPayload: If validation fails
        ValueError: If event_type has no registered schema
    """
    data_class = EVENT_DATA_CLASSES.get(event_type)
    if data_class is None:
        raise ValueError(
            f"No schema registered for event type '{event_type}'. "
            f"Add a dataclass to EVENT_DATA_CLASSES."
        )

    errors = []
    dc_fields = {f.name: f for f in dataclass_fields(data_class)}
    type_hints = get_type_hints(data_class)

    for field_name, field_info in dc_fields.items():
        required = (
            field_info.default is MISSING and
            field_info.default_factory is MISSING
        )
        if required and field_name not in data:
            errors.append(f"Missing required field: '{field_name}'")

    unexpected = set(data.keys()) - set(dc_fields.keys())
    if unexpected:
        errors.append(
            f"Unexpected fields: {sorted(unexpected)}. "
            f"Expected: {sorted(dc_fields.keys())}"
        )

    for field_name, value in data.items():
        type_hint = type_hints.get(field_name)
        if field_name in dc_fields and type_hint is not None:
            _check_type(field_name, value, type_hint, errors)

    # Domain-specific validation for common semantics
    from accounting.models import Account, JournalEntry

    enum_fields = {
        "account_type": set(Account.AccountType.values),
        "normal_balance": set(Account.NormalBalance.values),
        "status": set(JournalEntry.Status.values),
        "entry_type": set(JournalEntry.EntryType.values),
    }
    decimal_fields = {"debit", "credit", "total_debit", "total_credit", "balance"}
    date_fields = {"date"}
    datetime_fields = {"posted_at", "reversed_at", "deleted_at"}

    def _validate_scalar(name: str, value: Any) -> None:
        if value is None or isinstance(value, (dict, list)):
            return
        if name in enum_fields and value not in enum_fields[name]:
            errors.append(
                f"Field '{name}' must be one of {sorted(enum_fields[name])}, got {value!r}"
            )
        if name in decimal_fields:
            if isinstance(value, bool) or not isinstance(value, (int, Decimal, str)):
                errors.append(f"Field '{name}' must be a decimal string, got {type(value).__name__}")
            else:
                try:
                    parsed = Decimal(str(value))
                    if parsed < 0 and name in {"debit", "credit"}:
                        errors.append(f"Field '{name}' must be >= 0, got {value!r}")
                except (InvalidOperation, ValueError):
                    errors.append(f"Field '{name}' must be a decimal string, got {value!r}")
        if name in date_fields:
            try:
                date.fromisoformat(str(value))
            except ValueError:
                errors.append(f"Field '{name}' must be an ISO date string, got {value!r}")
        if name in datetime_fields:
            try:
                datetime.fromisoformat(str(value))
            except ValueError:
                errors.append(f"Field '{name}' must be an ISO datetime string, got {value!r}")

    def _walk(name: str, value: Any) -> None:
        _validate_scalar(name, value)
        if isinstance(value, dict):
            for k, v in value.items():
                _walk(k, v)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, (dict, list)):
                    _walk(name, item)

    for field_name, value in data.items():
        # "changes" carries old/new pairs keyed by field name, not domain values
        if field_name != "changes":
            _walk(field_name, value)

    if errors:
        raise InvalidEventPayload(event_type, errors)


# =============================================================================
# Base Event Classes
# =============================================================================

@dataclass
class BaseEventData:
    """Base class for all event data."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage."""
        result = {}
        for key, value in asdict(self).items():
            if isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, (date, datetime)):
                result[key] = value.isoformat()
            elif isinstance(value, list):
                result[key] = [
                    item.to_dict() if hasattr(item, "to_dict") else
                    (dict(item) if isinstance(item, dict) else item)
                    for item in value
                ]
            else:
                result[key] = value
        return result


# =============================================================================
# Account Events
# =============================================================================

@dataclass
class AccountCreatedData(BaseEventData):
    """Data for account.created event."""
    account_public_id: str
    code: str
    name: str
    account_type: str
    category: str
    normal_balance: str
    description: str = ""
    is_active: bool = True
    is_system: bool = False


@dataclass
class AccountUpdatedData(BaseEventData):
    """Data for account.updated event."""
    account_public_id: str
    changes: Dict[str, Dict[str, Any]]  # {"field": {"old": x, "new": y}}


@dataclass
class AccountDeletedData(BaseEventData):
    """Data for account.deleted event."""
    account_public_id: str
    code: str
    name: str


# =============================================================================
# Journal Entry Events
# =============================================================================

@dataclass
class JournalLineData:
    """Journal line data for embedding in events."""
    line_no: int
    account_public_id: str
    account_code: str
    account_name: str
    debit: str  # String for JSON safety
    credit: str
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "line_no": self.line_no,
            "account_public_id": self.account_public_id,
            "account_code": self.account_code,
            "account_name": self.account_name,
            "description": self.description,
            "debit": self.debit,
            "credit": self.credit,
        }


@dataclass
class JournalEntryCreatedData(BaseEventData):
    """Data for journal_entry.created event (a new DRAFT)."""
    entry_public_id: str
    entry_number: str
    date: str  # ISO format
    entry_type: str
    description: str
    total_debit: str
    total_credit: str
    lines: List[dict]
    reference: str = ""
    source_module: str = ""
    source_document: str = ""
    status: str = "DRAFT"
    created_by_id: Optional[int] = None
    created_by_name: str = ""


@dataclass
class JournalEntryPostedData(BaseEventData):
    """
    Data for journal_entry.posted event.

    Carries the full line set: posted lines are the immutable facts
    every balance is replayed from.
    """
    entry_public_id: str
    entry_number: str
    date: str
    entry_type: str
    description: str
    posted_at: str
    total_debit: str
    total_credit: str
    lines: List[dict]  # List of JournalLineData dicts
    posted_by_id: Optional[int] = None
    posted_by_name: str = ""
    reference: str = ""
    source_module: str = ""
    source_document: str = ""
    reverses_entry_public_id: Optional[str] = None


@dataclass
class JournalEntryReversedData(BaseEventData):
    """Data for journal_entry.reversed event."""
    original_entry_public_id: str
    reversal_entry_public_id: str
    reversed_at: str
    reversed_by_id: Optional[int] = None
    reversed_by_name: str = ""


@dataclass
class JournalEntryDeletedData(BaseEventData):
    """Data for journal_entry.deleted event."""
    entry_public_id: str
    entry_number: str
    date: str
    status: str


# =============================================================================
# Event Type Registry
# =============================================================================

class EventTypes:
    """
    Registry of all event types.

    Naming convention: {aggregate}.{past_tense_verb}
    - account.created (not account.create)
    - journal_entry.posted (not journal_entry.post)
    """

    # Account events
    ACCOUNT_CREATED = "account.created"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_DELETED = "account.deleted"

    # Journal entry events
    JOURNAL_ENTRY_CREATED = "journal_entry.created"
    JOURNAL_ENTRY_POSTED = "journal_entry.posted"
    JOURNAL_ENTRY_REVERSED = "journal_entry.reversed"
    JOURNAL_ENTRY_DELETED = "journal_entry.deleted"

    @classmethod
    def all(cls) -> List[str]:
        return [
            value for key, value in vars(cls).items()
            if key.isupper() and isinstance(value, str)
        ]


EVENT_DATA_CLASSES = {
    EventTypes.ACCOUNT_CREATED: AccountCreatedData,
    EventTypes.ACCOUNT_UPDATED: AccountUpdatedData,
    EventTypes.ACCOUNT_DELETED: AccountDeletedData,

    EventTypes.JOURNAL_ENTRY_CREATED: JournalEntryCreatedData,
    EventTypes.JOURNAL_ENTRY_POSTED: JournalEntryPostedData,
    EventTypes.JOURNAL_ENTRY_REVERSED: JournalEntryReversedData,
    EventTypes.JOURNAL_ENTRY_DELETED: JournalEntryDeletedData,
}
