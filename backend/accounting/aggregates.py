"""
Aggregate definitions for event sourcing.

Aggregates are reconstituted by replaying events from their event stream.
Each aggregate type has a dedicated stream identified by (aggregate_type, aggregate_id).

IMPORTANT: Aggregate Boundary Rules
===================================
All events that modify an aggregate MUST be emitted with that aggregate's
type and ID. This ensures:
1. Aggregates are replayable from their own stream (no global scans)
2. Event ordering is consistent within the aggregate

Example:
- JournalEntry events use aggregate_type="JournalEntry", aggregate_id=entry_public_id
- The reversed marker is emitted on the ORIGINAL entry's stream
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List

from events.emitter import get_aggregate_events
from events.types import EventTypes


@dataclass
class JournalEntryAggregate:
    public_id: str
    entry_number: str = ""
    date: Optional[str] = None
    description: str = ""
    reference: str = ""
    entry_type: str = "MANUAL"
    source_module: str = ""
    source_document: str = ""
    status: str = "DRAFT"
    lines: List[dict] = field(default_factory=list)
    reverses_entry_public_id: Optional[str] = None
    deleted: bool = False
    reversed: bool = False

    def apply(self, event) -> None:
        data = event.get_data()

        if event.event_type in (EventTypes.JOURNAL_ENTRY_CREATED, EventTypes.JOURNAL_ENTRY_POSTED):
            self.entry_number = data.get("entry_number", self.entry_number)
            self.date = data.get("date", self.date)
            self.description = data.get("description", self.description)
            self.reference = data.get("reference", self.reference)
            self.entry_type = data.get("entry_type", self.entry_type)
            self.source_module = data.get("source_module", self.source_module)
            self.source_document = data.get("source_document", self.source_document)
            if data.get("lines") is not None:
                self.lines = data.get("lines", [])
            if event.event_type == EventTypes.JOURNAL_ENTRY_POSTED:
                self.status = "POSTED"
                self.reverses_entry_public_id = data.get("reverses_entry_public_id")
            else:
                self.status = data.get("status", "DRAFT")
            return

        if event.event_type == EventTypes.JOURNAL_ENTRY_REVERSED:
            self.status = "REVERSED"
            self.reversed = True
            return

        if event.event_type == EventTypes.JOURNAL_ENTRY_DELETED:
            self.deleted = True

    @property
    def total_debit(self) -> Decimal:
        total = Decimal("0.00")
        for line in self.lines:
            total += Decimal(str(line.get("debit", "0")))
        return total

    @property
    def total_credit(self) -> Decimal:
        total = Decimal("0.00")
        for line in self.lines:
            total += Decimal(str(line.get("credit", "0")))
        return total


def load_journal_entry_aggregate(public_id: str) -> Optional[JournalEntryAggregate]:
    """
    Load a JournalEntry aggregate by replaying its event stream.
    """
    events = get_aggregate_events("JournalEntry", public_id)
    if not events:
        return None

    aggregate = JournalEntryAggregate(public_id=public_id)
    for event in events:
        aggregate.apply(event)

    return aggregate


@dataclass
class AccountAggregate:
    public_id: str
    code: str = ""
    name: str = ""
    account_type: str = ""
    category: str = ""
    normal_balance: str = ""
    description: str = ""
    is_active: bool = True
    is_system: bool = False
    deleted: bool = False

    def apply(self, event) -> None:
        data = event.get_data()
        if event.event_type == EventTypes.ACCOUNT_CREATED:
            self.code = data.get("code", "")
            self.name = data.get("name", "")
            self.account_type = data.get("account_type", "")
            self.category = data.get("category", "")
            self.normal_balance = data.get("normal_balance", "")
            self.description = data.get("description", "")
            self.is_active = data.get("is_active", True)
            self.is_system = data.get("is_system", False)
            return

        if event.event_type == EventTypes.ACCOUNT_UPDATED:
            for field_name, change in data.get("changes", {}).items():
                if hasattr(self, field_name):
                    setattr(self, field_name, change.get("new"))
            return

        if event.event_type == EventTypes.ACCOUNT_DELETED:
            self.deleted = True


def load_account_aggregate(public_id: str) -> Optional[AccountAggregate]:
    events = get_aggregate_events("Account", public_id)
    if not events:
        return None

    aggregate = AccountAggregate(public_id=public_id)
    for event in events:
        aggregate.apply(event)

    return aggregate
