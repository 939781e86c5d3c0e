# projections/accounting.py
"""
Accounting projections (read models).

This module contains projections that maintain the read models for
accounting entities. Projections are the ONLY code allowed to write
to the accounting models (Account, JournalEntry, JournalLine).

All writes happen inside projection_writes_allowed(), which
BaseProjection.process_pending sets up around handle().
"""

import logging
from decimal import Decimal
from datetime import datetime, date

from django.utils import timezone

from events.types import EventTypes
from events.models import BusinessEvent
from projections.base import BaseProjection, projection_registry
from accounting.models import Account, JournalEntry, JournalLine


logger = logging.getLogger(__name__)


def _parse_date(value):
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value).date()
    return value


def _parse_datetime(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class AccountProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "account_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.ACCOUNT_CREATED,
            EventTypes.ACCOUNT_UPDATED,
            EventTypes.ACCOUNT_DELETED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data
        if event.event_type == EventTypes.ACCOUNT_CREATED:
            Account.objects.projection().update_or_create(
                public_id=data["account_public_id"],
                defaults={
                    "code": data["code"],
                    "name": data["name"],
                    "account_type": data["account_type"],
                    "category": data["category"],
                    "description": data.get("description", ""),
                    "is_active": data.get("is_active", True),
                    "is_system": data.get("is_system", False),
                },
            )
            return

        if event.event_type == EventTypes.ACCOUNT_UPDATED:
            account = Account.objects.filter(public_id=data["account_public_id"]).first()
            if not account:
                logger.warning("Account not found for update: %s", data["account_public_id"])
                return

            for field, change in data.get("changes", {}).items():
                # normal_balance is re-derived from account_type on save
                if field == "normal_balance":
                    continue
                setattr(account, field, change.get("new"))
            account.save()
            return

        if event.event_type == EventTypes.ACCOUNT_DELETED:
            Account.objects.filter(public_id=data["account_public_id"]).delete()
            return

        logger.warning("Unhandled event type for AccountProjection: %s", event.event_type)

    def _clear_projected_data(self) -> None:
        # Journal lines PROTECT their accounts; replay upserts by public_id instead
        pass


class JournalEntryProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "journal_entry_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.JOURNAL_ENTRY_CREATED,
            EventTypes.JOURNAL_ENTRY_POSTED,
            EventTypes.JOURNAL_ENTRY_REVERSED,
            EventTypes.JOURNAL_ENTRY_DELETED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data

        if event.event_type == EventTypes.JOURNAL_ENTRY_CREATED:
            entry, _ = JournalEntry.objects.projection().get_or_create(
                public_id=data["entry_public_id"],
                defaults={
                    "entry_number": data["entry_number"],
                    "date": _parse_date(data["date"]),
                    "entry_type": data.get("entry_type", JournalEntry.EntryType.MANUAL),
                    "status": data.get("status", JournalEntry.Status.DRAFT),
                    "description": data.get("description", ""),
                    "reference": data.get("reference", ""),
                    "source_module": data.get("source_module", ""),
                    "source_document": data.get("source_document", ""),
                    "total_debit": Decimal(str(data.get("total_debit", "0"))),
                    "total_credit": Decimal(str(data.get("total_credit", "0"))),
                    "created_by_id": data.get("created_by_id"),
                    "created_by_name": data.get("created_by_name", ""),
                },
            )
            self._replace_lines(entry, data.get("lines", []))
            return

        if event.event_type == EventTypes.JOURNAL_ENTRY_POSTED:
            # Reversal entries are posted directly, without a draft
            reverses_entry = None
            if data.get("reverses_entry_public_id"):
                reverses_entry = JournalEntry.objects.filter(
                    public_id=data["reverses_entry_public_id"],
                ).first()

            entry, created = JournalEntry.objects.projection().get_or_create(
                public_id=data["entry_public_id"],
                defaults={
                    "entry_number": data["entry_number"],
                    "date": _parse_date(data["date"]),
                    "entry_type": data.get("entry_type", JournalEntry.EntryType.MANUAL),
                    "status": JournalEntry.Status.POSTED,
                    "description": data.get("description", ""),
                    "created_by_id": data.get("posted_by_id"),
                    "created_by_name": data.get("posted_by_name", ""),
                },
            )
            entry.entry_number = data.get("entry_number", entry.entry_number)
            entry.date = _parse_date(data.get("date")) or entry.date
            entry.entry_type = data.get("entry_type", entry.entry_type)
            entry.description = data.get("description", entry.description)
            entry.reference = data.get("reference", entry.reference)
            entry.source_module = data.get("source_module", entry.source_module)
            entry.source_document = data.get("source_document", entry.source_document)
            entry.total_debit = Decimal(str(data.get("total_debit", entry.total_debit)))
            entry.total_credit = Decimal(str(data.get("total_credit", entry.total_credit)))
            entry.status = JournalEntry.Status.POSTED
            entry.posted_at = _parse_datetime(data.get("posted_at")) or timezone.now()
            entry.posted_by_id = data.get("posted_by_id")
            entry.posted_by_name = data.get("posted_by_name", "")
            if reverses_entry is not None:
                entry.reverses_entry = reverses_entry
            entry.save()
            self._replace_lines(entry, data.get("lines", []))
            return

        if event.event_type == EventTypes.JOURNAL_ENTRY_REVERSED:
            original = JournalEntry.objects.filter(
                public_id=data["original_entry_public_id"],
            ).first()
            if not original:
                logger.warning(
                    "Journal entry not found for reversal: %s", data["original_entry_public_id"]
                )
                return

            original.status = JournalEntry.Status.REVERSED
            original.reversed_at = _parse_datetime(data.get("reversed_at")) or timezone.now()
            original.reversed_by_name = data.get("reversed_by_name", "")
            original.save(update_fields=["status", "reversed_at", "reversed_by_name", "updated_at"])
            return

        if event.event_type == EventTypes.JOURNAL_ENTRY_DELETED:
            JournalEntry.objects.filter(public_id=data["entry_public_id"]).delete()
            return

        logger.warning("Unhandled event type for JournalEntryProjection: %s", event.event_type)

    def _replace_lines(self, entry: JournalEntry, lines: list[dict]) -> None:
        entry.lines.all().delete()

        public_ids = [line.get("account_public_id") for line in lines if line.get("account_public_id")]
        accounts = {
            str(account.public_id): account
            for account in Account.objects.filter(public_id__in=public_ids)
        }

        line_objects = []
        for line in lines:
            account = accounts.get(line.get("account_public_id"))
            if not account:
                logger.warning(
                    "Account %s not found for entry %s line %s",
                    line.get("account_public_id"), entry.entry_number, line.get("line_no"),
                )
                continue

            debit = Decimal(str(line.get("debit", "0")))
            credit = Decimal(str(line.get("credit", "0")))

            # Skip invalid lines (DB constraint: not both zero)
            if debit == 0 and credit == 0:
                continue

            line_objects.append(JournalLine(
                entry=entry,
                line_no=line.get("line_no") or len(line_objects) + 1,
                account=account,
                account_code=line.get("account_code") or account.code,
                account_name=line.get("account_name") or account.name,
                description=line.get("description", ""),
                debit=debit,
                credit=credit,
            ))

        if line_objects:
            JournalLine.objects.projection().bulk_create(line_objects)

    def _clear_projected_data(self) -> None:
        JournalEntry.objects.all().delete()


projection_registry.register(AccountProjection())
projection_registry.register(JournalEntryProjection())
