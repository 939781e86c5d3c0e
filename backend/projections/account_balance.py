# projections/account_balance.py
"""
Account Balance Projection.

This is the core projection that maintains account balances.
It consumes:
- journal_entry.posted: Apply debits and credits to accounts
- A reversal is itself a posted entry with swapped sides, so
  journal_entry.reversed needs no handling here

Balances are never a field that commands mutate. They are derived from
the immutable posted lines in the event log and can be rebuilt at any
time with `manage.py rebuild_projection --projection account_balance`.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Any
import logging

from django.db import transaction

from accounting.models import Account
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry
from projections.models import AccountBalance


logger = logging.getLogger(__name__)


class AccountBalanceProjection(BaseProjection):
    """
    Maintains materialized account balances from journal entry events.

    Event Flow:
    1. Command posts journal entry
    2. journal_entry.posted event is emitted
    3. This projection consumes the event
    4. AccountBalance records are updated

    Idempotency comes from ProjectionAppliedEvent: BaseProjection only
    calls handle() the first time it sees an event.
    """

    @property
    def name(self) -> str:
        return "account_balance"

    @property
    def consumes(self) -> List[str]:
        return [EventTypes.JOURNAL_ENTRY_POSTED]

    def handle(self, event: BusinessEvent) -> None:
        if event.event_type != EventTypes.JOURNAL_ENTRY_POSTED:
            logger.warning(f"Unknown event type: {event.event_type}")
            return

        data = event.get_data()
        lines = data.get("lines", [])
        if not lines:
            logger.warning(f"Posted entry {data.get('entry_public_id')} has no lines")
            return

        entry_date = datetime.fromisoformat(data["date"]).date() if data.get("date") else None

        for line_data in lines:
            self._apply_line(line_data=line_data, entry_date=entry_date, event=event)

    def _apply_line(self, line_data: Dict[str, Any], entry_date, event: BusinessEvent) -> None:
        """
        Apply a single journal line to AccountBalance.

        The balance row is locked with select_for_update() for the
        read-modify-write so concurrent posts cannot lose an update.
        """
        account_public_id = line_data.get("account_public_id")
        debit = Decimal(str(line_data.get("debit", "0")))
        credit = Decimal(str(line_data.get("credit", "0")))

        if not account_public_id:
            logger.warning(f"Line missing account_public_id in event {event.id}")
            return

        if debit == 0 and credit == 0:
            return

        try:
            account = Account.objects.get(public_id=account_public_id)
        except Account.DoesNotExist:
            # Raising stops the projection and records the error on its bookmark
            raise RuntimeError(
                f"Account {account_public_id} not found for event {event.id}"
            )

        with transaction.atomic():
            try:
                balance = AccountBalance.objects.select_for_update().get(account=account)
            except AccountBalance.DoesNotExist:
                balance = AccountBalance.objects.create(account=account)

            if debit > 0:
                balance.apply_debit(debit)
            if credit > 0:
                balance.apply_credit(credit)

            balance.entry_count += 1
            if entry_date and (not balance.last_entry_date or entry_date > balance.last_entry_date):
                balance.last_entry_date = entry_date
            balance.last_event = event
            balance.save()

        logger.debug(
            f"Updated balance for {account.code}: "
            f"debit={debit}, credit={credit}, new_balance={balance.balance}"
        )

    def _clear_projected_data(self) -> None:
        """Clear all AccountBalance records for rebuild."""
        cleared, _ = AccountBalance.objects.all().delete()
        logger.info(f"Cleared {cleared} AccountBalance records")

    def get_balance(self, account: Account) -> Decimal:
        """Current balance for an account, zero when nothing was posted."""
        try:
            return AccountBalance.objects.get(account=account).balance
        except AccountBalance.DoesNotExist:
            return Decimal("0.00")

    def verify_all_balances(self) -> Dict[str, Any]:
        """
        Verify all projected balances by replaying events.

        Events are the source of truth. This method replays all
        journal_entry.posted events to compute expected totals per account,
        then compares against the current projection state.

        Returns:
            {
                "total_accounts": 10,
                "verified": 10,
                "mismatches": [],
                "lines_replayed": 50,
            }
        """
        expected_totals: Dict[str, Dict[str, Decimal]] = {}
        lines_replayed = 0

        events = BusinessEvent.objects.filter(
            event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        ).order_by("stream_sequence")

        for event in events.iterator():
            for line_data in event.get_data().get("lines", []):
                account_public_id = line_data.get("account_public_id")
                if not account_public_id:
                    continue

                totals = expected_totals.setdefault(account_public_id, {
                    "debit": Decimal("0.00"),
                    "credit": Decimal("0.00"),
                })
                totals["debit"] += Decimal(str(line_data.get("debit", "0")))
                totals["credit"] += Decimal(str(line_data.get("credit", "0")))
                lines_replayed += 1

        balances = AccountBalance.objects.select_related("account")

        mismatches = []
        verified = 0
        for bal in balances:
            account_id = str(bal.account.public_id)
            expected = expected_totals.get(account_id, {
                "debit": Decimal("0.00"),
                "credit": Decimal("0.00"),
            })

            if bal.debit_total != expected["debit"] or bal.credit_total != expected["credit"]:
                mismatches.append({
                    "account_code": bal.account.code,
                    "account_public_id": account_id,
                    "projected_debit": str(bal.debit_total),
                    "projected_credit": str(bal.credit_total),
                    "expected_debit": str(expected["debit"]),
                    "expected_credit": str(expected["credit"]),
                })
            else:
                verified += 1

        # Accounts with posted lines but no projected balance at all
        projected_ids = {str(bal.account.public_id) for bal in balances}
        for account_id, totals in expected_totals.items():
            if account_id not in projected_ids:
                mismatches.append({
                    "account_code": "(missing projection)",
                    "account_public_id": account_id,
                    "projected_debit": "0.00",
                    "projected_credit": "0.00",
                    "expected_debit": str(totals["debit"]),
                    "expected_credit": str(totals["credit"]),
                })

        return {
            "total_accounts": len(projected_ids),
            "verified": verified,
            "mismatches": mismatches,
            "lines_replayed": lines_replayed,
        }


# Register the projection
projection_registry.register(AccountBalanceProjection())
