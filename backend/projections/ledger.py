# projections/ledger.py
"""
General ledger projection.

The ledger of an account is the chronological list of posted lines that
touch it, each with the running balance after the line. It is never
stored: every iteration reads the posted journal lines again, so a
ledger is always current with the last posted entry.

Usage:
    ledger = get_by_account(account)
    for row in ledger:
        print(row.date, row.entry_number, row.running_balance)

    ranged = get_by_date_range(account, date(2026, 1, 1), date(2026, 1, 31))
    ranged.opening_balance   # balance carried in from before the range
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterator, Optional

from django.db.models import Sum

from accounting.models import Account, JournalEntry, JournalLine


LEDGER_STATUSES = (JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED)


@dataclass(frozen=True)
class LedgerRow:
    date: date
    entry_number: str
    description: str
    reference: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "entry_number": self.entry_number,
            "description": self.description,
            "reference": self.reference,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "running_balance": str(self.running_balance),
        }


class AccountLedger:
    """
    Lazy, restartable ledger of one account.

    Iterating twice runs the query twice. Rows dated before `start`
    are never yielded but still fold into the opening balance, so a
    ranged view does not restart the balance at zero.
    """

    def __init__(self, account: Account, start: Optional[date] = None, end: Optional[date] = None):
        if start and end and start > end:
            raise ValueError(f"Ledger range start {start} is after end {end}")
        self.account = account
        self.start = start
        self.end = end

    def _posted_lines(self):
        return JournalLine.objects.filter(
            account=self.account,
            entry__status__in=LEDGER_STATUSES,
        )

    @property
    def opening_balance(self) -> Decimal:
        if not self.start:
            return Decimal("0.00")
        totals = self._posted_lines().filter(entry__date__lt=self.start).aggregate(
            debit=Sum("debit"),
            credit=Sum("credit"),
        )
        return self.account.signed_amount(
            totals["debit"] or Decimal("0.00"),
            totals["credit"] or Decimal("0.00"),
        )

    def _rows_queryset(self):
        lines = self._posted_lines().select_related("entry")
        if self.start:
            lines = lines.filter(entry__date__gte=self.start)
        if self.end:
            lines = lines.filter(entry__date__lte=self.end)
        return lines.order_by("entry__date", "entry__id", "line_no")

    def __iter__(self) -> Iterator[LedgerRow]:
        balance = self.opening_balance
        for line in self._rows_queryset().iterator():
            balance += self.account.signed_amount(line.debit, line.credit)
            yield LedgerRow(
                date=line.entry.date,
                entry_number=line.entry.entry_number,
                description=line.description or line.entry.description,
                reference=line.entry.reference,
                debit=line.debit,
                credit=line.credit,
                running_balance=balance,
            )

    def closing_balance(self) -> Decimal:
        """Balance after the last row in range, without building rows."""
        totals = self._posted_lines()
        if self.end:
            totals = totals.filter(entry__date__lte=self.end)
        totals = totals.aggregate(debit=Sum("debit"), credit=Sum("credit"))
        return self.account.signed_amount(
            totals["debit"] or Decimal("0.00"),
            totals["credit"] or Decimal("0.00"),
        )

    def summary(self) -> dict:
        rows = [row.to_dict() for row in self]
        return {
            "account_code": self.account.code,
            "account_name": self.account.name,
            "normal_balance": self.account.normal_balance,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "opening_balance": str(self.opening_balance),
            "closing_balance": str(self.closing_balance()),
            "rows": rows,
        }


def get_by_account(account: Account) -> AccountLedger:
    """Full history ledger of an account."""
    return AccountLedger(account)


def get_by_date_range(account: Account, start: date, end: date) -> AccountLedger:
    """Ledger rows dated within [start, end], with the opening balance carried in."""
    return AccountLedger(account, start=start, end=end)

