# projections/trial_balance.py
"""
Trial balance reporter.

Aggregates, per account, the debit and credit totals of every posted
line dated on or before a given date. The totals are the raw sums of
the line amounts, so the grand totals reproduce the per-entry balance
check in aggregate: if every posted entry is balanced, so is this.
Each line also carries the net balance on the account's normal side.

A mismatch is an INTEGRITY finding, not an error. The report is still
returned so the books stay inspectable, with a warning attached, an
ERROR log record, and the trial balance gauge set to 0.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from django.db.models import Sum
from django.utils import timezone

from accounting.errors import ErrorCode, ErrorKind, message_for
from accounting.models import Account, JournalEntry
from ops.metrics import record_trial_balance


logger = logging.getLogger(__name__)

TRIAL_BALANCE_STATUSES = (JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED)


def _account_totals(as_of_date: date):
    """Per-account debit/credit sums over posted lines up to as_of_date."""
    return (
        Account.objects.filter(
            journal_lines__entry__status__in=TRIAL_BALANCE_STATUSES,
            journal_lines__entry__date__lte=as_of_date,
        )
        .annotate(
            debit_total=Sum("journal_lines__debit"),
            credit_total=Sum("journal_lines__credit"),
        )
        .order_by("code")
    )


def generate_trial_balance(as_of_date: Optional[date] = None) -> dict:
    """
    Build the trial balance as of a date (default: today).

    Returns:
        {
            "as_of_date": date,
            "lines": [
                {"account_code": "1-1001", "account_name": "Kas",
                 "account_type": "ASSET", "normal_balance": "DEBIT",
                 "debit": Decimal, "credit": Decimal, "balance": Decimal},
                ...
            ],
            "total_debit": Decimal,
            "total_credit": Decimal,
            "difference": Decimal,
            "is_balanced": bool,
            "warning": None or {"kind": "INTEGRITY", "code": ..., "message": ...},
        }
    """
    as_of_date = as_of_date or timezone.localdate()

    lines = []
    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")

    for account in _account_totals(as_of_date):
        debit = account.debit_total or Decimal("0.00")
        credit = account.credit_total or Decimal("0.00")
        # No activity: not listed
        if debit == 0 and credit == 0:
            continue

        lines.append({
            "account_code": account.code,
            "account_name": account.name,
            "account_type": account.account_type,
            "normal_balance": account.normal_balance,
            "debit": debit,
            "credit": credit,
            "balance": account.signed_amount(debit, credit),
        })
        total_debit += debit
        total_credit += credit

    difference = total_debit - total_credit
    is_balanced = difference == 0

    warning = None
    if not is_balanced:
        warning = {
            "kind": ErrorKind.INTEGRITY.value,
            "code": ErrorCode.TRIAL_BALANCE_MISMATCH.value,
            "message": message_for(ErrorCode.TRIAL_BALANCE_MISMATCH),
        }
        logger.error(
            "Trial balance as of %s is not balanced: debit=%s credit=%s difference=%s",
            as_of_date, total_debit, total_credit, difference,
        )

    record_trial_balance(is_balanced)

    return {
        "as_of_date": as_of_date,
        "lines": lines,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "difference": difference,
        "is_balanced": is_balanced,
        "warning": warning,
    }


def serialize_trial_balance(report: dict) -> dict:
    """JSON-safe copy of a trial balance report."""
    return {
        "as_of_date": report["as_of_date"].isoformat(),
        "lines": [
            {
                **line,
                "debit": str(line["debit"]),
                "credit": str(line["credit"]),
                "balance": str(line["balance"]),
            }
            for line in report["lines"]
        ],
        "total_debit": str(report["total_debit"]),
        "total_credit": str(report["total_credit"]),
        "difference": str(report["difference"]),
        "is_balanced": report["is_balanced"],
        "warning": report["warning"],
    }
