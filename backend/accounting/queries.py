# accounting/queries.py
"""
Read-side queries over the accounting read models.

Nothing here writes. Views and reports use these instead of building
querysets inline so the filters stay consistent.
"""

from datetime import date
from typing import Optional

from django.db.models import Exists, OuterRef, Q

from accounting.models import Account, JournalEntry, JournalLine


def list_accounts(
    account_type: Optional[str] = None,
    search: Optional[str] = None,
    active_only: Optional[bool] = None,
):
    """
    Chart of accounts ordered by code.

    Args:
        account_type: Restrict to one Account.AccountType
        search: Case-insensitive match on code or name
        active_only: True for active accounts only, False for inactive only
    """
    accounts = Account.objects.annotate(
        _has_transactions=Exists(JournalLine.objects.filter(account=OuterRef("pk"))),
    ).select_related("projected_balance")

    if account_type:
        accounts = accounts.filter(account_type=account_type)
    if search:
        accounts = accounts.filter(Q(code__icontains=search) | Q(name__icontains=search))
    if active_only is not None:
        accounts = accounts.filter(is_active=active_only)

    return accounts.order_by("code")


def get_account_by_code(code: str) -> Optional[Account]:
    return list_accounts().filter(code=code).first()


def list_entries(
    status: Optional[str] = None,
    entry_type: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    """Journal entries, newest first, with lines prefetched."""
    entries = JournalEntry.objects.prefetch_related("lines", "lines__account")

    if status:
        entries = entries.filter(status=status)
    if entry_type:
        entries = entries.filter(entry_type=entry_type)
    if date_from:
        entries = entries.filter(date__gte=date_from)
    if date_to:
        entries = entries.filter(date__lte=date_to)

    return entries.order_by("-date", "-id")
