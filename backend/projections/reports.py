# projections/reports.py
"""
Financial statements built from posted journal lines.

- Balance sheet as of a date: assets, liabilities and equity by
  category, with current earnings closing the accounting equation.
- Income statement over a date range: revenue, COGS, gross profit,
  expenses and net income.

Amounts are signed by each account's normal side, so a positive
amount is a balance in the account's natural direction.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models import Account, JournalEntry


REPORT_STATUSES = (JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED)

CURRENT_ASSET_CATEGORIES = {
    Account.Category.CURRENT_ASSET,
    Account.Category.INVENTORY,
    Account.Category.RECEIVABLE,
}
CURRENT_LIABILITY_CATEGORIES = {
    Account.Category.CURRENT_LIABILITY,
    Account.Category.PAYABLE,
}


def _balances(start: Optional[date] = None, end: Optional[date] = None, account_types=None):
    """Yield (account, signed balance) for accounts with posted lines in range."""
    line_filter = Q(journal_lines__entry__status__in=REPORT_STATUSES)
    if start:
        line_filter &= Q(journal_lines__entry__date__gte=start)
    if end:
        line_filter &= Q(journal_lines__entry__date__lte=end)

    accounts = Account.objects.all()
    if account_types:
        accounts = accounts.filter(account_type__in=account_types)

    accounts = accounts.annotate(
        debit_total=Sum("journal_lines__debit", filter=line_filter),
        credit_total=Sum("journal_lines__credit", filter=line_filter),
    ).order_by("code")

    for account in accounts:
        debit = account.debit_total or Decimal("0.00")
        credit = account.credit_total or Decimal("0.00")
        if debit == 0 and credit == 0:
            continue
        yield account, account.signed_amount(debit, credit)


def _item(account: Account, amount: Decimal) -> dict:
    return {
        "code": account.code,
        "name": account.name,
        "category": account.category,
        "amount": str(amount),
    }


def _section(title: str, items: list, total: Decimal) -> dict:
    return {"title": title, "accounts": items, "total": str(total)}


def _margin(amount: Decimal, revenue: Decimal) -> str:
    if not revenue:
        return "0.00"
    return str((amount / revenue * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def income_statement(start: Optional[date] = None, end: Optional[date] = None) -> dict:
    """
    Income statement for [start, end]. Defaults to the current year to date.
    """
    end = end or timezone.localdate()
    start = start or date(end.year, 1, 1)

    revenue, cogs, expenses = [], [], []
    total_revenue = total_cogs = total_expenses = Decimal("0.00")

    for account, amount in _balances(
        start, end,
        account_types=(Account.AccountType.REVENUE, Account.AccountType.COGS, Account.AccountType.EXPENSE),
    ):
        if account.account_type == Account.AccountType.REVENUE:
            revenue.append(_item(account, amount))
            total_revenue += amount
        elif account.account_type == Account.AccountType.COGS:
            cogs.append(_item(account, amount))
            total_cogs += amount
        else:
            expenses.append(_item(account, amount))
            total_expenses += amount

    gross_profit = total_revenue - total_cogs
    net_income = gross_profit - total_expenses

    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "revenue": _section("Pendapatan", revenue, total_revenue),
        "cogs": _section("Harga Pokok Penjualan", cogs, total_cogs),
        "expenses": _section("Beban", expenses, total_expenses),
        "total_revenue": str(total_revenue),
        "total_cogs": str(total_cogs),
        "gross_profit": str(gross_profit),
        "gross_margin": _margin(gross_profit, total_revenue),
        "total_expenses": str(total_expenses),
        "net_income": str(net_income),
        "net_margin": _margin(net_income, total_revenue),
        "is_profit": net_income > 0,
    }


def balance_sheet(as_of_date: Optional[date] = None) -> dict:
    """
    Balance sheet as of a date (default: today).

    Revenue, COGS and expense accounts are not closed into retained
    earnings by a closing entry, so their net is shown as current
    earnings inside equity.
    """
    as_of_date = as_of_date or timezone.localdate()

    current_assets, fixed_assets = [], []
    current_liabilities, long_term_liabilities = [], []
    equity = []
    totals = {
        "current_assets": Decimal("0.00"),
        "fixed_assets": Decimal("0.00"),
        "current_liabilities": Decimal("0.00"),
        "long_term_liabilities": Decimal("0.00"),
        "equity": Decimal("0.00"),
    }
    current_earnings = Decimal("0.00")

    for account, amount in _balances(end=as_of_date):
        item = _item(account, amount)
        if account.account_type == Account.AccountType.ASSET:
            key = "current_assets" if account.category in CURRENT_ASSET_CATEGORIES else "fixed_assets"
            (current_assets if key == "current_assets" else fixed_assets).append(item)
            totals[key] += amount
        elif account.account_type == Account.AccountType.LIABILITY:
            if account.category in CURRENT_LIABILITY_CATEGORIES:
                current_liabilities.append(item)
                totals["current_liabilities"] += amount
            else:
                long_term_liabilities.append(item)
                totals["long_term_liabilities"] += amount
        elif account.account_type == Account.AccountType.EQUITY:
            equity.append(item)
            totals["equity"] += amount
        elif account.account_type == Account.AccountType.REVENUE:
            current_earnings += amount
        else:
            current_earnings -= amount

    total_assets = totals["current_assets"] + totals["fixed_assets"]
    total_liabilities = totals["current_liabilities"] + totals["long_term_liabilities"]
    total_equity = totals["equity"] + current_earnings
    total_liabilities_and_equity = total_liabilities + total_equity

    return {
        "as_of_date": as_of_date.isoformat(),
        "assets": {
            "current": _section("Aset Lancar", current_assets, totals["current_assets"]),
            "fixed": _section("Aset Tetap", fixed_assets, totals["fixed_assets"]),
            "total": str(total_assets),
        },
        "liabilities": {
            "current": _section("Kewajiban Lancar", current_liabilities, totals["current_liabilities"]),
            "long_term": _section(
                "Kewajiban Jangka Panjang", long_term_liabilities, totals["long_term_liabilities"]
            ),
            "total": str(total_liabilities),
        },
        "equity": {
            **_section("Ekuitas", equity, totals["equity"]),
            "current_earnings": str(current_earnings),
            "total": str(total_equity),
        },
        "total_assets": str(total_assets),
        "total_liabilities": str(total_liabilities),
        "total_equity": str(total_equity),
        "total_liabilities_and_equity": str(total_liabilities_and_equity),
        "is_balanced": total_assets == total_liabilities_and_equity,
    }
