# tests/test_ledger.py
"""
Tests for the general ledger of an account.
"""

import pytest
from datetime import date
from decimal import Decimal

from accounting.commands import reverse_journal_entry
from projections.ledger import AccountLedger, get_by_account, get_by_date_range


@pytest.fixture
def january_activity(post_entry, lines, cash_account, revenue_account, expense_account):
    """Three cash movements in January 2026."""
    post_entry(lines(("1-1001", 500000, 0), ("4-1001", 0, 500000)), entry_date=date(2026, 1, 5),
               description="Penjualan nasi kotak")
    post_entry(lines(("6-1001", 150000, 0), ("1-1001", 0, 150000)), entry_date=date(2026, 1, 12),
               description="Gaji harian")
    post_entry(lines(("1-1001", 250000, 0), ("4-1001", 0, 250000)), entry_date=date(2026, 1, 25),
               description="Penjualan katering")


@pytest.mark.django_db
class TestAccountLedger:

    def test_running_balance(self, january_activity, cash_account):
        rows = list(get_by_account(cash_account))

        assert [row.running_balance for row in rows] == [
            Decimal("500000.00"),
            Decimal("350000.00"),
            Decimal("600000.00"),
        ]
        assert rows[1].credit == Decimal("150000.00")
        assert rows[0].description == "Penjualan nasi kotak"

    def test_last_running_balance_matches_projected_balance(self, january_activity, cash_account, revenue_account):
        for account in (cash_account, revenue_account):
            rows = list(get_by_account(account))
            assert rows[-1].running_balance == account.get_balance()

    def test_credit_normal_account_grows_with_credits(self, january_activity, revenue_account):
        rows = list(get_by_account(revenue_account))

        assert rows[-1].running_balance == Decimal("750000.00")

    def test_rows_are_chronological(self, post_entry, lines, cash_account, revenue_account):
        post_entry(lines(("1-1001", 2000, 0), ("4-1001", 0, 2000)), entry_date=date(2026, 2, 1))
        post_entry(lines(("1-1001", 1000, 0), ("4-1001", 0, 1000)), entry_date=date(2026, 1, 1))

        dates = [row.date for row in get_by_account(cash_account)]

        assert dates == [date(2026, 1, 1), date(2026, 2, 1)]

    def test_drafts_are_excluded(self, january_activity, make_entry, lines, cash_account):
        make_entry(lines(("1-1001", 999, 0), ("4-1001", 0, 999)))

        assert len(list(get_by_account(cash_account))) == 3

    def test_iteration_is_restartable(self, january_activity, cash_account):
        ledger = get_by_account(cash_account)

        first = list(ledger)
        second = list(ledger)

        assert first == second

    def test_iteration_sees_new_posts(self, january_activity, post_entry, lines, cash_account):
        ledger = get_by_account(cash_account)
        assert len(list(ledger)) == 3

        post_entry(lines(("1-1001", 1000, 0), ("4-1001", 0, 1000)), entry_date=date(2026, 1, 30))

        assert len(list(ledger)) == 4

    def test_reversal_shows_both_sides(self, actor, sale_entry, cash_account):
        reverse_journal_entry(actor, sale_entry.pk, reversal_date=date(2026, 1, 20))

        rows = list(get_by_account(cash_account))

        assert [row.debit for row in rows] == [Decimal("500000.00"), Decimal("0.00")]
        assert rows[-1].running_balance == Decimal("0.00")

    def test_empty_account(self, cash_account):
        ledger = get_by_account(cash_account)

        assert list(ledger) == []
        assert ledger.closing_balance() == Decimal("0.00")


@pytest.mark.django_db
class TestLedgerDateRange:

    def test_opening_balance_carries_earlier_rows(self, january_activity, cash_account):
        ledger = get_by_date_range(cash_account, date(2026, 1, 10), date(2026, 1, 31))

        rows = list(ledger)

        assert ledger.opening_balance == Decimal("500000.00")
        assert len(rows) == 2
        assert rows[0].running_balance == Decimal("350000.00")
        assert rows[-1].running_balance == Decimal("600000.00")

    def test_end_date_is_inclusive(self, january_activity, cash_account):
        ledger = get_by_date_range(cash_account, date(2026, 1, 1), date(2026, 1, 12))

        rows = list(ledger)

        assert len(rows) == 2
        assert ledger.closing_balance() == Decimal("350000.00")

    def test_range_without_rows_keeps_opening_balance(self, january_activity, cash_account):
        ledger = get_by_date_range(cash_account, date(2026, 1, 13), date(2026, 1, 20))

        assert list(ledger) == []
        assert ledger.opening_balance == Decimal("350000.00")
        assert ledger.closing_balance() == Decimal("350000.00")

    def test_start_after_end_is_rejected(self, cash_account):
        with pytest.raises(ValueError):
            get_by_date_range(cash_account, date(2026, 2, 1), date(2026, 1, 1))

    def test_single_day_range(self, january_activity, cash_account):
        rows = list(get_by_date_range(cash_account, date(2026, 1, 12), date(2026, 1, 12)))

        assert len(rows) == 1
        assert rows[0].credit == Decimal("150000.00")

    def test_summary(self, january_activity, cash_account):
        summary = AccountLedger(cash_account, start=date(2026, 1, 10)).summary()

        assert summary["account_code"] == "1-1001"
        assert summary["normal_balance"] == "DEBIT"
        assert summary["start"] == "2026-01-10"
        assert summary["end"] is None
        assert summary["opening_balance"] == "500000.00"
        assert summary["closing_balance"] == "600000.00"
        assert summary["rows"][0]["date"] == "2026-01-12"
        assert summary["rows"][0]["running_balance"] == "350000.00"
