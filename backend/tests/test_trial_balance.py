# tests/test_trial_balance.py
"""
Tests for the trial balance and the financial statements.
"""

import logging

import pytest
from datetime import date
from decimal import Decimal

from accounting.commands import reverse_journal_entry
from accounting.models import Account, JournalLine
from projections.reports import balance_sheet, income_statement
from projections.trial_balance import generate_trial_balance, serialize_trial_balance
from projections.write_barrier import projection_writes_allowed


@pytest.fixture
def kitchen_books(
    post_entry, lines,
    cash_account, bank_account, inventory_account, equipment_account, payable_account,
    capital_account, revenue_account, cogs_account, expense_account,
):
    """A small month of kitchen bookkeeping."""
    post_entry(lines(("1-1002", 10000000, 0), ("3-1001", 0, 10000000)),
               entry_date=date(2026, 1, 2), description="Setoran modal")
    post_entry(lines(("1-2001", 3000000, 0), ("1-1002", 0, 3000000)),
               entry_date=date(2026, 1, 3), description="Beli kompor")
    post_entry(lines(("1-1201", 2000000, 0), ("2-1001", 0, 2000000)),
               entry_date=date(2026, 1, 5), description="Beli bahan baku")
    post_entry(lines(("1-1001", 4500000, 0), ("4-1001", 0, 4500000)),
               entry_date=date(2026, 1, 20), description="Penjualan katering")
    post_entry(lines(("5-1001", 1500000, 0), ("1-1201", 0, 1500000)),
               entry_date=date(2026, 1, 20), description="Pemakaian bahan baku")
    post_entry(lines(("6-1001", 1200000, 0), ("1-1001", 0, 1200000)),
               entry_date=date(2026, 1, 31), description="Gaji Januari")


@pytest.mark.django_db
class TestTrialBalance:

    def test_balanced_books(self, kitchen_books):
        report = generate_trial_balance(date(2026, 1, 31))

        assert report["is_balanced"] is True
        assert report["warning"] is None
        assert report["difference"] == Decimal("0.00")
        assert report["total_debit"] == Decimal("22200000.00")
        assert report["total_credit"] == Decimal("22200000.00")

    def test_lines_are_raw_sums_by_code(self, kitchen_books):
        report = generate_trial_balance(date(2026, 1, 31))

        by_code = {line["account_code"]: line for line in report["lines"]}
        assert [line["account_code"] for line in report["lines"]] == sorted(by_code)
        assert by_code["1-1001"]["debit"] == Decimal("4500000.00")
        assert by_code["1-1001"]["credit"] == Decimal("1200000.00")
        assert by_code["1-1201"]["account_name"] == "Persediaan Bahan Baku"
        assert by_code["4-1001"]["account_type"] == "REVENUE"

    def test_lines_carry_net_balance_on_normal_side(self, kitchen_books):
        report = generate_trial_balance(date(2026, 1, 31))

        by_code = {line["account_code"]: line for line in report["lines"]}
        assert by_code["1-1001"]["normal_balance"] == "DEBIT"
        assert by_code["1-1001"]["balance"] == Decimal("3300000.00")
        assert by_code["4-1001"]["normal_balance"] == "CREDIT"
        assert by_code["4-1001"]["balance"] == Decimal("4500000.00")
        for line in report["lines"]:
            assert line["balance"] == Account.objects.get(code=line["account_code"]).get_balance()

    def test_as_of_date_filters_later_entries(self, kitchen_books):
        report = generate_trial_balance(date(2026, 1, 4))

        codes = [line["account_code"] for line in report["lines"]]
        assert codes == ["1-1002", "1-2001", "3-1001"]
        assert report["total_debit"] == Decimal("13000000.00")
        assert report["is_balanced"] is True

    def test_accounts_without_activity_are_omitted(self, kitchen_books):
        report = generate_trial_balance(date(2026, 1, 31))

        assert "2-2001" not in {line["account_code"] for line in report["lines"]}
        assert len(report["lines"]) == 9

    def test_drafts_are_ignored(self, make_entry, lines, cash_account, revenue_account):
        make_entry(lines(("1-1001", 1000, 0), ("4-1001", 0, 1000)))

        report = generate_trial_balance(date(2026, 1, 31))

        assert report["lines"] == []
        assert report["is_balanced"] is True

    def test_reversed_entry_stays_balanced(self, actor, sale_entry):
        reverse_journal_entry(actor, sale_entry.pk, reversal_date=date(2026, 1, 16))

        report = generate_trial_balance(date(2026, 1, 31))

        by_code = {line["account_code"]: line for line in report["lines"]}
        assert by_code["1-1001"]["debit"] == Decimal("500000.00")
        assert by_code["1-1001"]["credit"] == Decimal("500000.00")
        assert report["is_balanced"] is True

    def test_mismatch_is_reported_as_integrity_warning(self, sale_entry, caplog, monkeypatch):
        # App loggers do not propagate to the root handler caplog listens on
        monkeypatch.setattr(logging.getLogger("projections"), "propagate", True)

        # Corrupt the read model behind the commands' back
        with projection_writes_allowed():
            JournalLine.objects.filter(account__code="4-1001").update(credit=Decimal("400000.00"))

        with caplog.at_level(logging.ERROR, logger="projections.trial_balance"):
            report = generate_trial_balance(date(2026, 1, 31))

        assert report["is_balanced"] is False
        assert report["difference"] == Decimal("100000.00")
        assert report["warning"]["kind"] == "INTEGRITY"
        assert report["warning"]["code"] == "TRIAL_BALANCE_MISMATCH"
        assert "not balanced" in caplog.text

    def test_serialized_report_is_json_safe(self, sale_entry):
        data = serialize_trial_balance(generate_trial_balance(date(2026, 1, 31)))

        assert data["as_of_date"] == "2026-01-31"
        assert data["total_debit"] == "500000.00"
        assert data["lines"][0]["debit"] == "500000.00"
        assert data["lines"][0]["balance"] == "500000.00"


@pytest.mark.django_db
class TestIncomeStatement:

    def test_profit_for_the_month(self, kitchen_books):
        report = income_statement(date(2026, 1, 1), date(2026, 1, 31))

        assert report["total_revenue"] == "4500000.00"
        assert report["total_cogs"] == "1500000.00"
        assert report["gross_profit"] == "3000000.00"
        assert report["total_expenses"] == "1200000.00"
        assert report["net_income"] == "1800000.00"
        assert report["gross_margin"] == "66.67"
        assert report["net_margin"] == "40.00"
        assert report["is_profit"] is True

    def test_range_excludes_other_periods(self, kitchen_books):
        report = income_statement(date(2026, 1, 1), date(2026, 1, 19))

        assert report["total_revenue"] == "0.00"
        assert report["net_income"] == "0.00"
        assert report["net_margin"] == "0.00"
        assert report["is_profit"] is False

    def test_sections_list_accounts(self, kitchen_books):
        report = income_statement(date(2026, 1, 1), date(2026, 1, 31))

        assert report["revenue"]["accounts"][0]["code"] == "4-1001"
        assert report["expenses"]["title"] == "Beban"


@pytest.mark.django_db
class TestBalanceSheet:

    def test_accounting_equation_holds(self, kitchen_books):
        report = balance_sheet(date(2026, 1, 31))

        assert report["is_balanced"] is True
        assert report["total_assets"] == "13800000.00"
        assert report["total_liabilities"] == "2000000.00"
        assert report["equity"]["current_earnings"] == "1800000.00"
        assert report["total_equity"] == "11800000.00"
        assert report["total_liabilities_and_equity"] == "13800000.00"

    def test_assets_split_by_category(self, kitchen_books):
        report = balance_sheet(date(2026, 1, 31))

        current = {item["code"]: item["amount"] for item in report["assets"]["current"]["accounts"]}
        fixed = {item["code"]: item["amount"] for item in report["assets"]["fixed"]["accounts"]}
        assert current == {
            "1-1001": "3300000.00",
            "1-1002": "7000000.00",
            "1-1201": "500000.00",
        }
        assert fixed == {"1-2001": "3000000.00"}

    def test_as_of_date(self, kitchen_books):
        report = balance_sheet(date(2026, 1, 3))

        assert report["total_assets"] == "10000000.00"
        assert report["equity"]["current_earnings"] == "0.00"
        assert report["is_balanced"] is True
