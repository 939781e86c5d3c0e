# tests/test_auto_journal.py
"""
Tests for automatic journals raised by sales, procurement, payments, payroll
and the cash book.
"""

import pytest
from datetime import date
from decimal import Decimal

from accounting.auto_journal import (
    record_cashflow,
    record_payroll,
    record_purchase,
    record_sale,
    record_supplier_payment,
)
from accounting.commands import delete_journal_entry, update_account
from accounting.errors import ErrorCode
from accounting.models import Account, JournalEntry
from accounting.seed import seed_chart_of_accounts
from events.models import BusinessEvent
from projections.trial_balance import generate_trial_balance


@pytest.fixture
def seeded(system):
    seed_chart_of_accounts(system)


def _balance(code):
    return Account.objects.get(code=code).get_balance()


@pytest.mark.django_db
class TestAutomaticJournals:

    def test_sale_is_posted_immediately(self, seeded):
        result = record_sale("SO-0001", "Bu Rina", Decimal("750000"), date(2026, 1, 10))

        assert result.success
        entry = result.data
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_type == JournalEntry.EntryType.SALES
        assert entry.description == "Penjualan - SO-0001"
        assert entry.reference == "SO-0001"
        assert entry.source_module == "sales"
        assert entry.source_document == "SO-0001"
        assert entry.posted_by_name == "System"
        assert entry.lines.get(line_no=1).description == "Penjualan SO-0001 - Bu Rina"
        assert _balance("1-1001") == Decimal("750000.00")
        assert _balance("4-1001") == Decimal("750000.00")

    def test_events_are_system_origin(self, seeded):
        record_sale("SO-0002", "Pak Budi", Decimal("100000"), date(2026, 1, 10))

        origins = set(
            BusinessEvent.objects.filter(aggregate_type="JournalEntry").values_list("origin", flat=True)
        )
        assert origins == {BusinessEvent.EventOrigin.SYSTEM}

    def test_purchase_on_credit(self, seeded):
        result = record_purchase("PO-0001", "Toko Sayur Segar", Decimal("2000000"), date(2026, 1, 5))

        assert result.data.entry_type == JournalEntry.EntryType.PURCHASE
        assert result.data.source_module == "procurement"
        assert _balance("1-1201") == Decimal("2000000.00")
        assert _balance("2-1001") == Decimal("2000000.00")

    def test_supplier_payment_in_cash(self, seeded):
        record_sale("SO-0003", "Bu Rina", Decimal("3000000"), date(2026, 1, 6))
        record_purchase("PO-0002", "Toko Beras", Decimal("1000000"), date(2026, 1, 6))

        result = record_supplier_payment("PAY-0001", "Toko Beras", Decimal("1000000"), date(2026, 1, 7))

        assert result.data.entry_type == JournalEntry.EntryType.PAYMENT
        assert result.data.description == "Pembayaran Supplier - PAY-0001"
        assert _balance("2-1001") == Decimal("0.00")
        assert _balance("1-1001") == Decimal("2000000.00")

    def test_supplier_payment_by_transfer_uses_bank(self, seeded):
        result = record_supplier_payment(
            "PAY-0002", "Toko Daging", Decimal("500000"), date(2026, 1, 7), method="transfer",
        )

        assert result.success
        assert _balance("1-1002") == Decimal("-500000.00")
        assert _balance("1-1001") == Decimal("0.00")

    def test_payroll(self, seeded):
        result = record_payroll("2026-01", "Dewi", Decimal("2500000"), date(2026, 1, 31))

        entry = result.data
        assert entry.entry_type == JournalEntry.EntryType.PAYROLL
        assert entry.reference == "GAJI-2026-01"
        assert entry.description == "Pembayaran Gaji - 2026-01"
        assert _balance("6-1001") == Decimal("2500000.00")

    def test_books_stay_balanced(self, seeded):
        record_sale("SO-0004", "Bu Rina", Decimal("4500000"), date(2026, 1, 20))
        record_purchase("PO-0003", "Toko Sayur Segar", Decimal("2000000"), date(2026, 1, 5))
        record_supplier_payment("PAY-0003", "Toko Sayur Segar", Decimal("2000000"), date(2026, 1, 21))
        record_payroll("2026-01", "Dewi", Decimal("1200000"), date(2026, 1, 31))

        report = generate_trial_balance(date(2026, 1, 31))

        assert report["is_balanced"] is True
        assert report["total_debit"] == Decimal("9700000.00")

    def test_missing_account_is_reported(self, system):
        result = record_sale("SO-0005", "Bu Rina", Decimal("100000"), date(2026, 1, 10))

        assert not result.success
        assert result.code == ErrorCode.ACCOUNT_NOT_FOUND
        assert not JournalEntry.objects.exists()

    def test_zero_amount_is_rejected(self, seeded):
        result = record_sale("SO-0006", "Bu Rina", Decimal("0"), date(2026, 1, 10))

        assert result.code == ErrorCode.INVALID_LINE

    def test_refused_post_rolls_back_the_draft(self, seeded, actor, monkeypatch):
        from accounting import auto_journal
        from accounting.errors import CommandResult

        monkeypatch.setattr(
            auto_journal,
            "post_journal_entry",
            lambda actor, entry_id: CommandResult.from_code(ErrorCode.ACCOUNT_INACTIVE),
        )

        result = record_sale("SO-0007", "Bu Rina", Decimal("100000"), date(2026, 1, 10))

        assert result.code == ErrorCode.ACCOUNT_INACTIVE
        assert not JournalEntry.objects.exists()
        assert not BusinessEvent.objects.filter(aggregate_type="JournalEntry").exists()

    def test_inactive_account_refuses_the_sale(self, seeded, actor):
        kas = Account.objects.get(code="1-1001")
        update_account(actor, kas.id, is_active=False)

        result = record_sale("SO-0008", "Bu Rina", Decimal("100000"), date(2026, 1, 10))

        assert result.code == ErrorCode.ACCOUNT_INACTIVE
        assert not JournalEntry.objects.exists()

    def test_automatic_entries_cannot_be_deleted(self, seeded, actor):
        entry = record_sale("SO-0009", "Bu Rina", Decimal("100000"), date(2026, 1, 10)).data

        result = delete_journal_entry(actor, entry.pk)

        assert result.code == ErrorCode.AUTO_ENTRY_IMMUTABLE

    def test_async_projections_are_refused(self, seeded, settings):
        settings.PROJECTIONS_SYNC = False

        with pytest.raises(RuntimeError, match="PROJECTIONS_SYNC"):
            record_sale("SO-0010", "Bu Rina", Decimal("100000"), date(2026, 1, 10))


@pytest.mark.django_db
class TestCashflowJournals:

    def test_inflow_debits_cash(self, seeded):
        result = record_cashflow(
            "CF-0001", "inflow", "service_revenue", Decimal("1250000"), date(2026, 1, 12),
            "Jasa katering rapat kantor",
        )

        assert result.success
        entry = result.data
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_type == JournalEntry.EntryType.RECEIPT
        assert entry.description == "Jasa katering rapat kantor"
        assert entry.source_module == "cashflow"
        assert entry.source_document == "CF-0001"
        debit_line, credit_line = entry.lines.order_by("line_no")
        assert debit_line.account.code == "1-1001"
        assert credit_line.account.code == "4-2001"
        assert _balance("1-1001") == Decimal("1250000.00")
        assert _balance("4-2001") == Decimal("1250000.00")

    def test_outflow_by_transfer_credits_bank(self, seeded):
        result = record_cashflow(
            "CF-0002", "outflow", "rent", Decimal("3000000"), date(2026, 1, 1),
            "Sewa dapur Januari", method="transfer",
        )

        assert result.success
        entry = result.data
        assert entry.entry_type == JournalEntry.EntryType.PAYMENT
        debit_line, credit_line = entry.lines.order_by("line_no")
        assert debit_line.account.code == "6-2001"
        assert credit_line.account.code == "1-1002"
        assert _balance("6-2001") == Decimal("3000000.00")
        assert _balance("1-1002") == Decimal("-3000000.00")
        assert _balance("1-1001") == Decimal("0.00")

    @pytest.mark.parametrize("category,code", [
        ("sales_revenue", "4-1001"),
        ("other_income", "4-9001"),
    ])
    def test_inflow_categories(self, seeded, category, code):
        record_cashflow("CF-0003", "inflow", category, Decimal("50000"), date(2026, 1, 5), "Masuk")

        assert _balance(code) == Decimal("50000.00")

    @pytest.mark.parametrize("category,code", [
        ("supplier_payment", "2-1001"),
        ("salary_wages", "6-1001"),
        ("utilities", "6-2002"),
        ("marketing", "6-3001"),
        ("transportation", "6-1002"),
        ("office_supplies", "6-4001"),
    ])
    def test_outflow_categories(self, seeded, category, code):
        record_cashflow("CF-0004", "outflow", category, Decimal("50000"), date(2026, 1, 5), "Keluar")

        entry = JournalEntry.objects.get(source_document="CF-0004")
        assert entry.lines.get(line_no=1).account.code == code
        assert entry.lines.get(line_no=2).account.code == "1-1001"

    def test_unknown_category_is_rejected(self, seeded):
        result = record_cashflow(
            "CF-0005", "outflow", "donation", Decimal("50000"), date(2026, 1, 5), "Sumbangan",
        )

        assert not result.success
        assert result.code == ErrorCode.INVALID_INPUT
        assert result.details["category"] == "donation"
        assert not JournalEntry.objects.exists()

    def test_unknown_flow_type_is_rejected(self, seeded):
        result = record_cashflow(
            "CF-0006", "sideways", "rent", Decimal("50000"), date(2026, 1, 5), "Sewa",
        )

        assert result.code == ErrorCode.INVALID_INPUT
        assert not JournalEntry.objects.exists()
