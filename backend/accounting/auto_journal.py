# accounting/auto_journal.py
"""
Automatic journals for operational events.

Other parts of the kitchen (sales, procurement, payroll, the cash book) call
these helpers when money moves. Each helper creates the entry and posts it
right away as the System actor, in one transaction: if posting is refused,
the draft is rolled back too.

The accounts used are fixed codes from the default chart of accounts
(see accounting/seed.py). A missing account surfaces as ACCOUNT_NOT_FOUND.
"""

import logging

from django.db import transaction

from accounts.authz import system_actor
from accounting.commands import create_journal_entry, post_journal_entry
from accounting.errors import CommandResult, ErrorCode
from accounting.models import JournalEntry


logger = logging.getLogger(__name__)

CASH = "1-1001"
BANK = "1-1002"
RAW_MATERIALS = "1-1201"
TRADE_PAYABLE = "2-1001"
SALES_REVENUE = "4-1001"
SALARY_EXPENSE = "6-1001"

TRANSFER = "transfer"


def _record(
    entry_type: str,
    date,
    description: str,
    debit_account: str,
    credit_account: str,
    amount,
    line_description: str,
    reference: str,
    source_module: str,
) -> CommandResult:
    actor = system_actor()
    lines = [
        {"account_code": debit_account, "description": line_description, "debit": amount, "credit": 0},
        {"account_code": credit_account, "description": line_description, "debit": 0, "credit": amount},
    ]

    with transaction.atomic():
        created = create_journal_entry(
            actor,
            date=date,
            description=description,
            lines=lines,
            reference=reference,
            entry_type=entry_type,
            source_module=source_module,
            source_document=reference,
        )
        if not created.success:
            logger.warning(
                "Automatic %s journal for %s rejected: %s",
                entry_type, reference, created.code.value,
            )
            return created

        entry = created.data
        if entry is None:
            # The draft read model is needed to post in the same transaction.
            raise RuntimeError("Automatic journals require PROJECTIONS_SYNC=True.")
        posted = post_journal_entry(actor, entry.pk)
        if not posted.success:
            transaction.set_rollback(True)
            logger.warning(
                "Automatic %s journal for %s could not be posted: %s",
                entry_type, reference, posted.code.value,
            )
        return posted


def record_sale(order_number: str, customer_name: str, amount, date) -> CommandResult:
    """Cash sale on delivery: Kas against Pendapatan Penjualan."""
    return _record(
        JournalEntry.EntryType.SALES,
        date=date,
        description=f"Penjualan - {order_number}",
        debit_account=CASH,
        credit_account=SALES_REVENUE,
        amount=amount,
        line_description=f"Penjualan {order_number} - {customer_name}",
        reference=order_number,
        source_module="sales",
    )


def record_supplier_payment(
    payment_number: str, supplier_name: str, amount, date, method: str = "cash",
) -> CommandResult:
    """Settle a supplier invoice: Hutang Usaha against Kas, or Bank for transfers."""
    return _record(
        JournalEntry.EntryType.PAYMENT,
        date=date,
        description=f"Pembayaran Supplier - {payment_number}",
        debit_account=TRADE_PAYABLE,
        credit_account=BANK if method == TRANSFER else CASH,
        amount=amount,
        line_description=f"Pembayaran {payment_number} - {supplier_name}",
        reference=payment_number,
        source_module="payments",
    )


def record_purchase(po_number: str, supplier_name: str, amount, date) -> CommandResult:
    """Raw materials bought on credit: Persediaan against Hutang Usaha."""
    return _record(
        JournalEntry.EntryType.PURCHASE,
        date=date,
        description=f"Pembelian - {po_number}",
        debit_account=RAW_MATERIALS,
        credit_account=TRADE_PAYABLE,
        amount=amount,
        line_description=f"Pembelian {po_number} - {supplier_name}",
        reference=po_number,
        source_module="procurement",
    )


def record_payroll(period: str, employee_name: str, amount, date) -> CommandResult:
    """Salary paid in cash: Beban Gaji against Kas."""
    return _record(
        JournalEntry.EntryType.PAYROLL,
        date=date,
        description=f"Pembayaran Gaji - {period}",
        debit_account=SALARY_EXPENSE,
        credit_account=CASH,
        amount=amount,
        line_description=f"Gaji {period} - {employee_name}",
        reference=f"GAJI-{period}",
        source_module="payroll",
    )


INFLOW = "inflow"
OUTFLOW = "outflow"

CASHFLOW_ACCOUNTS = {
    # Inflow
    "sales_revenue": SALES_REVENUE,
    "service_revenue": "4-2001",
    "other_income": "4-9001",
    # Outflow
    "supplier_payment": TRADE_PAYABLE,
    "salary_wages": SALARY_EXPENSE,
    "rent": "6-2001",
    "utilities": "6-2002",
    "marketing": "6-3001",
    "transportation": "6-1002",
    "office_supplies": "6-4001",
}


def record_cashflow(
    cashflow_number: str,
    flow_type: str,
    category: str,
    amount,
    date,
    description: str,
    method: str = "cash",
) -> CommandResult:
    """
    Book a cash book record against its category account.

    Inflows debit Kas (Bank for transfers) and credit the category account;
    outflows debit the category account and credit Kas or Bank.
    """
    account_code = CASHFLOW_ACCOUNTS.get(category)
    if account_code is None:
        return CommandResult.from_code(
            ErrorCode.INVALID_INPUT,
            f"Unknown cashflow category: {category}",
            category=category,
        )
    if flow_type not in (INFLOW, OUTFLOW):
        return CommandResult.from_code(
            ErrorCode.INVALID_INPUT,
            f"Cashflow type must be '{INFLOW}' or '{OUTFLOW}'.",
            flow_type=flow_type,
        )

    cash_account = BANK if method == TRANSFER else CASH
    if flow_type == INFLOW:
        entry_type = JournalEntry.EntryType.RECEIPT
        debit_account, credit_account = cash_account, account_code
    else:
        entry_type = JournalEntry.EntryType.PAYMENT
        debit_account, credit_account = account_code, cash_account

    return _record(
        entry_type,
        date=date,
        description=description,
        debit_account=debit_account,
        credit_account=credit_account,
        amount=amount,
        line_description=description,
        reference=cashflow_number,
        source_module="cashflow",
    )
