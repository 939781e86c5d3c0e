# accounting/seed.py
"""
Default chart of accounts for an Indonesian catering kitchen.

Seeding goes through create_account like any other account, so every
seeded account has an ACCOUNT_CREATED event and can be replayed.
Accounts marked is_system are protected from deletion and from changes
to code, type and normal balance.
"""

import logging

from accounts.authz import system_actor
from accounting.commands import create_account
from accounting.models import Account


logger = logging.getLogger(__name__)

T = Account.AccountType
C = Account.Category

# (code, name, type, category, description, is_system)
DEFAULT_ACCOUNTS = [
    # Aset
    ("1-1001", "Kas", T.ASSET, C.CURRENT_ASSET, "Kas tunai di tangan", True),
    ("1-1002", "Bank", T.ASSET, C.CURRENT_ASSET, "Saldo rekening bank", True),
    ("1-1101", "Piutang Usaha", T.ASSET, C.RECEIVABLE, "Piutang dari pelanggan", True),
    ("1-1201", "Persediaan Bahan Baku", T.ASSET, C.INVENTORY, "Persediaan bahan baku makanan", True),
    ("1-1202", "Persediaan Barang Jadi", T.ASSET, C.INVENTORY, "Persediaan makanan siap jual", True),
    ("1-2001", "Peralatan Dapur", T.ASSET, C.FIXED_ASSET, "Peralatan dan mesin dapur", True),
    ("1-2002", "Kendaraan", T.ASSET, C.FIXED_ASSET, "Kendaraan operasional", True),
    # Kewajiban
    ("2-1001", "Hutang Usaha", T.LIABILITY, C.PAYABLE, "Hutang kepada supplier", True),
    ("2-1002", "Hutang Gaji", T.LIABILITY, C.CURRENT_LIABILITY, "Hutang gaji karyawan", True),
    ("2-2001", "Hutang Bank", T.LIABILITY, C.LONG_TERM_LIABILITY, "Pinjaman bank jangka panjang", False),
    # Ekuitas
    ("3-1001", "Modal Pemilik", T.EQUITY, C.CAPITAL, "Modal awal dari pemilik", True),
    ("3-2001", "Laba Ditahan", T.EQUITY, C.RETAINED_EARNINGS, "Akumulasi laba yang ditahan", True),
    ("3-3001", "Prive", T.EQUITY, C.DRAWINGS, "Penarikan modal oleh pemilik", True),
    # Pendapatan
    ("4-1001", "Pendapatan Penjualan", T.REVENUE, C.SALES_REVENUE, "Pendapatan dari penjualan makanan", True),
    ("4-2001", "Pendapatan Jasa Catering", T.REVENUE, C.SERVICE_REVENUE, "Pendapatan dari jasa catering", True),
    ("4-9001", "Pendapatan Lain-lain", T.REVENUE, C.OTHER_REVENUE, "Pendapatan di luar operasional utama", False),
    # Harga Pokok Penjualan
    ("5-1001", "Harga Pokok Penjualan", T.COGS, C.COST_OF_GOODS_SOLD, "Biaya produksi makanan yang terjual", True),
    # Beban
    ("6-1001", "Beban Gaji", T.EXPENSE, C.OPERATING_EXPENSE, "Beban gaji karyawan", True),
    ("6-1002", "Beban Transportasi", T.EXPENSE, C.OPERATING_EXPENSE, "Beban pengiriman dan transportasi", True),
    ("6-2001", "Beban Sewa", T.EXPENSE, C.OPERATING_EXPENSE, "Beban sewa tempat usaha", False),
    ("6-2002", "Beban Listrik & Air", T.EXPENSE, C.OPERATING_EXPENSE, "Beban utilitas", False),
    ("6-3001", "Beban Pemasaran", T.EXPENSE, C.MARKETING_EXPENSE, "Beban iklan dan promosi", False),
    ("6-4001", "Beban Administrasi", T.EXPENSE, C.ADMINISTRATIVE_EXPENSE, "Beban administrasi dan kantor", False),
]


def seed_chart_of_accounts(actor=None) -> dict:
    """
    Create every default account whose code does not exist yet.

    Existing codes are left untouched, so running this twice is safe.

    Returns:
        {"created": [codes], "skipped": [codes], "failed": {code: error}}
    """
    actor = actor or system_actor()
    existing = set(Account.objects.values_list("code", flat=True))
    report = {"created": [], "skipped": [], "failed": {}}

    for code, name, account_type, category, description, is_system in DEFAULT_ACCOUNTS:
        if code in existing:
            report["skipped"].append(code)
            continue

        result = create_account(
            actor,
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            description=description,
            is_system=is_system,
        )
        if result.success:
            report["created"].append(code)
        else:
            report["failed"][code] = result.error

    logger.info(
        "Chart of accounts seeded: %d created, %d skipped, %d failed",
        len(report["created"]), len(report["skipped"]), len(report["failed"]),
    )
    return report
