# tests/conftest.py
"""
Pytest fixtures for Dapur ledger tests.

Accounts and entries are always created through the command layer,
so every fixture row has its events and projections behind it.
"""

import pytest
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission

from accounts.authz import actor_for_user, system_actor
from accounting.commands import create_account, create_journal_entry, post_journal_entry
from accounting.models import Account


User = get_user_model()


@pytest.fixture(autouse=True)
def _testing_settings(settings):
    """Test-only flags for read-model guards; projections run in-line."""
    settings.TESTING = True
    settings.PROJECTIONS_SYNC = True
    settings.DISABLE_EVENT_VALIDATION = False


# =============================================================================
# User & Actor Fixtures
# =============================================================================

@pytest.fixture
def user(db):
    """A superuser: implicitly allowed every permission."""
    return User.objects.create_superuser(
        username="bendahara",
        email="bendahara@dapur.test",
        password="testpass123",
        first_name="Siti",
        last_name="Bendahara",
    )


@pytest.fixture
def viewer(db):
    """A user who may only look at accounts and entries."""
    viewer = User.objects.create_user(
        username="viewer",
        email="viewer@dapur.test",
        password="testpass123",
    )
    viewer.user_permissions.add(
        *Permission.objects.filter(
            content_type__app_label="accounting",
            codename__in=["view_account", "view_journalentry"],
        )
    )
    return User.objects.get(pk=viewer.pk)  # Drop the permission cache


@pytest.fixture
def actor(user):
    return actor_for_user(user)


@pytest.fixture
def viewer_actor(viewer):
    return actor_for_user(viewer)


@pytest.fixture
def system(db):
    return system_actor()


# =============================================================================
# Chart of Accounts Fixtures
# =============================================================================

def _account(actor, code, name, account_type, category, **kwargs) -> Account:
    result = create_account(
        actor,
        code=code,
        name=name,
        account_type=account_type,
        category=category,
        **kwargs,
    )
    assert result.success, result.error
    return result.data


@pytest.fixture
def cash_account(actor):
    return _account(actor, "1-1001", "Kas", "ASSET", "current_asset")


@pytest.fixture
def bank_account(actor):
    return _account(actor, "1-1002", "Bank", "ASSET", "current_asset")


@pytest.fixture
def inventory_account(actor):
    return _account(actor, "1-1201", "Persediaan Bahan Baku", "ASSET", "inventory")


@pytest.fixture
def equipment_account(actor):
    return _account(actor, "1-2001", "Peralatan Dapur", "ASSET", "fixed_asset")


@pytest.fixture
def payable_account(actor):
    return _account(actor, "2-1001", "Hutang Usaha", "LIABILITY", "payable")


@pytest.fixture
def capital_account(actor):
    return _account(actor, "3-1001", "Modal Pemilik", "EQUITY", "capital")


@pytest.fixture
def revenue_account(actor):
    return _account(actor, "4-1001", "Pendapatan Penjualan", "REVENUE", "sales_revenue")


@pytest.fixture
def cogs_account(actor):
    return _account(actor, "5-1001", "Harga Pokok Penjualan", "COGS", "cost_of_goods_sold")


@pytest.fixture
def expense_account(actor):
    return _account(actor, "6-1001", "Beban Gaji", "EXPENSE", "operating_expense")


@pytest.fixture
def system_cash_account(actor):
    return _account(actor, "1-1001", "Kas", "ASSET", "current_asset", is_system=True)


# =============================================================================
# Journal Entry Helpers
# =============================================================================

def _lines(*pairs):
    return [
        {"account_code": code, "debit": Decimal(str(debit)), "credit": Decimal(str(credit))}
        for code, debit, credit in pairs
    ]


@pytest.fixture
def lines():
    """lines(("1-1001", 500000, 0), ("4-1001", 0, 500000)) -> command line dicts"""
    return _lines


@pytest.fixture
def make_entry(actor):
    """Create a DRAFT entry; returns the CommandResult."""
    def _make(entry_lines, entry_date=date(2026, 1, 15), description="Transaksi uji", **kwargs):
        return create_journal_entry(
            actor,
            date=entry_date,
            description=description,
            lines=entry_lines,
            **kwargs,
        )
    return _make


@pytest.fixture
def post_entry(actor, make_entry):
    """Create and post an entry; returns the posted JournalEntry."""
    def _post(entry_lines, entry_date=date(2026, 1, 15), description="Transaksi uji", **kwargs):
        created = make_entry(entry_lines, entry_date=entry_date, description=description, **kwargs)
        assert created.success, created.error
        posted = post_journal_entry(actor, created.data.pk)
        assert posted.success, posted.error
        return posted.data
    return _post


@pytest.fixture
def sale_entry(post_entry, cash_account, revenue_account):
    """Kas 500.000 / Pendapatan Penjualan 500.000, posted."""
    return post_entry(
        _lines(("1-1001", 500000, 0), ("4-1001", 0, 500000)),
        description="Penjualan katering",
    )
