# tests/test_write_barrier.py
"""
Tests for write barrier enforcement.
"""

import pytest
from decimal import Decimal

from rest_framework import serializers

from accounting.models import Account, NumberSequence
from projections.models import AccountBalance
from projections.write_barrier import (
    bootstrap_writes_allowed,
    command_writes_allowed,
    current_write_context,
    projection_writes_allowed,
)


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = ("code", "name", "account_type", "category")


@pytest.mark.django_db
def test_direct_model_save_raises(settings, cash_account):
    settings.TESTING = False

    cash_account.name = "Kas Updated"
    with pytest.raises(RuntimeError, match="Direct saves are only allowed"):
        cash_account.save()


@pytest.mark.django_db
def test_direct_model_create_in_serializer_raises(settings):
    settings.TESTING = False

    serializer = AccountSerializer(
        data={"code": "1-1001", "name": "Kas", "account_type": "ASSET", "category": "current_asset"},
    )
    serializer.is_valid(raise_exception=True)

    with pytest.raises(RuntimeError, match="only allowed from projections"):
        serializer.save()


@pytest.mark.django_db
def test_queryset_update_outside_projection_raises(settings, cash_account):
    settings.TESTING = False

    with pytest.raises(RuntimeError, match="only allowed from projections"):
        Account.objects.filter(pk=cash_account.pk).update(name="Kas Updated")


@pytest.mark.django_db
def test_direct_delete_raises(settings, cash_account):
    settings.TESTING = False

    with pytest.raises(RuntimeError, match="Direct deletes are only allowed"):
        cash_account.delete()


@pytest.mark.django_db
def test_projection_context_allows_writes(settings, cash_account):
    settings.TESTING = False

    with projection_writes_allowed():
        cash_account.name = "Kas Updated"
        cash_account.save()

    cash_account.refresh_from_db()
    assert cash_account.name == "Kas Updated"


@pytest.mark.django_db
def test_balance_projection_is_guarded(settings, cash_account):
    settings.TESTING = False

    with pytest.raises(RuntimeError, match="projection-owned read model"):
        AccountBalance(account=cash_account, balance=Decimal("1.00")).save()


@pytest.mark.django_db
def test_command_context_allows_writes(settings):
    settings.TESTING = False

    with pytest.raises(RuntimeError, match="command_writes_allowed"):
        NumberSequence.objects.create(name="journal_entry:202601")

    with command_writes_allowed():
        seq = NumberSequence.objects.create(name="journal_entry:202601")

    with bootstrap_writes_allowed():
        seq.next_value = 5
        seq.save()

    seq.refresh_from_db()
    assert seq.next_value == 5


@pytest.mark.django_db
def test_commands_work_with_guards_enabled(settings, actor, lines, cash_account, revenue_account):
    from accounting.commands import create_journal_entry, post_journal_entry

    settings.TESTING = False

    created = create_journal_entry(
        actor,
        date="2026-01-15",
        description="Penjualan",
        lines=lines(("1-1001", 1000, 0), ("4-1001", 0, 1000)),
    )
    posted = post_journal_entry(actor, created.data.pk)

    assert posted.success
    assert cash_account.get_balance() == Decimal("1000.00")


def test_contexts_nest_and_unwind():
    assert current_write_context() is None

    with command_writes_allowed():
        with projection_writes_allowed():
            assert current_write_context() == "projection"
        assert current_write_context() == "command"

    assert current_write_context() is None
