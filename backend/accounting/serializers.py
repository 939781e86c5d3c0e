# accounting/serializers.py
"""
Serializers for accounting API.

Note: These serializers are used for:
1. Input validation (shape and types only)
2. Output formatting

Business rules (balance, category legality, protection) are checked in
commands.py so that the API and automatic journals share one rule set.
"""

from decimal import Decimal

from django.core.exceptions import ObjectDoesNotExist
from rest_framework import serializers

from .models import Account, JournalEntry, JournalLine


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    """
    Serializer for Account model.
    Used for listing and retrieving. Writes go through commands.
    """
    balance = serializers.SerializerMethodField()
    has_transactions = serializers.SerializerMethodField()

    class Meta:
        model = Account
        fields = [
            "id", "public_id", "code", "name",
            "account_type", "category", "normal_balance",
            "description", "is_active", "is_system",
            "balance", "has_transactions",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_balance(self, obj):
        try:
            return str(obj.projected_balance.balance)
        except ObjectDoesNotExist:
            return str(Decimal("0.00"))

    def get_has_transactions(self, obj):
        # Use annotated value if available (from list view), else query
        if hasattr(obj, "_has_transactions"):
            return obj._has_transactions
        return obj.journal_lines.exists()


class AccountCreateSerializer(serializers.Serializer):
    """Serializer for creating accounts via command."""
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    category = serializers.ChoiceField(choices=Account.Category.choices)
    normal_balance = serializers.ChoiceField(
        choices=Account.NormalBalance.choices, required=False, allow_null=True, default=None,
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")
    is_active = serializers.BooleanField(required=False, default=True)


class AccountUpdateSerializer(serializers.Serializer):
    """Serializer for updating accounts via command. Only sent fields change."""
    code = serializers.CharField(max_length=20, required=False)
    name = serializers.CharField(max_length=255, required=False)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices, required=False)
    category = serializers.ChoiceField(choices=Account.Category.choices, required=False)
    normal_balance = serializers.ChoiceField(choices=Account.NormalBalance.choices, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


# =============================================================================
# Journal Entry Serializers
# =============================================================================

class JournalLineSerializer(serializers.ModelSerializer):
    """Serializer for individual journal lines."""

    class Meta:
        model = JournalLine
        fields = [
            "line_no", "account", "account_code", "account_name",
            "description", "debit", "credit",
        ]
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    """
    Serializer for journal line input.

    The account is given either by account_id or by account_code.
    Amount rules (one side only, non-negative) are checked by the command.
    """
    account_id = serializers.IntegerField(required=False)
    account_code = serializers.CharField(max_length=20, required=False)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    debit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=Decimal("0"))
    credit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=Decimal("0"))

    def validate(self, attrs):
        if not attrs.get("account_id") and not attrs.get("account_code"):
            raise serializers.ValidationError("account_id or account_code is required.")
        return attrs


class JournalEntryCreateSerializer(serializers.Serializer):
    """Input for a manual journal entry."""
    date = serializers.DateField()
    description = serializers.CharField(max_length=255)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    lines = JournalLineInputSerializer(many=True)


class JournalEntrySerializer(serializers.ModelSerializer):
    """
    Full journal entry serializer with nested lines.
    Used for retrieval and display.
    """
    lines = JournalLineSerializer(many=True, read_only=True)
    is_balanced = serializers.BooleanField(read_only=True)
    reverses_entry_number = serializers.CharField(
        source="reverses_entry.entry_number", read_only=True, default=None,
    )

    class Meta:
        model = JournalEntry
        fields = [
            "id", "public_id", "entry_number", "date", "entry_type", "status",
            "description", "reference", "source_module", "source_document",
            "total_debit", "total_credit", "is_balanced",
            "posted_at", "posted_by_name",
            "reversed_at", "reversed_by_name", "reverses_entry", "reverses_entry_number",
            "created_at", "created_by_name", "updated_at",
            "lines",
        ]
        read_only_fields = fields
