# accounting/models.py
"""
Accounting READ MODELS for the Dapur ledger.

IMPORTANT: These are READ MODELS (projections), not primary state.
=================================================================
Events are the source of truth. These tables are materialized views
built by projections that consume events from the event store.

DO NOT:
- Call .save() directly on these models (use commands)
- Call .create() directly (use commands)
- Call .update() directly (use commands)
- Call .delete() directly (use commands)

All mutations MUST go through the command layer (accounting/commands.py),
which emits events that projections consume to update these tables.

The only code allowed to write to these models is:
- projections/accounting.py (AccountProjection, JournalEntryProjection)

The one exception is NumberSequence, a command-owned write model used
to allocate entry numbers under concurrency.

Models:
- NumberSequence: Sequential number allocation (write model)
- Account: Chart of Accounts (read model)
- JournalEntry: Journal entry headers (read model)
- JournalLine: Journal entry lines (read model)
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Q

from projections.write_barrier import write_context_allowed


def _projection_writes_permitted() -> bool:
    return write_context_allowed({"projection"}) or getattr(settings, "TESTING", False)


class ProjectionWriteQuerySet(models.QuerySet):
    """
    QuerySet that refuses writes made outside a projection.

    Projections should use .projection() to make the intent explicit:
        Account.objects.projection().update_or_create(...)
    """

    def projection(self):
        """Return a queryset for projection writes."""
        return self._clone()

    def _require_projection(self, operation: str) -> None:
        if not _projection_writes_permitted():
            raise RuntimeError(
                f"{self.model.__name__} is a read model. "
                f"{operation} is only allowed from projections within projection_writes_allowed()."
            )

    def update_or_create(self, defaults=None, create_defaults=None, **kwargs):
        self._require_projection("update_or_create")
        defaults = defaults or {}
        create_defaults = create_defaults or {}
        self._for_write = True
        with transaction.atomic(using=self.db):
            try:
                obj = self.select_for_update().get(**kwargs)
            except self.model.DoesNotExist:
                obj = self.model(**{**kwargs, **defaults, **create_defaults})
                obj.save(using=self.db)
                return obj, True

            for k, v in defaults.items():
                setattr(obj, k, v)
            obj.save(using=self.db)
            return obj, False

    def get_or_create(self, defaults=None, **kwargs):
        self._require_projection("get_or_create")
        return super().get_or_create(defaults=defaults, **kwargs)

    def bulk_create(self, objs, *args, **kwargs):
        """Objects must be pre-validated since save() isn't called."""
        self._require_projection("bulk_create")
        return super().bulk_create(objs, *args, **kwargs)

    def create(self, **kwargs):
        self._require_projection("create")
        return super().create(**kwargs)

    def update(self, **kwargs):
        self._require_projection("update")
        return super().update(**kwargs)

    def delete(self):
        self._require_projection("delete")
        return super().delete()


class ProjectionWriteManager(models.Manager.from_queryset(ProjectionWriteQuerySet)):
    """
    Manager for read models.

    Usage in projections:
        Account.objects.projection().update_or_create(...)
        JournalLine.objects.projection().bulk_create(...)
    """


class AccountingReadModel(models.Model):
    objects = ProjectionWriteManager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not _projection_writes_permitted():
            raise RuntimeError(
                f"{self.__class__.__name__} is a read model. Use accounting.commands to modify it. "
                "Direct saves are only allowed from projections within projection_writes_allowed()."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if not _projection_writes_permitted():
            raise RuntimeError(
                f"{self.__class__.__name__} is a read model. "
                "Direct deletes are only allowed from projections within projection_writes_allowed()."
            )
        return super().delete(*args, **kwargs)


class NumberSequence(models.Model):
    """
    Named counters for sequential identifiers.

    This is a write model (not a projection) used by commands
    to allocate unique numbers under concurrency. Rows are locked
    with select_for_update for the duration of the allocating
    transaction, so a rolled-back command does not burn a number.
    """

    name = models.CharField(max_length=100, unique=True)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name}={self.next_value}"

    def save(self, *args, **kwargs):
        if not write_context_allowed({"command", "bootstrap"}) and not getattr(settings, "TESTING", False):
            raise RuntimeError(
                "NumberSequence is a command-owned write model. "
                "Direct saves are only allowed within command_writes_allowed()."
            )
        super().save(*args, **kwargs)


class Account(AccountingReadModel):
    """
    Chart of Accounts entry.

    The account type fixes the normal balance side and restricts the
    category to a closed set. Balances are not stored here: they are
    read from the AccountBalance projection.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Aset"
        LIABILITY = "LIABILITY", "Kewajiban"
        EQUITY = "EQUITY", "Ekuitas"
        REVENUE = "REVENUE", "Pendapatan"
        EXPENSE = "EXPENSE", "Beban"
        COGS = "COGS", "Harga Pokok Penjualan"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    class Category(models.TextChoices):
        CURRENT_ASSET = "current_asset", "Aset Lancar"
        FIXED_ASSET = "fixed_asset", "Aset Tetap"
        INVENTORY = "inventory", "Persediaan"
        RECEIVABLE = "receivable", "Piutang"
        CURRENT_LIABILITY = "current_liability", "Kewajiban Lancar"
        LONG_TERM_LIABILITY = "long_term_liability", "Kewajiban Jangka Panjang"
        PAYABLE = "payable", "Hutang"
        CAPITAL = "capital", "Modal"
        RETAINED_EARNINGS = "retained_earnings", "Laba Ditahan"
        DRAWINGS = "drawings", "Prive"
        SALES_REVENUE = "sales_revenue", "Pendapatan Penjualan"
        SERVICE_REVENUE = "service_revenue", "Pendapatan Jasa"
        OTHER_REVENUE = "other_revenue", "Pendapatan Lain-lain"
        OPERATING_EXPENSE = "operating_expense", "Beban Operasional"
        ADMINISTRATIVE_EXPENSE = "administrative_expense", "Beban Administrasi"
        MARKETING_EXPENSE = "marketing_expense", "Beban Pemasaran"
        COST_OF_GOODS_SOLD = "cost_of_goods_sold", "Harga Pokok Penjualan"

    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.COGS: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
    }

    CATEGORIES_BY_TYPE = {
        AccountType.ASSET: {
            Category.CURRENT_ASSET, Category.FIXED_ASSET,
            Category.INVENTORY, Category.RECEIVABLE,
        },
        AccountType.LIABILITY: {
            Category.CURRENT_LIABILITY, Category.LONG_TERM_LIABILITY, Category.PAYABLE,
        },
        AccountType.EQUITY: {
            Category.CAPITAL, Category.RETAINED_EARNINGS, Category.DRAWINGS,
        },
        AccountType.REVENUE: {
            Category.SALES_REVENUE, Category.SERVICE_REVENUE, Category.OTHER_REVENUE,
        },
        AccountType.EXPENSE: {
            Category.OPERATING_EXPENSE, Category.ADMINISTRATIVE_EXPENSE, Category.MARKETING_EXPENSE,
        },
        AccountType.COGS: {Category.COST_OF_GOODS_SOLD},
    }

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )

    category = models.CharField(
        max_length=40,
        choices=Category.choices,
    )

    normal_balance = models.CharField(
        max_length=10,
        choices=NormalBalance.choices,
        editable=False,
    )

    description = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    is_system = models.BooleanField(
        default=False,
        help_text="System accounts are used by automatic journals and cannot be deleted",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        indexes = [
            models.Index(fields=["account_type"], name="account_type_idx"),
            models.Index(fields=["is_active"], name="account_active_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @classmethod
    def normal_balance_for(cls, account_type: str) -> str:
        return cls.NORMAL_BALANCE_MAP[account_type]

    @classmethod
    def is_category_allowed(cls, account_type: str, category: str) -> bool:
        return category in cls.CATEGORIES_BY_TYPE.get(account_type, set())

    def clean(self):
        if not self.is_category_allowed(self.account_type, self.category):
            raise ValidationError(
                f"Category {self.category} is not valid for account type {self.account_type}."
            )

    def save(self, *args, **kwargs):
        # Auto-set normal balance from account type
        self.normal_balance = self.normal_balance_for(self.account_type)
        self.full_clean(validate_unique=False)
        super().save(*args, **kwargs)

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.NormalBalance.DEBIT

    def signed_amount(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Balance delta of one line, by this account's normal side."""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit

    def get_balance(self) -> Decimal:
        """
        Get account balance from the AccountBalance projection.

        Events are the source of truth. This method reads from the
        materialized projection, NOT from journal tables.
        """
        from projections.models import AccountBalance

        try:
            return AccountBalance.objects.get(account=self).balance
        except AccountBalance.DoesNotExist:
            return Decimal("0.00")


class JournalEntry(AccountingReadModel):
    """
    Journal Entry header.

    Workflow: DRAFT -> POSTED -> REVERSED
    - DRAFT: Entry is complete and balanced, ready for posting
    - POSTED: Entry is finalized, affects account balances
    - REVERSED: Entry has been offset by a generated reversal entry
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"
        REVERSED = "REVERSED", "Reversed"

    class EntryType(models.TextChoices):
        MANUAL = "MANUAL", "Manual"
        SALES = "SALES", "Penjualan"
        PURCHASE = "PURCHASE", "Pembelian"
        PAYMENT = "PAYMENT", "Pembayaran"
        RECEIPT = "RECEIPT", "Penerimaan"
        PAYROLL = "PAYROLL", "Penggajian"
        ADJUSTMENT = "ADJUSTMENT", "Penyesuaian"
        CLOSING = "CLOSING", "Penutupan"

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    entry_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Sequential number allocated at creation (JE-YYYYMM-NNNN)",
    )

    date = models.DateField()

    entry_type = models.CharField(
        max_length=20,
        choices=EntryType.choices,
        default=EntryType.MANUAL,
    )

    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    description = models.CharField(max_length=255)
    reference = models.CharField(max_length=100, blank=True, default="")

    # Source tracking (for automatic journals)
    source_module = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Module that created this entry (e.g., 'sales', 'payroll')",
    )
    source_document = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Reference to source document (e.g., order number)",
    )

    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Posting metadata
    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )
    posted_by_name = models.CharField(max_length=150, blank=True, default="")

    # Reversal metadata
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by_name = models.CharField(max_length=150, blank=True, default="")
    reverses_entry = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversal_entry",
    )

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journal_entries",
    )
    created_by_name = models.CharField(max_length=150, blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "journal entries"
        indexes = [
            models.Index(fields=["date", "id"], name="entry_date_idx"),
            models.Index(fields=["status"], name="entry_status_idx"),
        ]
        ordering = ["-date", "-id"]
        permissions = [
            ("post_journalentry", "Can post journal entries"),
            ("reverse_journalentry", "Can reverse journal entries"),
        ]

    def __str__(self):
        return f"{self.entry_number} ({self.date}) {self.status}"

    @property
    def is_manual(self) -> bool:
        return self.entry_type == self.EntryType.MANUAL

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class JournalLine(AccountingReadModel):
    """
    Individual line within a journal entry.
    Each line affects one account with either a debit or credit amount.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    # Snapshot at entry time; later renames do not rewrite history
    account_code = models.CharField(max_length=20)
    account_name = models.CharField(max_length=255)

    description = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        unique_together = ("entry", "line_no")
        ordering = ["entry", "line_no"]
        constraints = [
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__exact=0) & Q(credit__exact=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["account", "entry"], name="line_account_entry_idx"),
        ]

    def __str__(self):
        return f"{self.entry_id} L{self.line_no}"

    @property
    def amount(self) -> Decimal:
        """Returns the non-zero amount (debit or credit)."""
        return self.debit if self.debit > 0 else self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
