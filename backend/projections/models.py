# projections/models.py
"""
Projection models (materialized views).

These tables are DERIVED from events. They can be:
- Rebuilt from scratch by replaying events
- Updated incrementally as new events arrive

NEVER modify these tables directly. They are owned by their projections.
"""

from decimal import Decimal
from django.db import models
from django.conf import settings

from accounting.models import Account
from events.models import BusinessEvent
from projections.write_barrier import write_context_allowed


class ProjectionOwnedModel(models.Model):
    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not write_context_allowed({"projection"}) and not getattr(settings, "TESTING", False):
            raise RuntimeError(
                f"{self.__class__.__name__} is a projection-owned read model. "
                "Direct saves are only allowed from projections within projection_writes_allowed()."
            )
        super().save(*args, **kwargs)


class AccountBalance(ProjectionOwnedModel):
    """
    Materialized account balance.

    This is the single source of truth for "what is the balance of account X?"
    It is computed by consuming journal_entry.posted events; a reversal is
    itself a posted entry with swapped sides, so it nets out here too.

    The balance follows accounting conventions:
    - For DEBIT-normal accounts (Assets, Expenses, COGS): balance = debits - credits
    - For CREDIT-normal accounts (Liabilities, Equity, Revenue): balance = credits - debits
    """

    account = models.OneToOneField(
        Account,
        on_delete=models.CASCADE,
        related_name="projected_balance",
    )

    # Current balance (computed based on normal_balance)
    balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Current balance (positive = normal direction)",
    )

    # Running totals for audit/verification
    debit_total = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of all debits ever posted to this account",
    )

    credit_total = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of all credits ever posted to this account",
    )

    entry_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of journal lines affecting this account",
    )

    last_entry_date = models.DateField(
        null=True,
        blank=True,
        help_text="Date of most recent journal entry",
    )

    # Event tracking for consistency
    last_event = models.ForeignKey(
        BusinessEvent,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
        help_text="Last event that updated this balance",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Account Balance"
        verbose_name_plural = "Account Balances"
        indexes = [
            models.Index(fields=["balance"], name="account_balance_idx"),
        ]

    def __str__(self):
        return f"{self.account.code}: {self.balance}"

    def apply_debit(self, amount: Decimal):
        """Apply a debit to this balance."""
        self.debit_total += amount
        self._recalculate_balance()

    def apply_credit(self, amount: Decimal):
        """Apply a credit to this balance."""
        self.credit_total += amount
        self._recalculate_balance()

    def _recalculate_balance(self):
        """Recalculate balance based on account's normal balance."""
        if self.account.normal_balance == Account.NormalBalance.DEBIT:
            self.balance = self.debit_total - self.credit_total
        else:
            self.balance = self.credit_total - self.debit_total


class ProjectionAppliedEvent(ProjectionOwnedModel):
    """
    Tracks which events were applied by each projection to ensure idempotency.
    """

    projection_name = models.CharField(max_length=100)

    event = models.ForeignKey(
        BusinessEvent,
        on_delete=models.CASCADE,
        related_name="+",
    )

    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["projection_name", "event"],
                name="uniq_projection_event",
            ),
        ]
        indexes = [
            models.Index(fields=["projection_name"], name="applied_projection_idx"),
        ]

    def __str__(self):
        return f"{self.projection_name} applied {self.event_id}"
