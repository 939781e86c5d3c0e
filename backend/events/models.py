# events/models.py
"""
Event Store models for the Dapur ledger.

The BusinessEvent table is the canonical source of truth for all
state changes in the system. Events are immutable once created:
posted journal lines live here as facts, and every balance shown
to a user is a projection replayed from this stream.

EventBookmark tracks consumer progress for projection rebuilds.
"""

import uuid
from django.db import models, transaction, IntegrityError
from django.conf import settings
from django.db.models import F
from django.utils import timezone


class EventStreamCounter(models.Model):
    """
    Single-row counter for the global event stream.

    Locked with select_for_update while allocating stream_sequence,
    so concurrent emitters always receive distinct, increasing values.
    """
    name = models.CharField(max_length=50, unique=True, default="global")
    last_sequence = models.BigIntegerField(default=0)

    class Meta:
        verbose_name = "Event Stream Counter"

    def __str__(self):
        return f"{self.name}: {self.last_sequence}"


class BusinessEvent(models.Model):
    """
    Immutable event record.
    """

    class EventOrigin(models.TextChoices):
        """Who or what initiated the event."""
        HUMAN = "human", "Human (Manual UI)"
        SYSTEM = "system", "Internal System Process"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Event type name (e.g., 'journal_entry.posted')",
    )

    aggregate_type = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Entity type (e.g., 'Account', 'JournalEntry')",
    )

    aggregate_id = models.CharField(
        max_length=64,
        db_index=True,
    )

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        editable=False,
        help_text="Unique idempotency key",
    )

    # Ordering within an aggregate
    sequence = models.PositiveIntegerField(
        default=0,
        editable=False,
        help_text="Auto-incremented per aggregate",
    )

    # Global monotonic sequence (event stream cursor)
    stream_sequence = models.BigIntegerField(
        unique=True,
        editable=False,
        help_text="Monotonic event stream sequence",
    )

    data = models.JSONField(
        default=dict,
        help_text="Event data payload",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context (IP, user agent, etc.)",
    )

    schema_version = models.PositiveSmallIntegerField(
        default=1,
        help_text="Schema version for data migration",
    )

    caused_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="caused_events",
        help_text="User who triggered this event",
    )

    caused_by_event = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="child_events",
        help_text="Parent event in causation chain",
    )

    origin = models.CharField(
        max_length=20,
        choices=EventOrigin.choices,
        default=EventOrigin.HUMAN,
        db_index=True,
    )

    recorded_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
    )

    occurred_at = models.DateTimeField(
        db_index=True,
        default=timezone.now,
    )

    class Meta:
        ordering = ["stream_sequence"]
        indexes = [
            models.Index(fields=["aggregate_type", "aggregate_id", "sequence"], name="event_aggregate_seq_idx"),
            models.Index(fields=["event_type", "occurred_at"], name="event_type_occurred_idx"),
            models.Index(fields=["caused_by_event"], name="event_caused_by_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["aggregate_type", "aggregate_id", "sequence"],
                name="uniq_event_aggregate_sequence",
            ),
        ]

    def __str__(self):
        return f"{self.event_type} [{self.aggregate_type}#{self.aggregate_id}] @{self.occurred_at}"

    def save(self, *args, **kwargs):
        # Prevent updates (immutability)
        if not self._state.adding:
            raise ValueError("Events are immutable and cannot be modified.")

        if not self.idempotency_key or not self.idempotency_key.strip():
            raise ValueError("idempotency_key is required")

        with transaction.atomic():
            try:
                counter, _ = EventStreamCounter.objects.select_for_update().get_or_create(
                    name="global"
                )
            except IntegrityError:
                # Race: someone created it between get_or_create attempts
                counter = EventStreamCounter.objects.select_for_update().get(name="global")

            counter.last_sequence = F("last_sequence") + 1
            counter.save(update_fields=["last_sequence"])
            counter.refresh_from_db(fields=["last_sequence"])
            self.stream_sequence = counter.last_sequence

            if self.sequence == 0:
                last_event = BusinessEvent.objects.filter(
                    aggregate_type=self.aggregate_type,
                    aggregate_id=self.aggregate_id,
                ).order_by("-sequence").first()
                self.sequence = (last_event.sequence + 1) if last_event else 1

            super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Events are immutable and cannot be deleted.")

    def get_data(self) -> dict:
        """Return the event payload."""
        return self.data


class EventBookmark(models.Model):
    consumer_name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique consumer identifier (e.g., 'account_balance')",
    )

    last_event = models.ForeignKey(
        BusinessEvent,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
        help_text="Last successfully processed event",
    )

    last_processed_at = models.DateTimeField(
        null=True,
        blank=True,
    )

    is_paused = models.BooleanField(
        default=False,
        help_text="Pause event processing for this consumer",
    )

    error_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of consecutive errors",
    )

    last_error = models.TextField(
        blank=True,
        default="",
        help_text="Last error message",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.consumer_name

    def mark_processed(self, event: BusinessEvent):
        self.last_event = event
        self.last_processed_at = timezone.now()
        self.error_count = 0
        self.last_error = ""
        self.save(update_fields=[
            "last_event", "last_processed_at", "error_count", "last_error", "updated_at"
        ])

    def mark_error(self, error_message: str):
        self.error_count += 1
        self.last_error = error_message[:1000]
        self.save(update_fields=["error_count", "last_error", "updated_at"])

    def get_unprocessed_events(self, event_types: list = None, limit: int = 100):
        """
        Stream ordering.

        Bookmarks advance on stream_sequence; use aggregate ordering elsewhere.
        """
        qs = BusinessEvent.objects.all()

        if event_types:
            qs = qs.filter(event_type__in=event_types)

        if self.last_event:
            qs = qs.filter(stream_sequence__gt=self.last_event.stream_sequence)

        return qs.order_by("stream_sequence")[:limit]
