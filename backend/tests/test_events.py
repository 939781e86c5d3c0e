# tests/test_events.py
"""
Tests for the events module.

Tests cover:
- Event immutability
- Idempotency key handling
- Event sequencing
- Data class serialization
- Payload validation
- Bookmarks and causation
"""

import pytest
from uuid import uuid4

from django.db import IntegrityError

from events.emitter import emit_event, get_aggregate_events
from events.models import BusinessEvent, EventBookmark
from events.types import (
    EventTypes,
    AccountCreatedData,
    JournalEntryReversedData,
    JournalLineData,
    InvalidEventPayload,
)


def _account_data(code="1-1001", name="Kas", public_id=None, **overrides):
    data = AccountCreatedData(
        account_public_id=public_id or str(uuid4()),
        code=code,
        name=name,
        account_type="ASSET",
        category="current_asset",
        normal_balance="DEBIT",
    ).to_dict()
    data.update(overrides)
    return data


def _emit_account(actor, code="1-1001", key=None, **overrides):
    data = _account_data(code=code, **overrides)
    return emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=data["account_public_id"],
        data=data,
        idempotency_key=key or f"test:{uuid4()}",
    )


@pytest.fixture
def account_created_event(actor):
    return _emit_account(actor)


@pytest.fixture
def event_bookmark(db):
    return EventBookmark.objects.create(consumer_name="test_consumer")


# =============================================================================
# Event Immutability Tests
# =============================================================================

@pytest.mark.django_db
class TestEventImmutability:
    """Test that events cannot be modified after creation."""

    def test_cannot_modify_existing_event(self, account_created_event):
        account_created_event.data["code"] = "MODIFIED"

        with pytest.raises(ValueError, match="immutable"):
            account_created_event.save()

    def test_cannot_delete_event(self, account_created_event):
        with pytest.raises(ValueError, match="immutable"):
            account_created_event.delete()

    def test_new_event_can_be_saved(self, user):
        event = BusinessEvent(
            event_type=EventTypes.ACCOUNT_CREATED,
            aggregate_type="Account",
            aggregate_id=str(uuid4()),
            data={"test": "data"},
            caused_by_user=user,
            idempotency_key=f"test:{uuid4()}",
        )

        event.save()

        assert event.id is not None
        assert event.stream_sequence > 0
        assert event.sequence == 1


# =============================================================================
# Idempotency Tests
# =============================================================================

@pytest.mark.django_db
class TestIdempotency:

    def test_duplicate_idempotency_key_returns_existing_event(self, actor):
        key = f"test:idempotent:{uuid4()}"

        event1 = _emit_account(actor, code="1-1001", key=key)
        event2 = _emit_account(actor, code="2-1001", key=key)

        assert event1.id == event2.id
        assert event2.data["code"] == "1-1001"
        assert BusinessEvent.objects.filter(idempotency_key=key).count() == 1

    def test_different_idempotency_keys_create_different_events(self, actor):
        event1 = _emit_account(actor, code="1-1001")
        event2 = _emit_account(actor, code="1-1002")

        assert event1.id != event2.id

    def test_idempotency_key_required(self, actor):
        with pytest.raises((ValueError, IntegrityError)):
            _emit_account(actor, key="   ")


# =============================================================================
# Event Sequencing Tests
# =============================================================================

@pytest.mark.django_db
class TestEventSequencing:

    def test_stream_sequence_increments(self, actor):
        events = [_emit_account(actor, code=f"1-10{i:02d}") for i in range(5)]

        sequences = [e.stream_sequence for e in events]
        assert sequences == sorted(sequences)
        assert len(set(sequences)) == 5

    def test_aggregate_sequence_increments_per_aggregate(self, actor):
        public_id = str(uuid4())

        created = _emit_account(actor, public_id=public_id)
        updated = emit_event(
            actor=actor,
            event_type=EventTypes.ACCOUNT_UPDATED,
            aggregate_type="Account",
            aggregate_id=public_id,
            data={"account_public_id": public_id, "changes": {"name": {"old": "Kas", "new": "Kas Besar"}}},
            idempotency_key=f"agg-seq:{uuid4()}",
        )
        other = _emit_account(actor, code="1-1002")

        assert created.sequence == 1
        assert updated.sequence == 2
        assert other.sequence == 1
        assert [e.id for e in get_aggregate_events("Account", public_id)] == [created.id, updated.id]

    def test_origin_follows_actor(self, actor, system):
        human = _emit_account(actor)
        automatic = _emit_account(system, code="1-1002")

        assert human.origin == BusinessEvent.EventOrigin.HUMAN
        assert human.caused_by_user_id == actor.user_id
        assert automatic.origin == BusinessEvent.EventOrigin.SYSTEM
        assert automatic.caused_by_user is None


# =============================================================================
# Data Class Serialization Tests
# =============================================================================

class TestDataClassSerialization:

    def test_line_amounts_stay_strings(self):
        line = JournalLineData(
            line_no=1,
            account_public_id="abc-123",
            account_code="1-1001",
            account_name="Kas",
            debit="1000.50",
            credit="0.00",
        )

        data = line.to_dict()

        assert data["debit"] == "1000.50"
        assert data["credit"] == "0.00"
        assert data["description"] == ""

    def test_optional_fields_default_correctly(self):
        result = AccountCreatedData(
            account_public_id="abc-123",
            code="1-1001",
            name="Kas",
            account_type="ASSET",
            category="current_asset",
            normal_balance="DEBIT",
        ).to_dict()

        assert result["description"] == ""
        assert result["is_active"] is True
        assert result["is_system"] is False

    def test_reversed_data_optional_actor(self):
        data = JournalEntryReversedData(
            original_entry_public_id="a",
            reversal_entry_public_id="b",
            reversed_at="2026-01-20T10:00:00+07:00",
        )

        assert data.reversed_by_id is None
        assert data.reversed_by_name == ""


# =============================================================================
# Event Payload Validation Tests
# =============================================================================

@pytest.mark.django_db
class TestEventPayloadValidation:

    def test_missing_field_rejected(self, actor):
        data = _account_data()
        del data["category"]

        with pytest.raises(InvalidEventPayload, match="category"):
            emit_event(
                actor=actor,
                event_type=EventTypes.ACCOUNT_CREATED,
                aggregate_type="Account",
                aggregate_id=data["account_public_id"],
                data=data,
                idempotency_key=f"missing:{uuid4()}",
            )

    def test_unexpected_field_rejected(self, actor):
        with pytest.raises(InvalidEventPayload, match="Unexpected fields"):
            _emit_account(actor, currency="IDR")

    def test_unknown_account_type_rejected(self, actor):
        with pytest.raises(InvalidEventPayload, match="account_type"):
            _emit_account(actor, account_type="OTHER")

    def test_negative_line_amount_rejected(self, actor):
        entry_id = str(uuid4())

        with pytest.raises(InvalidEventPayload, match="debit"):
            emit_event(
                actor=actor,
                event_type=EventTypes.JOURNAL_ENTRY_CREATED,
                aggregate_type="JournalEntry",
                aggregate_id=entry_id,
                data={
                    "entry_public_id": entry_id,
                    "entry_number": "JE-202601-0001",
                    "date": "2026-01-15",
                    "entry_type": "MANUAL",
                    "description": "Negatif",
                    "total_debit": "-10.00",
                    "total_credit": "-10.00",
                    "lines": [
                        JournalLineData(
                            line_no=1,
                            account_public_id=str(uuid4()),
                            account_code="1-1001",
                            account_name="Kas",
                            debit="-10.00",
                            credit="0.00",
                        ).to_dict(),
                    ],
                },
                idempotency_key=f"negative:{uuid4()}",
            )

    def test_bad_date_rejected(self, actor):
        entry_id = str(uuid4())

        with pytest.raises(InvalidEventPayload, match="ISO date"):
            emit_event(
                actor=actor,
                event_type=EventTypes.JOURNAL_ENTRY_DELETED,
                aggregate_type="JournalEntry",
                aggregate_id=entry_id,
                data={
                    "entry_public_id": entry_id,
                    "entry_number": "JE-202601-0001",
                    "date": "15/01/2026",
                    "status": "DRAFT",
                },
                idempotency_key=f"bad-date:{uuid4()}",
            )

    def test_unregistered_event_type(self, actor):
        with pytest.raises(ValueError, match="No schema registered"):
            emit_event(
                actor=actor,
                event_type="account.archived",
                aggregate_type="Account",
                aggregate_id=str(uuid4()),
                data={},
                idempotency_key=f"unknown:{uuid4()}",
            )

    def test_validation_can_be_disabled(self, actor, settings):
        settings.DISABLE_EVENT_VALIDATION = True

        event = _emit_account(actor, currency="IDR")

        assert event.data["currency"] == "IDR"

    def test_rejected_payload_writes_nothing(self, actor):
        with pytest.raises(InvalidEventPayload):
            _emit_account(actor, normal_balance="SIDEWAYS")

        assert BusinessEvent.objects.count() == 0


# =============================================================================
# Event Bookmark Tests
# =============================================================================

@pytest.mark.django_db
class TestEventBookmark:

    def test_get_unprocessed_events(self, actor, event_bookmark):
        events = [_emit_account(actor, code=f"1-10{i:02d}") for i in range(5)]

        event_bookmark.mark_processed(events[1])

        unprocessed = list(event_bookmark.get_unprocessed_events(
            event_types=[EventTypes.ACCOUNT_CREATED],
            limit=10,
        ))
        assert len(unprocessed) == 3
        assert unprocessed[0].id == events[2].id

    def test_bookmark_tracks_last_processed(self, account_created_event, event_bookmark):
        event_bookmark.mark_processed(account_created_event)
        event_bookmark.refresh_from_db()

        assert event_bookmark.last_event_id == account_created_event.id
        assert event_bookmark.last_processed_at is not None

    def test_bookmark_error_tracking(self, event_bookmark):
        event_bookmark.mark_error("Account missing")
        event_bookmark.refresh_from_db()

        assert event_bookmark.error_count == 1
        assert "Account missing" in event_bookmark.last_error

    def test_success_clears_error(self, account_created_event, event_bookmark):
        event_bookmark.mark_error("Account missing")

        event_bookmark.mark_processed(account_created_event)
        event_bookmark.refresh_from_db()

        assert event_bookmark.error_count == 0
        assert event_bookmark.last_error == ""


# =============================================================================
# Causation Chain Tests
# =============================================================================

@pytest.mark.django_db
class TestCausationChain:

    def test_caused_by_event_links(self, actor, account_created_event):
        public_id = account_created_event.aggregate_id

        derived = emit_event(
            actor=actor,
            event_type=EventTypes.ACCOUNT_DELETED,
            aggregate_type="Account",
            aggregate_id=public_id,
            data={"account_public_id": public_id, "code": "1-1001", "name": "Kas"},
            caused_by_event=account_created_event,
            idempotency_key=f"causation:{uuid4()}",
        )

        assert derived.caused_by_event_id == account_created_event.id
        assert derived.caused_by_user_id == actor.user_id
        assert list(account_created_event.child_events.all()) == [derived]
