# events/emitter.py
"""
Event emission functions.

This module provides the primary interface for emitting business events.
All events MUST be emitted through these functions to ensure:
1. Payload validation against canonical schemas (events/types.py)
2. Idempotency handling
3. Proper sequencing
4. Audit trail (caused_by_user, metadata)

IMPORTANT: Events are validated at emission time.
==============================================
If you get an InvalidEventPayload error, it means the data dict
does not match the schema defined in events/types.py. Fix the
data being passed, don't disable validation.
"""

from __future__ import annotations

import logging
from typing import Optional, Any, Dict, Union
from datetime import datetime

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.conf import settings

from events.models import BusinessEvent
from events.types import validate_event_payload, BaseEventData


logger = logging.getLogger(__name__)


def _emit_event_core(
    *,
    user,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    occurred_at: Optional[datetime],
    idempotency_key: str,
    metadata: Optional[Dict[str, Any]],
    caused_by_event: Optional[BusinessEvent],
    origin: str,
) -> BusinessEvent:
    """
    Core event emission logic.

    Validates the event payload, handles idempotency, and persists
    the event to the database.

    Returns:
        The created (or existing, if idempotent) BusinessEvent

    Raises:
        InvalidEventPayload: If data doesn't match the schema
        ValueError: If idempotency_key is missing
    """
    if not idempotency_key or not str(idempotency_key).strip():
        raise ValueError("idempotency_key is required")

    if isinstance(data, BaseEventData):
        data = data.to_dict()

    # Validate payload against the schema (unless explicitly disabled for testing)
    if not getattr(settings, "DISABLE_EVENT_VALIDATION", False):
        validate_event_payload(event_type, data)

    if occurred_at is None:
        occurred_at = timezone.now()

    # Quick idempotency check (common case)
    existing = BusinessEvent.objects.filter(idempotency_key=idempotency_key).first()
    if existing:
        logger.debug("Idempotent replay of %s (%s)", event_type, idempotency_key)
        return existing

    # Retry on:
    # - aggregate sequence collision (uniq_event_aggregate_sequence)
    # - idempotency collision, in which case we return the existing row
    for attempt in range(3):
        try:
            with transaction.atomic():
                return BusinessEvent.objects.create(
                    event_type=event_type,
                    aggregate_type=aggregate_type,
                    aggregate_id=str(aggregate_id),
                    data=data,
                    metadata=metadata or {},
                    caused_by_user=user,
                    caused_by_event=caused_by_event,
                    occurred_at=occurred_at,
                    idempotency_key=idempotency_key,
                    origin=origin,
                )
        except IntegrityError:
            existing = BusinessEvent.objects.filter(idempotency_key=idempotency_key).first()
            if existing:
                return existing

            if attempt == 2:
                raise

    raise RuntimeError("Failed to emit event after retries")


def emit_event(
    *,
    actor,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    idempotency_key: str,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
    caused_by_event: Optional[BusinessEvent] = None,
) -> BusinessEvent:
    """
    Emit a business event with payload validation.

    The data parameter MUST conform to the schema defined in events/types.py.
    It can be a dict or a BaseEventData instance (converted via .to_dict()).

    Example:
        emit_event(
            actor=actor,
            event_type=EventTypes.ACCOUNT_CREATED,
            aggregate_type="Account",
            aggregate_id=account_public_id,
            data=AccountCreatedData(
                account_public_id=str(account_public_id),
                code="1-1001",
                name="Kas",
                account_type="ASSET",
                category="current_asset",
                normal_balance="DEBIT",
            ),
            idempotency_key=f"account.created:{account_public_id}",
        )

    Raises:
        InvalidEventPayload: If data doesn't match the event type schema
    """
    origin = (
        BusinessEvent.EventOrigin.SYSTEM
        if getattr(actor, "is_system", False)
        else BusinessEvent.EventOrigin.HUMAN
    )
    return _emit_event_core(
        user=actor.user,
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        data=data,
        occurred_at=occurred_at,
        idempotency_key=idempotency_key,
        metadata=metadata,
        caused_by_event=caused_by_event,
        origin=origin,
    )


def get_aggregate_events(aggregate_type: str, aggregate_id: Any) -> list[BusinessEvent]:
    """
    Aggregate stream ordering.

    Use per-aggregate sequence so rebuilds are deterministic within the
    aggregate, independent of other aggregates' interleaving.
    """
    return list(
        BusinessEvent.objects.filter(
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
        ).order_by("sequence")
    )
