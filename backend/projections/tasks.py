"""
Celery tasks for async projection processing.

When PROJECTIONS_SYNC is off, commands enqueue process_projections on
commit so the API returns before the read models catch up.

Tasks:
- process_projections: Run every registered projection over pending events
- rebuild_projection: Rebuild a single projection from scratch
- verify_ledger_integrity: Replay posted events against AccountBalance
  and check that the trial balance closes

Usage:
    from projections.tasks import process_projections
    process_projections.delay()

    # Scheduled runs come from CELERY_BEAT_SCHEDULE in settings
"""
import logging
from typing import Optional

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def process_projections(
    self,
    projection_names: Optional[list] = None,
    limit: int = 1000,
) -> dict:
    """
    Process all pending projection events.

    Args:
        projection_names: Optional list of specific projections to process
        limit: Maximum events per projection

    Returns:
        Dict with processing results per projection
    """
    from projections.base import projection_registry

    if projection_names:
        projections = [
            projection_registry.get(name)
            for name in projection_names
            if projection_registry.get(name)
        ]
    else:
        projections = projection_registry.all()

    results = {}
    total_processed = 0

    for projection in projections:
        try:
            processed = projection.process_pending(limit=limit)
            results[projection.name] = {"processed": processed, "status": "success"}
            total_processed += processed
        except Exception as e:
            logger.exception(f"Error in projection {projection.name}: {e}")
            results[projection.name] = {"error": str(e), "status": "error"}

    if total_processed:
        logger.info(f"Completed projections: {total_processed} events processed")

    return {
        "total_processed": total_processed,
        "projections": results,
    }


@shared_task(
    bind=True,
    max_retries=1,
    time_limit=3600,  # 1 hour
)
def rebuild_projection(self, projection_name: str) -> dict:
    """
    Rebuild a projection from scratch.

    1. Resets the projection's bookmark
    2. Clears existing projected data
    3. Replays all relevant events
    """
    from projections.base import projection_registry

    projection = projection_registry.get(projection_name)
    if not projection:
        return {"error": f"Projection {projection_name} not found", "status": "error"}

    logger.info(f"Rebuilding projection {projection_name}")

    try:
        processed = projection.rebuild()
        logger.info(f"Rebuilt projection {projection_name}: {processed} events processed")
        return {
            "projection": projection_name,
            "events_processed": processed,
            "status": "success",
        }
    except Exception as e:
        logger.exception(f"Error rebuilding projection {projection_name}: {e}")
        return {
            "projection": projection_name,
            "error": str(e),
            "status": "error",
        }


@shared_task(bind=True)
def verify_ledger_integrity(self) -> dict:
    """
    Periodic ledger audit.

    Events are the source of truth: every AccountBalance must equal a
    replay of the posted events, and the trial balance must close.
    Findings are logged at ERROR; nothing is corrected automatically.
    """
    from projections.account_balance import AccountBalanceProjection
    from projections.trial_balance import generate_trial_balance

    verification = AccountBalanceProjection().verify_all_balances()
    trial_balance = generate_trial_balance()

    for mismatch in verification["mismatches"]:
        logger.error(
            f"AccountBalance mismatch for {mismatch['account_code']}: "
            f"projected {mismatch['projected_debit']}/{mismatch['projected_credit']}, "
            f"replayed {mismatch['expected_debit']}/{mismatch['expected_credit']}"
        )

    healthy = trial_balance["is_balanced"] and not verification["mismatches"]
    if healthy:
        logger.info(
            f"Ledger integrity verified: {verification['verified']} balances, "
            f"{verification['lines_replayed']} lines replayed"
        )

    return {
        "healthy": healthy,
        "trial_balance_balanced": trial_balance["is_balanced"],
        "trial_balance_difference": str(trial_balance["difference"]),
        "balances_verified": verification["verified"],
        "mismatches": verification["mismatches"],
    }
