# projections/management/commands/rebuild_projection.py
"""
Management command to rebuild projections from events.

Events are the source of truth; projections can always be rebuilt.

Usage:
    # Rebuild a specific projection
    python manage.py rebuild_projection --projection account_balance

    # Rebuild ALL projections, in registration order
    python manage.py rebuild_projection --all

    # Dry run - show what would happen without writing
    python manage.py rebuild_projection --projection account_balance --dry-run

    # Replay posted events against AccountBalance after the rebuild
    python manage.py rebuild_projection --projection account_balance --verify

    # List all available projections
    python manage.py rebuild_projection --list

    # Show status (lag, errors) of all projections
    python manage.py rebuild_projection --status
"""

import time
import logging

from django.core.management.base import BaseCommand, CommandError

from events.models import BusinessEvent
from projections.account_balance import AccountBalanceProjection
from projections.base import projection_registry

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Rebuild projections from events."""

    help = "Rebuild projections from the event store"

    def add_arguments(self, parser):
        parser.add_argument(
            "--projection",
            type=str,
            help="Name of the projection to rebuild",
        )
        parser.add_argument(
            "--all",
            action="store_true",
            dest="all_projections",
            help="Rebuild ALL projections",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would happen without making changes",
        )
        parser.add_argument(
            "--verify",
            action="store_true",
            help="Verify account balances against an event replay afterwards",
        )
        parser.add_argument(
            "--list",
            action="store_true",
            help="List all available projections",
        )
        parser.add_argument(
            "--status",
            action="store_true",
            help="Show projection status",
        )

    def handle(self, *args, **options):
        if options["list"]:
            return self._list_projections()

        if options["status"]:
            return self._show_status()

        projections = self._get_projections(options)
        self._show_plan(projections)

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("\n[DRY RUN] No changes made."))
            return

        self._rebuild_all(projections)

        if options["verify"]:
            self._verify_balances()

    def _get_projections(self, options):
        has_projection = options["projection"] is not None
        if not has_projection and not options["all_projections"]:
            raise CommandError("Must specify --projection <name> or --all")
        if has_projection and options["all_projections"]:
            raise CommandError("Cannot use --projection and --all together")

        if options["all_projections"]:
            return projection_registry.all()

        projection = projection_registry.get(options["projection"])
        if not projection:
            available = ", ".join(projection_registry.names())
            raise CommandError(f"Unknown projection: {options['projection']}\nAvailable: {available}")
        return [projection]

    def _list_projections(self):
        self.stdout.write("\nAvailable projections:\n")
        for projection in projection_registry.all():
            self.stdout.write(f"  {projection.name}")
            self.stdout.write(f"    Events: {', '.join(projection.consumes)}\n")
        self.stdout.write(f"\nTotal: {len(projection_registry.names())} projections")

    def _show_status(self):
        self.stdout.write("\nProjection status:\n")
        for projection in projection_registry.all():
            bookmark = projection.get_bookmark()
            lag = projection.get_lag()

            if bookmark and bookmark.error_count:
                status_str = self.style.ERROR(f"ERROR (lag: {lag})")
            elif bookmark and bookmark.is_paused:
                status_str = self.style.WARNING(f"PAUSED (lag: {lag})")
            elif lag > 0:
                status_str = self.style.WARNING(f"READY (lag: {lag})")
            else:
                status_str = self.style.SUCCESS("READY")

            self.stdout.write(f"  {projection.name}: {status_str}")
            if bookmark and bookmark.last_processed_at:
                self.stdout.write(f"    Last processed: {bookmark.last_processed_at}")
            if bookmark and bookmark.last_error:
                self.stdout.write(self.style.ERROR(f"    Error: {bookmark.last_error}"))

    def _show_plan(self, projections):
        self.stdout.write("\n" + "=" * 60)
        self.stdout.write("PROJECTION REBUILD PLAN")
        self.stdout.write("=" * 60)
        for projection in projections:
            count = BusinessEvent.objects.filter(event_type__in=projection.consumes).count()
            self.stdout.write(f"  - {projection.name}: {count:,} events")
        self.stdout.write("=" * 60)

    def _rebuild_all(self, projections):
        start_time = time.time()
        total_events = 0

        for projection in projections:
            self.stdout.write(f"\n  Projection: {projection.name}")
            started = time.time()
            processed = projection.rebuild()
            total_events += processed

            bookmark = projection.get_bookmark()
            if bookmark and bookmark.error_count:
                raise CommandError(
                    f"Rebuild of {projection.name} stopped on error: {bookmark.last_error}"
                )
            self.stdout.write(
                self.style.SUCCESS(
                    f"    {processed:,} events in {time.time() - started:.2f}s"
                )
            )
            logger.info(f"Rebuilt projection {projection.name}: {processed} events")

        elapsed = time.time() - start_time
        self.stdout.write("\n" + "=" * 60)
        self.stdout.write(self.style.SUCCESS("REBUILD COMPLETE"))
        self.stdout.write("=" * 60)
        self.stdout.write(f"Total events processed: {total_events:,}")
        self.stdout.write(f"Total time: {elapsed:.2f} seconds")

    def _verify_balances(self):
        self.stdout.write("\nVerifying account balances against event replay...")
        result = AccountBalanceProjection().verify_all_balances()

        if result["mismatches"]:
            for mismatch in result["mismatches"]:
                self.stdout.write(self.style.ERROR(
                    f"  {mismatch['account_code']}: projected "
                    f"{mismatch['projected_debit']}/{mismatch['projected_credit']}, "
                    f"expected {mismatch['expected_debit']}/{mismatch['expected_credit']}"
                ))
            raise CommandError(f"{len(result['mismatches'])} balance mismatches found.")

        self.stdout.write(self.style.SUCCESS(
            f"  {result['verified']} balances verified, {result['lines_replayed']} lines replayed."
        ))
