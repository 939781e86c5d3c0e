# accounting/management/commands/seed_chart_of_accounts.py
"""
Seed the default chart of accounts.

Usage:
    python manage.py seed_chart_of_accounts
"""

from django.core.management.base import BaseCommand, CommandError

from accounting.seed import seed_chart_of_accounts


class Command(BaseCommand):
    help = "Create the default chart of accounts (existing codes are skipped)"

    def handle(self, *args, **options):
        report = seed_chart_of_accounts()

        for code, error in report["failed"].items():
            self.stdout.write(self.style.ERROR(f"  {code}: {error}"))
        if report["failed"]:
            raise CommandError(f"{len(report['failed'])} accounts could not be created.")

        self.stdout.write(self.style.SUCCESS(
            f"Done! Created {len(report['created'])}, skipped {len(report['skipped'])}."
        ))
