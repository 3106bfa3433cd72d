from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils import timezone

from elections_api.models import Election
from elections_api.services import advance_election_statuses


class Command(BaseCommand):
    help = "Open elections whose start has passed and complete elections whose end has passed."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without modifying elections.",
        )
        parser.add_argument(
            "--no-results",
            action="store_true",
            help="Do not send results notifications for completed elections.",
        )

    def handle(self, *args, **options) -> None:
        now = timezone.now()

        if options.get("dry_run"):
            to_open = Election.objects.filter(status=Election.Status.upcoming, start_date__lte=now).count()
            to_close = Election.objects.filter(status=Election.Status.active, end_date__lte=now).count()
            self.stdout.write(f"[dry-run] Would open {to_open} election(s) and complete {to_close} election(s).")
            return

        changed = advance_election_statuses(now=now, notify_results=not options.get("no_results"))
        self.stdout.write(
            f"Opened {len(changed['opened'])} election(s); completed {len(changed['completed'])} election(s)."
        )
