from __future__ import annotations

from django.core.management.base import BaseCommand

from elections_api.notifications import run_notification_sweep


class Command(BaseCommand):
    help = "Send due deadline reminders and low-turnout alerts for active elections."

    def handle(self, *args, **options) -> None:
        results = run_notification_sweep()

        for result in results:
            self.stdout.write(
                f"{result.election_title}: {result.notification_type} "
                f"sent {result.sent}, failed {result.failed} (turnout {result.turnout * 100:.1f}%)"
            )
        self.stdout.write(self.style.SUCCESS(f"Dispatched {len(results)} batch(es)."))
