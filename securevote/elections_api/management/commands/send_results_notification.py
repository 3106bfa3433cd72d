from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from elections_api.exceptions import NotEligible
from elections_api.models import Election
from elections_api.notifications import send_results_notification


class Command(BaseCommand):
    help = "Email the final results of a completed election to all approved voters."

    def add_arguments(self, parser) -> None:
        parser.add_argument("election_id", help="UUID of a completed election.")
        parser.add_argument(
            "--force",
            action="store_true",
            help="Send even if results were already sent for this election.",
        )

    def handle(self, *args, **options) -> None:
        try:
            election = Election.objects.get(pk=options["election_id"])
        except (Election.DoesNotExist, ValidationError) as exc:
            raise CommandError(f"Election {options['election_id']} does not exist.") from exc

        try:
            batch = send_results_notification(election=election, force=bool(options.get("force")))
        except NotEligible as exc:
            raise CommandError(exc.message) from exc

        self.stdout.write(f"Sent {batch.sent} result notification(s); failed {batch.failed}.")
