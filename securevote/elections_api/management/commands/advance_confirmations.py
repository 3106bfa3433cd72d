from __future__ import annotations

from django.core.management.base import BaseCommand

from elections_api.ledger import advance_confirmations, current_block_number


class Command(BaseCommand):
    help = "Bring transaction confirmations up to the current synthetic block height."

    def handle(self, *args, **options) -> None:
        updated = advance_confirmations()
        self.stdout.write(f"Block {current_block_number()}: updated {updated} transaction(s).")
