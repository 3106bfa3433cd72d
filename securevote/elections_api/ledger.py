"""
Synthetic "blockchain" bookkeeping.

Hashes, block numbers and confirmations are audit identifiers and counters
only. Block height is derived from the clock so callers (and tests) control
it by passing 'now'.
"""
import datetime
import logging
import math
import secrets

from django.conf import settings
from django.db.models import F, Value
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .models import BlockchainTransaction

logger = logging.getLogger(__name__)


def new_tx_hash():
    """0x followed by 64 hex characters."""
    return "0x" + secrets.token_hex(32)


def new_voter_hash():
    """0x followed by 12 hex characters."""
    return "0x" + secrets.token_hex(6)


def genesis_at():
    value = settings.LEDGER_GENESIS_AT
    if isinstance(value, str):
        value = parse_datetime(value)
    if timezone.is_naive(value):
        value = timezone.make_aware(value, datetime.timezone.utc)
    return value


def current_block_number(now=None):
    now = now or timezone.now()
    elapsed = (now - genesis_at()).total_seconds()
    if elapsed <= 0:
        return settings.LEDGER_GENESIS_BLOCK
    return settings.LEDGER_GENESIS_BLOCK + math.floor(elapsed / settings.LEDGER_BLOCK_INTERVAL_SECONDS)


def record_transaction(*, tx_type, data, tx_hash=None, block_number=None, now=None):
    now = now or timezone.now()
    return BlockchainTransaction.objects.create(
        tx_hash=tx_hash or new_tx_hash(),
        block_number=block_number if block_number is not None else current_block_number(now),
        tx_type=tx_type,
        data=data,
        confirmations=settings.LEDGER_CONFIRMATION_SEED,
        created_at=now,
    )


def advance_confirmations(*, now=None):
    """
    Raises every transaction's confirmations to the number of blocks mined
    on top of it (its own block included). Rows that are already at or
    above that number are left alone, so confirmations never go down.
    Returns the number of rows touched.
    """
    head = current_block_number(now)
    depth = Value(head + 1) - F("block_number")
    updated = (
        BlockchainTransaction.objects
        .filter(block_number__lte=head, confirmations__lt=depth)
        .update(confirmations=depth)
    )
    if updated:
        logger.debug("Advanced confirmations on %s transaction(s) at block %s", updated, head)
    return updated


def verify_transaction(tx_hash):
    """
    Looks up the transaction record behind a receipt.
    Raises BlockchainTransaction.DoesNotExist for unknown hashes.
    """
    return BlockchainTransaction.objects.get(tx_hash=tx_hash)
