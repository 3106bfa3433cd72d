"""
Tally Change Feed.

Committed changes to elections, candidates and votes are announced on the
Channels layer, one group per election. Each message carries
{"event": insert|update|delete, "table": ..., "row": ...}; the row is the
plain-JSON output of a serializer so it survives any channel layer backend.

Delivery is live only. Subscribers fetch the current tally themselves when
they connect.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from .serializers import CandidateSerializer, ElectionSerializer, PublicVoteSerializer

logger = logging.getLogger(__name__)

# Must match TallyConsumer.tally_change
MESSAGE_TYPE = "tally.change"

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


def tally_group_name(election_id):
    return f"tally_{election_id}"


def build_change(event, table, row):
    return {"event": event, "table": table, "row": dict(row)}


def election_change(election, event=UPDATE):
    return build_change(event, "elections", ElectionSerializer(election).data)


def candidate_change(candidate, event=UPDATE):
    return build_change(event, "candidates", CandidateSerializer(candidate).data)


def vote_change(vote):
    return build_change(INSERT, "votes", PublicVoteSerializer(vote).data)


def publish(election_id, change):
    """
    Sends one change to every subscriber of the election. A broadcast
    failure is logged and never propagated: the write it describes has
    already committed.
    """
    group_name = tally_group_name(election_id)
    try:
        channel_layer = get_channel_layer()
        async_to_sync(channel_layer.group_send)(
            group_name,
            {
                "type": MESSAGE_TYPE,
                "change": change,
            }
        )
        logger.debug("Published %s %s to %s", change["event"], change["table"], group_name)
    except Exception:
        logger.exception("Could not publish %s change to %s", change["table"], group_name)


def publish_on_commit(election_id, change):
    """
    Queues 'change' until the surrounding transaction commits. Callbacks run
    in registration order, so changes to the same row go out in commit order.
    Outside a transaction the change is sent immediately.
    """
    transaction.on_commit(lambda: publish(election_id, change))
