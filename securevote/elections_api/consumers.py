import json
import logging
import uuid

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from .feed import tally_group_name
from .models import Election
from .projector import TallyProjector
from .services import get_election_tally

logger = logging.getLogger(__name__)


class TallyConsumer(AsyncWebsocketConsumer):
    """
    Live tally for one election.

    1. Subscribes to the election's feed group before reading anything,
       so no committed change can fall between snapshot and subscription.
    2. Sends the full current tally on connect.
    3. Folds every feed change into its projector and pushes the merged view.
    """

    @database_sync_to_async
    def get_initial_data(self):
        try:
            return get_election_tally(self.election_id)
        except Election.DoesNotExist:
            logger.warning("Tally consumer could not find election %s", self.election_id)
            return None

    async def connect(self):
        self.group_name = None
        try:
            # Feed groups are keyed by the canonical lowercase form.
            self.election_id = str(uuid.UUID(self.scope['url_route']['kwargs']['election_id']))
        except ValueError:
            await self.close()
            return
        self.group_name = tally_group_name(self.election_id)
        self.projector = TallyProjector(self.election_id)

        await self.channel_layer.group_add(
            self.group_name,
            self.channel_name
        )
        await self.accept()

        initial_data = await self.get_initial_data()
        if initial_data is None:
            await self.close()
            return

        self.projector.load(initial_data)
        await self.send(text_data=json.dumps(self.projector.view()))
        logger.debug("Sent initial tally to a subscriber of %s", self.group_name)

    async def disconnect(self, close_code):
        # Unsubscribing is the only side effect of a disconnect.
        if self.group_name is None:
            return
        await self.channel_layer.group_discard(
            self.group_name,
            self.channel_name
        )

    # Called for every group_send with "type": "tally.change".
    async def tally_change(self, event):
        if self.projector.apply(event["change"]):
            await self.send(text_data=json.dumps(self.projector.view()))
