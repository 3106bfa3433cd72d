from __future__ import annotations

import json
from unittest.mock import patch

from asgiref.sync import async_to_sync, sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import TestCase, TransactionTestCase

from elections_api import feed
from elections_api.routing import websocket_urlpatterns
from elections_api.services import cast_vote, get_election_tally, remove_candidate
from elections_api.tests.helpers import make_candidate, make_election, make_voter


class TallyFeedTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election()
        self.alice = make_candidate(self.election, "Alice")

    def test_publish_reaches_group_subscribers(self) -> None:
        change = feed.candidate_change(self.alice)

        async def roundtrip():
            layer = get_channel_layer()
            channel = await layer.new_channel()
            await layer.group_add(feed.tally_group_name(self.election.pk), channel)
            await sync_to_async(feed.publish)(self.election.pk, change)
            return await layer.receive(channel)

        message = async_to_sync(roundtrip)()

        self.assertEqual(message["type"], feed.MESSAGE_TYPE)
        self.assertEqual(message["change"]["table"], "candidates")
        self.assertEqual(message["change"]["row"]["id"], str(self.alice.pk))
        # The payload must be plain JSON for every channel layer backend.
        json.dumps(message["change"])

    def test_publish_failure_does_not_propagate(self) -> None:
        with patch("elections_api.feed.get_channel_layer", side_effect=RuntimeError("redis down")):
            with self.assertLogs("elections_api.feed", level="ERROR"):
                feed.publish(self.election.pk, feed.election_change(self.election))

    def test_admin_edits_are_announced(self) -> None:
        with patch("elections_api.feed.publish") as publish:
            with self.captureOnCommitCallbacks(execute=True):
                carol = make_candidate(self.election, "Carol")
            with self.captureOnCommitCallbacks(execute=True):
                remove_candidate(candidate=carol)
            with self.captureOnCommitCallbacks(execute=True):
                self.election.description = "Updated"
                self.election.save()

        events = [(c.args[1]["table"], c.args[1]["event"]) for c in publish.call_args_list]
        self.assertEqual(events, [
            ("candidates", "insert"),
            ("candidates", "delete"),
            ("elections", "update"),
        ])

    def test_tally_snapshot_is_sorted_by_votes(self) -> None:
        bob = make_candidate(self.election, "Bob")
        cast_vote(voter=make_voter("v1"), election_id=self.election.pk, candidate_id=bob.pk)

        tally = get_election_tally(self.election.pk)

        self.assertEqual(tally["election"]["total_votes"], 1)
        self.assertEqual([c["name"] for c in tally["candidates"]], ["Bob", "Alice"])


class TallyConsumerTests(TransactionTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election()
        self.alice = make_candidate(self.election, "Alice")
        self.bob = make_candidate(self.election, "Bob")
        self.voter = make_voter("voter1")

    async def test_sends_snapshot_then_live_updates(self) -> None:
        communicator = WebsocketCommunicator(
            URLRouter(websocket_urlpatterns), f"/ws/tally/{self.election.pk}/"
        )
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        initial = json.loads(await communicator.receive_from())
        self.assertEqual(initial["election"]["total_votes"], 0)
        self.assertEqual(len(initial["candidates"]), 2)

        await sync_to_async(cast_vote)(
            voter=self.voter, election_id=self.election.pk, candidate_id=self.bob.pk
        )

        # One push per change that moves the view: candidate row, then totals.
        after_candidate = json.loads(await communicator.receive_from())
        self.assertEqual(after_candidate["candidates"][0]["name"], "Bob")
        self.assertEqual(after_candidate["candidates"][0]["vote_count"], 1)

        after_election = json.loads(await communicator.receive_from())
        self.assertEqual(after_election["election"]["total_votes"], 1)

        await communicator.disconnect()

    async def test_unknown_election_closes_connection(self) -> None:
        communicator = WebsocketCommunicator(
            URLRouter(websocket_urlpatterns), "/ws/tally/00000000-0000-0000-0000-000000000000/"
        )
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        output = await communicator.receive_output()
        self.assertEqual(output["type"], "websocket.close")

    async def test_uppercase_election_id_still_receives_updates(self) -> None:
        communicator = WebsocketCommunicator(
            URLRouter(websocket_urlpatterns), f"/ws/tally/{str(self.election.pk).upper()}/"
        )
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        initial = json.loads(await communicator.receive_from())
        self.assertEqual(initial["election"]["id"], str(self.election.pk))

        await sync_to_async(cast_vote)(
            voter=self.voter, election_id=self.election.pk, candidate_id=self.alice.pk
        )

        after_candidate = json.loads(await communicator.receive_from())
        self.assertEqual(after_candidate["candidates"][0]["name"], "Alice")
        self.assertEqual(after_candidate["candidates"][0]["vote_count"], 1)

        await communicator.disconnect()

    async def test_malformed_election_id_is_refused(self) -> None:
        communicator = WebsocketCommunicator(URLRouter(websocket_urlpatterns), f"/ws/tally/{'-' * 36}/")
        connected, _ = await communicator.connect()
        self.assertFalse(connected)
