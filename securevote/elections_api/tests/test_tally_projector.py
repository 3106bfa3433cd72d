from __future__ import annotations

import itertools
import uuid

from django.test import SimpleTestCase

from elections_api.projector import TallyProjector


ELECTION_ID = str(uuid.uuid4())
ALICE = str(uuid.uuid4())
BOB = str(uuid.uuid4())


def candidate_row(candidate_id, name, vote_count, election_id=ELECTION_ID):
    return {"id": candidate_id, "election_id": election_id, "name": name, "party": "", "bio": "", "vote_count": vote_count}


def candidate_update(candidate_id, name, vote_count, **kwargs):
    return {"event": "update", "table": "candidates", "row": candidate_row(candidate_id, name, vote_count, **kwargs)}


def election_update(total_votes, status="active", election_id=ELECTION_ID, title="Student Council"):
    return {
        "event": "update",
        "table": "elections",
        "row": {"id": election_id, "title": title, "total_votes": total_votes, "status": status},
    }


class TallyProjectorTests(SimpleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.projector = TallyProjector(ELECTION_ID)
        self.projector.load({
            "election": {"id": ELECTION_ID, "title": "Student Council", "total_votes": 3, "status": "active"},
            "candidates": [
                candidate_row(ALICE, "Alice", 2),
                candidate_row(BOB, "Bob", 1),
            ],
        })

    def test_candidate_update_replaces_row_and_resorts(self) -> None:
        changed = self.projector.apply(candidate_update(BOB, "Bob", 5))

        self.assertTrue(changed)
        view = self.projector.view()
        self.assertEqual([c["name"] for c in view["candidates"]], ["Bob", "Alice"])
        self.assertEqual(view["candidates"][0]["vote_count"], 5)

    def test_election_update_only_touches_aggregates(self) -> None:
        self.projector.apply(election_update(7, status="completed", title="Renamed"))

        view = self.projector.view()
        self.assertEqual(view["election"]["total_votes"], 7)
        self.assertEqual(view["election"]["status"], "completed")
        self.assertEqual(view["election"]["title"], "Student Council")
        self.assertEqual([c["vote_count"] for c in view["candidates"]], [2, 1])

    def test_updates_in_any_order_converge_to_last_applied(self) -> None:
        counts = [3, 4, 5, 6]
        for order in itertools.permutations(counts):
            with self.subTest(order=order):
                projector = TallyProjector(ELECTION_ID)
                projector.load({"election": {"id": ELECTION_ID}, "candidates": [candidate_row(ALICE, "Alice", 0)]})
                for count in order:
                    projector.apply(candidate_update(ALICE, "Alice", count))

                rows = projector.view()["candidates"]
                self.assertEqual(len(rows), 1)
                self.assertEqual(rows[0]["vote_count"], order[-1])

    def test_duplicate_delivery_is_idempotent(self) -> None:
        event = candidate_update(ALICE, "Alice", 9)
        self.assertTrue(self.projector.apply(event))
        self.assertFalse(self.projector.apply(event))
        self.assertEqual(len(self.projector.view()["candidates"]), 2)
        self.assertEqual(self.projector.view()["candidates"][0]["vote_count"], 9)

    def test_insert_and_delete_events(self) -> None:
        carol = str(uuid.uuid4())
        self.projector.apply({"event": "insert", "table": "candidates", "row": candidate_row(carol, "Carol", 0)})
        self.assertEqual(len(self.projector.view()["candidates"]), 3)

        self.projector.apply({"event": "delete", "table": "candidates", "row": candidate_row(carol, "Carol", 0)})
        self.assertEqual([c["name"] for c in self.projector.view()["candidates"]], ["Alice", "Bob"])

    def test_events_for_other_elections_and_tables_are_ignored(self) -> None:
        other = str(uuid.uuid4())
        self.assertFalse(self.projector.apply(candidate_update(ALICE, "Alice", 50, election_id=other)))
        self.assertFalse(self.projector.apply(election_update(50, election_id=other)))
        self.assertFalse(self.projector.apply({"event": "insert", "table": "votes", "row": {"election_id": ELECTION_ID}}))

        view = self.projector.view()
        self.assertEqual(view["election"]["total_votes"], 3)
        self.assertEqual([c["vote_count"] for c in view["candidates"]], [2, 1])

    def test_ties_are_ordered_by_name(self) -> None:
        self.projector.apply(candidate_update(BOB, "Bob", 2))
        self.assertEqual([c["name"] for c in self.projector.view()["candidates"]], ["Alice", "Bob"])
