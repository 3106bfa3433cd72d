"""
Tally Projector: a read-side view of one election, kept current from feed
events.

Every event is treated as the full, current state of one row and replaces
whatever the projector held for that id. Duplicate or out-of-order delivery
therefore never accumulates; the view always reflects the last row applied.
Nothing here writes to the database.
"""


def _sort_key(candidate):
    return (-int(candidate.get("vote_count") or 0), candidate.get("name") or "", str(candidate.get("id")))


class TallyProjector:

    def __init__(self, election_id):
        self.election_id = str(election_id)
        self.election = {}
        self.candidates = {}

    def load(self, snapshot):
        """Replaces the whole view with a get_election_tally() snapshot."""
        self.election = dict(snapshot.get("election") or {})
        self.candidates = {
            str(row["id"]): dict(row) for row in snapshot.get("candidates") or []
        }

    def apply(self, change):
        """
        Applies one feed change. Returns True when the view changed.
        """
        table = change.get("table")
        event = change.get("event")
        row = change.get("row") or {}

        if table == "candidates":
            if str(row.get("election_id")) != self.election_id:
                return False
            candidate_id = str(row.get("id"))
            if event == "delete":
                return self.candidates.pop(candidate_id, None) is not None
            if self.candidates.get(candidate_id) == row:
                return False
            self.candidates[candidate_id] = dict(row)
            return True

        if table == "elections":
            if str(row.get("id")) != self.election_id or event == "delete":
                return False
            # Only the aggregate fields; candidate rows are left untouched.
            before = (self.election.get("total_votes"), self.election.get("status"))
            self.election["total_votes"] = row.get("total_votes")
            self.election["status"] = row.get("status")
            return before != (row.get("total_votes"), row.get("status"))

        return False

    def sorted_candidates(self):
        return sorted(self.candidates.values(), key=_sort_key)

    def view(self):
        return {
            "election": dict(self.election),
            "candidates": self.sorted_candidates(),
        }
