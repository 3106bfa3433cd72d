from __future__ import annotations

import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from . import feed, ledger
from .exceptions import CandidateLocked, CandidateMismatch, DuplicateVote, NotEligible, StorageUnavailable
from .models import BlockchainTransaction, Candidate, Election, Vote, VoterProfile
from .serializers import CandidateSerializer, ElectionSerializer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteReceipt:
    tx_hash: str
    block_number: int


def _get_election(election_id) -> Election:
    try:
        return Election.objects.get(pk=election_id)
    except (Election.DoesNotExist, ValidationError) as exc:
        raise NotEligible("This election does not exist.") from exc


def _check_eligibility(*, voter, election_id, candidate_id) -> tuple[Election, Candidate, VoterProfile]:
    election = _get_election(election_id)
    if election.status != Election.Status.active:
        raise NotEligible(f"Election '{election.title}' is not open for voting.")

    profile = VoterProfile.objects.filter(user=voter).first()
    if profile is None or not profile.is_approved:
        raise NotEligible("Your voter registration has not been approved.")

    try:
        candidate = Candidate.objects.filter(pk=candidate_id, election=election).first()
    except ValidationError as exc:
        raise CandidateMismatch() from exc
    if candidate is None:
        raise CandidateMismatch()

    # Fail fast. The unique constraint below is what actually guarantees it.
    if Vote.objects.filter(election=election, voter=voter).exists():
        raise DuplicateVote()

    return election, candidate, profile


def cast_vote(*, voter, election_id, candidate_id, now=None) -> VoteReceipt:
    """
    Records one vote for 'voter' and returns its receipt.

    Everything after the eligibility checks happens in a single transaction:
    the Vote insert (guarded by the (election, voter) unique constraint), the
    vote transaction record, and the counter increments, which are computed
    by the database so concurrent casts cannot lose updates.

    Raises NotEligible, CandidateMismatch or DuplicateVote for requests that
    must not be retried, and StorageUnavailable when the database fails.
    """
    now = now or timezone.now()

    try:
        election, candidate, profile = _check_eligibility(
            voter=voter, election_id=election_id, candidate_id=candidate_id
        )
    except DatabaseError as exc:
        logger.warning("Storage error while checking eligibility: %s", exc)
        raise StorageUnavailable() from exc

    tx_hash = ledger.new_tx_hash()
    block_number = ledger.current_block_number(now)

    try:
        with transaction.atomic():
            vote = Vote.objects.create(
                election=election,
                candidate=candidate,
                voter=voter,
                voter_hash=ledger.new_voter_hash(),
                tx_hash=tx_hash,
                block_number=block_number,
                status=Vote.Status.confirmed,
                created_at=now,
            )
            ledger.record_transaction(
                tx_type=BlockchainTransaction.TxType.vote,
                data={"election_id": str(election.pk), "candidate_id": str(candidate.pk)},
                tx_hash=tx_hash,
                block_number=block_number,
                now=now,
            )

            # The status check is repeated here, under the row lock the UPDATE
            # takes. An election completed since the eligibility check rolls
            # the whole vote back.
            opened = Election.objects.filter(pk=election.pk, status=Election.Status.active).update(
                total_votes=F("total_votes") + 1, updated_at=now
            )
            if not opened:
                raise NotEligible(f"Election '{election.title}' is not open for voting.")
            Candidate.objects.filter(pk=candidate.pk).update(
                vote_count=F("vote_count") + 1, updated_at=now
            )
            VoterProfile.objects.filter(pk=profile.pk).update(has_voted=True)

            # Read back inside the transaction: the rows are ours until commit,
            # so the published values line up with commit order.
            candidate = Candidate.objects.get(pk=candidate.pk)
            election = Election.objects.get(pk=election.pk)
            feed.publish_on_commit(election.pk, feed.vote_change(vote))
            feed.publish_on_commit(election.pk, feed.candidate_change(candidate))
            feed.publish_on_commit(election.pk, feed.election_change(election))
    except IntegrityError as exc:
        try:
            already_voted = Vote.objects.filter(election=election, voter=voter).exists()
        except DatabaseError:
            already_voted = False
        if already_voted:
            logger.info("Rejected duplicate vote by user %s in election %s", voter.pk, election.pk)
            raise DuplicateVote() from exc
        logger.warning("Integrity error while casting vote: %s", exc)
        raise StorageUnavailable() from exc
    except DatabaseError as exc:
        logger.warning("Storage error while casting vote: %s", exc)
        raise StorageUnavailable() from exc

    logger.info("Vote %s recorded in block %s for election %s", tx_hash, block_number, election.pk)
    return VoteReceipt(tx_hash=tx_hash, block_number=block_number)


def get_election_tally(election_id) -> dict:
    """
    Current tally for one election: the election row plus its candidates,
    highest vote count first. This is the snapshot a new subscriber loads
    before applying feed events.

    Raises Election.DoesNotExist for unknown ids.
    """
    election = Election.objects.get(pk=election_id)
    candidates = Candidate.objects.filter(election=election).order_by("-vote_count", "name", "id")
    return {
        "election": dict(ElectionSerializer(election).data),
        "candidates": [dict(row) for row in CandidateSerializer(candidates, many=True).data],
    }


def add_candidate(*, election, name, party="", bio="") -> Candidate:
    if election.status == Election.Status.completed:
        raise CandidateLocked()
    return Candidate.objects.create(election=election, name=name, party=party, bio=bio)


def remove_candidate(*, candidate) -> None:
    if candidate.election.status == Election.Status.completed:
        raise CandidateLocked()
    if candidate.votes.exists():
        raise CandidateLocked("Candidates that already received votes cannot be removed.")
    candidate.delete()


def _transition(election_pk, new_status, *, now) -> Election | None:
    with transaction.atomic():
        locked = Election.objects.select_for_update().get(pk=election_pk)
        if new_status == Election.Status.active and locked.status != Election.Status.upcoming:
            return None
        if new_status == Election.Status.completed and locked.status != Election.Status.active:
            return None
        locked.transition_to(new_status)
        locked.updated_at = now
        locked.save(update_fields=["status", "updated_at"])
    return locked


def advance_election_statuses(*, now=None, notify_results=True) -> dict[str, list]:
    """
    Opens upcoming elections whose start has passed and completes active
    elections whose end has passed. Completed elections never move again.
    """
    now = now or timezone.now()

    opened = []
    for pk in Election.objects.filter(status=Election.Status.upcoming, start_date__lte=now).values_list("pk", flat=True):
        election = _transition(pk, Election.Status.active, now=now)
        if election is not None:
            logger.info("Election %s is now active", election.pk)
            opened.append(election)

    # Requery so elections opened above with an end in the past close too.
    completed = []
    for pk in Election.objects.filter(status=Election.Status.active, end_date__lte=now).values_list("pk", flat=True):
        election = _transition(pk, Election.Status.completed, now=now)
        if election is not None:
            logger.info("Election %s is now completed", election.pk)
            completed.append(election)

    if notify_results and completed:
        from .notifications import send_results_notification

        for election in completed:
            send_results_notification(election=election, now=now)

    return {"opened": opened, "completed": completed}


def set_voter_approval(*, profile, approved) -> VoterProfile:
    """
    Approves or rejects a voter registration and emails the voter once the
    change has committed. Rejecting a pending voter still sends the notice.
    """
    from .notifications import send_approval_notification

    VoterProfile.objects.filter(pk=profile.pk).update(is_approved=approved)
    profile.is_approved = approved
    logger.info("Voter profile %s %s", profile.pk, "approved" if approved else "rejected")
    transaction.on_commit(lambda: send_approval_notification(profile=profile))
    return profile
