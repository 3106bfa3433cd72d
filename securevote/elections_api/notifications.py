"""
Notification Scheduler.

run_notification_sweep() is evaluated on a fixed interval. For each active
election it works out which message classes are due, then consults the
notification log right before dispatching each one: a log entry of the same
type inside the cooldown window means the class was already handled by an
earlier (or concurrent) tick and is skipped.
"""
from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from .dispatch import SMS, BatchResult, NotificationDispatcher, Recipient, log_type_for
from .exceptions import NotEligible
from .models import Candidate, Election, NotificationLog, Vote, VoterProfile

logger = logging.getLogger(__name__)

VOTERS = "voters"
ADMINS = "admins"


@dataclass(frozen=True)
class MessageRule:
    notification_type: str
    # Fires while hours remaining is in the half-open window (min_hours, max_hours].
    min_hours: float
    max_hours: float
    cooldown_hours: float
    audience: str
    low_turnout_only: bool = False
    nominal_hours: int | None = None

    def is_due(self, *, hours_remaining: float, turnout: float) -> bool:
        if not (self.min_hours < hours_remaining <= self.max_hours):
            return False
        if self.low_turnout_only:
            return turnout < settings.NOTIFICATION_LOW_TURNOUT_THRESHOLD
        return True


@dataclass(frozen=True)
class SweepResult:
    election_id: object
    election_title: str
    notification_type: str
    sent: int
    failed: int
    turnout: float


def message_rules() -> list[MessageRule]:
    reminder_cooldown = settings.NOTIFICATION_REMINDER_COOLDOWN_HOURS
    return [
        MessageRule(
            notification_type=NotificationLog.Type.deadline_reminder_24h,
            min_hours=22,
            max_hours=24,
            cooldown_hours=reminder_cooldown,
            audience=VOTERS,
            nominal_hours=24,
        ),
        MessageRule(
            notification_type=NotificationLog.Type.deadline_reminder_2h,
            min_hours=0,
            max_hours=2,
            cooldown_hours=reminder_cooldown,
            audience=VOTERS,
            nominal_hours=2,
        ),
        MessageRule(
            notification_type=NotificationLog.Type.low_turnout_auto,
            min_hours=0,
            max_hours=settings.NOTIFICATION_LOW_TURNOUT_WINDOW_HOURS,
            cooldown_hours=settings.NOTIFICATION_TURNOUT_COOLDOWN_HOURS,
            audience=ADMINS,
            low_turnout_only=True,
        ),
    ]


def approved_voter_count() -> int:
    return VoterProfile.objects.filter(is_approved=True).count()


def compute_turnout(election: Election, approved_voters: int) -> float:
    """Share of approved voters that voted, 0.0 when nobody is approved."""
    if approved_voters <= 0:
        return 0.0
    return election.total_votes / approved_voters


def recently_sent(election: Election, notification_type: str, *, cooldown_hours: float, now) -> bool:
    """
    True when the log holds an entry of this type (email or SMS, sent or
    failed) for the election inside the cooldown window. Always hits the
    database.
    """
    since = now - datetime.timedelta(hours=cooldown_hours)
    return NotificationLog.objects.filter(
        election=election,
        notification_type__in=[notification_type, log_type_for(notification_type, SMS)],
        sent_at__gte=since,
    ).exists()


def _profile_recipients(profiles) -> list[Recipient]:
    recipients = []
    for profile in profiles:
        if profile.email:
            recipients.append(Recipient(address=profile.email, name=profile.name))
        if settings.NOTIFICATION_SMS_ENABLED and profile.phone:
            recipients.append(Recipient(address=profile.phone, name=profile.name, channel=SMS))
    return recipients


def voter_recipients(election: Election) -> list[Recipient]:
    """Approved voters that have not voted in this election yet."""
    voted = Vote.objects.filter(election=election).values("voter_id")
    profiles = (
        VoterProfile.objects.filter(is_approved=True)
        .exclude(user_id__in=voted)
        .order_by("pk")
    )
    return _profile_recipients(profiles)


def admin_recipients() -> list[Recipient]:
    recipients = []
    admins = get_user_model().objects.filter(is_staff=True, is_active=True).order_by("pk")
    for user in admins:
        profile = VoterProfile.objects.filter(user=user).first()
        name = profile.name if profile else (user.get_full_name() or user.get_username())
        if user.email:
            recipients.append(Recipient(address=user.email, name=name))
        if settings.NOTIFICATION_SMS_ENABLED and profile and profile.phone:
            recipients.append(Recipient(address=profile.phone, name=name, channel=SMS))
    return recipients


def _still_active(election: Election) -> bool:
    return Election.objects.filter(pk=election.pk, status=Election.Status.active).exists()


def run_notification_sweep(*, now=None, dispatcher=None) -> list[SweepResult]:
    """
    Evaluates every active election once and dispatches whatever is due and
    not inside its cooldown. Returns one SweepResult per dispatched batch.
    """
    now = now or timezone.now()
    approved = approved_voter_count()
    rules = message_rules()
    results = []

    elections = Election.objects.filter(status=Election.Status.active, end_date__gt=now).order_by("end_date")
    for election in elections:
        hours_remaining = election.hours_remaining(now)
        turnout = compute_turnout(election, approved)
        logger.debug(
            "Election %s ends in %.2f hours, turnout %.1f%%",
            election.pk, hours_remaining, turnout * 100,
        )

        for rule in rules:
            if not rule.is_due(hours_remaining=hours_remaining, turnout=turnout):
                continue

            # An election completed while we were working is left alone.
            if not _still_active(election):
                logger.info("Election %s is no longer active, skipping remaining notifications", election.pk)
                break

            if recently_sent(election, rule.notification_type, cooldown_hours=rule.cooldown_hours, now=now):
                logger.debug("%s already sent for election %s", rule.notification_type, election.pk)
                continue

            if rule.audience == ADMINS:
                recipients = admin_recipients()
            else:
                recipients = voter_recipients(election)

            context = {
                "election": election,
                "hours_remaining": rule.nominal_hours or math.floor(hours_remaining),
                "turnout_percent": turnout * 100,
                "approved_voters": approved,
            }
            dispatcher = dispatcher or NotificationDispatcher()
            batch = dispatcher.send_batch(recipients, rule.notification_type, context, now=now)
            results.append(SweepResult(
                election_id=election.pk,
                election_title=election.title,
                notification_type=str(rule.notification_type),
                sent=batch.sent,
                failed=batch.failed,
                turnout=turnout,
            ))

    logger.info("Notification sweep finished: %s batch(es) dispatched", len(results))
    return results


def send_results_notification(*, election, now=None, dispatcher=None, force=False) -> BatchResult:
    """
    Sends the final ranking to every approved voter. Only completed
    elections qualify; an election that already had its results sent is
    skipped unless 'force' is set.
    """
    election.refresh_from_db()
    if election.status != Election.Status.completed:
        raise NotEligible("Results can only be sent for completed elections.")

    if not force and NotificationLog.objects.filter(
        election=election,
        notification_type__in=[NotificationLog.Type.results, NotificationLog.Type.sms_results],
    ).exists():
        logger.info("Results for election %s were already sent", election.pk)
        return BatchResult()

    candidates = list(Candidate.objects.filter(election=election).order_by("-vote_count", "name"))
    total = sum(candidate.vote_count for candidate in candidates)
    results = [
        {
            "name": candidate.name,
            "party": candidate.party,
            "vote_count": candidate.vote_count,
            "percentage": (candidate.vote_count / total * 100) if total else 0.0,
        }
        for candidate in candidates
    ]

    profiles = VoterProfile.objects.filter(is_approved=True).order_by("pk")
    context = {
        "election": election,
        "results": results,
        "winner": results[0] if total else None,
    }
    dispatcher = dispatcher or NotificationDispatcher()
    return dispatcher.send_batch(_profile_recipients(profiles), NotificationLog.Type.results, context, now=now)


def send_approval_notification(*, profile, now=None, dispatcher=None):
    """
    Tells a voter their registration was approved or rejected, based on the
    profile's current is_approved. Returns the DispatchResult, or None when
    the profile has no email address.
    """
    if not profile.email:
        logger.info("Voter profile %s has no email address, skipping approval notice", profile.pk)
        return None

    message_class = NotificationLog.Type.voter_approved if profile.is_approved else NotificationLog.Type.voter_rejected
    dispatcher = dispatcher or NotificationDispatcher()
    return dispatcher.send(
        Recipient(address=profile.email, name=profile.name),
        message_class,
        {"election": None},
        now=now,
    )
