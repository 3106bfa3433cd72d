from __future__ import annotations

import datetime
from io import StringIO

from django.contrib.admin.sites import AdminSite
from django.core import mail
from django.core.exceptions import ValidationError
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from elections_api.admin import ElectionAdmin
from elections_api.exceptions import CandidateLocked, InvalidStatusTransition, NotEligible
from elections_api.models import Election, NotificationLog
from elections_api.notifications import send_results_notification
from elections_api.services import add_candidate, advance_election_statuses, cast_vote, remove_candidate
from elections_api.tests.helpers import make_candidate, make_election, make_voter


@override_settings(
    NOTIFICATION_SMS_PROVIDER="elections_api.providers.LocmemSmsProvider",
    NOTIFICATION_SMS_ENABLED=False,
)
class ElectionStatusTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.now = timezone.now()

    def test_elections_open_and_close_with_the_clock(self) -> None:
        upcoming = Election.objects.create(
            title="Upcoming",
            start_date=self.now + datetime.timedelta(hours=1),
            end_date=self.now + datetime.timedelta(days=1),
        )
        ending = make_election(ends_in=datetime.timedelta(hours=1), now=self.now, title="Ending")

        changed = advance_election_statuses(now=self.now + datetime.timedelta(hours=2))

        self.assertEqual([e.pk for e in changed["opened"]], [upcoming.pk])
        self.assertEqual([e.pk for e in changed["completed"]], [ending.pk])
        upcoming.refresh_from_db()
        ending.refresh_from_db()
        self.assertEqual(upcoming.status, Election.Status.active)
        self.assertEqual(ending.status, Election.Status.completed)

        # A second pass at the same time has nothing left to do.
        again = advance_election_statuses(now=self.now + datetime.timedelta(hours=2))
        self.assertEqual(again, {"opened": [], "completed": []})

    def test_completed_is_terminal(self) -> None:
        election = make_election(status=Election.Status.completed)

        with self.assertRaises(InvalidStatusTransition):
            election.transition_to(Election.Status.active)

        # Even with an end date in the future the sweep leaves it alone.
        election.end_date = self.now + datetime.timedelta(days=3)
        election.save()
        advance_election_statuses(now=self.now)
        election.refresh_from_db()
        self.assertEqual(election.status, Election.Status.completed)

    def test_completed_election_cannot_be_saved_back_to_active(self) -> None:
        election = make_election(status=Election.Status.completed)
        candidate = make_candidate(election, "Alice")

        # Assigning the field directly skips transition_to().
        election.status = Election.Status.active
        with self.assertRaises(ValidationError) as ctx:
            election.full_clean()
        self.assertIn("status", ctx.exception.message_dict)
        with self.assertRaises(InvalidStatusTransition):
            election.save()

        Election.objects.get(pk=election.pk).save()
        self.assertEqual(Election.objects.get(pk=election.pk).status, Election.Status.completed)
        with self.assertRaises(NotEligible):
            cast_vote(voter=make_voter("voter1"), election_id=election.pk, candidate_id=candidate.pk)

    def test_admin_locks_status_of_completed_elections(self) -> None:
        model_admin = ElectionAdmin(Election, AdminSite())
        completed = make_election(status=Election.Status.completed)
        active = make_election(title="Still open")

        self.assertIn("status", model_admin.get_readonly_fields(None, completed))
        self.assertNotIn("status", model_admin.get_readonly_fields(None, active))
        self.assertNotIn("status", model_admin.get_readonly_fields(None))

    def test_completion_sends_results_once(self) -> None:
        voters = [make_voter("voter1"), make_voter("voter2")]
        election = make_election(ends_in=datetime.timedelta(hours=1), now=self.now)
        make_candidate(election, "Alice")
        bob = make_candidate(election, "Bob", "Green")
        cast_vote(voter=voters[0], election_id=election.pk, candidate_id=bob.pk)

        advance_election_statuses(now=self.now + datetime.timedelta(hours=2))

        logs = NotificationLog.objects.filter(election=election, notification_type="results")
        self.assertEqual(logs.count(), len(voters))
        self.assertIn("Winner: Bob (Green) with 1 votes.", mail.outbox[0].body)

        batch = send_results_notification(election=election)
        self.assertEqual(batch.total, 0)
        self.assertEqual(logs.count(), len(voters))

        forced = send_results_notification(election=election, force=True)
        self.assertEqual(forced.sent, len(voters))

    def test_results_require_a_completed_election(self) -> None:
        election = make_election()
        with self.assertRaises(NotEligible):
            send_results_notification(election=election)
        self.assertFalse(NotificationLog.objects.exists())

    def test_candidates_are_locked_after_completion(self) -> None:
        election = make_election(status=Election.Status.completed)
        candidate = make_candidate(election, "Alice")

        with self.assertRaises(CandidateLocked):
            add_candidate(election=election, name="Late entry")
        with self.assertRaises(CandidateLocked):
            remove_candidate(candidate=candidate)

    def test_candidates_with_votes_cannot_be_removed(self) -> None:
        election = make_election()
        candidate = make_candidate(election, "Alice")
        cast_vote(voter=make_voter("voter1"), election_id=election.pk, candidate_id=candidate.pk)

        with self.assertRaises(CandidateLocked):
            remove_candidate(candidate=candidate)

        fresh = add_candidate(election=election, name="Bob")
        remove_candidate(candidate=fresh)
        self.assertEqual(list(election.candidates.values_list("name", flat=True)), ["Alice"])


@override_settings(
    NOTIFICATION_SMS_PROVIDER="elections_api.providers.LocmemSmsProvider",
    NOTIFICATION_SMS_ENABLED=False,
)
class ManagementCommandTests(TestCase):
    def test_advance_elections_dry_run_changes_nothing(self) -> None:
        election = make_election(ends_in=datetime.timedelta(hours=-1))
        out = StringIO()

        call_command("advance_elections", "--dry-run", stdout=out)

        self.assertIn("complete 1 election(s)", out.getvalue())
        election.refresh_from_db()
        self.assertEqual(election.status, Election.Status.active)

    def test_advance_elections_completes_overdue_elections(self) -> None:
        election = make_election(ends_in=datetime.timedelta(hours=-1))
        out = StringIO()

        call_command("advance_elections", "--no-results", stdout=out)

        election.refresh_from_db()
        self.assertEqual(election.status, Election.Status.completed)
        self.assertFalse(NotificationLog.objects.exists())

    def test_send_results_rejects_unknown_and_open_elections(self) -> None:
        with self.assertRaises(CommandError):
            call_command("send_results_notification", "not-a-uuid")

        election = make_election()
        with self.assertRaises(CommandError):
            call_command("send_results_notification", str(election.pk))

    def test_run_notification_sweep_reports_batches(self) -> None:
        make_voter("voter1")
        make_election(ends_in=datetime.timedelta(hours=23))
        out = StringIO()

        call_command("run_notification_sweep", stdout=out)

        self.assertIn("deadline_reminder_24h sent 1, failed 0", out.getvalue())
