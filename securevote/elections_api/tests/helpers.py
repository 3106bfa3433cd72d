from __future__ import annotations

import datetime

from django.contrib.auth import get_user_model
from django.utils import timezone

from elections_api.models import Candidate, Election, VoterProfile


def make_election(*, status=Election.Status.active, ends_in=datetime.timedelta(days=1), now=None, title="Student Council"):
    now = now or timezone.now()
    return Election.objects.create(
        title=title,
        description="",
        start_date=now - datetime.timedelta(days=1),
        end_date=now + ends_in,
        status=status,
    )


def make_candidate(election, name, party=""):
    return Candidate.objects.create(election=election, name=name, party=party)


def make_voter(username, *, approved=True, phone="", is_staff=False):
    user = get_user_model().objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="not-a-real-password",
        is_staff=is_staff,
    )
    VoterProfile.objects.create(user=user, name=username.title(), phone=phone, is_approved=approved)
    return user
