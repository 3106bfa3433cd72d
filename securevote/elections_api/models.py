import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .exceptions import InvalidStatusTransition


class CounterProtectedModel(models.Model):
    """
    Counter columns are only ever moved by atomic UPDATEs in cast_vote.
    A plain save() of an existing row writes every other column and leaves
    the counters alone, so a stale instance cannot put an old count back.
    """
    counter_fields = ()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding and not kwargs.get("force_insert") and kwargs.get("update_fields") is None:
            kwargs["update_fields"] = [
                field.name for field in self._meta.concrete_fields
                if not field.primary_key and field.name not in self.counter_fields
            ]
        super().save(*args, **kwargs)


# --- Model 1: The Election ---

class Election(CounterProtectedModel):
    """
    Stores the high-level details for a single election.
    e.g., "2025 Student Council"
    """

    class Status(models.TextChoices):
        upcoming = "upcoming", "Upcoming"
        active = "active", "Active"
        completed = "completed", "Completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(max_length=16, choices=Status.choices,
                              default=Status.upcoming, db_index=True)

    # Denormalized counter. Only ever moved by an atomic UPDATE in cast_vote,
    # and always together with the matching Candidate.vote_count.
    total_votes = models.PositiveIntegerField(default=0)
    counter_fields = ("total_votes",)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "elections"
        ordering = ["-start_date"]

    def __str__(self):
        return self.title

    def clean(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({"end_date": "End date must be after the start date."})
        if self._reopens_completed():
            raise ValidationError({"status": InvalidStatusTransition.default_message})

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        if (update_fields is None or "status" in update_fields) and self._reopens_completed():
            raise InvalidStatusTransition()
        super().save(*args, **kwargs)

    def _reopens_completed(self):
        if self._state.adding or self.status == self.Status.completed:
            return False
        stored = Election.objects.filter(pk=self.pk).values_list("status", flat=True).first()
        return stored == self.Status.completed

    def transition_to(self, new_status):
        """
        Moves the election to 'new_status'. Completed is terminal.
        The caller is responsible for saving.
        """
        if self.status == self.Status.completed and new_status != self.Status.completed:
            raise InvalidStatusTransition()
        self.status = new_status

    def hours_remaining(self, now=None):
        now = now or timezone.now()
        return (self.end_date - now).total_seconds() / 3600


# --- Model 2: The Candidates ---

class Candidate(CounterProtectedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    election = models.ForeignKey(Election, on_delete=models.CASCADE,
                                 related_name="candidates")
    name = models.CharField(max_length=255)
    party = models.CharField(max_length=255, blank=True, default="")
    bio = models.TextField(blank=True, default="")

    # Monotonically non-decreasing once the election is active.
    vote_count = models.PositiveIntegerField(default=0)

    counter_fields = ("vote_count",)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "candidates"
        ordering = ["-vote_count", "name"]

    def __str__(self):
        return f"{self.name} ({self.party})" if self.party else self.name

    def clean(self):
        if self.election_id and self.election.status == Election.Status.completed:
            raise ValidationError("Candidates cannot be changed once the election is completed.")


# --- Model 3: The Voter List ---

class VoterProfile(models.Model):
    """
    Voter-facing profile for a user account.

    'has_voted' means "voted in at least one election". Whether a voter may
    vote in a given election is decided by the Vote uniqueness constraint,
    never by this flag.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
                                related_name="voter_profile")
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="",
                             help_text="Optional, used for SMS notifications.")
    is_approved = models.BooleanField(default=False, db_index=True)
    has_voted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "profiles"

    def __str__(self):
        return f"{self.name} (approved: {self.is_approved})"

    def save(self, *args, **kwargs):
        if not self.email and self.user_id:
            self.email = self.user.email or ""
        super().save(*args, **kwargs)


# --- Model 4: The Votes ---

class Vote(models.Model):
    """
    One ballot. Created exactly once per voter per election and never
    updated or deleted afterwards.
    """

    class Status(models.TextChoices):
        pending = "pending", "Pending"
        confirmed = "confirmed", "Confirmed"
        rejected = "rejected", "Rejected"

    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="votes")
    candidate = models.ForeignKey(Candidate, on_delete=models.PROTECT, related_name="votes")
    voter = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                              related_name="votes")

    # Opaque correlation ids, not cryptographic commitments.
    voter_hash = models.CharField(max_length=14)
    tx_hash = models.CharField(max_length=66, unique=True)
    block_number = models.PositiveBigIntegerField()

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.confirmed)
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        db_table = "votes"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["election", "voter"],
                name="uniq_vote_per_voter_election",
            ),
        ]

    def __str__(self):
        return f"Vote {self.tx_hash[:10]}... for {self.election_id}"


# --- Model 5: The Ledger ---

class BlockchainTransaction(models.Model):
    """
    Audit record minted alongside a vote or an administrative event.
    The hash and block number are synthetic; confirmations only grow.
    """

    class TxType(models.TextChoices):
        vote = "vote", "Vote"
        election_created = "election_created", "Election created"
        candidate_added = "candidate_added", "Candidate added"

    tx_hash = models.CharField(max_length=66, unique=True)
    block_number = models.PositiveBigIntegerField(db_index=True)
    tx_type = models.CharField(max_length=32, choices=TxType.choices)
    data = models.JSONField(default=dict, blank=True)
    confirmations = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        db_table = "blockchain_transactions"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.tx_type} {self.tx_hash[:10]}... (block {self.block_number})"


# --- Model 6: The Notification Log ---

class NotificationLog(models.Model):
    """
    Append-only record of every notification attempt. The scheduler also
    reads it to decide whether a reminder was already sent recently.
    """

    class Type(models.TextChoices):
        deadline_reminder_24h = "deadline_reminder_24h", "24h deadline reminder"
        deadline_reminder_2h = "deadline_reminder_2h", "2h deadline reminder"
        low_turnout_auto = "low_turnout_auto", "Low turnout alert"
        results = "results", "Results"
        sms_deadline_reminder_24h = "sms_deadline_reminder_24h", "24h deadline reminder (SMS)"
        sms_deadline_reminder_2h = "sms_deadline_reminder_2h", "2h deadline reminder (SMS)"
        sms_low_turnout_auto = "sms_low_turnout_auto", "Low turnout alert (SMS)"
        sms_results = "sms_results", "Results (SMS)"
        voter_approved = "voter_approved", "Registration approved"
        voter_rejected = "voter_rejected", "Registration rejected"

    class Status(models.TextChoices):
        sent = "sent", "Sent"
        failed = "failed", "Failed"

    # Empty for messages about a voter rather than an election.
    election = models.ForeignKey(Election, on_delete=models.CASCADE, null=True, blank=True,
                                 related_name="notification_logs")

    # Email address or phone number.
    recipient = models.CharField(max_length=255)
    recipient_name = models.CharField(max_length=255, blank=True, default="")
    notification_type = models.CharField(max_length=32, choices=Type.choices)
    status = models.CharField(max_length=16, choices=Status.choices)
    sent_at = models.DateTimeField(default=timezone.now, editable=False)
    error_message = models.TextField(blank=True, default="")

    class Meta:
        db_table = "notification_logs"
        ordering = ["-sent_at"]
        indexes = [
            models.Index(fields=["election", "notification_type", "sent_at"],
                         name="notif_dedup_idx"),
        ]

    def __str__(self):
        return f"{self.notification_type} -> {self.recipient} ({self.status})"
