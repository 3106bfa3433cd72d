from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import DatabaseError
from django.template.loader import render_to_string
from django.utils import timezone

from .exceptions import ProviderDispatchFailed
from .models import NotificationLog
from .providers import get_provider

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"

# Both reminder windows share one set of templates.
_TEMPLATE_NAMES = {
    NotificationLog.Type.deadline_reminder_24h: "deadline_reminder",
    NotificationLog.Type.deadline_reminder_2h: "deadline_reminder",
    NotificationLog.Type.low_turnout_auto: "low_turnout",
    NotificationLog.Type.results: "results",
    NotificationLog.Type.voter_approved: "voter_approved",
    NotificationLog.Type.voter_rejected: "voter_rejected",
}


@dataclass(frozen=True)
class Recipient:
    address: str
    name: str = ""
    channel: str = EMAIL


@dataclass(frozen=True)
class DispatchResult:
    status: str
    error: str | None = None


@dataclass
class BatchResult:
    sent: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.sent + self.failed


def log_type_for(message_class: str, channel: str) -> str:
    return f"sms_{message_class}" if channel == SMS else str(message_class)


class NotificationDispatcher:
    """
    Sends rendered notifications through the configured providers and
    records exactly one NotificationLog row per recipient per attempt.
    """

    def __init__(self, email_provider=None, sms_provider=None):
        self.providers = {
            EMAIL: email_provider or get_provider(EMAIL),
            SMS: sms_provider or get_provider(SMS),
        }

    def render(self, message_class: str, context: dict, channel: str) -> tuple[str, str, str | None]:
        base = f"elections_api/notifications/{_TEMPLATE_NAMES[message_class]}"
        subject = " ".join(render_to_string(f"{base}_subject.txt", context).split())
        if channel == SMS:
            return subject, render_to_string(f"{base}_sms.txt", context).strip(), None
        body = render_to_string(f"{base}.txt", context).strip()
        html = render_to_string(f"{base}.html", context)
        return subject, body, html

    def send(self, recipient: Recipient, message_class: str, context: dict, *, now=None) -> DispatchResult:
        """
        'context' carries the Election under "election" (None for messages
        that are not about one election); the rest is handed to the templates.
        Whatever goes wrong with rendering or delivery is recorded against
        this recipient only.
        """
        now = now or timezone.now()
        election = context.get("election")
        context = {**context, "recipient_name": recipient.name}

        try:
            subject, body, html = self.render(message_class, context, recipient.channel)
            self.providers[recipient.channel].send(to=recipient.address, subject=subject, body=body, html=html)
        except ProviderDispatchFailed as exc:
            logger.warning("Failed to send %s to %s: %s", message_class, recipient.address, exc.error_text)
            result = DispatchResult(status=NotificationLog.Status.failed, error=exc.error_text)
        except Exception as exc:
            logger.exception("Unexpected error sending %s to %s", message_class, recipient.address)
            result = DispatchResult(status=NotificationLog.Status.failed, error=f"{type(exc).__name__}: {exc}")
        else:
            result = DispatchResult(status=NotificationLog.Status.sent)

        NotificationLog.objects.create(
            election=election,
            recipient=recipient.address,
            recipient_name=recipient.name,
            notification_type=log_type_for(message_class, recipient.channel),
            status=result.status,
            sent_at=now,
            error_message=result.error or "",
        )
        return result

    def send_batch(self, recipients, message_class: str, context: dict, *, now=None) -> BatchResult:
        """
        Sends to every recipient. A failed recipient is logged and skipped;
        it never stops the rest of the batch.
        """
        batch = BatchResult()
        for recipient in recipients:
            try:
                result = self.send(recipient, message_class, context, now=now)
            except DatabaseError:
                # The log row itself could not be written.
                logger.exception("Could not record %s for %s", message_class, recipient.address)
                batch.failed += 1
                continue
            if result.status == NotificationLog.Status.sent:
                batch.sent += 1
            else:
                batch.failed += 1
        election = context.get("election")
        logger.info(
            "Dispatched %s for election %s: %s sent, %s failed",
            message_class, election.pk if election else None, batch.sent, batch.failed,
        )
        return batch
