"""
Django email backend that delivers through the Resend HTTP API.

    EMAIL_BACKEND = 'elections_api.mail.ResendEmailBackend'
"""
import logging

from django.conf import settings
from django.core.mail.backends.base import BaseEmailBackend

from .exceptions import ProviderDispatchFailed
from .providers import post_json

logger = logging.getLogger(__name__)


class ResendEmailBackend(BaseEmailBackend):
    url = "https://api.resend.com/emails"

    def __init__(self, api_key=None, timeout=None, fail_silently=False, **kwargs):
        super().__init__(fail_silently=fail_silently, **kwargs)
        self.api_key = api_key or settings.RESEND_API_KEY
        self.timeout = timeout or settings.NOTIFICATION_PROVIDER_TIMEOUT_SECONDS

    def send_messages(self, email_messages):
        sent = 0
        for message in email_messages:
            try:
                self._send(message)
            except ProviderDispatchFailed as exc:
                if not self.fail_silently:
                    raise
                logger.warning("Resend rejected message to %s: %s", message.to, exc.error_text)
            else:
                sent += 1
        return sent

    def _send(self, message):
        if not self.api_key:
            raise ProviderDispatchFailed("RESEND_API_KEY is not configured")
        payload = {
            "from": message.from_email,
            "to": list(message.to),
            "subject": message.subject,
            "text": message.body,
        }
        for content, mimetype in getattr(message, "alternatives", []):
            if mimetype == "text/html":
                payload["html"] = content
        post_json(self.url, api_key=self.api_key, payload=payload, timeout=self.timeout)
