"""
Outbound email/SMS providers.

A provider has one job: deliver a single message or raise
ProviderDispatchFailed with whatever the provider said. Logging the
outcome is the dispatcher's business.

Email is handed to Django's mail framework, so the transport is whatever
EMAIL_BACKEND names (Resend in production, locmem under the test runner).
SMS has no Django equivalent and is picked by NOTIFICATION_SMS_PROVIDER.
"""
import logging

import requests
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.module_loading import import_string

from .exceptions import ProviderDispatchFailed

logger = logging.getLogger(__name__)


def post_json(url, *, api_key, payload, timeout=None):
    """
    POSTs 'payload' with a bearer key. Network errors and non-2xx answers
    raise ProviderDispatchFailed carrying the provider's own text.
    """
    try:
        response = requests.post(
            url,
            json=payload,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout or settings.NOTIFICATION_PROVIDER_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as exc:
        raise ProviderDispatchFailed(str(exc)) from exc

    if not response.ok:
        raise ProviderDispatchFailed(response.text or f"HTTP {response.status_code}")
    return response


class EmailProvider:
    def send(self, *, to, subject, body, html=None):
        message = EmailMultiAlternatives(
            subject=subject,
            body=body,
            from_email=settings.NOTIFICATION_FROM_EMAIL,
            to=[to],
        )
        if html:
            message.attach_alternative(html, "text/html")
        message.send(fail_silently=False)


class BriqSmsProvider:
    url = "https://api.briq.africa/v1/sms/send"

    def send(self, *, to, subject, body, html=None):
        if not settings.BRIQ_API_KEY:
            raise ProviderDispatchFailed("BRIQ_API_KEY is not configured")
        post_json(
            self.url,
            api_key=settings.BRIQ_API_KEY,
            payload={
                "to": to,
                "message": body,
                "sender_id": settings.NOTIFICATION_SMS_SENDER_ID,
            },
        )


class LocmemSmsProvider:
    """
    Keeps text messages on the instance instead of sending them. Only
    selected in development.
    """

    def __init__(self):
        self.outbox = []

    def send(self, *, to, subject, body, html=None):
        self.outbox.append({"to": to, "body": body})
        logger.debug("Stored text message for %s", to)


def get_provider(channel):
    if channel == "sms":
        return import_string(settings.NOTIFICATION_SMS_PROVIDER)()
    return EmailProvider()
