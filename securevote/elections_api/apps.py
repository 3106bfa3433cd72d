import logging
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)

# Commands that must never start background jobs.
_NO_SCHEDULER_COMMANDS = {
    'migrate', 'makemigrations', 'collectstatic', 'createsuperuser', 'shell', 'test',
    'run_notification_sweep', 'advance_elections', 'advance_confirmations',
    'send_results_notification',
}


class ElectionsApiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'elections_api'

    def ready(self):
        from . import signals  # noqa: F401

        if not settings.SCHEDULER_AUTOSTART:
            return
        if _NO_SCHEDULER_COMMANDS.intersection(sys.argv) or 'pytest' in sys.modules:
            return

        from .scheduler import start_scheduler
        start_scheduler()
