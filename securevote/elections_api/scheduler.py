import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django_apscheduler import util
from django_apscheduler.jobstores import DjangoJobStore
from django_apscheduler.models import DjangoJobExecution

logger = logging.getLogger(__name__)

_scheduler = None


@util.close_old_connections
def notification_sweep_job():
    from .notifications import run_notification_sweep

    try:
        run_notification_sweep()
    except Exception:
        logger.exception("Notification sweep failed")


@util.close_old_connections
def election_status_job():
    from .services import advance_election_statuses

    try:
        advance_election_statuses()
    except Exception:
        logger.exception("Election status check failed")


@util.close_old_connections
def confirmations_job():
    from .ledger import advance_confirmations

    try:
        advance_confirmations()
    except Exception:
        logger.exception("Advancing confirmations failed")


@util.close_old_connections
def delete_old_job_executions(max_age=604_800):
    DjangoJobExecution.objects.delete_old_job_executions(max_age)


def build_scheduler():
    scheduler = BackgroundScheduler(timezone=settings.TIME_ZONE)
    scheduler.add_jobstore(DjangoJobStore(), "default")

    job_defaults = {"max_instances": 1, "coalesce": True, "replace_existing": True}

    scheduler.add_job(
        notification_sweep_job,
        trigger=IntervalTrigger(minutes=settings.NOTIFICATION_SWEEP_INTERVAL_MINUTES),
        id="notification_sweep",
        **job_defaults,
    )
    scheduler.add_job(
        election_status_job,
        trigger=IntervalTrigger(minutes=1),
        id="election_status",
        **job_defaults,
    )
    scheduler.add_job(
        confirmations_job,
        trigger=IntervalTrigger(seconds=settings.LEDGER_BLOCK_INTERVAL_SECONDS),
        id="ledger_confirmations",
        **job_defaults,
    )
    scheduler.add_job(
        delete_old_job_executions,
        trigger=IntervalTrigger(days=1),
        id="delete_old_job_executions",
        **job_defaults,
    )
    return scheduler


def start_scheduler():
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    _scheduler = build_scheduler()
    try:
        logger.info("Starting scheduler...")
        _scheduler.start()
    except Exception:
        logger.exception("Failed to start scheduler")
        _scheduler = None
    return _scheduler
