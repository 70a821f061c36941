"""
Background scheduler for the daily reconciliation pass.

Jobs:
  - Reconciliation pass (RECONCILE_HOUR_UTC:RECONCILE_MINUTE_UTC, default 02:00 UTC):
    generate upcoming occurrences, auto-match, flag missed
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from obligations.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_reconciliation():
    from obligations.infrastructure.db.session import get_session_factory
    from obligations.application.reconciliation import run_reconciliation_pass

    Session = get_session_factory()
    db = Session()
    try:
        run_reconciliation_pass(db)
    except Exception:
        logger.exception("Reconciliation pass job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with the reconciliation job."""
    settings = get_settings()
    scheduler.add_job(
        _run_reconciliation,
        CronTrigger(hour=settings.RECONCILE_HOUR_UTC, minute=settings.RECONCILE_MINUTE_UTC, timezone="UTC"),
        id="reconciliation_pass",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: reconciliation_pass (%02d:%02d UTC)",
        settings.RECONCILE_HOUR_UTC, settings.RECONCILE_MINUTE_UTC,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
