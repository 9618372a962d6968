"""Scheduler process for recurring runner cleanup.

Run separately from the one-shot CLI using:
    python -m runner_cleaner.jobs.scheduler
"""

from __future__ import annotations

import argparse
import logging
import os
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from runner_cleaner.jobs.tasks import ConfigError, RunConfig, resolve_config, runner_cleanup
from runner_cleaner.utils.logging import get_structured_logger, log_cleanup_event

JOB_ID = "runner_cleanup"
DEFAULT_CRON = "0 * * * *"
DEFAULT_TIMEZONE = "UTC"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure process-wide logging for scheduler mode."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def resolve_timezone() -> ZoneInfo:
    return ZoneInfo(os.getenv("CLEANUP_TIMEZONE", "").strip() or DEFAULT_TIMEZONE)


def resolve_trigger(tz: ZoneInfo) -> CronTrigger:
    expression = os.getenv("CLEANUP_CRON", "").strip() or DEFAULT_CRON
    return CronTrigger.from_crontab(expression, timezone=tz)


def _log_job_state(scheduler: BlockingScheduler, event: JobExecutionEvent, tz: ZoneInfo) -> None:
    """Log last and next run metadata for observability."""
    job = scheduler.get_job(event.job_id)
    job_next_run = getattr(job, "next_run_time", None) if job else None
    next_run = job_next_run.isoformat() if job_next_run else "none"
    last_run_at = (
        event.scheduled_run_time.astimezone(tz).isoformat()
        if event.scheduled_run_time
        else datetime.now(tz=tz).isoformat()
    )

    if event.exception:
        logger.error(
            "Job %s failed at %s; next run at %s",
            event.job_id,
            last_run_at,
            next_run,
            exc_info=event.exception,
        )
        return

    logger.info("Job %s completed at %s; next run at %s", event.job_id, last_run_at, next_run)


def build_scheduler(config: RunConfig) -> BlockingScheduler:
    """Build and configure the scheduler instance."""
    tz = resolve_timezone()
    scheduler = BlockingScheduler(timezone=tz)

    trigger = resolve_trigger(tz)
    scheduler.add_job(
        runner_cleanup,
        trigger=trigger,
        kwargs={"config": config},
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=600,
    )

    scheduler.add_listener(
        lambda event: _log_job_state(scheduler, event, tz),
        EVENT_JOB_EXECUTED | EVENT_JOB_ERROR,
    )

    next_run = trigger.get_next_fire_time(None, datetime.now(tz=tz))
    logger.info(
        "Registered %s on %s %s (next run: %s)",
        JOB_ID,
        trigger,
        tz.key,
        next_run.isoformat() if next_run else "none",
    )

    return scheduler


def main() -> None:
    """Entrypoint for a dedicated scheduler process."""
    parser = argparse.ArgumentParser(description="Run runner cleanup on a cron schedule")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Execute runner_cleanup immediately and exit (manual mode)",
    )
    args = parser.parse_args()

    configure_logging()

    try:
        config = resolve_config()
    except ConfigError as exc:
        log_cleanup_event(
            get_structured_logger(),
            event="config_invalid",
            message=str(exc),
            level=logging.ERROR,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        raise SystemExit(1) from exc

    if args.once:
        logger.info("Running in manual mode: executing %s once", JOB_ID)
        runner_cleanup(config)
        logger.info("Manual execution of %s completed", JOB_ID)
        return

    scheduler = build_scheduler(config)
    logger.info("Starting scheduler process")
    scheduler.start()


if __name__ == "__main__":
    main()
