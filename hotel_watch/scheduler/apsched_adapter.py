"""APScheduler wrapper: the single authority that starts sweeps."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from ..config import ScheduleConfig
from ..logging_conf import configure_logging

DAILY_JOB_PREFIX = "sweep::daily::"
STARTUP_JOB_ID = "sweep::startup"
MANUAL_JOB_ID = "sweep::manual"

# Every sweep job shares these options so overlapping triggers collapse.
_JOB_DEFAULTS = {"max_instances": 1, "coalesce": True, "misfire_grace_time": 300}


class APSchedulerAdapter:
    """Manage the daily, startup and on-demand sweep jobs."""

    def __init__(self, schedule: ScheduleConfig | None = None) -> None:
        self.schedule = schedule or ScheduleConfig()
        self.scheduler = BackgroundScheduler(
            timezone=self.schedule.tzinfo(), job_defaults=dict(_JOB_DEFAULTS)
        )
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_daily(self, callback: Callable[[], object]) -> list[str]:
        job_ids = []
        for hour, minute in self.schedule.hour_minutes():
            job_id = f"{DAILY_JOB_PREFIX}{hour:02d}:{minute:02d}"
            self.scheduler.add_job(
                callback,
                trigger=self._daily_trigger(hour, minute),
                id=job_id,
                replace_existing=True,
                **_JOB_DEFAULTS,
            )
            job_ids.append(job_id)
        self.logger.info("daily_sweeps_scheduled", times=self.schedule.times)
        return job_ids

    def schedule_startup(self, callback: Callable[[], object]) -> str | None:
        delay = self.schedule.startup_delay
        if delay is None:
            return None
        run_date = datetime.now(self.schedule.tzinfo()) + timedelta(seconds=delay)
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=run_date),
            id=STARTUP_JOB_ID,
            replace_existing=True,
            **_JOB_DEFAULTS,
        )
        self.logger.info("startup_sweep_scheduled", delay=delay)
        return STARTUP_JOB_ID

    def trigger_now(self, callback: Callable[[], object]) -> str:
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=datetime.now(self.schedule.tzinfo())),
            id=MANUAL_JOB_ID,
            replace_existing=True,
            **_JOB_DEFAULTS,
        )
        self.logger.info("manual_sweep_requested")
        return MANUAL_JOB_ID

    def _daily_trigger(self, hour: int, minute: int) -> CronTrigger:
        return CronTrigger(hour=hour, minute=minute, timezone=self.schedule.tzinfo())

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "DAILY_JOB_PREFIX", "MANUAL_JOB_ID", "STARTUP_JOB_ID"]
