from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..core.constants import DEFAULT_ATTENDANCE_SWEEP_MINUTES, DEFAULT_PAYMENT_SWEEP_HOUR
from ..core.exceptions import NotFoundError
from .jobs import AttendanceSweep, PaymentEnforcementSweep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledJob:
    job_id: str
    name: str
    trigger: BaseTrigger
    func: Callable[[], object]


def build_default_jobs(
    attendance_sweep: AttendanceSweep,
    payment_sweep: PaymentEnforcementSweep,
    *,
    attendance_minutes: int = DEFAULT_ATTENDANCE_SWEEP_MINUTES,
    payment_hour: int = DEFAULT_PAYMENT_SWEEP_HOUR,
) -> list[ScheduledJob]:
    return [
        ScheduledJob(
            job_id="attendance_sweep",
            name="Missed attendance alerts",
            trigger=IntervalTrigger(minutes=int(attendance_minutes)),
            func=attendance_sweep.run,
        ),
        ScheduledJob(
            job_id="payment_sweep",
            name="Payment reminders and enforcement",
            trigger=CronTrigger(hour=int(payment_hour), minute=0),
            func=payment_sweep.run,
        ),
    ]


class SchedulerService:
    """Runs the sweeps on an APScheduler background thread.

    A job never overlaps itself; runs missed while the process was busy are
    collapsed into one.
    """

    def __init__(self, jobs: Sequence[ScheduledJob], *, scheduler: Optional[BackgroundScheduler] = None):
        self._jobs = list(jobs)
        self._scheduler = scheduler or BackgroundScheduler()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    @property
    def job_ids(self) -> list[str]:
        return [job.job_id for job in self._jobs]

    def start(self) -> None:
        if self.running:
            return
        for job in self._jobs:
            self._scheduler.add_job(
                func=_guarded(job),
                trigger=job.trigger,
                id=job.job_id,
                name=job.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self._scheduler.start()
        logger.info("scheduler started: %s", ", ".join(self.job_ids))

    def shutdown(self, *, wait: bool = False) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("scheduler stopped")

    def run_now(self, job_id: str):
        for job in self._jobs:
            if job.job_id == job_id:
                return job.func()
        raise NotFoundError(f"Unknown job {job_id!r}")


def _guarded(job: ScheduledJob) -> Callable[[], None]:
    def run() -> None:
        try:
            job.func()
        except Exception:
            logger.exception("scheduled job %s failed", job.job_id)

    return run
