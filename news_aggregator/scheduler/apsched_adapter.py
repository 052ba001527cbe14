"""APScheduler wrapper running one interval job per feed rule."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ParsingRule
from ..logging_conf import component_logger


def job_id(rule: ParsingRule, index: int = 0) -> str:
    # Several rules may share a URL; each still gets its own job.
    return f"feed::{index}::{rule.url}"


class FeedScheduler:
    """Manage APScheduler jobs for configured feeds."""

    def __init__(self, max_workers: int = 10) -> None:
        # One worker per feed: a poller blocked on a full queue must not
        # delay the timers of the others.
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=max(max_workers, 1))}
        )
        self.logger = component_logger("scheduler")
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

    def schedule_rule(
        self, rule: ParsingRule, callback: Callable[[], object], index: int = 0
    ) -> None:
        """Run ``callback`` now and then every ``rule.timeout`` seconds.

        ``index`` is the rule's position in the configuration.
        """

        self.scheduler.add_job(
            callback,
            trigger=self._build_trigger(rule),
            id=job_id(rule, index),
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.logger.info("job_scheduled", job=job_id(rule, index), feed=rule.url, interval=rule.timeout)

    def _build_trigger(self, rule: ParsingRule) -> IntervalTrigger:
        return IntervalTrigger(seconds=rule.timeout)


__all__ = ["FeedScheduler", "job_id"]
