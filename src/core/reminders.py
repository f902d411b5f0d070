"""Contest reminder scheduling (core domain)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from core.event_bus import EventChannel
from core.models import ContestReminder
from core.ports import Job, ScheduledJob, SchedulerPort

LOGGER = logging.getLogger(__name__)

REMINDER_OFFSETS_HOURS = (24, 1, 0)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def plan_reminders(start: datetime, end: datetime) -> List[ContestReminder]:
    """Return the 24h / 1h / on-time reminders for contest start and end."""

    planned: List[ContestReminder] = []
    for kind, contest_time in (("start", start), ("end", end)):
        for hours in REMINDER_OFFSETS_HOURS:
            planned.append(
                ContestReminder(
                    kind=kind,
                    contest_time=contest_time,
                    hours_before=hours,
                    remind_at=contest_time - timedelta(hours=hours),
                )
            )
    return planned


class ContestReminders:
    """Schedules contest reminders and publishes them when they come due."""

    def __init__(
        self,
        scheduler: SchedulerPort,
        reminders: EventChannel[ContestReminder],
        start: Optional[datetime],
        end: Optional[datetime],
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._scheduler = scheduler
        self._reminders = reminders
        self._start = start
        self._end = end
        self._clock = clock
        self._jobs: List[ScheduledJob] = []
        self._scheduled = False

    @property
    def scheduled_count(self) -> int:
        return len(self._jobs)

    @property
    def is_running(self) -> bool:
        return self._scheduled

    def start(self) -> bool:
        if self._scheduled:
            return True
        if self._start is None or self._end is None:
            LOGGER.warning("Cannot start contest reminders - contest times not configured")
            return False
        if self._end <= self._start:
            LOGGER.warning("Cannot start contest reminders - contest end is not after start")
            return False

        now = self._clock()
        for reminder in plan_reminders(self._start, self._end):
            if reminder.remind_at < now:
                LOGGER.warning(
                    "Skipping %s reminder %sh before (time is in the past)", reminder.kind, reminder.hours_before
                )
                continue
            self._jobs.append(self._scheduler.run_at(reminder.remind_at, self._make_job(reminder)))
            LOGGER.info("Scheduled %s reminder for %s", reminder.kind, reminder.remind_at.isoformat())

        self._scheduled = True
        LOGGER.info("Contest reminders scheduled (%s reminders)", len(self._jobs))
        return True

    def stop(self) -> bool:
        for job in self._jobs:
            job.cancel()
        self._jobs = []
        self._scheduled = False
        return True

    def _make_job(self, reminder: ContestReminder) -> Job:
        async def _fire() -> None:
            LOGGER.info("Sending %s reminder", reminder.kind)
            self._reminders.publish(reminder)

        return _fire
