"""
Meeting-end auto-logout scheduler.

Every active meeting session gets one weekly trigger, a grace period after
the session ends. When a trigger fires, everyone still checked in is logged
out by the force-logout pass.

AutoLogoutScheduler owns its trigger tasks on an asyncio loop.
BackgroundScheduler hosts one on a daemon thread for the web process.
"""
import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Dict, Tuple

from django.utils import timezone

from attendance_app.services.evaluator import DAYS_PER_WEEK, MINUTES_PER_DAY, day_of_week, minute_of_day

logger = logging.getLogger(__name__)

DEFAULT_GRACE_MINUTES = 15


def logout_minute(end_time, grace_minutes=DEFAULT_GRACE_MINUTES) -> int:
    """Minute of day the trigger fires; wraps past midnight."""
    return (minute_of_day(end_time) + grace_minutes) % MINUTES_PER_DAY


def seconds_until(when, now) -> float:
    # Elapsed time, so a DST change between the two is counted
    return (when.astimezone(dt_timezone.utc) - now.astimezone(dt_timezone.utc)).total_seconds()


@dataclass(frozen=True)
class Trigger:
    """
    Weekly firing point for one session.

    The trigger stays on the session's own day_of_week even when the grace
    period wraps past midnight, so a session ending 23:50 fires at 00:05 of
    that same weekday.
    """
    day_of_week: int
    session_number: int
    minute_of_day: int

    @classmethod
    def for_session(cls, session, grace_minutes=DEFAULT_GRACE_MINUTES):
        return cls(session.day_of_week, session.session_number, logout_minute(session.end_time, grace_minutes))

    @property
    def key(self) -> Tuple[int, int]:
        return self.day_of_week, self.session_number

    @property
    def label(self):
        return f"{self.minute_of_day // 60:02d}:{self.minute_of_day % 60:02d}"

    def next_run(self, after: datetime) -> datetime:
        """First occurrence strictly after ``after``, in the same timezone."""
        days_ahead = (self.day_of_week - day_of_week(after)) % DAYS_PER_WEEK
        naive = datetime.combine(after.date() + timedelta(days=days_ahead), datetime.min.time()) + timedelta(
            minutes=self.minute_of_day
        )
        candidate = naive.replace(tzinfo=after.tzinfo) if after.tzinfo else naive
        if candidate <= after:
            candidate += timedelta(days=DAYS_PER_WEEK)
        return candidate


class AutoLogoutScheduler:
    """
    Registry of armed auto-logout triggers.

    ``load_sessions`` is an async callable returning the active sessions,
    ``on_fire`` an async callable taking the firing time. Must be used from
    a single event loop.
    """

    def __init__(self, load_sessions, on_fire, clock=None, grace_minutes=DEFAULT_GRACE_MINUTES, sleep=None):
        self.load_sessions = load_sessions
        self.on_fire = on_fire
        self.clock = clock or timezone.localtime
        self.grace_minutes = grace_minutes
        self._sleep = sleep or asyncio.sleep
        self._triggers: Dict[Tuple[int, int], Trigger] = {}
        self._tasks: Dict[Tuple[int, int], asyncio.Task] = {}
        self._lock = asyncio.Lock()

    @property
    def triggers(self):
        return dict(self._triggers)

    def is_armed(self, day_of_week, session_number):
        return (day_of_week, session_number) in self._tasks

    async def rearm(self):
        """
        Discard every trigger and arm one per active session.
        If the sessions cannot be loaded the current triggers are kept.
        """
        try:
            sessions = await self.load_sessions()
        except Exception:
            logger.exception("Could not load meeting schedules; keeping %d existing triggers", len(self._tasks))
            raise

        triggers = [Trigger.for_session(s, self.grace_minutes) for s in sessions if s.is_active]
        async with self._lock:
            self._discard()
            for trigger in triggers:
                self._arm(trigger)
        return self.triggers

    async def cancel(self, day_of_week, session_number):
        """
        Disarm one session's trigger. Returns False if it was not armed.
        A pass already running for it is allowed to finish first.
        """
        key = (day_of_week, session_number)
        async with self._lock:
            task = self._tasks.pop(key, None)
            self._triggers.pop(key, None)
            if task is None:
                return False
            task.cancel()
        logger.info("Removed auto-logout trigger for day %s, session %s", day_of_week, session_number)
        return True

    async def close(self):
        async with self._lock:
            tasks = list(self._tasks.values())
            self._discard()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _discard(self):
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        self._triggers.clear()

    def _arm(self, trigger):
        self._triggers[trigger.key] = trigger
        self._tasks[trigger.key] = asyncio.create_task(self._run(trigger))
        logger.info(
            "Auto-logout scheduled for day %s, session %s at %s (%d minutes after meeting end)",
            trigger.day_of_week, trigger.session_number, trigger.label, self.grace_minutes,
        )

    async def _run(self, trigger):
        last_run = self.clock()
        while True:
            fire_at = trigger.next_run(max(self.clock(), last_run))
            await self._sleep(max(seconds_until(fire_at, self.clock()), 0))
            last_run = fire_at
            async with self._lock:
                logger.info("Meeting-end auto-logout firing for day %s, session %s", *trigger.key)
                try:
                    await self.on_fire(self.clock())
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Auto-logout pass failed for day %s, session %s", *trigger.key)


class BackgroundScheduler:
    """
    Runs an AutoLogoutScheduler on its own thread and event loop.

    ``rearm`` and ``cancel`` are coroutines that hand the work to the
    scheduler loop; they do nothing while the thread is not started.
    """

    def __init__(self, scheduler_factory):
        self.scheduler_factory = scheduler_factory
        self.scheduler = None
        self._loop = None
        self._thread = None
        self._started = threading.Event()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._started.clear()
        self._thread = threading.Thread(target=self._worker, name="auto-logout-scheduler", daemon=True)
        self._thread.start()
        self._started.wait()
        future = asyncio.run_coroutine_threadsafe(self.scheduler.rearm(), self._loop)
        future.add_done_callback(self._log_failure)

    def stop(self, timeout=5):
        if not self.running:
            return
        future = asyncio.run_coroutine_threadsafe(self.scheduler.close(), self._loop)
        try:
            future.result(timeout)
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            self._thread = None

    async def rearm(self):
        if not self.running:
            logger.debug("Background scheduler not running; rearm skipped")
            return None
        future = asyncio.run_coroutine_threadsafe(self.scheduler.rearm(), self._loop)
        return await asyncio.wrap_future(future)

    async def cancel(self, day_of_week, session_number):
        if not self.running:
            return False
        future = asyncio.run_coroutine_threadsafe(
            self.scheduler.cancel(day_of_week, session_number), self._loop
        )
        return await asyncio.wrap_future(future)

    def _worker(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self.scheduler = self.scheduler_factory()
        self._started.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    @staticmethod
    def _log_failure(future):
        if not future.cancelled() and future.exception() is not None:
            logger.error("Initial auto-logout arming failed: %s", future.exception())
