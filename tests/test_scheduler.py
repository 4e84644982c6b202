import asyncio
import threading
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from attendance_app.exceptions import StorageError
from attendance_app.services.scheduler import (
    AutoLogoutScheduler,
    BackgroundScheduler,
    Trigger,
    logout_minute,
    seconds_until,
)

from .conftest import FixedClock, at, hm, make_session


def test_logout_minute_adds_grace_period():
    assert logout_minute(hm("12:00")) == 12 * 60 + 15
    assert logout_minute(hm("17:50")) == 18 * 60 + 5
    assert logout_minute(hm("12:00"), grace_minutes=30) == 12 * 60 + 30


def test_logout_minute_wraps_past_midnight():
    assert logout_minute(hm("23:50")) == 5
    assert logout_minute(hm("23:45")) == 0


def test_trigger_keeps_session_day_when_wrapping():
    trigger = Trigger.for_session(make_session(3, 2, "20:00", "23:50"))
    assert trigger.key == (3, 2)
    assert trigger.day_of_week == 3
    assert trigger.label == "00:05"


def test_next_run_later_the_same_day():
    trigger = Trigger(1, 1, 12 * 60 + 15)
    assert trigger.next_run(at(1, "12:00")) == at(1, "12:15")


def test_next_run_is_strictly_after():
    trigger = Trigger(1, 1, 12 * 60 + 15)
    assert trigger.next_run(at(1, "12:15")) == at(1, "12:15") + timedelta(days=7)
    assert trigger.next_run(at(1, "13:00")) == at(1, "12:15") + timedelta(days=7)


def test_next_run_on_another_weekday():
    trigger = Trigger(0, 1, 9 * 60)
    assert trigger.next_run(at(1, "08:00")) == at(0, "09:00") + timedelta(days=7)
    assert trigger.next_run(at(4, "08:00")) == at(0, "09:00") + timedelta(days=7)
    assert trigger.next_run(at(6, "23:59")) == at(0, "09:00") + timedelta(days=7)


def _scheduler(sessions, on_fire=None, clock=None, sleep=None):
    async def load():
        if isinstance(sessions, Exception):
            raise sessions
        return list(sessions)

    async def ignore(now):
        return None

    return AutoLogoutScheduler(
        load_sessions=load,
        on_fire=on_fire or ignore,
        clock=clock or FixedClock(at(1, "09:00")),
        sleep=sleep,
    )


def test_rearm_arms_one_trigger_per_active_session():
    sessions = [
        make_session(1, 1, "08:00", "12:00"),
        make_session(1, 2, "13:00", "17:00"),
        make_session(2, 1, "08:00", "12:00", is_active=False),
    ]

    async def scenario():
        scheduler = _scheduler(sessions)
        triggers = await scheduler.rearm()
        armed = scheduler.is_armed(1, 1), scheduler.is_armed(1, 2), scheduler.is_armed(2, 1)
        await scheduler.close()
        return triggers, armed

    triggers, armed = asyncio.run(scenario())
    assert set(triggers) == {(1, 1), (1, 2)}
    assert triggers[(1, 1)].label == "12:15"
    assert triggers[(1, 2)].label == "17:15"
    assert armed == (True, True, False)


def test_rearm_discards_triggers_for_removed_sessions():
    sessions = [make_session(1, 1, "08:00", "12:00"), make_session(2, 1, "08:00", "12:00")]

    async def scenario():
        scheduler = _scheduler(sessions)
        await scheduler.rearm()
        sessions.pop()
        first = set(await scheduler.rearm())
        sessions.clear()
        second = set(await scheduler.rearm())
        still_armed = scheduler.is_armed(1, 1)
        await scheduler.close()
        return first, second, still_armed

    first, second, still_armed = asyncio.run(scenario())
    assert first == {(1, 1)}
    assert second == set()
    assert not still_armed


def test_failed_rearm_keeps_previous_triggers():
    sessions = [make_session(1, 1, "08:00", "12:00")]

    async def scenario():
        scheduler = _scheduler(sessions)
        await scheduler.rearm()
        scheduler.load_sessions = _failing_loader
        with pytest.raises(StorageError):
            await scheduler.rearm()
        kept = set(scheduler.triggers), scheduler.is_armed(1, 1)
        await scheduler.close()
        return kept

    triggers, armed = asyncio.run(scenario())
    assert triggers == {(1, 1)}
    assert armed


async def _failing_loader():
    raise StorageError("database unavailable")


def test_cancel_disarms_exactly_one_session():
    sessions = [make_session(1, 1, "08:00", "12:00"), make_session(1, 2, "13:00", "17:00")]

    async def scenario():
        scheduler = _scheduler(sessions)
        await scheduler.rearm()
        cancelled = await scheduler.cancel(1, 1)
        again = await scheduler.cancel(1, 1)
        state = scheduler.is_armed(1, 1), scheduler.is_armed(1, 2), set(scheduler.triggers)
        await scheduler.close()
        return cancelled, again, state

    cancelled, again, (first_armed, second_armed, remaining) = asyncio.run(scenario())
    assert cancelled is True
    assert again is False
    assert not first_armed
    assert second_armed
    assert remaining == {(1, 2)}


def test_trigger_fires_force_logout_at_session_end_plus_grace():
    clock = FixedClock(at(1, "09:00"))
    delays = []

    async def scenario():
        fired = []
        done = asyncio.Event()

        async def on_fire(now):
            fired.append(now)
            if len(fired) == 2:
                done.set()

        async def fake_sleep(delay):
            delays.append(delay)
            await asyncio.sleep(0)

        scheduler = _scheduler([make_session(1, 1, "08:00", "12:00")], on_fire=on_fire, clock=clock, sleep=fake_sleep)
        await scheduler.rearm()
        await asyncio.wait_for(done.wait(), timeout=5)
        await scheduler.close()
        return fired

    fired = asyncio.run(scenario())
    assert fired[0] == clock.now
    # 09:00 -> 12:15 the same Monday, then a week later
    assert delays[0] == 3 * 3600 + 15 * 60
    assert delays[1] == 3 * 3600 + 15 * 60 + 7 * 24 * 3600


def test_failed_pass_keeps_trigger_armed():
    calls = []

    async def scenario():
        done = asyncio.Event()

        async def on_fire(now):
            calls.append(now)
            if len(calls) == 1:
                raise StorageError("write failed")
            done.set()

        async def fake_sleep(delay):
            if len(calls) >= 2:
                await asyncio.Event().wait()
            await asyncio.sleep(0)

        scheduler = _scheduler([make_session(1, 1, "08:00", "12:00")], on_fire=on_fire, sleep=fake_sleep)
        await scheduler.rearm()
        await asyncio.wait_for(done.wait(), timeout=5)
        await scheduler.close()

    asyncio.run(scenario())
    assert len(calls) == 2


def test_rearm_waits_for_running_pass():
    async def scenario():
        started = asyncio.Event()
        gate = asyncio.Event()
        fired = []
        sleeps = []

        async def on_fire(now):
            fired.append(now)
            started.set()
            await gate.wait()

        async def fake_sleep(delay):
            sleeps.append(delay)
            if len(sleeps) > 1:
                # Only the first trigger wakes up
                await asyncio.Event().wait()
            await asyncio.sleep(0)

        scheduler = _scheduler([make_session(1, 1, "08:00", "12:00")], on_fire=on_fire, sleep=fake_sleep)
        await scheduler.rearm()
        await asyncio.wait_for(started.wait(), timeout=5)

        rearm = asyncio.create_task(scheduler.rearm())
        for _ in range(5):
            await asyncio.sleep(0)
        blocked = not rearm.done()

        gate.set()
        await asyncio.wait_for(rearm, timeout=5)
        await scheduler.close()
        return blocked, len(fired)

    blocked, fired = asyncio.run(scenario())
    assert blocked
    assert fired == 1


def test_cancel_lets_a_running_pass_finish():
    async def scenario():
        started = asyncio.Event()
        gate = asyncio.Event()
        logged_out = []

        async def on_fire(now):
            started.set()
            for member in range(3):
                await gate.wait()
                logged_out.append(member)

        async def fake_sleep(delay):
            if started.is_set():
                await asyncio.Event().wait()
            await asyncio.sleep(0)

        scheduler = _scheduler([make_session(1, 1, "08:00", "12:00")], on_fire=on_fire, sleep=fake_sleep)
        await scheduler.rearm()
        await asyncio.wait_for(started.wait(), timeout=5)

        cancel = asyncio.create_task(scheduler.cancel(1, 1))
        for _ in range(5):
            await asyncio.sleep(0)
        blocked = not cancel.done()

        gate.set()
        cancelled = await asyncio.wait_for(cancel, timeout=5)
        armed = scheduler.is_armed(1, 1)
        await scheduler.close()
        return blocked, cancelled, armed, logged_out

    blocked, cancelled, armed, logged_out = asyncio.run(scenario())
    assert blocked
    assert cancelled is True
    assert not armed
    assert logged_out == [0, 1, 2]


def test_seconds_until_counts_elapsed_time_across_dst():
    new_york = ZoneInfo("America/New_York")
    # Clocks go forward at 02:00 on 2024-03-10
    now = datetime(2024, 3, 9, 12, 0, tzinfo=new_york)
    trigger = Trigger(0, 1, 12 * 60 + 15)

    fire_at = trigger.next_run(now)

    assert fire_at == datetime(2024, 3, 10, 12, 15, tzinfo=new_york)
    assert seconds_until(fire_at, now) == 23 * 3600 + 15 * 60


def test_sleep_before_firing_uses_elapsed_time():
    new_york = ZoneInfo("America/New_York")
    delays = []

    async def scenario():
        async def fake_sleep(delay):
            delays.append(delay)
            await asyncio.Event().wait()

        clock = FixedClock(datetime(2024, 11, 2, 12, 0, tzinfo=new_york))
        scheduler = _scheduler([make_session(0, 1, "08:00", "12:00")], clock=clock, sleep=fake_sleep)
        await scheduler.rearm()
        for _ in range(5):
            await asyncio.sleep(0)
        await scheduler.close()

    asyncio.run(scenario())
    # Saturday noon to Sunday 12:15, with the extra hour when clocks go back
    assert delays == [25 * 3600 + 15 * 60]


def _background(sessions, cancel_threads=None):
    class ThreadNotingScheduler(AutoLogoutScheduler):
        async def cancel(self, day_of_week, session_number):
            if cancel_threads is not None:
                cancel_threads.append(threading.current_thread().name)
            return await super().cancel(day_of_week, session_number)

    async def load():
        return list(sessions)

    async def ignore(now):
        return None

    return BackgroundScheduler(
        lambda: ThreadNotingScheduler(load_sessions=load, on_fire=ignore, clock=FixedClock(at(1, "09:00")))
    )


def test_background_scheduler_is_idle_until_started():
    background = _background([make_session(1, 1, "08:00", "12:00")])

    assert not background.running
    assert asyncio.run(background.rearm()) is None
    assert asyncio.run(background.cancel(1, 1)) is False
    assert background.scheduler is None
    background.stop()


def test_background_scheduler_start_rearm_stop():
    sessions = [make_session(1, 1, "08:00", "12:00")]
    threads = []
    background = _background(sessions, cancel_threads=threads)

    background.start()
    try:
        assert background.running
        sessions.append(make_session(2, 1, "08:00", "12:00"))
        triggers = asyncio.run(background.rearm())
        assert set(triggers) == {(1, 1), (2, 1)}

        assert asyncio.run(background.cancel(2, 1)) is True
        assert threads == ["auto-logout-scheduler"]
        assert set(background.scheduler.triggers) == {(1, 1)}
    finally:
        background.stop()

    assert not background.running
    assert background.scheduler.triggers == {}
