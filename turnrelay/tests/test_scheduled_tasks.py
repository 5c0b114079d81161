"""
Tests for SessionTaskScheduler.
"""

import asyncio

import pytest

from ..realtime.scheduled_tasks import SessionTaskScheduler


@pytest.mark.asyncio
async def test_callback_fires_after_delay():
    scheduler = SessionTaskScheduler("test")
    fired = []

    async def callback(session_id):
        fired.append(session_id)

    scheduler.schedule("s1", 0.01, callback)
    assert scheduler.is_pending("s1")

    await asyncio.sleep(0.05)

    assert fired == ["s1"]
    assert not scheduler.is_pending("s1")
    assert len(scheduler) == 0


@pytest.mark.asyncio
async def test_cancel_prevents_callback():
    scheduler = SessionTaskScheduler("test")
    fired = []

    async def callback(session_id):
        fired.append(session_id)

    scheduler.schedule("s1", 0.02, callback)
    assert scheduler.cancel("s1") is True
    assert scheduler.cancel("s1") is False

    await asyncio.sleep(0.05)

    assert fired == []


@pytest.mark.asyncio
async def test_rescheduling_replaces_pending_task():
    scheduler = SessionTaskScheduler("test")
    fired = []

    async def first(session_id):
        fired.append("first")

    async def second(session_id):
        fired.append("second")

    scheduler.schedule("s1", 0.02, first)
    scheduler.schedule("s1", 0.02, second)

    await asyncio.sleep(0.06)

    assert fired == ["second"]


@pytest.mark.asyncio
async def test_callback_failure_is_contained():
    scheduler = SessionTaskScheduler("test")

    async def boom(session_id):
        raise RuntimeError("boom")

    task = scheduler.schedule("s1", 0.0, boom)
    await task

    assert task.exception() is None


@pytest.mark.asyncio
async def test_cancel_all():
    scheduler = SessionTaskScheduler("test")

    async def callback(session_id):
        raise AssertionError("should not fire")

    scheduler.schedule("s1", 1.0, callback)
    scheduler.schedule("s2", 1.0, callback)
    assert scheduler.pending_sessions() == {"s1", "s2"}

    await scheduler.cancel_all()

    assert len(scheduler) == 0
