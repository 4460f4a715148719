"""Tests for CancellationScope."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest
from voicy.assistant.cancellation import CancellationScope

pytestmark = pytest.mark.anyio


async def test_cancel_marks_scope_once():
    scope = CancellationScope("test")
    assert not scope.cancelled
    assert scope.cancel() is True
    assert scope.cancel() is False
    assert scope.cancelled


async def test_cancel_cancels_attached_task():
    scope = CancellationScope()
    task = scope.attach(asyncio.create_task(asyncio.sleep(10)))

    scope.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


async def test_attach_after_cancel_cancels_immediately():
    scope = CancellationScope()
    scope.cancel()
    task = scope.attach(asyncio.create_task(asyncio.sleep(10)))

    with pytest.raises(asyncio.CancelledError):
        await task


async def test_callbacks_run_on_cancel_and_can_be_removed():
    scope = CancellationScope()
    kept, removed = Mock(), Mock()
    scope.add_callback(kept)
    unregister = scope.add_callback(removed)
    unregister()

    scope.cancel()

    kept.assert_called_once_with()
    removed.assert_not_called()


async def test_callback_added_after_cancel_runs_immediately():
    scope = CancellationScope()
    scope.cancel()
    callback = Mock()

    scope.add_callback(callback)

    callback.assert_called_once_with()


async def test_failing_callback_does_not_stop_others():
    scope = CancellationScope()
    after = Mock()
    scope.add_callback(Mock(side_effect=RuntimeError("nope")))
    scope.add_callback(after)

    scope.cancel()

    after.assert_called_once_with()


async def test_raise_if_cancelled():
    scope = CancellationScope()
    scope.raise_if_cancelled()
    scope.cancel()
    with pytest.raises(asyncio.CancelledError):
        scope.raise_if_cancelled()


async def test_sleep_refuses_cancelled_scope():
    scope = CancellationScope()
    await scope.sleep(0)
    scope.cancel()
    with pytest.raises(asyncio.CancelledError):
        await scope.sleep(0)


async def test_cancel_from_worker_thread():
    scope = CancellationScope()
    task = scope.attach(asyncio.create_task(asyncio.sleep(10)))

    await asyncio.to_thread(scope.cancel)

    with pytest.raises(asyncio.CancelledError):
        await task
