"""Unit tests for dispatch contexts."""

from __future__ import annotations

import threading

from ingest.dispatch import QueueDispatcher, inline_dispatch


def test_inline_dispatch_runs_immediately() -> None:
    """Inline dispatch should run the callback before returning."""
    calls: list[str] = []

    inline_dispatch(lambda: calls.append("ran"))

    assert calls == ["ran"]


def test_queue_dispatcher_defers_until_drained() -> None:
    """Queued callbacks should run only when drained, in FIFO order."""
    dispatcher = QueueDispatcher()
    calls: list[int] = []
    for index in range(3):
        dispatcher(lambda index=index: calls.append(index))

    assert calls == [] and dispatcher.pending_count() == 3
    executed = dispatcher.drain()

    assert executed == 3 and calls == [0, 1, 2]


def test_queue_dispatcher_runs_callbacks_on_draining_thread() -> None:
    """Callbacks submitted by a worker should run on the draining thread."""
    dispatcher = QueueDispatcher()
    seen_threads: list[threading.Thread] = []
    worker = threading.Thread(
        target=lambda: dispatcher(lambda: seen_threads.append(threading.current_thread()))
    )
    worker.start()
    worker.join()

    dispatcher.drain()

    assert seen_threads == [threading.current_thread()]


def test_run_until_returns_false_on_timeout() -> None:
    """run_until should give up after the timeout when the predicate never holds."""
    dispatcher = QueueDispatcher()

    finished = dispatcher.run_until(lambda: False, timeout=0.05)

    assert finished is False
