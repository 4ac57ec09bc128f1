"""Observation contexts for background work.

A dispatcher is any callable that accepts a zero-argument callback and
arranges for it to run on the caller's chosen context. Background
preparation routes every state mutation through one dispatcher, so
observers see updates in submission order.
"""

from __future__ import annotations

import queue
import time
from typing import Callable

Callback = Callable[[], None]
Dispatcher = Callable[[Callback], None]


def inline_dispatch(callback: Callback) -> None:
    """Run the callback immediately on the submitting thread."""
    callback()


class QueueDispatcher:
    """FIFO dispatcher drained by the primary (control) thread.

    Worker threads submit callbacks by calling the dispatcher; the
    primary thread runs them with ``drain`` or ``run_until``.
    """

    def __init__(self) -> None:
        self._pending: queue.SimpleQueue[Callback] = queue.SimpleQueue()

    def __call__(self, callback: Callback) -> None:
        self._pending.put(callback)

    def pending_count(self) -> int:
        """Return the approximate number of queued callbacks."""
        return self._pending.qsize()

    def drain(self) -> int:
        """Run every queued callback and return how many ran."""
        executed = 0
        while True:
            try:
                callback = self._pending.get_nowait()
            except queue.Empty:
                return executed
            callback()
            executed += 1

    def run_until(
        self,
        predicate: Callable[[], bool],
        timeout: float | None = None,
        poll_interval: float = 0.01,
    ) -> bool:
        """Run queued callbacks until ``predicate`` holds.

        Args:
            predicate: Completion check evaluated between callbacks.
            timeout: Optional maximum wait in seconds.
            poll_interval: Wait per queue poll in seconds.

        Returns:
            Whether the predicate held before the timeout elapsed.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            if deadline is not None and time.monotonic() >= deadline:
                return False
            try:
                callback = self._pending.get(timeout=poll_interval)
            except queue.Empty:
                continue
            callback()
        self.drain()
        return True
