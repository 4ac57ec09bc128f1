"""Observable model readiness flags.

Tracks whether a model artifact has been written and whether it has been
compiled, together with the paths involved, and notifies subscribers
after every change.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


@dataclass(frozen=True)
class ReadinessSnapshot:
    """Point-in-time readiness flags."""

    model_prepared: bool = False
    model_compiled: bool = False
    artifact_path: Path | None = None
    compiled_path: Path | None = None


ReadinessObserver = Callable[[ReadinessSnapshot], None]


class ModelReadiness:
    """Thread-safe ``{model_prepared, model_compiled}`` flag pair."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._snapshot = ReadinessSnapshot()
        self._observers: list[ReadinessObserver] = []

    @property
    def snapshot(self) -> ReadinessSnapshot:
        with self._lock:
            return self._snapshot

    def subscribe(self, observer: ReadinessObserver) -> Callable[[], None]:
        """Register an observer and return a callable that removes it."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def mark_prepared(self, artifact_path: Path) -> None:
        """Record a freshly written artifact; any earlier compilation is stale."""
        self._publish(ReadinessSnapshot(model_prepared=True, artifact_path=artifact_path))

    def mark_compiled(self, compiled_path: Path) -> None:
        """Record a successful compilation of the current artifact."""
        with self._lock:
            current = self._snapshot
            self._publish(
                ReadinessSnapshot(
                    model_prepared=current.model_prepared,
                    model_compiled=True,
                    artifact_path=current.artifact_path,
                    compiled_path=compiled_path,
                )
            )

    def _publish(self, snapshot: ReadinessSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            for observer in list(self._observers):
                observer(snapshot)
