"""Dataset preparation state machine.

States move ``NotPrepared -> Preparing(count) -> Ready``. A new run from
``Ready`` re-enters ``Preparing(0)``; nothing returns to ``NotPrepared``.
Observers subscribe to receive every new status after a transition.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Literal

from core.errors import InvalidStateTransitionError, PreparationInProgressError

PreparationKind = Literal["not_prepared", "preparing", "ready"]


@dataclass(frozen=True)
class PreparationStatus:
    """One observable preparation status.

    Attributes:
        kind: Current state tag.
        count: Examples decoded so far; meaningful while preparing.
    """

    kind: PreparationKind
    count: int = 0

    @classmethod
    def not_prepared(cls) -> "PreparationStatus":
        return cls(kind="not_prepared")

    @classmethod
    def preparing(cls, count: int) -> "PreparationStatus":
        return cls(kind="preparing", count=count)

    @classmethod
    def ready(cls, count: int) -> "PreparationStatus":
        return cls(kind="ready", count=count)

    @property
    def is_preparing(self) -> bool:
        return self.kind == "preparing"

    @property
    def is_ready(self) -> bool:
        return self.kind == "ready"

    @property
    def description(self) -> str:
        """Human-readable status line."""
        if self.kind == "preparing":
            return f"Preparing {self.count}"
        if self.kind == "ready":
            return "Ready"
        return "Not Prepared"


StatusObserver = Callable[[PreparationStatus], None]


class PreparationState:
    """Thread-safe preparation state with publish/subscribe observers."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._status = PreparationStatus.not_prepared()
        self._observers: list[StatusObserver] = []

    @property
    def status(self) -> PreparationStatus:
        with self._lock:
            return self._status

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        """Register an observer and return a callable that removes it."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def begin(self, allow_restart: bool = False) -> None:
        """Enter ``Preparing(0)`` for a new run.

        Args:
            allow_restart: Permit leaving a ``Preparing`` status left behind
                by a run that was cancelled or failed.

        Raises:
            PreparationInProgressError: If a run is already preparing.
        """
        with self._lock:
            if self._status.is_preparing and not allow_restart:
                raise PreparationInProgressError(
                    f"Cannot start dataset preparation: state is '{self._status.description}'. "
                    "Wait for the current preparation to finish before starting another."
                )
            self._publish(PreparationStatus.preparing(0))

    def advance(self, count: int) -> None:
        """Record a progress tick with a non-decreasing example count.

        Raises:
            InvalidStateTransitionError: If not preparing or count decreases.
        """
        with self._lock:
            self._require_preparing("advance")
            if count < self._status.count:
                raise InvalidStateTransitionError(
                    f"Invalid progress count {count}: "
                    f"must not be lower than current count {self._status.count}."
                )
            self._publish(PreparationStatus.preparing(count))

    def mark_ready(self) -> None:
        """Finish the current run.

        Raises:
            InvalidStateTransitionError: If no run is preparing.
        """
        with self._lock:
            self._require_preparing("mark_ready")
            self._publish(PreparationStatus.ready(self._status.count))

    def _require_preparing(self, transition: str) -> None:
        if not self._status.is_preparing:
            raise InvalidStateTransitionError(
                f"Invalid transition '{transition}' from state '{self._status.description}': "
                "expected an in-flight preparation."
            )

    def _publish(self, status: PreparationStatus) -> None:
        self._status = status
        for observer in list(self._observers):
            observer(status)
