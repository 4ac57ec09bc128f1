"""Streaming dataset preparation.

This module drives raw records through the record decoder and collects
decoded examples into an immutable batch collection. Background runs
execute on a worker thread and deliver progress, the finished collection,
and the ``Ready`` transition through the caller's dispatcher in order.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Iterable

from core.errors import (
    PreparationCancelledError,
    PreparationInProgressError,
    RecordDecodeError,
)
from core.logging_config import get_logger
from core.types import BatchCollection, DecodePolicy, Example, RawRecord
from ingest.dispatch import Dispatcher, inline_dispatch
from ingest.preparation_state import PreparationState
from ingest.record_decoder import decode_record

_LOGGER = get_logger(__name__)

ProgressCallback = Callable[[int], None]
CompletionCallback = Callable[[BatchCollection], None]
FailureCallback = Callable[[BaseException], None]


class CancelSignal:
    """Cancellation request shared by a handle and its worker.

    Once the worker commits its result, later requests are refused so a
    successful ``request`` always stops the run before ``Ready``.
    """

    def __init__(self) -> None:
        self.event = threading.Event()
        self._lock = threading.Lock()
        self._committed = False

    def request(self) -> bool:
        """Ask the worker to stop; return False after it committed."""
        with self._lock:
            if self._committed:
                return False
            self.event.set()
            return True

    def commit(self, collection: BatchCollection) -> None:
        """Seal a finished run.

        Raises:
            PreparationCancelledError: If cancellation was requested first.
        """
        with self._lock:
            _raise_if_cancelled(self.event, len(collection), collection.skipped_count)
            self._committed = True


class PreparationHandle:
    """Caller-side handle for one background preparation run."""

    def __init__(self, future: Future, cancel_signal: CancelSignal) -> None:
        self._future = future
        self._cancel_signal = cancel_signal

    def cancel(self) -> bool:
        """Request cancellation; return False when the run already finished."""
        if self._future.done():
            return False
        return self._cancel_signal.request()

    def cancelled(self) -> bool:
        """Return whether cancellation was requested."""
        return self._cancel_signal.event.is_set()

    def done(self) -> bool:
        """Return whether the worker stopped, successfully or not."""
        return self._future.done()

    def result(self, timeout: float | None = None) -> BatchCollection:
        """Wait for the run and return its collection.

        Raises:
            PreparationCancelledError: If the run was cancelled.
            RecordDecodeError: If a record failed under the abort policy.
            SourceReadError: If the source could not be read.
        """
        return self._future.result(timeout=timeout)


class DatasetBuilder:
    """Decode record streams into batch collections.

    Args:
        state: Preparation state published by background runs.
        dispatcher: Context on which state changes and callbacks run.
        decode_policy: ``"skip"`` drops malformed records and continues;
            ``"abort"`` fails the whole preparation on the first one.
    """

    def __init__(
        self,
        state: PreparationState | None = None,
        dispatcher: Dispatcher = inline_dispatch,
        decode_policy: DecodePolicy = "skip",
    ) -> None:
        self._state = state or PreparationState()
        self._dispatch = dispatcher
        self._decode_policy = decode_policy
        self._lock = threading.Lock()
        self._in_flight: PreparationHandle | None = None
        self._restart_required = False

    @property
    def state(self) -> PreparationState:
        return self._state

    def prepare(
        self,
        source: Iterable[RawRecord],
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchCollection:
        """Decode every record of ``source`` on the calling thread.

        Args:
            source: Lazy sequence of raw records.
            on_progress: Called with the running example count after each
                successfully decoded record.
            cancel_event: Checked before each record is consumed.

        Returns:
            Collection of decoded examples in source order.

        Raises:
            PreparationCancelledError: If ``cancel_event`` was set.
            RecordDecodeError: If a record is malformed under the abort policy.
        """
        examples: list[Example] = []
        skipped_count = 0
        position = 0
        records = iter(source)
        _LOGGER.info("dataset_preparation_started", decode_policy=self._decode_policy)
        while True:
            _raise_if_cancelled(cancel_event, len(examples), skipped_count)
            try:
                raw_record = next(records)
            except StopIteration:
                break
            position += 1
            try:
                example = decode_record(raw_record)
            except RecordDecodeError as error:
                if self._decode_policy == "abort":
                    raise
                skipped_count += 1
                _LOGGER.warning("record_skipped", position=position, reason=str(error))
                continue
            examples.append(example)
            if on_progress is not None:
                on_progress(len(examples))
        _raise_if_cancelled(cancel_event, len(examples), skipped_count)
        _LOGGER.info(
            "dataset_preparation_completed",
            example_count=len(examples),
            skipped_count=skipped_count,
        )
        return BatchCollection(examples=tuple(examples), skipped_count=skipped_count)

    def start(
        self,
        source: Iterable[RawRecord],
        on_progress: ProgressCallback | None = None,
        on_complete: CompletionCallback | None = None,
        on_failure: FailureCallback | None = None,
    ) -> PreparationHandle:
        """Prepare ``source`` on a background worker thread.

        Args:
            source: Lazy sequence of raw records.
            on_progress: Receives each count after the state advances.
            on_complete: Receives the finished collection before ``Ready``.
            on_failure: Receives the error of a failed or cancelled run.

        Returns:
            Handle for waiting on or cancelling the run.

        Raises:
            PreparationInProgressError: If a run of this builder is in flight.
        """
        with self._lock:
            if self._in_flight is not None and not self._in_flight.done():
                raise PreparationInProgressError(
                    "Dataset preparation is already running. "
                    "Wait for it or cancel it before starting another."
                )
            allow_restart = self._restart_required
            self._restart_required = False
            self._dispatch(partial(self._state.begin, allow_restart))
            cancel_signal = CancelSignal()
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="edgetrain-prepare")
            future = executor.submit(
                self._run, source, on_progress, on_complete, on_failure, cancel_signal
            )
            executor.shutdown(wait=False)
            handle = PreparationHandle(future, cancel_signal)
            self._in_flight = handle
            return handle

    def _run(
        self,
        source: Iterable[RawRecord],
        on_progress: ProgressCallback | None,
        on_complete: CompletionCallback | None,
        on_failure: FailureCallback | None,
        cancel_signal: CancelSignal,
    ) -> BatchCollection:
        tick = partial(self._dispatch_progress, on_progress)
        try:
            collection = self.prepare(source, on_progress=tick, cancel_event=cancel_signal.event)
            cancel_signal.commit(collection)
        except Exception as error:
            with self._lock:
                self._restart_required = True
            if not isinstance(error, PreparationCancelledError):
                _LOGGER.error("dataset_preparation_failed", error=str(error))
            if on_failure is not None:
                self._dispatch(partial(on_failure, error))
            raise
        self._dispatch(partial(self._deliver_collection, collection, on_complete))
        return collection

    def _dispatch_progress(self, on_progress: ProgressCallback | None, count: int) -> None:
        self._dispatch(partial(self._deliver_progress, count, on_progress))

    def _deliver_progress(self, count: int, on_progress: ProgressCallback | None) -> None:
        self._state.advance(count)
        if on_progress is not None:
            on_progress(count)

    def _deliver_collection(
        self,
        collection: BatchCollection,
        on_complete: CompletionCallback | None,
    ) -> None:
        if on_complete is not None:
            on_complete(collection)
        self._state.mark_ready()


def _raise_if_cancelled(
    cancel_event: threading.Event | None,
    example_count: int,
    skipped_count: int,
) -> None:
    if cancel_event is None or not cancel_event.is_set():
        return
    _LOGGER.info(
        "dataset_preparation_cancelled",
        example_count=example_count,
        skipped_count=skipped_count,
    )
    raise PreparationCancelledError(
        f"Dataset preparation cancelled after {example_count} examples."
    )
