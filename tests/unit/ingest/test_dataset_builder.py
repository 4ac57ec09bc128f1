"""Unit tests for streaming dataset preparation."""

from __future__ import annotations

import threading
from typing import Iterator

import pytest

from core.errors import (
    PreparationCancelledError,
    PreparationInProgressError,
    RecordDecodeError,
    WrongArityError,
)
from core.types import RawRecord
from ingest.dataset_builder import DatasetBuilder
from ingest.dispatch import QueueDispatcher
from ingest.preparation_state import PreparationState, PreparationStatus
from tests.sample_records import make_record_fields


class _FakeLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []

    def info(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))

    def warning(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))

    def error(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))


class _GatedSource:
    """Yield ``open_count`` records, then block until released."""

    def __init__(self, open_count: int, total_count: int) -> None:
        self.open_count = open_count
        self.total_count = total_count
        self.release = threading.Event()

    def __iter__(self) -> Iterator[RawRecord]:
        for index in range(self.total_count):
            if index == self.open_count:
                self.release.wait(timeout=5)
            yield make_record_fields(index % 10)


def _records(count: int) -> list[RawRecord]:
    return [make_record_fields(index % 10) for index in range(count)]


def _wait_for_count(state: PreparationState, count: int) -> threading.Event:
    reached = threading.Event()

    def _observe(status: PreparationStatus) -> None:
        if status.count >= count:
            reached.set()

    state.subscribe(_observe)
    return reached


def test_prepare_reports_one_tick_per_record() -> None:
    """N valid records should produce counts 1..N and N examples."""
    builder = DatasetBuilder()
    ticks: list[int] = []

    collection = builder.prepare(_records(5), on_progress=ticks.append)

    assert ticks == [1, 2, 3, 4, 5]
    assert len(collection) == 5 and collection.skipped_count == 0


def test_prepare_keeps_source_order() -> None:
    """Collection order should follow source order."""
    builder = DatasetBuilder()

    collection = builder.prepare([make_record_fields(label) for label in (3, 1, 4)])

    assert [example.class_index for example in collection] == [3, 1, 4]


def test_prepare_empty_source_returns_empty_collection() -> None:
    """An empty source should finish with zero examples."""
    builder = DatasetBuilder()

    collection = builder.prepare([])

    assert len(collection) == 0


def test_prepare_skip_policy_drops_malformed_records(monkeypatch) -> None:
    """Skip policy should log, count, and drop malformed records."""
    fake_logger = _FakeLogger()
    monkeypatch.setattr("ingest.dataset_builder._LOGGER", fake_logger)
    builder = DatasetBuilder(decode_policy="skip")
    source = [make_record_fields(1), ("1", "2"), make_record_fields(2)]
    ticks: list[int] = []

    collection = builder.prepare(source, on_progress=ticks.append)

    skipped = [fields for event, fields in fake_logger.events if event == "record_skipped"]
    assert len(collection) == 2 and collection.skipped_count == 1
    assert ticks == [1, 2]
    assert skipped[0]["position"] == 2


def test_prepare_abort_policy_raises_on_malformed_record() -> None:
    """Abort policy should fail the whole preparation."""
    builder = DatasetBuilder(decode_policy="abort")
    source = [make_record_fields(1), ("1", "2")]

    with pytest.raises(WrongArityError):
        builder.prepare(source)

    assert issubclass(WrongArityError, RecordDecodeError)


def test_prepare_honors_preset_cancel_event() -> None:
    """A set cancel event should stop before consuming any record."""
    builder = DatasetBuilder()
    cancel_event = threading.Event()
    cancel_event.set()

    with pytest.raises(PreparationCancelledError):
        builder.prepare(_records(3), cancel_event=cancel_event)

    assert cancel_event.is_set()


def test_start_publishes_progress_then_ready_in_order() -> None:
    """Queued updates should run in order with Ready after the last tick."""
    dispatcher = QueueDispatcher()
    state = PreparationState()
    seen: list[str] = []
    state.subscribe(lambda status: seen.append(status.description))
    builder = DatasetBuilder(state, dispatcher)
    completed: list[PreparationStatus] = []

    handle = builder.start(_records(3), on_complete=lambda _: completed.append(state.status))
    dispatcher.run_until(handle.done, timeout=5)

    assert seen == ["Preparing 0", "Preparing 1", "Preparing 2", "Preparing 3", "Ready"]
    assert completed == [PreparationStatus.preparing(3)]
    assert len(handle.result()) == 3


def test_start_updates_state_only_on_dispatcher_thread() -> None:
    """Worker progress should not touch state until the dispatcher drains."""
    dispatcher = QueueDispatcher()
    builder = DatasetBuilder(dispatcher=dispatcher)

    handle = builder.start(_records(2))
    handle.result(timeout=5)

    assert builder.state.status == PreparationStatus.not_prepared()
    dispatcher.drain()
    assert builder.state.status == PreparationStatus.ready(2)


def test_cancel_stops_before_ready() -> None:
    """Cancelling mid-run should leave Preparing(k) with k below the record count."""
    builder = DatasetBuilder()
    source = _GatedSource(open_count=3, total_count=50)
    reached = _wait_for_count(builder.state, 3)
    seen: list[PreparationStatus] = []
    builder.state.subscribe(seen.append)

    handle = builder.start(source)
    assert reached.wait(timeout=5)
    handle.cancel()
    source.release.set()

    with pytest.raises(PreparationCancelledError):
        handle.result(timeout=5)
    status = builder.state.status
    assert status.is_preparing and 3 <= status.count < 50
    assert not any(item.is_ready for item in seen)


def test_start_rejects_second_run_while_in_flight() -> None:
    """Only one preparation may run per builder at a time."""
    builder = DatasetBuilder()
    source = _GatedSource(open_count=1, total_count=5)
    reached = _wait_for_count(builder.state, 1)
    handle = builder.start(source)
    assert reached.wait(timeout=5)

    with pytest.raises(PreparationInProgressError):
        builder.start(_records(1))

    source.release.set()
    assert len(handle.result(timeout=5)) == 5


def test_start_after_cancel_restarts_from_zero() -> None:
    """A cancelled run should not block the next preparation."""
    builder = DatasetBuilder()
    source = _GatedSource(open_count=2, total_count=10)
    reached = _wait_for_count(builder.state, 2)
    handle = builder.start(source)
    assert reached.wait(timeout=5)
    handle.cancel()
    source.release.set()
    with pytest.raises(PreparationCancelledError):
        handle.result(timeout=5)

    second = builder.start(_records(4))

    assert len(second.result(timeout=5)) == 4
    assert builder.state.status == PreparationStatus.ready(4)


def test_start_reports_failure_through_callback(monkeypatch) -> None:
    """Abort-policy failures should reach on_failure and the handle."""
    monkeypatch.setattr("ingest.dataset_builder._LOGGER", _FakeLogger())
    builder = DatasetBuilder(decode_policy="abort")
    failures: list[BaseException] = []

    handle = builder.start([("bad",)], on_failure=failures.append)

    with pytest.raises(WrongArityError):
        handle.result(timeout=5)
    assert isinstance(failures[0], WrongArityError)
    assert not builder.state.status.is_ready


class _TailGatedSource:
    """Yield every record, then block before signalling the end."""

    def __init__(self, total_count: int) -> None:
        self.total_count = total_count
        self.release = threading.Event()

    def __iter__(self) -> Iterator[RawRecord]:
        for index in range(self.total_count):
            yield make_record_fields(index % 10)
        self.release.wait(timeout=5)


def test_prepare_honors_cancel_set_on_last_record() -> None:
    """A cancel raised during the final tick should still stop the run."""
    builder = DatasetBuilder()
    cancel_event = threading.Event()

    def _cancel_at_three(count: int) -> None:
        if count == 3:
            cancel_event.set()

    with pytest.raises(PreparationCancelledError):
        builder.prepare(_records(3), on_progress=_cancel_at_three, cancel_event=cancel_event)


def test_cancel_after_last_record_still_prevents_ready() -> None:
    """An accepted cancel after the last record should never end in Ready."""
    builder = DatasetBuilder()
    source = _TailGatedSource(total_count=3)
    reached = _wait_for_count(builder.state, 3)
    seen: list[PreparationStatus] = []
    builder.state.subscribe(seen.append)

    handle = builder.start(source)
    assert reached.wait(timeout=5)
    accepted = handle.cancel()
    source.release.set()

    assert accepted
    with pytest.raises(PreparationCancelledError):
        handle.result(timeout=5)
    assert builder.state.status == PreparationStatus.preparing(3)
    assert not any(item.is_ready for item in seen)


def test_cancel_after_completion_is_refused() -> None:
    """Cancelling a finished run should report False and keep Ready."""
    builder = DatasetBuilder()

    handle = builder.start(_records(2))
    collection = handle.result(timeout=5)

    assert handle.cancel() is False
    assert not handle.cancelled()
    assert len(collection) == 2
    assert builder.state.status == PreparationStatus.ready(2)
