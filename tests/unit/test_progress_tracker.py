import pytest
from pydantic import ValidationError

from autoapply.core.progress import InMemoryProgressStore, ProgressTracker


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_initialize_sets_starting_record() -> None:
    tracker = ProgressTracker()

    record = tracker.initialize(7)

    assert record.status == "starting"
    assert record.current_job_title == "Initializing..."
    assert tracker.get(7) == record


def test_update_merges_fields() -> None:
    tracker = ProgressTracker()
    tracker.initialize(1)

    tracker.update(1, status="running", total_jobs=3)
    record = tracker.update(1, current_job=1, current_job_title="Dev React", success_count=1)

    assert record.status == "running"
    assert record.total_jobs == 3
    assert record.current_job == 1
    assert record.success_count == 1


def test_current_job_never_decreases() -> None:
    tracker = ProgressTracker()
    tracker.initialize(1)
    tracker.update(1, total_jobs=3, current_job=2)

    with pytest.raises(ValueError):
        tracker.update(1, current_job=1)
    assert tracker.get(1).current_job == 2


def test_counters_cannot_exceed_processed_jobs() -> None:
    tracker = ProgressTracker()
    tracker.initialize(1)
    tracker.update(1, total_jobs=2, current_job=1)

    with pytest.raises(ValidationError):
        tracker.update(1, success_count=1, fail_count=1)
    with pytest.raises(ValidationError):
        tracker.update(1, current_job=3)


def test_runs_are_isolated_per_config() -> None:
    tracker = ProgressTracker(InMemoryProgressStore())
    tracker.initialize(1)
    tracker.initialize(2)
    tracker.update(1, status="failed")

    assert tracker.get(2).status == "starting"
    assert {record.config_id for record in tracker.get_all()} == {1, 2}


def test_terminal_record_retained_for_grace_window() -> None:
    clock = FakeClock()
    tracker = ProgressTracker(retention_sec=300, clock=clock)
    tracker.initialize(5)
    tracker.update(5, status="completed")
    tracker.schedule_cleanup(5)

    clock.now += 299
    assert tracker.get(5) is not None

    clock.now += 1
    assert tracker.get(5) is None
    assert tracker.get_all() == []


def test_reinitialize_cancels_pending_cleanup() -> None:
    clock = FakeClock()
    tracker = ProgressTracker(retention_sec=10, clock=clock)
    tracker.initialize(5)
    tracker.schedule_cleanup(5)
    tracker.initialize(5)

    clock.now += 60
    assert tracker.get(5) is not None


def test_clear_removes_record() -> None:
    tracker = ProgressTracker()
    tracker.initialize(3)

    tracker.clear(3)

    assert tracker.get(3) is None
