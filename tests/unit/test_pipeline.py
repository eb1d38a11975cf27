import pytest

from autoapply.core.pipeline import (
    STAGES,
    PipelineStatus,
    can_transition,
    get_next_stage,
    initial_attempt_status,
    is_terminal,
)


@pytest.mark.parametrize("stage", [*STAGES, PipelineStatus.FAILED])
def test_hired_and_rejected_reachable_from_every_stage(stage: PipelineStatus) -> None:
    assert can_transition(stage, "HIRED")
    assert can_transition(stage, "REJECTED")


def test_no_backward_moves() -> None:
    assert not can_transition("TECH", "SCREEN")
    assert not can_transition("OFFER", "APPLIED")
    assert can_transition("TECH", "TECH")
    assert can_transition("APPLIED", "ONSITE")


def test_failed_is_outside_the_ordering() -> None:
    assert not can_transition("APPLIED", "FAILED")
    assert not can_transition("FAILED", "SCREEN")
    assert can_transition("FAILED", "FAILED")


def test_unknown_stage_never_transitions() -> None:
    assert not can_transition("LEAD", "GHOSTED")
    assert get_next_stage("GHOSTED") is None


def test_next_stage_never_auto_closes() -> None:
    assert get_next_stage("LEAD") == PipelineStatus.APPLIED
    assert get_next_stage(PipelineStatus.ONSITE) == PipelineStatus.OFFER
    assert get_next_stage(PipelineStatus.OFFER) is None
    assert get_next_stage(PipelineStatus.HIRED) is None
    assert get_next_stage(PipelineStatus.FAILED) is None


def test_terminal_stages_and_initial_status() -> None:
    assert is_terminal("HIRED")
    assert is_terminal(PipelineStatus.FAILED)
    assert not is_terminal("APPLIED")
    assert initial_attempt_status(True) == PipelineStatus.APPLIED
    assert initial_attempt_status(False) == PipelineStatus.FAILED
