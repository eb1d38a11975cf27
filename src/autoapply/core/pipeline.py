from __future__ import annotations

from enum import Enum


class PipelineStatus(str, Enum):
    LEAD = "LEAD"
    APPLIED = "APPLIED"
    SCREEN = "SCREEN"
    TECH = "TECH"
    ONSITE = "ONSITE"
    OFFER = "OFFER"
    HIRED = "HIRED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


STAGES: list[PipelineStatus] = [
    PipelineStatus.LEAD,
    PipelineStatus.APPLIED,
    PipelineStatus.SCREEN,
    PipelineStatus.TECH,
    PipelineStatus.ONSITE,
    PipelineStatus.OFFER,
    PipelineStatus.HIRED,
    PipelineStatus.REJECTED,
]
TERMINAL_STAGES = frozenset({PipelineStatus.HIRED, PipelineStatus.REJECTED, PipelineStatus.FAILED})
_CLOSING_STAGES = frozenset({PipelineStatus.HIRED, PipelineStatus.REJECTED})


def _coerce(stage: str | PipelineStatus) -> PipelineStatus | None:
    try:
        return PipelineStatus(stage)
    except ValueError:
        return None


def can_transition(from_stage: str | PipelineStatus, to_stage: str | PipelineStatus) -> bool:
    source = _coerce(from_stage)
    target = _coerce(to_stage)
    if source is None or target is None:
        return False

    if target in _CLOSING_STAGES:
        return True

    # FAILED is attempt-scoped and sits outside the ordered pipeline
    if PipelineStatus.FAILED in (source, target):
        return source == target
    return STAGES.index(target) >= STAGES.index(source)


def get_next_stage(current: str | PipelineStatus) -> PipelineStatus | None:
    stage = _coerce(current)
    if stage is None or stage in TERMINAL_STAGES:
        return None

    following = STAGES[STAGES.index(stage) + 1]
    if following in _CLOSING_STAGES:
        return None
    return following


def is_terminal(stage: str | PipelineStatus) -> bool:
    return _coerce(stage) in TERMINAL_STAGES


def initial_attempt_status(success: bool) -> PipelineStatus:
    return PipelineStatus.APPLIED if success else PipelineStatus.FAILED
