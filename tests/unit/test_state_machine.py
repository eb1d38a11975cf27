import asyncio
from enum import Enum

from autoapply.browser.machine import StateMachine
from autoapply.core.audit import RunAuditLog
from autoapply.errors import BrowserTimeoutError, NavigationError


class Step(Enum):
    START = "start"
    WORK = "work"
    DONE = "done"
    FAILED = "failed"


def _machine(handlers, audit=None, **kwargs) -> StateMachine[Step]:
    return StateMachine(
        "test",
        handlers,
        terminal={Step.DONE, Step.FAILED},
        failure_state=Step.FAILED,
        step_timeout_sec=1.0,
        audit=audit,
        **kwargs,
    )


async def _to(state: Step) -> Step:
    return state


def test_runs_handlers_until_terminal_state() -> None:
    audit = RunAuditLog(1)
    machine = _machine({Step.START: lambda: _to(Step.WORK), Step.WORK: lambda: _to(Step.DONE)}, audit)

    final = asyncio.run(machine.run(Step.START))

    assert final == Step.DONE
    assert machine.history == [Step.START, Step.WORK, Step.DONE]
    assert machine.error is None
    assert [entry.action for entry in audit.entries] == ["test: START -> WORK", "test: WORK -> DONE"]


def test_step_timeout_moves_to_failure_state() -> None:
    async def _slow() -> Step:
        await asyncio.sleep(5)
        return Step.DONE

    machine = _machine({Step.START: _slow}, step_timeouts={Step.START: 0.05})

    final = asyncio.run(machine.run(Step.START))

    assert final == Step.FAILED
    assert isinstance(machine.error, BrowserTimeoutError)
    assert machine.error.reason == "network-timeout"


def test_automation_error_is_kept_and_audited() -> None:
    async def _broken() -> Step:
        raise NavigationError("form missing")

    audit = RunAuditLog(1)
    machine = _machine({Step.START: lambda: _to(Step.WORK), Step.WORK: _broken}, audit)

    final = asyncio.run(machine.run(Step.START))

    assert final == Step.FAILED
    assert str(machine.error) == "form missing"
    last = audit.entries[-1]
    assert last.level == "warning"
    assert last.details["reason"] == "form-not-found"


def test_non_terminating_machine_is_stopped() -> None:
    machine = _machine({Step.START: lambda: _to(Step.WORK), Step.WORK: lambda: _to(Step.START)}, max_steps=4)

    final = asyncio.run(machine.run(Step.START))

    assert final == Step.FAILED
    assert machine.error is not None
