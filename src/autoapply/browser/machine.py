from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Generic, TypeVar

from autoapply.core.audit import RunAuditLog
from autoapply.errors import AutomationError, BrowserTimeoutError

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)

Handler = Callable[[], Awaitable[S]]


class StateMachine(Generic[S]):
    """Drives named states until a terminal one is reached.

    Each handler returns the next state. A handler that raises an
    ``AutomationError`` or overruns its step timeout moves the machine to
    ``failure_state`` and the error is kept on ``self.error``. Any other
    exception propagates.
    """

    def __init__(
        self,
        name: str,
        handlers: Mapping[S, Handler[S]],
        *,
        terminal: set[S],
        failure_state: S,
        step_timeout_sec: float,
        step_timeouts: Mapping[S, float] | None = None,
        audit: RunAuditLog | None = None,
        job_id: str | None = None,
        max_steps: int = 50,
    ):
        self.name = name
        self.handlers = handlers
        self.terminal = terminal
        self.failure_state = failure_state
        self.step_timeout_sec = step_timeout_sec
        self.step_timeouts = dict(step_timeouts or {})
        self.audit = audit
        self.job_id = job_id
        self.max_steps = max_steps
        self.history: list[S] = []
        self.error: AutomationError | None = None

    async def run(self, initial: S) -> S:
        state = initial
        self.history = [state]
        for _ in range(self.max_steps):
            if state in self.terminal:
                return state

            handler = self.handlers[state]
            timeout = self.step_timeouts.get(state, self.step_timeout_sec)
            try:
                next_state = await asyncio.wait_for(handler(), timeout=timeout)
            except asyncio.TimeoutError:
                self.error = BrowserTimeoutError(f"{self.name} step {state.name} exceeded {timeout}s")
                next_state = self.failure_state
            except AutomationError as exc:
                self.error = exc
                next_state = self.failure_state

            self._record(state, next_state)
            state = next_state
            self.history.append(state)

        if state in self.terminal:
            return state
        self.error = AutomationError(f"{self.name} did not terminate within {self.max_steps} steps")
        self._record(state, self.failure_state)
        self.history.append(self.failure_state)
        return self.failure_state

    def _record(self, source: S, target: S) -> None:
        details: dict[str, str | None] = {"from": source.name, "to": target.name}
        if target == self.failure_state and self.error is not None:
            details["error"] = str(self.error)
            details["reason"] = self.error.reason
        action = f"{self.name}: {source.name} -> {target.name}"
        if self.audit is not None:
            level = "warning" if target == self.failure_state else "info"
            self.audit.log(level, action, details, job_id=self.job_id)
        else:
            logger.info("%s %s", action, details)
