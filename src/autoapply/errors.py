from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autoapply.types import RunReport


class AutomationError(Exception):
    """Base class for failures raised by the application engine.

    ``reason`` is one of the failure classes in ``autoapply.types.FailureReason``
    when the failure maps onto one. ``report`` is filled in by the orchestrator
    with whatever partial run report existed when the run aborted.
    """

    default_reason: str | None = None

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason
        self.report: RunReport | None = None


class ConfigurationError(AutomationError):
    pass


class AuthenticationError(AutomationError):
    default_reason = "credential-failure"


class NavigationError(AutomationError):
    default_reason = "form-not-found"


class BrowserTimeoutError(NavigationError):
    default_reason = "network-timeout"


class ApplicationSubmissionError(AutomationError):
    pass


class DuplicateAttemptError(AutomationError):
    def __init__(self, user_id: int, job_id: int):
        super().__init__(f"attempt already recorded for user {user_id} and job {job_id}")
        self.user_id = user_id
        self.job_id = job_id


class InfrastructureError(AutomationError):
    pass
