from __future__ import annotations

from abc import ABC, abstractmethod

from autoapply.types import ApplicationData, ApplicationResult, FailureReason, JobListing, SearchCriteria


class SiteAutomator(ABC):
    """Automation contract for one job board."""

    name: str = "generic"

    def __init__(self) -> None:
        self.login_failure: FailureReason | None = None

    @abstractmethod
    async def login(self) -> bool: ...

    @abstractmethod
    async def search_jobs(self, criteria: SearchCriteria) -> list[JobListing]: ...

    @abstractmethod
    async def apply_to_job(self, job: JobListing, application: ApplicationData) -> ApplicationResult: ...

    @abstractmethod
    async def logout(self) -> None:
        """Release the browser. Safe to call more than once."""
