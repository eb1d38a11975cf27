from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

FailureReason = Literal[
    "credential-failure",
    "bot-verification-block",
    "external-redirect",
    "form-not-found",
    "submission-uncertain",
    "network-timeout",
]
ApplicationOutcome = Literal["applied", "uncertain", "failed"]
MatchType = Literal["exact", "synonym", "none"]
ProgressStatus = Literal["starting", "running", "completed", "failed"]
AuditLevel = Literal["info", "success", "warning", "error", "debug"]


def utcnow() -> datetime:
    return datetime.now(UTC)


class SearchCriteria(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    location: str = ""
    salary_min: int | None = None
    salary_max: int | None = None
    remote: bool = False
    contract_types: list[str] = Field(default_factory=lambda: ["CDI", "CDD", "Freelance"])


class JobListing(BaseModel):
    external_id: str
    title: str
    company: str = ""
    location: str = ""
    url: str
    description: str = ""
    posted_at: datetime | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    salary_text: str = ""
    tags: list[str] = Field(default_factory=list)
    remote: bool = False
    contract_type: str = ""
    source: str = "hellowork"

    @property
    def has_salary(self) -> bool:
        return bool(self.salary_text or self.salary_min or self.salary_max)


class ContactDetails(BaseModel):
    phone: str = ""
    postal_code: str = ""
    city: str = ""


class ApplicationData(BaseModel):
    full_name: str
    email: str
    cover_letter: str = ""
    contact: ContactDetails = Field(default_factory=ContactDetails)


class ApplicationResult(BaseModel):
    success: bool
    job_id: str
    message: str = ""
    outcome: ApplicationOutcome = "applied"
    reason: FailureReason | None = None
    screenshot_ref: str | None = None

    @model_validator(mode="after")
    def validate_outcome(self) -> ApplicationResult:
        if self.success and self.outcome == "failed":
            raise ValueError("a successful result cannot have a failed outcome")
        if not self.success and self.outcome != "failed":
            raise ValueError("an unsuccessful result must have a failed outcome")
        return self

    @classmethod
    def failed(cls, job_id: str, reason: FailureReason, message: str, **kwargs: Any) -> ApplicationResult:
        return cls(success=False, job_id=job_id, outcome="failed", reason=reason, message=message, **kwargs)


class SkillMatchDetail(BaseModel):
    skill: str
    match_type: MatchType
    found_as: str | None = None


class MatchResult(BaseModel):
    percentage: int = 0
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    details: list[SkillMatchDetail] = Field(default_factory=list)


class BlacklistResult(BaseModel):
    is_blacklisted: bool = False
    matched_keywords: list[str] = Field(default_factory=list)


class ProgressRecord(BaseModel):
    config_id: int
    current_job: int = Field(default=0, ge=0)
    total_jobs: int = Field(default=0, ge=0)
    current_job_title: str = ""
    status: ProgressStatus = "starting"
    success_count: int = Field(default=0, ge=0)
    fail_count: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def validate_counters(self) -> ProgressRecord:
        if self.current_job > self.total_jobs:
            raise ValueError("current_job cannot exceed total_jobs")
        if self.success_count + self.fail_count > self.current_job:
            raise ValueError("success_count + fail_count cannot exceed current_job")
        return self


class JobOutcome(BaseModel):
    job_id: str
    job_title: str
    company: str = ""
    success: bool
    message: str = ""
    outcome: ApplicationOutcome = "failed"
    reason: FailureReason | None = None
    score: int = 0


class AuditEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    level: AuditLevel = "info"
    action: str
    details: dict[str, Any] = Field(default_factory=dict)
    screenshot_ref: str | None = None
    job_id: str | None = None


class RunSummary(BaseModel):
    total: int = 0
    success: int = 0
    errors: int = 0
    warnings: int = 0
    last_action: str | None = None
    duration_sec: float = 0.0
    error_messages: list[str] = Field(default_factory=list)


class RunReport(BaseModel):
    config_id: int
    total_jobs_found: int = 0
    applications_submitted: int = 0
    results: list[JobOutcome] = Field(default_factory=list)
    summary: RunSummary | None = None
