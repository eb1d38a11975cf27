from __future__ import annotations

from pydantic import BaseModel, Field

from autoapply.db.models import ApplicationAttempt, AutomationConfig


class UserCreateRequest(BaseModel):
    name: str
    email: str
    phone: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""
    experience: str = ""


class UserResponse(BaseModel):
    id: int
    name: str
    email: str


class ConfigCreateRequest(BaseModel):
    user_id: int
    name: str = ""
    job_board: str = "hellowork"
    board_email: str = ""
    board_password: str = ""
    skills: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    salary_min: int | None = None
    salary_max: int | None = None
    remote_preference: bool = False
    experience_level: str = ""
    max_applications_per_day: int = Field(default=10, ge=0)
    cover_letter_template: str = ""
    use_custom_template: bool = True
    custom_message: str = ""
    skill_match_threshold: int = Field(default=0, ge=0, le=100)
    blacklist_keywords: list[str] = Field(default_factory=list)
    fallback_phone: str = ""
    fallback_postal_code: str = ""
    fallback_city: str = ""
    is_active: bool = True


class ConfigResponse(BaseModel):
    id: int
    user_id: int
    name: str
    job_board: str
    skills: list[str]
    locations: list[str]
    salary_min: int | None
    salary_max: int | None
    remote_preference: bool
    max_applications_per_day: int
    skill_match_threshold: int
    blacklist_keywords: list[str]
    is_active: bool
    has_credentials: bool


class AutoApplyRequest(BaseModel):
    config_id: int
    use_real_automation: bool = False


class AttemptResponse(BaseModel):
    id: int
    user_id: int
    job_id: int
    config_id: int | None
    status: str
    channel: str
    notes: str
    applied_at: str | None


class BoardResponse(BaseModel):
    key: str
    name: str
    url: str
    description: str


def config_response(config: AutomationConfig) -> ConfigResponse:
    return ConfigResponse(
        id=config.id,
        user_id=config.user_id,
        name=config.name,
        job_board=config.job_board,
        skills=list(config.skills_json or []),
        locations=list(config.locations_json or []),
        salary_min=config.salary_min,
        salary_max=config.salary_max,
        remote_preference=config.remote_preference,
        max_applications_per_day=config.max_applications_per_day,
        skill_match_threshold=config.skill_match_threshold,
        blacklist_keywords=list(config.blacklist_keywords_json or []),
        is_active=config.is_active,
        has_credentials=bool(config.board_email and config.board_password),
    )


def attempt_response(attempt: ApplicationAttempt) -> AttemptResponse:
    return AttemptResponse(
        id=attempt.id,
        user_id=attempt.user_id,
        job_id=attempt.job_id,
        config_id=attempt.config_id,
        status=attempt.status,
        channel=attempt.channel,
        notes=attempt.notes,
        applied_at=attempt.applied_at.isoformat() if attempt.applied_at else None,
    )
