from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autoapply.core.pipeline import PipelineStatus
from autoapply.db.models import ApplicationAttempt, AutomationConfig, Job, User, UserProfile
from autoapply.errors import DuplicateAttemptError
from autoapply.types import JobListing


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_user(self, name: str, email: str) -> User:
        user = User(name=name, email=email)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_user_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_user_profile(self, user_id: int) -> UserProfile | None:
        return self.session.scalar(select(UserProfile).where(UserProfile.user_id == user_id))

    def upsert_user_profile(self, user_id: int, values: dict) -> UserProfile:
        existing = self.get_user_profile(user_id)
        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            obj = existing
        else:
            obj = UserProfile(user_id=user_id, **values)
            self.session.add(obj)

        self.session.commit()
        self.session.refresh(obj)
        return obj

    def create_config(self, user_id: int, values: dict) -> AutomationConfig:
        config = AutomationConfig(user_id=user_id, **values)
        self.session.add(config)
        self.session.commit()
        self.session.refresh(config)
        return config

    def get_config(self, config_id: int) -> AutomationConfig | None:
        return self.session.get(AutomationConfig, config_id)

    def list_configs(self, user_id: int | None = None) -> list[AutomationConfig]:
        statement = select(AutomationConfig).order_by(AutomationConfig.id)
        if user_id is not None:
            statement = statement.where(AutomationConfig.user_id == user_id)
        return list(self.session.scalars(statement).all())

    def find_job_by_url(self, url: str) -> Job | None:
        return self.session.scalar(select(Job).where(Job.url == url))

    def create_or_update_job(self, listing: JobListing, score: int = 0) -> Job:
        job = self.find_job_by_url(listing.url)
        if job is None:
            job = Job(url=listing.url)
            self.session.add(job)

        job.external_id = listing.external_id
        job.source = listing.source
        job.title = listing.title
        job.company = listing.company
        job.location = listing.location
        job.description = listing.description
        job.salary_text = listing.salary_text
        job.contract_type = listing.contract_type
        job.remote = listing.remote
        job.posted_at = listing.posted_at
        job.score = score

        self.session.commit()
        self.session.refresh(job)
        return job

    def attempt_exists(self, user_id: int, job_id: int) -> bool:
        statement = select(ApplicationAttempt.id).where(
            ApplicationAttempt.user_id == user_id,
            ApplicationAttempt.job_id == job_id,
        )
        return self.session.scalar(statement) is not None

    def attempt_exists_for_url(self, user_id: int, url: str) -> bool:
        job = self.find_job_by_url(url)
        return job is not None and self.attempt_exists(user_id, job.id)

    def create_application_attempt(
        self,
        *,
        user_id: int,
        job_id: int,
        config_id: int | None,
        status: PipelineStatus,
        channel: str,
        cover_text: str = "",
        notes: str = "",
    ) -> ApplicationAttempt:
        attempt = ApplicationAttempt(
            user_id=user_id,
            job_id=job_id,
            config_id=config_id,
            status=status.value,
            channel=channel,
            cover_text=cover_text,
            notes=notes,
        )
        self.session.add(attempt)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateAttemptError(user_id, job_id) from exc
        self.session.refresh(attempt)
        return attempt

    def count_applied_since(self, config_id: int, since: datetime) -> int:
        statement = select(func.count(ApplicationAttempt.id)).where(
            ApplicationAttempt.config_id == config_id,
            ApplicationAttempt.status == PipelineStatus.APPLIED.value,
            ApplicationAttempt.applied_at >= since,
        )
        return int(self.session.scalar(statement) or 0)

    def list_attempts(
        self, *, user_id: int | None = None, config_id: int | None = None, limit: int = 50
    ) -> list[ApplicationAttempt]:
        statement = select(ApplicationAttempt).order_by(ApplicationAttempt.id.desc()).limit(limit)
        if user_id is not None:
            statement = statement.where(ApplicationAttempt.user_id == user_id)
        if config_id is not None:
            statement = statement.where(ApplicationAttempt.config_id == config_id)
        return list(self.session.scalars(statement).all())
