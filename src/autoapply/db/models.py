from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from autoapply.db.base import Base, TimestampMixin, utcnow


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class UserProfile(TimestampMixin, Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    city: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    postal_code: Mapped[str] = mapped_column(String(30), default="", nullable=False)
    country: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    experience: Mapped[str] = mapped_column(String(120), default="", nullable=False)


class AutomationConfig(TimestampMixin, Base):
    __tablename__ = "automation_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    job_board: Mapped[str] = mapped_column(String(80), default="hellowork", nullable=False)
    board_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    board_password: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    skills_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    locations_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    salary_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    remote_preference: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    experience_level: Mapped[str] = mapped_column(String(80), default="", nullable=False)

    max_applications_per_day: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    cover_letter_template: Mapped[str] = mapped_column(Text, default="", nullable=False)
    use_custom_template: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    custom_message: Mapped[str] = mapped_column(Text, default="", nullable=False)
    skill_match_threshold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    blacklist_keywords_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    fallback_phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    fallback_postal_code: Mapped[str] = mapped_column(String(30), default="", nullable=False)
    fallback_city: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    url: Mapped[str] = mapped_column(String(800), unique=True, nullable=False)
    external_id: Mapped[str] = mapped_column(String(120), default="", nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    company: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    salary_text: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    contract_type: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    remote: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ApplicationAttempt(TimestampMixin, Base):
    __tablename__ = "application_attempts"
    __table_args__ = (UniqueConstraint("user_id", "job_id", name="uq_application_attempt_user_job"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), index=True)
    config_id: Mapped[int | None] = mapped_column(
        ForeignKey("automation_configs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    channel: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    cover_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
