from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from autoapply.browser.automator import SiteAutomator
from autoapply.browser.factory import create_automator
from autoapply.browser.pacing import DelayBand, HumanPacing
from autoapply.config import Settings, get_settings
from autoapply.core.audit import RunAuditLog
from autoapply.core.cover_letter import render_cover_letter
from autoapply.core.matching import (
    calculate_skill_match,
    check_blacklist,
    format_blacklist_result,
    format_match_result,
    meets_threshold,
)
from autoapply.core.pipeline import PipelineStatus, initial_attempt_status
from autoapply.core.progress import ProgressTracker
from autoapply.core.runtime import get_progress_tracker
from autoapply.core.scoring import score_job
from autoapply.db.models import AutomationConfig, User, UserProfile
from autoapply.db.repositories import Repository
from autoapply.errors import (
    ApplicationSubmissionError,
    AuthenticationError,
    AutomationError,
    ConfigurationError,
    DuplicateAttemptError,
    InfrastructureError,
    NavigationError,
)
from autoapply.types import (
    ApplicationData,
    ApplicationResult,
    ContactDetails,
    JobListing,
    JobOutcome,
    RunReport,
    SearchCriteria,
)

logger = logging.getLogger(__name__)

AutomatorFactory = Callable[[AutomationConfig, RunAuditLog, bool], SiteAutomator]


@dataclass(slots=True)
class Candidate:
    listing: JobListing
    score: int
    match_percentage: int


class AutoApplyOrchestrator:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        progress: ProgressTracker | None = None,
        automator_factory: AutomatorFactory | None = None,
        pacing: HumanPacing | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.progress = progress or get_progress_tracker()
        self.automator_factory = automator_factory or self._default_automator
        self.pacing = pacing or HumanPacing(self.settings.effective_pacing_scale)

    def _default_automator(self, config: AutomationConfig, audit: RunAuditLog, use_real: bool) -> SiteAutomator:
        return create_automator(
            config.job_board,
            email=config.board_email,
            password=config.board_password,
            settings=self.settings,
            audit=audit,
            use_real_automation=use_real,
        )

    def run_sync(self, config_id: int, use_real_automation: bool = False) -> RunReport:
        return asyncio.run(self.run(config_id, use_real_automation=use_real_automation))

    async def run(self, config_id: int, use_real_automation: bool = False) -> RunReport:
        config = self.repo.get_config(config_id)
        if config is None:
            raise ConfigurationError(f"automation config {config_id} does not exist")
        if not config.is_active:
            raise ConfigurationError(f"automation config {config_id} is inactive")
        user = self.repo.get_user_by_id(config.user_id)
        if user is None:
            raise ConfigurationError(f"user {config.user_id} for config {config_id} does not exist")

        audit = RunAuditLog(config_id, self.settings.log_dir)
        report = RunReport(config_id=config_id)
        self.progress.initialize(config_id)
        audit.info(
            "run started",
            {"board": config.job_board, "real_automation": use_real_automation},
        )

        automator: SiteAutomator | None = None
        try:
            automator = self.automator_factory(config, audit, use_real_automation)
            await self._execute(config, user, automator, audit, report)
        except AutomationError as exc:
            self._mark_failed(config_id, audit, exc)
            exc.report = report
            raise
        except Exception as exc:
            self._mark_failed(config_id, audit, exc)
            error = InfrastructureError(f"run for config {config_id} aborted: {exc}")
            error.report = report
            raise error from exc
        finally:
            if automator is not None:
                await self._logout(automator, audit)
            self.progress.schedule_cleanup(config_id)
            report.summary = audit.summary()
            audit.save_report()

        return report

    async def _execute(
        self,
        config: AutomationConfig,
        user: User,
        automator: SiteAutomator,
        audit: RunAuditLog,
        report: RunReport,
    ) -> None:
        config_id = config.id
        self.progress.update(config_id, status="running", current_job_title="Logging in...")
        if not await automator.login():
            reason = automator.login_failure or "credential-failure"
            raise AuthenticationError(f"login to {config.job_board} failed ({reason})", reason=reason)

        self.progress.update(config_id, current_job_title="Searching jobs...")
        listings = await automator.search_jobs(self._build_criteria(config))
        report.total_jobs_found = len(listings)

        candidates = self._select_candidates(config, user, listings, audit)
        applied_today = self.repo.count_applied_since(config_id, self._day_start())
        quota = max(0, config.max_applications_per_day - applied_today)
        total = min(len(candidates), quota)
        audit.info(
            f"{len(candidates)} eligible of {len(listings)} found, {quota} applications left today",
            {"applied_today": applied_today, "total_jobs": total},
        )
        self.progress.update(config_id, total_jobs=total, current_job_title="")
        if quota == 0 and candidates:
            audit.warning("daily application limit reached")

        profile = self.repo.get_user_profile(user.id)
        processed = 0
        for candidate in candidates:
            if processed >= total:
                break
            if self.repo.attempt_exists_for_url(user.id, candidate.listing.url):
                audit.info("already attempted, skipping", job_id=candidate.listing.external_id)
                continue

            processed += 1
            self.progress.update(config_id, current_job=processed, current_job_title=candidate.listing.title)
            await self._process_job(config, user, profile, candidate, automator, audit, report)

            if processed < total:
                await self.pacing.pause(
                    DelayBand(
                        self.settings.inter_application_delay_min_sec,
                        self.settings.inter_application_delay_max_sec,
                    )
                )

        self.progress.update(config_id, status="completed", current_job_title="Completed")
        audit.success(
            f"run finished: {report.applications_submitted} submitted, {processed} processed",
            {"total_jobs_found": report.total_jobs_found},
        )

    def _build_criteria(self, config: AutomationConfig) -> SearchCriteria:
        locations = [location for location in config.locations_json or [] if location.strip()]
        return SearchCriteria(
            keywords=list(config.skills_json or []),
            location=locations[0] if locations else self.settings.default_search_location,
            salary_min=config.salary_min,
            salary_max=config.salary_max,
            remote=config.remote_preference,
        )

    def _select_candidates(
        self,
        config: AutomationConfig,
        user: User,
        listings: list[JobListing],
        audit: RunAuditLog,
    ) -> list[Candidate]:
        skills = list(config.skills_json or [])
        blacklist = list(config.blacklist_keywords_json or [])
        candidates: list[Candidate] = []
        for listing in listings:
            blacklisted = check_blacklist(listing.title, listing.description, blacklist)
            if blacklisted.is_blacklisted:
                audit.info(
                    f"skipping {listing.title}: {format_blacklist_result(blacklisted)}",
                    job_id=listing.external_id,
                )
                continue

            match = calculate_skill_match(skills, listing.title, listing.description)
            if not meets_threshold(match, config.skill_match_threshold):
                audit.info(
                    f"skipping {listing.title}: skill match {match.percentage}% "
                    f"below {config.skill_match_threshold}%",
                    {"missing": match.missing_skills},
                    job_id=listing.external_id,
                )
                continue

            if self.repo.attempt_exists_for_url(user.id, listing.url):
                audit.debug("already attempted", job_id=listing.external_id)
                continue

            audit.debug(format_match_result(match), job_id=listing.external_id)
            candidates.append(Candidate(listing, score_job(listing, skills), match.percentage))
        return candidates

    def _day_start(self) -> datetime:
        local_now = datetime.now(ZoneInfo(self.settings.timezone))
        midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight.astimezone(UTC)

    @staticmethod
    def _resolve_contact(profile: UserProfile | None, config: AutomationConfig) -> ContactDetails:
        return ContactDetails(
            phone=(profile.phone if profile else "") or config.fallback_phone,
            postal_code=(profile.postal_code if profile else "") or config.fallback_postal_code,
            city=(profile.city if profile else "") or config.fallback_city,
        )

    def _cover_letter(
        self, config: AutomationConfig, user: User, profile: UserProfile | None, listing: JobListing
    ) -> str:
        if not config.use_custom_template:
            return config.custom_message
        return render_cover_letter(
            config.cover_letter_template,
            listing,
            user_name=user.name,
            experience=profile.experience if profile else "",
            skills=list(config.skills_json or []),
        )

    async def _process_job(
        self,
        config: AutomationConfig,
        user: User,
        profile: UserProfile | None,
        candidate: Candidate,
        automator: SiteAutomator,
        audit: RunAuditLog,
        report: RunReport,
    ) -> None:
        listing = candidate.listing
        audit.info(
            f"applying to {listing.title} at {listing.company}",
            {"score": candidate.score, "skill_match": candidate.match_percentage, "url": listing.url},
            job_id=listing.external_id,
        )
        cover_letter = self._cover_letter(config, user, profile, listing)
        application = ApplicationData(
            full_name=user.name,
            email=user.email,
            cover_letter=cover_letter,
            contact=self._resolve_contact(profile, config),
        )

        try:
            result = await automator.apply_to_job(listing, application)
        except (NavigationError, ApplicationSubmissionError) as exc:
            result = ApplicationResult.failed(listing.external_id, exc.reason or "form-not-found", str(exc))

        counted = result.outcome == "applied" or (
            result.outcome == "uncertain" and self.settings.count_uncertain_as_applied
        )
        status = initial_attempt_status(counted)
        if result.reason:
            notes = f"{result.reason}: {result.message}"
        else:
            notes = result.message

        message = result.message
        job = self.repo.create_or_update_job(listing, candidate.score)
        try:
            self.repo.create_application_attempt(
                user_id=user.id,
                job_id=job.id,
                config_id=config.id,
                status=status,
                channel=automator.name,
                cover_text=cover_letter,
                notes=notes,
            )
        except DuplicateAttemptError:
            audit.warning("attempt already recorded by another run", job_id=listing.external_id)
            message = f"{message} (attempt already recorded by another run)"

        report.results.append(
            JobOutcome(
                job_id=listing.external_id,
                job_title=listing.title,
                company=listing.company,
                success=status == PipelineStatus.APPLIED,
                message=message,
                outcome=result.outcome,
                reason=result.reason,
                score=candidate.score,
            )
        )

        current = self.progress.get(config.id)
        success_count = current.success_count if current else 0
        fail_count = current.fail_count if current else 0
        if status == PipelineStatus.APPLIED:
            report.applications_submitted += 1
            success_count += 1
        else:
            fail_count += 1
        self.progress.update(config.id, success_count=success_count, fail_count=fail_count)

    def _mark_failed(self, config_id: int, audit: RunAuditLog, exc: BaseException) -> None:
        reason = getattr(exc, "reason", None)
        audit.error(f"run failed: {exc}", {"reason": reason, "type": type(exc).__name__})
        self.progress.update(config_id, status="failed")

    async def _logout(self, automator: SiteAutomator, audit: RunAuditLog) -> None:
        try:
            await automator.logout()
        except AutomationError as exc:
            audit.warning(f"logout failed: {exc}")
