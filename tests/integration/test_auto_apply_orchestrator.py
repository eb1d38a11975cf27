import pytest
from fakes import FakeAutomator, make_listing

from autoapply.config import Settings
from autoapply.core.orchestrator import AutoApplyOrchestrator
from autoapply.core.pipeline import PipelineStatus
from autoapply.core.progress import ProgressTracker
from autoapply.db.repositories import Repository
from autoapply.db.session import SessionLocal
from autoapply.errors import AuthenticationError, ConfigurationError, InfrastructureError
from autoapply.types import ApplicationResult

FIVE_JOBS = [
    make_listing("r1", "Développeur React"),
    make_listing("r2", "Node.js Developer"),
    make_listing("r3", "Lead React Engineer"),
    make_listing("r4", "Développeur Node"),
    make_listing("r5", "React Native Developer"),
]


def _setup(db, **config_values):
    repo = Repository(db)
    user = repo.create_user(name="Alex Martin", email="alex@example.com")
    values = {"name": "Main", "job_board": "hellowork", "skills_json": ["React", "Node"]}
    values.update(config_values)
    config = repo.create_config(user.id, values)
    return repo, user, config


def _orchestrator(db, automator: FakeAutomator, tracker: ProgressTracker, settings: Settings | None = None):
    return AutoApplyOrchestrator(
        db,
        settings=settings,
        progress=tracker,
        automator_factory=lambda config, audit, use_real: automator,
    )


def test_daily_limit_caps_applications() -> None:
    tracker = ProgressTracker()
    with SessionLocal() as db:
        repo, user, config = _setup(db, max_applications_per_day=2)
        automator = FakeAutomator(FIVE_JOBS)

        report = _orchestrator(db, automator, tracker).run_sync(config.id)

        assert report.total_jobs_found == 5
        assert report.applications_submitted == 2
        assert len(repo.list_attempts(user_id=user.id)) == 2
        assert [job.external_id for job, _ in automator.applied] == ["r1", "r2"]
        assert automator.logged_out

        progress = tracker.get(config.id)
        assert progress.status == "completed"
        assert progress.current_job == 2
        assert progress.total_jobs == 2
        assert progress.success_count == 2
        assert report.summary is not None


def test_rerun_never_duplicates_attempts() -> None:
    tracker = ProgressTracker()
    with SessionLocal() as db:
        repo, user, config = _setup(db)
        first = _orchestrator(db, FakeAutomator(FIVE_JOBS[:3]), tracker).run_sync(config.id)
        second_automator = FakeAutomator(FIVE_JOBS[:3])
        second = _orchestrator(db, second_automator, tracker).run_sync(config.id)

        assert first.applications_submitted == 3
        assert second.applications_submitted == 0
        assert second.results == []
        assert second_automator.applied == []
        assert len(repo.list_attempts(user_id=user.id)) == 3


def test_quota_counts_applications_already_made_today() -> None:
    tracker = ProgressTracker()
    with SessionLocal() as db:
        repo, user, config = _setup(db, max_applications_per_day=2)
        _orchestrator(db, FakeAutomator(FIVE_JOBS), tracker).run_sync(config.id)
        second_automator = FakeAutomator(FIVE_JOBS)
        second = _orchestrator(db, second_automator, tracker).run_sync(config.id)

        assert second.applications_submitted == 0
        assert second_automator.applied == []
        assert len(repo.list_attempts(config_id=config.id)) == 2
        assert tracker.get(config.id).total_jobs == 0


def test_external_redirect_is_persisted_as_failed_attempt() -> None:
    tracker = ProgressTracker()
    automator = FakeAutomator(
        FIVE_JOBS[:2],
        results={"r2": ApplicationResult.failed("r2", "external-redirect", "apply on the recruiter's site")},
    )
    with SessionLocal() as db:
        repo, user, config = _setup(db)
        report = _orchestrator(db, automator, tracker).run_sync(config.id)

        attempts = {row.job_id: row for row in repo.list_attempts(user_id=user.id)}
        failed_job = repo.find_job_by_url(FIVE_JOBS[1].url)
        assert attempts[failed_job.id].status == "FAILED"
        assert attempts[failed_job.id].notes.startswith("external-redirect")
        assert report.applications_submitted == 1
        assert [outcome.success for outcome in report.results] == [True, False]
        assert tracker.get(config.id).fail_count == 1


def test_bot_verification_block_fails_run_without_attempts() -> None:
    tracker = ProgressTracker()
    automator = FakeAutomator(FIVE_JOBS, login_ok=False, login_failure="bot-verification-block")
    with SessionLocal() as db:
        repo, user, config = _setup(db)

        with pytest.raises(AuthenticationError) as excinfo:
            _orchestrator(db, automator, tracker).run_sync(config.id)

        assert excinfo.value.reason == "bot-verification-block"
        assert excinfo.value.report is not None
        assert excinfo.value.report.applications_submitted == 0
        assert tracker.get(config.id).status == "failed"
        assert repo.list_attempts(user_id=user.id) == []
        assert automator.logged_out


def test_uncertain_submission_counts_as_applied_by_default() -> None:
    tracker = ProgressTracker()
    uncertain = ApplicationResult(
        success=True, job_id="r1", outcome="uncertain", reason="submission-uncertain", message="no confirmation"
    )
    with SessionLocal() as db:
        repo, user, config = _setup(db)
        report = _orchestrator(db, FakeAutomator(FIVE_JOBS[:1], results={"r1": uncertain}), tracker).run_sync(
            config.id
        )

        attempt = repo.list_attempts(user_id=user.id)[0]
        assert attempt.status == "APPLIED"
        assert attempt.notes == "submission-uncertain: no confirmation"
        assert report.applications_submitted == 1


def test_uncertain_submission_can_be_recorded_as_failed() -> None:
    tracker = ProgressTracker()
    uncertain = ApplicationResult(
        success=True, job_id="r1", outcome="uncertain", reason="submission-uncertain", message="no confirmation"
    )
    settings = Settings(count_uncertain_as_applied=False)
    with SessionLocal() as db:
        repo, user, config = _setup(db)
        automator = FakeAutomator(FIVE_JOBS[:1], results={"r1": uncertain})
        report = _orchestrator(db, automator, tracker, settings).run_sync(config.id)

        assert repo.list_attempts(user_id=user.id)[0].status == "FAILED"
        assert report.applications_submitted == 0
        assert tracker.get(config.id).fail_count == 1


def test_blacklist_and_threshold_filter_candidates() -> None:
    tracker = ProgressTracker()
    listings = [
        make_listing("j1", "Développeur Java React"),
        make_listing("j2", "React Developer"),
        make_listing("j3", "C++ Developer"),
        make_listing("j4", "React Node Developer"),
    ]
    automator = FakeAutomator(listings)
    with SessionLocal() as db:
        _, _, config = _setup(db, blacklist_keywords_json=["Java"], skill_match_threshold=50)
        report = _orchestrator(db, automator, tracker).run_sync(config.id)

        assert report.total_jobs_found == 4
        assert [job.external_id for job, _ in automator.applied] == ["j2", "j4"]


def test_profile_contact_wins_over_config_fallback() -> None:
    tracker = ProgressTracker()
    automator = FakeAutomator(FIVE_JOBS[:1])
    with SessionLocal() as db:
        repo, user, config = _setup(
            db,
            fallback_phone="0700000000",
            fallback_city="Lyon",
            cover_letter_template="Bonjour {{COMPANY_NAME}}, {{USER_NAME}} ({{USER_EXPERIENCE}})",
        )
        repo.upsert_user_profile(user.id, {"phone": "0600000000", "experience": "3 ans"})
        _orchestrator(db, automator, tracker).run_sync(config.id)

        _, application = automator.applied[0]
        assert application.contact.phone == "0600000000"
        assert application.contact.city == "Lyon"
        assert application.cover_letter == "Bonjour Acme, Alex Martin (3 ans)"
        assert repo.list_attempts(user_id=user.id)[0].cover_text == application.cover_letter
        assert automator.criteria.keywords == ["React", "Node"]
        assert automator.criteria.location == "France"


def test_custom_message_used_when_template_disabled() -> None:
    tracker = ProgressTracker()
    automator = FakeAutomator(FIVE_JOBS[:1])
    with SessionLocal() as db:
        _, _, config = _setup(db, use_custom_template=False, custom_message="Disponible immédiatement")
        _orchestrator(db, automator, tracker).run_sync(config.id)

        assert automator.applied[0][1].cover_letter == "Disponible immédiatement"


def test_unexpected_error_is_wrapped_and_run_marked_failed() -> None:
    tracker = ProgressTracker()
    automator = FakeAutomator(FIVE_JOBS, search_error=RuntimeError("driver crashed"))
    with SessionLocal() as db:
        _, _, config = _setup(db)

        with pytest.raises(InfrastructureError) as excinfo:
            _orchestrator(db, automator, tracker).run_sync(config.id)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert tracker.get(config.id).status == "failed"
        assert automator.logged_out


def test_inactive_config_is_rejected_before_any_browser_work() -> None:
    tracker = ProgressTracker()
    automator = FakeAutomator(FIVE_JOBS)
    with SessionLocal() as db:
        _, _, config = _setup(db, is_active=False)

        with pytest.raises(ConfigurationError):
            _orchestrator(db, automator, tracker).run_sync(config.id)
        with pytest.raises(ConfigurationError):
            _orchestrator(db, automator, tracker).run_sync(config.id + 100)

        assert tracker.get(config.id) is None
        assert automator.criteria is None


class _RacingAutomator(FakeAutomator):
    """Another run records the same job while this one is submitting it."""

    def __init__(self, listings, user_id: int, config_id: int):
        super().__init__(listings)
        self.user_id = user_id
        self.config_id = config_id

    async def apply_to_job(self, job, application):
        with SessionLocal() as other:
            repo = Repository(other)
            stored = repo.create_or_update_job(job)
            repo.create_application_attempt(
                user_id=self.user_id,
                job_id=stored.id,
                config_id=self.config_id,
                status=PipelineStatus.APPLIED,
                channel="other",
            )
        return await super().apply_to_job(job, application)


def test_attempt_recorded_by_another_run_still_reported() -> None:
    tracker = ProgressTracker()
    with SessionLocal() as db:
        repo, user, config = _setup(db)
        automator = _RacingAutomator(FIVE_JOBS[:1], user.id, config.id)

        report = _orchestrator(db, automator, tracker).run_sync(config.id)

        assert len(automator.applied) == 1
        assert [outcome.job_id for outcome in report.results] == ["r1"]
        assert report.results[0].success is True
        assert "already recorded by another run" in report.results[0].message
        assert report.applications_submitted == 1
        assert tracker.get(config.id).success_count == 1
        attempts = repo.list_attempts(user_id=user.id)
        assert [attempt.channel for attempt in attempts] == ["other"]


def test_visible_browser_slows_inter_application_pacing() -> None:
    settings = Settings(pacing_scale=0.5, browser_headless=False, visible_pacing_multiplier=2.0)
    with SessionLocal() as db:
        orchestrator = AutoApplyOrchestrator(db, settings=settings, progress=ProgressTracker())

        assert orchestrator.pacing.scale == 1.0
