from datetime import UTC, datetime, timedelta

from autoapply.core.scoring import MAX_SCORE, score_job
from autoapply.types import JobListing

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=UTC)


def _job(**overrides) -> JobListing:
    values = {"external_id": "1", "title": "Chef de projet", "url": "https://www.hellowork.com/fr-fr/emplois/1.html"}
    values.update(overrides)
    return JobListing(**values)


def test_plain_listing_scores_zero() -> None:
    assert score_job(_job(), [], now=NOW) == 0


def test_each_factor_only_adds_points() -> None:
    base = score_job(_job(), ["Python"], now=NOW)
    remote = score_job(_job(remote=True), ["Python"], now=NOW)
    salary = score_job(_job(remote=True, salary_text="45 000 €"), ["Python"], now=NOW)
    recent = score_job(_job(remote=True, salary_text="45 000 €", posted_at=NOW - timedelta(days=2)), ["Python"], now=NOW)

    assert base < remote < salary < recent


def test_role_and_seniority_bands() -> None:
    assert score_job(_job(title="Développeur Python"), [], now=NOW) == 25
    assert score_job(_job(title="Senior Développeur"), [], now=NOW) == 40
    assert score_job(_job(title="Junior Engineer"), [], now=NOW) == 30


def test_old_postings_get_no_recency_points() -> None:
    fresh = score_job(_job(posted_at=NOW - timedelta(days=7)), [], now=NOW)
    stale = score_job(_job(posted_at=NOW - timedelta(days=8)), [], now=NOW)

    assert fresh == 5
    assert stale == 0


def test_skill_overlap_is_capped_and_total_is_capped() -> None:
    skills = ["React", "Node", "Docker", "AWS", "Python", "Go", "Rust", "SQL"]
    job = _job(
        title="Senior Lead Developer React Node",
        tags=["Docker", "AWS", "Python", "Go", "Rust", "SQL"],
        remote=True,
        salary_min=60000,
        posted_at=NOW,
    )

    assert score_job(job, skills, now=NOW) == MAX_SCORE
