"""Relevance score for job listings.

One additive score in [0, 100]. Each factor only ever adds points, so the
score is monotonic in every factor:

* seniority keyword in the title: senior/lead/principal +15, mid/confirmed +10,
  junior/entry +5 (the highest matching band counts once)
* engineering role keyword in the title: +25
* skill overlap with the listing's tags and title: +5 per skill, at most +30
* remote flag: +15
* salary information present: +10
* posted within the last 7 days: +5

The score is informational. Candidates are processed in search order.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from autoapply.core.matching import contains_term, normalize_text
from autoapply.types import JobListing

MAX_SCORE = 100
SKILL_POINTS = 5
SKILL_CAP = 30
ROLE_POINTS = 25
REMOTE_POINTS = 15
SALARY_POINTS = 10
RECENCY_POINTS = 5
RECENCY_WINDOW = timedelta(days=7)

SENIORITY_BANDS: list[tuple[int, tuple[str, ...]]] = [
    (15, ("senior", "lead", "principal", "staff", "sénior")),
    (10, ("mid", "intermediate", "confirmé", "confirmed")),
    (5, ("junior", "entry", "débutant", "graduate")),
]
ROLE_KEYWORDS = ("engineer", "developer", "développeur", "developpeur", "ingénieur", "ingenieur")


def _seniority_points(title: str) -> int:
    for points, keywords in SENIORITY_BANDS:
        if any(contains_term(title, keyword) for keyword in keywords):
            return points
    return 0


def _role_points(title: str) -> int:
    # role words are matched as prefixes so "développeuse" and "engineering" count
    return ROLE_POINTS if any(keyword in title for keyword in ROLE_KEYWORDS) else 0


def _skill_points(job: JobListing, skills: list[str]) -> int:
    haystack = normalize_text(" ".join([job.title, *job.tags]))
    overlap = sum(1 for skill in skills if contains_term(haystack, skill))
    return min(overlap * SKILL_POINTS, SKILL_CAP)


def score_job(job: JobListing, skills: list[str], now: datetime | None = None) -> int:
    now = now or datetime.now(UTC)
    title = normalize_text(job.title)

    score = _seniority_points(title) + _role_points(title) + _skill_points(job, skills)
    if job.remote:
        score += REMOTE_POINTS
    if job.has_salary:
        score += SALARY_POINTS
    if job.posted_at is not None:
        posted_at = job.posted_at if job.posted_at.tzinfo else job.posted_at.replace(tzinfo=UTC)
        if now - posted_at <= RECENCY_WINDOW:
            score += RECENCY_POINTS

    return min(score, MAX_SCORE)
