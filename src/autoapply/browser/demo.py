from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime, timedelta

from autoapply.browser.automator import SiteAutomator
from autoapply.core.audit import RunAuditLog
from autoapply.errors import AuthenticationError
from autoapply.types import ApplicationData, ApplicationResult, JobListing, SearchCriteria

BASE_URL = "https://www.hellowork.com/fr-fr/emplois"


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "dev"


class DemoSiteAutomator(SiteAutomator):
    """Browserless automator used when real automation is off.

    Logs in unconditionally, synthesizes two listings per keyword and accepts
    every application.
    """

    name = "demo"

    def __init__(self, audit: RunAuditLog, *, max_keywords: int = 5):
        super().__init__()
        self.audit = audit
        self.max_keywords = max_keywords
        self.logged_in = False

    async def login(self) -> bool:
        self.logged_in = True
        self.audit.success("demo login")
        return True

    def _require_login(self) -> None:
        if not self.logged_in:
            raise AuthenticationError("must be logged in before using the job board")

    async def search_jobs(self, criteria: SearchCriteria) -> list[JobListing]:
        self._require_login()
        now = datetime.now(UTC)
        keywords = [keyword for keyword in criteria.keywords if keyword.strip()][: self.max_keywords]
        salary_min = criteria.salary_min or 45000
        jobs: list[JobListing] = []
        for keyword in keywords or ["Full Stack"]:
            slug = _slug(keyword)
            jobs.append(
                JobListing(
                    external_id=f"demo-{slug}-001",
                    title=f"Développeur {keyword}",
                    company="TechCorp France",
                    location=criteria.location,
                    url=f"{BASE_URL}/demo-{slug}-001.html",
                    description=f"Poste de développeur {', '.join(keywords)} dans une équipe dynamique.",
                    posted_at=now,
                    salary_min=salary_min,
                    salary_max=salary_min + 10000,
                    salary_text=f"{salary_min} € - {salary_min + 10000} €",
                    tags=[keyword],
                    remote=criteria.remote,
                    contract_type="CDI",
                )
            )
            jobs.append(
                JobListing(
                    external_id=f"demo-{slug}-002",
                    title=f"Senior {keyword} Developer",
                    company="Innovation Labs",
                    location=criteria.location,
                    url=f"{BASE_URL}/demo-{slug}-002.html",
                    description=f"Développeur senior spécialisé en {' et '.join(keywords)}.",
                    posted_at=now - timedelta(days=1),
                    salary_min=50000,
                    salary_max=65000,
                    salary_text="50 000 € - 65 000 €",
                    tags=[keyword, "leadership", "mentoring"],
                    contract_type="CDI",
                )
            )
        self.audit.info(f"demo search produced {len(jobs)} jobs")
        return jobs

    async def apply_to_job(self, job: JobListing, application: ApplicationData) -> ApplicationResult:
        self._require_login()
        reference = f"app_{uuid.uuid4().hex[:10]}"
        self.audit.success(
            f"demo application to {job.title}",
            {"cover_letter_length": len(application.cover_letter), "reference": reference},
            job_id=job.external_id,
        )
        return ApplicationResult(
            success=True,
            job_id=job.external_id,
            outcome="applied",
            message=f"Application submitted successfully ({reference})",
        )

    async def logout(self) -> None:
        self.logged_in = False
