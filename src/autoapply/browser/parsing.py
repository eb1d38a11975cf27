from __future__ import annotations

import logging
import re
from datetime import datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from autoapply.types import JobListing

logger = logging.getLogger(__name__)

BASE_URL = "https://www.hellowork.com"
RESULT_ITEM_SELECTOR = "li[data-id-storage-item-id]"
JOB_LINK_SELECTOR = 'a[href*="/fr-fr/emplois/"], a[href*="/emploi/"], a[href*="/offre/"]'
NEXT_PAGE_SELECTOR = (
    'a[rel="next"], a[aria-label*="suivante" i], a[data-cy="nextPage"], [data-cy="nextPage"] a'
)
REMOTE_MARKERS = ("télétravail", "teletravail", "remote", "full remote")
_SALARY_NUMBER = re.compile(r"(\d[\d\s.,]*)\s*(k)?", re.IGNORECASE)


def _clean(node: Tag | None) -> str:
    if node is None:
        return ""
    return " ".join(node.get_text(" ").split())


def parse_salary(text: str) -> tuple[int | None, int | None]:
    if "€" not in text:
        return None, None
    matches = _SALARY_NUMBER.findall(text)
    # "45 - 55 k€" puts the k on the last number only
    in_thousands = any(thousands for _, thousands in matches)
    values: list[int] = []
    for number, _ in matches:
        digits = re.sub(r"\s", "", number).replace(",", ".")
        try:
            value = float(digits)
        except ValueError:
            continue
        if in_thousands and value < 1000:
            value *= 1000
        values.append(int(value))
    if not values:
        return None, None
    return min(values), max(values)


def _parse_card(item: Tag) -> JobListing | None:
    job_id = item.get("data-id-storage-item-id")
    link = item.select_one(JOB_LINK_SELECTOR)
    href = link.get("href") if link is not None else None

    title = ""
    company = ""
    heading = item.find("h3")
    if heading is not None:
        paragraphs = heading.find_all("p")
        if paragraphs:
            title = _clean(paragraphs[0])
        if len(paragraphs) > 1:
            company = _clean(paragraphs[1])
    if not company:
        logo = item.select_one("img[alt]")
        if logo is not None:
            company = str(logo.get("alt", "")).strip()

    if not (job_id and href and title):
        logger.debug("skipping result card: id=%r href=%r title=%r", job_id, href, title)
        return None

    location = _clean(item.select_one('[data-cy="localisationCard"]'))
    contract = _clean(item.select_one('[data-cy="contractCard"]'))
    salary_text = ""
    for node in item.select(".tw-typo-s-bold"):
        candidate = _clean(node)
        if "€" in candidate:
            salary_text = candidate
            break
    salary_min, salary_max = parse_salary(salary_text)

    posted_at = None
    stamp = item.select_one("time[datetime]")
    if stamp is not None:
        try:
            posted_at = datetime.fromisoformat(str(stamp["datetime"]))
        except ValueError:
            logger.debug("unparseable posting date %r", stamp["datetime"])

    card_text = _clean(item).lower()
    return JobListing(
        external_id=str(job_id),
        title=title,
        company=company,
        location=location,
        url=urljoin(BASE_URL, str(href)),
        description=" - ".join(part for part in (contract, salary_text) if part),
        posted_at=posted_at,
        salary_min=salary_min,
        salary_max=salary_max,
        salary_text=salary_text,
        tags=[contract] if contract else [],
        remote=any(marker in card_text for marker in REMOTE_MARKERS),
        contract_type=contract,
    )


def parse_search_results(html: str) -> list[JobListing]:
    soup = BeautifulSoup(html, "html.parser")
    jobs: list[JobListing] = []
    for item in soup.select(RESULT_ITEM_SELECTOR):
        job = _parse_card(item)
        if job is not None:
            jobs.append(job)
    return jobs


def parse_next_page_url(html: str, current_url: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    link = soup.select_one(NEXT_PAGE_SELECTOR)
    if link is None:
        return None
    if link.get("aria-disabled") == "true" or "disabled" in (link.get("class") or []):
        return None
    href = link.get("href")
    if not href or str(href).startswith("#"):
        return None
    return urljoin(current_url, str(href))


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()
    lines = [line.strip() for line in soup.get_text("\n").splitlines() if line.strip()]
    return "\n".join(lines)
