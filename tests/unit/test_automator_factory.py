import asyncio

import pytest

from autoapply.browser.demo import DemoSiteAutomator
from autoapply.browser.factory import create_automator, supported_boards
from autoapply.browser.hellowork import HelloWorkAutomator
from autoapply.config import Settings
from autoapply.core.audit import RunAuditLog
from autoapply.errors import AuthenticationError, ConfigurationError
from autoapply.types import ApplicationData, SearchCriteria


def _create(board: str = "hellowork", real: bool = False, email: str = "a@b.c", password: str = "pw"):
    return create_automator(
        board,
        email=email,
        password=password,
        settings=Settings(pacing_scale=0),
        audit=RunAuditLog(1),
        use_real_automation=real,
    )


def test_demo_automator_by_default() -> None:
    assert isinstance(_create(), DemoSiteAutomator)


def test_real_automation_builds_site_automator() -> None:
    automator = _create(" HelloWork ", real=True)

    assert isinstance(automator, HelloWorkAutomator)
    assert automator.session is None


def test_unknown_board_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        _create("monster")


def test_real_automation_requires_credentials() -> None:
    with pytest.raises(ConfigurationError):
        _create(real=True, password="")


def test_supported_boards_listing() -> None:
    assert [board.name for board in supported_boards()] == ["HelloWork"]


def test_demo_produces_two_listings_per_keyword() -> None:
    automator = DemoSiteAutomator(RunAuditLog(1), max_keywords=2)

    async def _run():
        assert await automator.login()
        jobs = await automator.search_jobs(SearchCriteria(keywords=["React", "Node", "Go"], location="Paris"))
        result = await automator.apply_to_job(jobs[0], ApplicationData(full_name="A", email="a@b.c"))
        return jobs, result

    jobs, result = asyncio.run(_run())

    assert [job.external_id for job in jobs] == ["demo-react-001", "demo-react-002", "demo-node-001", "demo-node-002"]
    assert len({job.url for job in jobs}) == 4
    assert result.success and result.outcome == "applied"


def test_demo_requires_login() -> None:
    automator = DemoSiteAutomator(RunAuditLog(1))

    with pytest.raises(AuthenticationError):
        asyncio.run(automator.search_jobs(SearchCriteria(keywords=["React"])))
