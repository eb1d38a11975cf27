from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from autoapply.browser.automator import SiteAutomator
from autoapply.browser.demo import DemoSiteAutomator
from autoapply.browser.hellowork import HelloWorkAutomator
from autoapply.browser.session import BrowserSession
from autoapply.config import Settings
from autoapply.core.audit import RunAuditLog
from autoapply.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class SupportedBoard:
    name: str
    url: str
    description: str


SUPPORTED_BOARDS: dict[str, SupportedBoard] = {
    "hellowork": SupportedBoard(
        name="HelloWork",
        url="https://www.hellowork.com",
        description="French job board with automated application support",
    ),
}


def supported_boards() -> list[SupportedBoard]:
    return list(SUPPORTED_BOARDS.values())


def create_automator(
    board: str,
    *,
    email: str,
    password: str,
    settings: Settings,
    audit: RunAuditLog,
    use_real_automation: bool = False,
    session_factory: Callable[[], BrowserSession] | None = None,
) -> SiteAutomator:
    key = board.strip().lower()
    if key not in SUPPORTED_BOARDS:
        raise ConfigurationError(f"unsupported job board: {board}")

    if not use_real_automation:
        return DemoSiteAutomator(audit, max_keywords=settings.max_search_keywords)

    if not email or not password:
        raise ConfigurationError(f"{SUPPORTED_BOARDS[key].name} credentials are missing")
    return HelloWorkAutomator(
        email,
        password,
        settings=settings,
        audit=audit,
        session_factory=session_factory,
    )
