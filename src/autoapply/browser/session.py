from __future__ import annotations

import asyncio
import logging
import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from autoapply.browser.locators import Locator, css
from autoapply.browser.pacing import KEYSTROKE, SETTLE, HumanPacing
from autoapply.errors import BrowserTimeoutError, NavigationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_FOUND_TITLE_MARKERS = ("introuvable", "page not found", "404")
NOT_FOUND_TEXT_MARKERS = ("cette page est introuvable", "page not found")
DEFAULT_CONTROL_SELECTOR = "button, input[type='submit'], input[type='button'], a[role='button']"
HTML_EXCERPT_LEN = 200


class Element(ABC):
    @abstractmethod
    async def tag_name(self) -> str: ...

    @abstractmethod
    async def text(self) -> str: ...

    @abstractmethod
    async def attribute(self, name: str) -> str | None: ...

    @abstractmethod
    async def value(self) -> str: ...

    @abstractmethod
    async def is_visible(self) -> bool: ...

    @abstractmethod
    async def is_enabled(self) -> bool: ...

    @abstractmethod
    async def outer_html(self) -> str: ...

    async def describe(self) -> dict[str, Any]:
        html = await self.outer_html()
        return {
            "tag": await self.tag_name(),
            "type": await self.attribute("type") or "",
            "id": await self.attribute("id") or "",
            "class": await self.attribute("class") or "",
            "text": (await self.text()).strip(),
            "visible": await self.is_visible(),
            "enabled": await self.is_enabled(),
            "html": html[:HTML_EXCERPT_LEN],
        }


class BrowserSession(ABC):
    """One exclusively owned browser page with human-paced, time-bounded operations.

    Subclasses implement the primitive ``_``-prefixed operations; this class
    layers fallback navigation, ordered locator resolution, pacing, timeouts
    and diagnostics on top of them.
    """

    def __init__(
        self,
        pacing: HumanPacing,
        *,
        nav_timeout_sec: float = 30.0,
        action_timeout_sec: float = 15.0,
        screenshot_dir: Path | None = None,
        session_id: str | None = None,
    ):
        self.pacing = pacing
        self.nav_timeout_sec = nav_timeout_sec
        self.action_timeout_sec = action_timeout_sec
        self.screenshot_dir = screenshot_dir
        self.session_id = session_id or uuid.uuid4().hex[:8]

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @abstractmethod
    async def start(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @property
    @abstractmethod
    def current_url(self) -> str: ...

    @abstractmethod
    async def title(self) -> str: ...

    @abstractmethod
    async def page_text(self) -> str: ...

    @abstractmethod
    async def page_html(self) -> str: ...

    @abstractmethod
    async def _goto(self, url: str, timeout: float) -> int | None:
        """Load ``url`` and return the HTTP status when known."""

    @abstractmethod
    async def _query(self, locator: Locator) -> list[Element]: ...

    @abstractmethod
    async def _focus(self, element: Element) -> None: ...

    @abstractmethod
    async def _type_char(self, element: Element, char: str) -> None: ...

    @abstractmethod
    async def _move_pointer(self, element: Element | None) -> None: ...

    @abstractmethod
    async def _click(self, element: Element) -> None: ...

    @abstractmethod
    async def _screenshot(self, path: Path) -> None: ...

    async def _bounded(self, awaitable: Awaitable[T], timeout: float | None, what: str) -> T:
        limit = self.action_timeout_sec if timeout is None else timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=limit)
        except asyncio.TimeoutError as exc:
            raise BrowserTimeoutError(f"{what} timed out after {limit}s") from exc

    async def navigate(self, url: str, fallback_urls: Sequence[str] = (), timeout: float | None = None) -> str:
        limit = self.nav_timeout_sec if timeout is None else timeout
        last_error: NavigationError | None = None

        for candidate in [url, *fallback_urls]:
            try:
                status = await self._bounded(self._goto(candidate, limit), limit, f"navigation to {candidate}")
            except NavigationError as exc:
                logger.warning("[%s] navigation to %s failed: %s", self.session_id, candidate, exc)
                last_error = exc
                continue

            if status == 404 or await self._looks_not_found():
                logger.warning("[%s] %s returned a not-found page", self.session_id, candidate)
                last_error = NavigationError(f"{candidate} not found")
                continue

            logger.info("[%s] loaded %s", self.session_id, self.current_url or candidate)
            return self.current_url or candidate

        message = f"could not load {url} or any of {len(fallback_urls)} fallbacks"
        if isinstance(last_error, BrowserTimeoutError):
            raise BrowserTimeoutError(message) from last_error
        raise NavigationError(message) from last_error

    async def _looks_not_found(self) -> bool:
        page_title = (await self.title()).lower()
        if any(marker in page_title for marker in NOT_FOUND_TITLE_MARKERS):
            return True
        body = (await self.page_text()).lower()
        return any(marker in body for marker in NOT_FOUND_TEXT_MARKERS)

    async def query_all(self, locator: Locator, timeout: float | None = None) -> list[Element]:
        return await self._bounded(self._query(locator), timeout, f"query {locator}")

    async def locate(self, candidates: Iterable[Locator], timeout: float | None = None) -> Element | None:
        for locator in candidates:
            for element in await self.query_all(locator, timeout):
                if await element.is_visible():
                    logger.debug("[%s] located %s", self.session_id, locator)
                    return element
        return None

    async def wait_until(
        self,
        check: Callable[[], Awaitable[bool]],
        timeout: float,
        poll_interval: float = 0.25,
    ) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if await check():
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(poll_interval, remaining))

    async def wait_for_element(
        self,
        candidates: Sequence[Locator],
        timeout: float | None = None,
        poll_interval: float = 0.25,
    ) -> Element | None:
        found: list[Element] = []

        async def _check() -> bool:
            element = await self.locate(candidates)
            if element is not None:
                found.append(element)
                return True
            return False

        limit = self.action_timeout_sec if timeout is None else timeout
        if await self.wait_until(_check, limit, poll_interval):
            return found[-1]
        return None

    async def type_text(self, element: Element, value: str, timeout: float | None = None) -> None:
        await self._bounded(self._focus(element), timeout, "focus")
        jitter_every = self.pacing.jitter_interval()
        for index, char in enumerate(value, start=1):
            await self._bounded(self._type_char(element, char), timeout, "keystroke")
            await self.pacing.pause(KEYSTROKE)
            if index % jitter_every == 0:
                await self._move_pointer(None)
                jitter_every = self.pacing.jitter_interval()

    async def click(self, element: Element, timeout: float | None = None) -> None:
        await self._bounded(self._move_pointer(element), timeout, "pointer move")
        await self.pacing.pause(SETTLE)
        await self._bounded(self._click(element), timeout, "click")

    async def screenshot(self, tag: str) -> str | None:
        if self.screenshot_dir is None:
            return None
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        slug = re.sub(r"[^a-z0-9]+", "-", tag.lower()).strip("-") or "page"
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = self.screenshot_dir / f"{stamp}_{self.session_id}_{slug}.png"
        try:
            await self._bounded(self._screenshot(path), None, f"screenshot {slug}")
        except NavigationError as exc:
            logger.warning("[%s] screenshot %s failed: %s", self.session_id, slug, exc)
            return None
        return str(path)

    async def describe_controls(self, selector: str = DEFAULT_CONTROL_SELECTOR) -> list[dict[str, Any]]:
        elements = await self.query_all(css(selector)[0])
        return [await element.describe() for element in elements]
