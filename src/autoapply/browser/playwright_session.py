from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator as PlaywrightLocator
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from autoapply.browser.locators import Locator
from autoapply.browser.pacing import HumanPacing
from autoapply.browser.session import BrowserSession, Element
from autoapply.config import Settings
from autoapply.errors import BrowserTimeoutError, NavigationError

logger = logging.getLogger(__name__)

MAX_MATCHES_PER_LOCATOR = 25
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


@contextmanager
def _translate_errors(what: str) -> Iterator[None]:
    try:
        yield
    except PlaywrightTimeoutError as exc:
        raise BrowserTimeoutError(f"{what}: {exc.message}") from exc
    except PlaywrightError as exc:
        raise NavigationError(f"{what}: {exc.message}") from exc


class PlaywrightElement(Element):
    def __init__(self, handle: PlaywrightLocator):
        self.handle = handle

    async def tag_name(self) -> str:
        with _translate_errors("tag name"):
            return await self.handle.evaluate("el => el.tagName.toLowerCase()")

    async def text(self) -> str:
        with _translate_errors("inner text"):
            return await self.handle.inner_text()

    async def attribute(self, name: str) -> str | None:
        with _translate_errors(f"attribute {name}"):
            return await self.handle.get_attribute(name)

    async def value(self) -> str:
        with _translate_errors("input value"):
            tag = await self.tag_name()
            if tag not in {"input", "textarea", "select"}:
                return ""
            return await self.handle.input_value()

    async def is_visible(self) -> bool:
        with _translate_errors("visibility"):
            return await self.handle.is_visible()

    async def is_enabled(self) -> bool:
        with _translate_errors("enabled state"):
            return await self.handle.is_enabled()

    async def outer_html(self) -> str:
        with _translate_errors("outer html"):
            return await self.handle.evaluate("el => el.outerHTML")


class PlaywrightBrowserSession(BrowserSession):
    def __init__(self, settings: Settings, pacing: HumanPacing | None = None, session_id: str | None = None):
        super().__init__(
            pacing or HumanPacing(settings.effective_pacing_scale),
            nav_timeout_sec=settings.browser_nav_timeout_sec,
            action_timeout_sec=settings.browser_action_timeout_sec,
            screenshot_dir=settings.screenshot_dir if settings.save_screenshots else None,
            session_id=session_id,
        )
        self.settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._pointer = (settings.browser_viewport_width / 2, settings.browser_viewport_height / 2)

    @property
    def page(self) -> Page:
        if self._page is None:
            raise NavigationError("browser session not started")
        return self._page

    async def start(self) -> None:
        if self._page is not None:
            return
        settings = self.settings
        with _translate_errors("browser launch"):
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=settings.browser_headless,
                slow_mo=0 if settings.browser_headless else settings.browser_slow_mo_ms,
                args=LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(
                viewport={
                    "width": settings.browser_viewport_width,
                    "height": settings.browser_viewport_height,
                },
                user_agent=settings.browser_user_agent,
                locale=settings.browser_locale,
                timezone_id=settings.timezone,
            )
            self._page = await self._context.new_page()
        self._page.set_default_timeout(settings.browser_action_timeout_sec * 1000)
        self._page.set_default_navigation_timeout(settings.browser_nav_timeout_sec * 1000)
        logger.info(
            "[%s] browser started (headless=%s)", self.session_id, settings.browser_headless
        )

    async def close(self) -> None:
        context, browser, playwright = self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        try:
            if context is not None:
                await context.close()
            if browser is not None:
                await browser.close()
        except PlaywrightError as exc:
            logger.warning("[%s] error while closing browser: %s", self.session_id, exc.message)
        finally:
            if playwright is not None:
                await playwright.stop()
        logger.info("[%s] browser closed", self.session_id)

    @property
    def current_url(self) -> str:
        return self._page.url if self._page is not None else ""

    async def title(self) -> str:
        with _translate_errors("page title"):
            return await self.page.title()

    async def page_text(self) -> str:
        with _translate_errors("page text"):
            return await self.page.inner_text("body")

    async def page_html(self) -> str:
        with _translate_errors("page html"):
            return await self.page.content()

    async def _goto(self, url: str, timeout: float) -> int | None:
        with _translate_errors(f"goto {url}"):
            response = await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
        return response.status if response is not None else None

    async def _query(self, locator: Locator) -> list[Element]:
        with _translate_errors(f"query {locator}"):
            matches = self.page.locator(locator.to_selector())
            count = await matches.count()
        return [PlaywrightElement(matches.nth(index)) for index in range(min(count, MAX_MATCHES_PER_LOCATOR))]

    async def _focus(self, element: Element) -> None:
        with _translate_errors("focus"):
            await self._handle(element).click()

    async def _type_char(self, element: Element, char: str) -> None:
        with _translate_errors("keystroke"):
            await self.page.keyboard.type(char)

    async def _move_pointer(self, element: Element | None) -> None:
        with _translate_errors("pointer move"):
            if element is None:
                x, y = self.pacing.jitter(
                    *self._pointer, self.settings.browser_viewport_width, self.settings.browser_viewport_height
                )
                await self.page.mouse.move(x, y, steps=2)
                self._pointer = (x, y)
                return
            box = await self._handle(element).bounding_box()
            if box is None:
                return
            dx, dy = self.pacing.pointer_offset(box["width"], box["height"])
            self._pointer = (box["x"] + dx, box["y"] + dy)
            await self.page.mouse.move(*self._pointer, steps=8)

    async def _click(self, element: Element) -> None:
        with _translate_errors("click"):
            await self._handle(element).click()

    async def _screenshot(self, path: Path) -> None:
        with _translate_errors("screenshot"):
            await self.page.screenshot(path=str(path), full_page=True)

    @staticmethod
    def _handle(element: Element) -> PlaywrightLocator:
        if not isinstance(element, PlaywrightElement):
            raise TypeError(f"expected a PlaywrightElement, got {type(element).__name__}")
        return element.handle
