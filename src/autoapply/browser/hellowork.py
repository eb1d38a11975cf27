from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlencode, urlparse

from autoapply.browser.automator import SiteAutomator
from autoapply.browser.locators import Locator, css, text
from autoapply.browser.machine import StateMachine
from autoapply.browser.pacing import (
    DelayBand,
    FIELD_PAUSE,
    FORM_INTERACTION,
    KEYSTROKE,
    NAVIGATION,
    PAGE_LOAD,
    SEARCH_QUERY,
    SETTLE,
)
from autoapply.browser.parsing import html_to_text, parse_next_page_url, parse_search_results
from autoapply.browser.playwright_session import PlaywrightBrowserSession
from autoapply.browser.session import DEFAULT_CONTROL_SELECTOR, BrowserSession, Element
from autoapply.config import Settings
from autoapply.core.audit import RunAuditLog
from autoapply.errors import ApplicationSubmissionError, NavigationError
from autoapply.types import (
    ApplicationData,
    ApplicationOutcome,
    ApplicationResult,
    FailureReason,
    JobListing,
    SearchCriteria,
)

logger = logging.getLogger(__name__)

SITE_DOMAIN = "hellowork.com"
LOGIN_URL = "https://www.hellowork.com/fr-fr/candidat/connexion-inscription.html#connexion"
LOGIN_FALLBACK_URLS = [
    "https://www.hellowork.com/fr-fr/candidat/connexion-inscription.html",
    "https://www.hellowork.com/candidat/connexion",
    "https://www.hellowork.com/login",
]
SEARCH_URL = "https://www.hellowork.com/fr-fr/emploi/recherche.html"

CONSENT_DECLINE = css("#hw-cc-notice-continue-without-accepting-btn") + text(
    "Continuer sans accepter", tag="button"
)
CONSENT_ACCEPT = css("#hw-cc-notice-accept-btn") + text("Tout accepter", "Accepter", tag="button")

EMAIL_FIELDS = css('input[name="email2"]', 'input[name="email"]', 'input[type="email"]', "#email")
PASSWORD_FIELDS = css(
    'input[name="password2"]', 'input[name="password"]', 'input[type="password"]', "#password"
)
LOGIN_BUTTONS = css(
    "button.profile-button[data-simple-progress]",
    'form button[type="submit"]',
    'input[type="submit"]',
) + text("Je me connecte", "Se connecter", "Connexion", "Login", tag="button")
LOGIN_FORM_CONTROLS = "input, button"

FRIENDLY_CAPTCHA = css(".frc-captcha")
FRIENDLY_CAPTCHA_BUTTON = css(".frc-button")
FRIENDLY_CAPTCHA_SOLUTION = ".frc-captcha-solution"
CAPTCHA_WIDGETS = css(
    ".frc-captcha",
    'iframe[src*="friendlycaptcha"]',
    'iframe[src*="recaptcha"]',
    ".g-recaptcha",
    'iframe[src*="hcaptcha"]',
    ".h-captcha",
    ".cf-turnstile",
    "[data-sitekey]",
    '[aria-label*="captcha" i]',
)
CAPTCHA_TEXT = (
    "nous vérifions que vous n'êtes pas un robot",
    "vérifiez que vous n'êtes pas un robot",
    "are you a robot",
    "verify you are human",
)
HIDDEN_CLASS = "tw-hidden"

LOGGED_IN_MARKERS = css(
    'a[href*="profil"]', 'a[href*="candidatures"]', 'a[href*="compte"]', ".user-menu", ".logout"
)
LOGIN_ERROR_MARKERS = css('[role="alert"]', ".alert-danger", ".error-message", ".form-error")

APPLY_CONTROLS = css(
    'a[href="#postuler"][data-cy="applyButton"]', '[data-cy="applyButton"]', 'a[href="#postuler"]'
) + text("Postuler", tag="a") + text("Postuler", tag="button")
EXTERNAL_LABEL_MARKERS = ("site du recruteur", "site de l'entreprise", "site externe", "postuler sur le site")
EXTERNAL_PAGE_MARKERS = (
    "postuler sur le site du recruteur",
    "candidature sur le site du recruteur",
    "vous allez être redirigé",
)
APPLY_FORMS = css("turbo-frame#apply-form-frame form#apply-form", "form#apply-form", "#postuler form")
CONTINUE_BUTTONS = css('button[data-cy="continueButton"]') + text("Continuer", "Suivant", tag="button")
PHONE_FIELDS = css('input[name="Phone"]', 'input[type="tel"]', 'input[name*="phone" i]')
POSTAL_CODE_FIELDS = css(
    'input[name="PostalCode"]', 'input[autocomplete="postal-code"]', 'input[name*="postal" i]'
)
CITY_FIELDS = css('input[name="City"]', 'input[name*="city" i]', 'input[name*="ville" i]')
MOTIVATION_TOGGLE = css('label[for="cover-letter-collapse"]')
MOTIVATION_FIELDS = css("textarea#Answer_Description", 'textarea[name="Description"]')
SUBMIT_BUTTONS = css(
    'button[type="submit"][data-cy="submitButton"]', '#apply-form button[type="submit"]'
) + text("Envoyer ma candidature", "Postuler", "Envoyer", tag="button")

CONFIRMATION_MARKERS = css(
    "turbo-frame#apply-form-frame .success",
    "turbo-frame#apply-form-frame .confirmation",
    "#apply-form .success",
    "#apply-form .confirmation",
    'turbo-frame[id*="otp"]',
)
CONFIRMATION_TEXT = (
    "candidature a bien été envoyée",
    "candidature envoyée",
    "merci pour votre candidature",
    "votre candidature a été transmise",
)
CONFIRMATION_URL = re.compile(r"success|confirmation|candidature", re.IGNORECASE)


class LoginState(Enum):
    INIT = "init"
    NAVIGATE_LOGIN = "navigate_login"
    HANDLE_CONSENT = "handle_consent"
    FILL_CREDENTIALS = "fill_credentials"
    PRE_SUBMIT_CAPTCHA = "pre_submit_captcha"
    SUBMIT = "submit"
    POST_SUBMIT_CAPTCHA = "post_submit_captcha"
    LOGGED_IN = "logged_in"
    LOGIN_FAILED = "login_failed"


class ApplyState(Enum):
    NAVIGATE_JOB_DETAIL = "navigate_job_detail"
    DETECT_EXTERNAL_REDIRECT = "detect_external_redirect"
    NAVIGATE_APPLY_FORM = "navigate_apply_form"
    OPTIONAL_CONTINUE_STEP = "optional_continue_step"
    FILL_ADDITIONAL_FIELDS = "fill_additional_fields"
    SUBMIT = "submit"
    CONFIRMATION_CHECK = "confirmation_check"
    APPLIED = "applied"
    APPLY_FAILED = "apply_failed"


@dataclass(slots=True)
class _ApplyAttempt:
    job: JobListing
    application: ApplicationData
    outcome: ApplicationOutcome = "failed"
    reason: FailureReason | None = None
    message: str = ""
    detail_text: str = ""
    apply_control: Element | None = None
    pre_submit_url: str = ""
    # confirmation markers and texts already on the page before submit
    baseline_markers: list[Locator] = field(default_factory=list)
    baseline_text: list[str] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)


def build_search_url(keyword: str, criteria: SearchCriteria) -> str:
    params: list[tuple[str, str]] = [
        ("k", keyword),
        ("l", criteria.location),
        ("st", "relevance"),
        ("cod", "all"),
        ("ray", "2000"),
        ("d", "all"),
    ]
    params.extend(("c", contract) for contract in criteria.contract_types)
    return f"{SEARCH_URL}?{urlencode(params)}"


def is_site_url(url: str) -> bool:
    host = urlparse(url).netloc.lower()
    return not host or host == SITE_DOMAIN or host.endswith(f".{SITE_DOMAIN}")


class HelloWorkAutomator(SiteAutomator):
    name = "hellowork"

    def __init__(
        self,
        email: str,
        password: str,
        *,
        settings: Settings,
        audit: RunAuditLog,
        session_factory: Callable[[], BrowserSession] | None = None,
    ):
        super().__init__()
        self.email = email
        self.password = password
        self.settings = settings
        self.audit = audit
        self._session_factory = session_factory or (lambda: PlaywrightBrowserSession(settings))
        self.session: BrowserSession | None = None

    async def _ensure_session(self) -> BrowserSession:
        if self.session is None:
            session = self._session_factory()
            await session.start()
            self.session = session
        return self.session

    @property
    def _browser(self) -> BrowserSession:
        if self.session is None:
            raise NavigationError("browser session is not open")
        return self.session

    async def _pause(self, band: DelayBand) -> None:
        await self._browser.pacing.pause(band)

    async def _screenshot(self, tag: str, job_id: str | None = None) -> str | None:
        ref = await self._browser.screenshot(tag)
        if ref is not None:
            self.audit.debug(f"screenshot {tag}", job_id=job_id, screenshot_ref=ref)
        return ref

    async def _dump_controls(
        self, context: str, job_id: str | None = None, selector: str = DEFAULT_CONTROL_SELECTOR
    ) -> None:
        controls = await self._browser.describe_controls(selector)
        ref = await self._browser.screenshot(f"{context}-diagnostics")
        self.audit.error(
            f"{context}: no usable control found",
            {"url": self._browser.current_url, "controls": controls},
            job_id=job_id,
            screenshot_ref=ref,
        )

    async def _handle_consent(self) -> str | None:
        browser = self._browser
        button = await browser.locate(CONSENT_DECLINE)
        choice = "declined"
        if button is None:
            button = await browser.locate(CONSENT_ACCEPT)
            choice = "accepted"
        if button is None:
            self.audit.debug("no consent prompt")
            return None
        await browser.click(button)
        await self._pause(SETTLE)
        self.audit.info(f"consent prompt {choice}")
        return choice

    async def _widget_active(self, element: Element) -> bool:
        classes = (await element.attribute("class") or "").split()
        if HIDDEN_CLASS in classes:
            return False
        return await element.is_visible()

    async def _captcha_present(self) -> bool:
        browser = self._browser
        for locator in CAPTCHA_WIDGETS:
            for element in await browser.query_all(locator):
                if await self._widget_active(element):
                    return True
        page_text = (await browser.page_text()).lower()
        return any(fragment in page_text for fragment in CAPTCHA_TEXT)

    # login

    async def login(self) -> bool:
        self.login_failure = None
        machine: StateMachine[LoginState] = StateMachine(
            "login",
            {
                LoginState.INIT: self._login_init,
                LoginState.NAVIGATE_LOGIN: self._login_navigate,
                LoginState.HANDLE_CONSENT: self._login_consent,
                LoginState.FILL_CREDENTIALS: self._login_fill_credentials,
                LoginState.PRE_SUBMIT_CAPTCHA: self._login_pre_submit_captcha,
                LoginState.SUBMIT: self._login_submit,
                LoginState.POST_SUBMIT_CAPTCHA: self._login_post_submit_captcha,
            },
            terminal={LoginState.LOGGED_IN, LoginState.LOGIN_FAILED},
            failure_state=LoginState.LOGIN_FAILED,
            step_timeout_sec=self._step_timeout(),
            step_timeouts={
                LoginState.NAVIGATE_LOGIN: self._navigation_timeout(len(LOGIN_FALLBACK_URLS) + 1),
                LoginState.FILL_CREDENTIALS: self._typing_timeout(len(self.email) + len(self.password)),
                LoginState.PRE_SUBMIT_CAPTCHA: self._step_timeout() + self.settings.captcha_widget_wait_sec,
                LoginState.POST_SUBMIT_CAPTCHA: (
                    self._step_timeout() + self.settings.captcha_grace_sec + self.settings.login_settle_sec
                ),
            },
            audit=self.audit,
        )
        final = await machine.run(LoginState.INIT)
        if final == LoginState.LOGGED_IN:
            self.audit.success("logged in to HelloWork")
            return True

        if self.login_failure is None:
            reason = machine.error.reason if machine.error is not None else None
            self.login_failure = reason or "credential-failure"
        self.audit.error("HelloWork login failed", {"reason": self.login_failure})
        return False

    def _on_login_page(self) -> bool:
        url = self._browser.current_url
        return "connexion" in url or "login" in url

    async def _login_init(self) -> LoginState:
        await self._ensure_session()
        return LoginState.NAVIGATE_LOGIN

    async def _login_navigate(self) -> LoginState:
        await self._browser.navigate(LOGIN_URL, LOGIN_FALLBACK_URLS)
        await self._pause(PAGE_LOAD)
        await self._screenshot("login-page")
        return LoginState.HANDLE_CONSENT

    async def _login_consent(self) -> LoginState:
        await self._handle_consent()
        return LoginState.FILL_CREDENTIALS

    async def _login_fill_credentials(self) -> LoginState:
        browser = self._browser
        email_field = await browser.locate(EMAIL_FIELDS)
        password_field = await browser.locate(PASSWORD_FIELDS)
        if email_field is None or password_field is None:
            await self._dump_controls("login form", selector=LOGIN_FORM_CONTROLS)
            raise NavigationError("login form fields not found")

        await browser.type_text(email_field, self.email)
        await self._pause(FIELD_PAUSE)
        await browser.type_text(password_field, self.password)
        await self._pause(FIELD_PAUSE)
        return LoginState.PRE_SUBMIT_CAPTCHA

    async def _login_pre_submit_captcha(self) -> LoginState:
        browser = self._browser
        widgets = [element for locator in FRIENDLY_CAPTCHA for element in await browser.query_all(locator)]
        active = [element for element in widgets if await self._widget_active(element)]
        if not active:
            if widgets:
                self.audit.debug("FriendlyCaptcha widget present but hidden")
            return LoginState.SUBMIT

        self.audit.warning("FriendlyCaptcha widget visible before submit")
        trigger = await browser.locate(FRIENDLY_CAPTCHA_BUTTON)
        if trigger is not None:
            await browser.click(trigger)

        async def _solved() -> bool:
            for element in await browser.query_all(css(FRIENDLY_CAPTCHA_SOLUTION)[0]):
                if (await element.value()).strip():
                    return True
            return False

        if await browser.wait_until(_solved, self.settings.captcha_widget_wait_sec, poll_interval=0.5):
            self.audit.info("FriendlyCaptcha solved")
        else:
            self.audit.warning("FriendlyCaptcha not solved in time, submitting anyway")
        return LoginState.SUBMIT

    async def _login_submit(self) -> LoginState:
        browser = self._browser
        button = await browser.locate(LOGIN_BUTTONS)
        if button is None:
            await self._dump_controls("login submit")
            raise NavigationError("login button not found")

        await browser.click(button)
        await self._pause(PAGE_LOAD)
        return LoginState.POST_SUBMIT_CAPTCHA

    async def _login_post_submit_captcha(self) -> LoginState:
        browser = self._browser
        if await self._captcha_present():
            ref = await self._screenshot("login-bot-verification")
            self.audit.warning(
                "bot verification after login submit, waiting for manual resolution",
                {"grace_sec": self.settings.captcha_grace_sec},
                screenshot_ref=ref,
            )

            async def _cleared() -> bool:
                return not await self._captcha_present()

            if not await browser.wait_until(_cleared, self.settings.captcha_grace_sec, poll_interval=1.0):
                self.login_failure = "bot-verification-block"
                return LoginState.LOGIN_FAILED

        async def _settled() -> bool:
            if await browser.locate(LOGGED_IN_MARKERS) is not None:
                return True
            return self._on_login_page() and await browser.locate(LOGIN_ERROR_MARKERS) is not None

        await browser.wait_until(_settled, self.settings.login_settle_sec, poll_interval=0.5)
        if await browser.locate(LOGGED_IN_MARKERS) is not None:
            return LoginState.LOGGED_IN

        still_on_login = self._on_login_page()
        if still_on_login and await browser.locate(LOGIN_ERROR_MARKERS) is not None:
            await self._screenshot("login-rejected")
            self.login_failure = "credential-failure"
            return LoginState.LOGIN_FAILED

        self.audit.warning("login status uncertain, continuing", {"url": browser.current_url})
        return LoginState.LOGGED_IN

    # search

    async def search_jobs(self, criteria: SearchCriteria) -> list[JobListing]:
        await self._ensure_session()
        keywords = [keyword for keyword in criteria.keywords if keyword.strip()]
        keywords = keywords[: self.settings.max_search_keywords] or [""]

        merged: dict[str, JobListing] = {}
        for index, keyword in enumerate(keywords):
            if index:
                await self._pause(SEARCH_QUERY)
            try:
                added = await self._search_keyword(keyword, criteria, merged)
            except NavigationError as exc:
                self.audit.warning(f"search for {keyword!r} failed", {"error": str(exc), "reason": exc.reason})
                continue
            self.audit.info(f"search for {keyword!r} added {added} jobs", {"total": len(merged)})

        self.audit.success(f"search finished with {len(merged)} unique jobs")
        return list(merged.values())

    async def _search_keyword(self, keyword: str, criteria: SearchCriteria, merged: dict[str, JobListing]) -> int:
        browser = self._browser
        await browser.navigate(build_search_url(keyword, criteria))
        await self._pause(NAVIGATION)
        await self._handle_consent()

        added = 0
        for page in range(1, self.settings.max_search_pages + 1):
            html = await browser.page_html()
            fresh = [job for job in parse_search_results(html) if job.external_id not in merged]
            for job in fresh:
                merged[job.external_id] = job
            added += len(fresh)
            logger.info("search %r page %s: %s new jobs", keyword, page, len(fresh))
            if not fresh:
                break

            next_url = parse_next_page_url(html, browser.current_url)
            if next_url is None or page == self.settings.max_search_pages:
                break
            await self._pause(NAVIGATION)
            await browser.navigate(next_url)
        return added

    # apply

    async def apply_to_job(self, job: JobListing, application: ApplicationData) -> ApplicationResult:
        await self._ensure_session()
        attempt = _ApplyAttempt(job=job, application=application)
        handlers: dict[ApplyState, Callable[[], Awaitable[ApplyState]]] = {
            ApplyState.NAVIGATE_JOB_DETAIL: lambda: self._apply_navigate_detail(attempt),
            ApplyState.DETECT_EXTERNAL_REDIRECT: lambda: self._apply_detect_external(attempt),
            ApplyState.NAVIGATE_APPLY_FORM: lambda: self._apply_open_form(attempt),
            ApplyState.OPTIONAL_CONTINUE_STEP: lambda: self._apply_continue_step(attempt),
            ApplyState.FILL_ADDITIONAL_FIELDS: lambda: self._apply_fill_fields(attempt),
            ApplyState.SUBMIT: lambda: self._apply_submit(attempt),
            ApplyState.CONFIRMATION_CHECK: lambda: self._apply_confirm(attempt),
        }
        contact = application.contact
        typed = len(application.cover_letter) + len(contact.phone) + len(contact.postal_code) + len(contact.city)
        machine: StateMachine[ApplyState] = StateMachine(
            "apply",
            handlers,
            terminal={ApplyState.APPLIED, ApplyState.APPLY_FAILED},
            failure_state=ApplyState.APPLY_FAILED,
            step_timeout_sec=self._step_timeout(),
            step_timeouts={
                ApplyState.NAVIGATE_JOB_DETAIL: self._navigation_timeout(1),
                ApplyState.FILL_ADDITIONAL_FIELDS: self._typing_timeout(typed),
                ApplyState.CONFIRMATION_CHECK: self._step_timeout() + self.settings.confirmation_timeout_sec,
            },
            audit=self.audit,
            job_id=job.external_id,
        )
        final = await machine.run(ApplyState.NAVIGATE_JOB_DETAIL)

        if final == ApplyState.APPLY_FAILED:
            if attempt.reason is None:
                error = machine.error
                attempt.reason = (error.reason if error is not None else None) or "form-not-found"
                attempt.message = str(error) if error is not None else "application failed"
            ref = await self._screenshot("apply-failed", job.external_id)
            self.audit.error(
                f"application failed: {attempt.message}",
                {"reason": attempt.reason, "url": job.url},
                job_id=job.external_id,
                screenshot_ref=ref,
            )
            return ApplicationResult.failed(job.external_id, attempt.reason, attempt.message, screenshot_ref=ref)

        ref = attempt.screenshots[-1] if attempt.screenshots else None
        if attempt.outcome == "uncertain":
            self.audit.warning(attempt.message, job_id=job.external_id, screenshot_ref=ref)
            return ApplicationResult(
                success=True,
                job_id=job.external_id,
                outcome="uncertain",
                reason="submission-uncertain",
                message=attempt.message,
                screenshot_ref=ref,
            )
        self.audit.success(f"applied to {job.title} at {job.company}", job_id=job.external_id, screenshot_ref=ref)
        return ApplicationResult(
            success=True, job_id=job.external_id, outcome="applied", message=attempt.message, screenshot_ref=ref
        )

    async def _apply_navigate_detail(self, attempt: _ApplyAttempt) -> ApplyState:
        browser = self._browser
        await browser.navigate(attempt.job.url)
        await self._pause(PAGE_LOAD)
        await self._handle_consent()
        attempt.detail_text = html_to_text(await browser.page_html()).lower()
        await self._screenshot("job-detail", attempt.job.external_id)
        return ApplyState.DETECT_EXTERNAL_REDIRECT

    async def _apply_detect_external(self, attempt: _ApplyAttempt) -> ApplyState:
        control = await self._browser.locate(APPLY_CONTROLS)
        if control is None:
            await self._dump_controls("apply control", attempt.job.external_id)
            raise NavigationError("no apply control on the job page")

        if await self._is_external(control, attempt.detail_text):
            attempt.reason = "external-redirect"
            attempt.message = "Application happens on the recruiter's site; apply manually"
            return ApplyState.APPLY_FAILED

        attempt.apply_control = control
        return ApplyState.NAVIGATE_APPLY_FORM

    async def _is_external(self, control: Element, detail_text: str) -> bool:
        label = " ".join(
            part
            for part in (
                await control.text(),
                await control.attribute("aria-label") or "",
                await control.attribute("title") or "",
            )
            if part
        ).lower()
        if any(marker in label for marker in EXTERNAL_LABEL_MARKERS):
            return True

        href = (await control.attribute("href") or "").strip()
        if href.startswith("#"):
            return False
        if href.startswith("http") and not is_site_url(href):
            return True
        return any(marker in detail_text for marker in EXTERNAL_PAGE_MARKERS)

    async def _apply_open_form(self, attempt: _ApplyAttempt) -> ApplyState:
        browser = self._browser
        if attempt.apply_control is None:
            raise NavigationError("apply control lost before opening the form")
        await browser.click(attempt.apply_control)
        await self._pause(NAVIGATION)

        form = await browser.wait_for_element(APPLY_FORMS, timeout=self.settings.browser_action_timeout_sec)
        if form is not None:
            return ApplyState.OPTIONAL_CONTINUE_STEP

        if not is_site_url(browser.current_url):
            attempt.reason = "external-redirect"
            attempt.message = f"Apply button redirected to {urlparse(browser.current_url).netloc}"
            return ApplyState.APPLY_FAILED

        await self._dump_controls("application form", attempt.job.external_id)
        raise NavigationError("application form not found")

    async def _apply_continue_step(self, attempt: _ApplyAttempt) -> ApplyState:
        button = await self._browser.locate(CONTINUE_BUTTONS)
        if button is None:
            return ApplyState.FILL_ADDITIONAL_FIELDS
        self.audit.info("continue step present", job_id=attempt.job.external_id)
        await self._browser.click(button)
        await self._pause(FORM_INTERACTION)
        return ApplyState.FILL_ADDITIONAL_FIELDS

    async def _fill_if_empty(self, label: str, candidates: list[Locator], value: str, job_id: str) -> bool:
        if not value:
            return False
        browser = self._browser
        element = await browser.locate(candidates)
        if element is None:
            return False
        if (await element.value()).strip():
            self.audit.debug(f"{label} already filled", job_id=job_id)
            return False
        await browser.type_text(element, value)
        await self._pause(FIELD_PAUSE)
        self.audit.info(f"filled {label}", job_id=job_id)
        return True

    async def _apply_fill_fields(self, attempt: _ApplyAttempt) -> ApplyState:
        browser = self._browser
        job_id = attempt.job.external_id
        contact = attempt.application.contact
        await self._fill_if_empty("phone", PHONE_FIELDS, contact.phone, job_id)
        await self._fill_if_empty("postal code", POSTAL_CODE_FIELDS, contact.postal_code, job_id)
        await self._fill_if_empty("city", CITY_FIELDS, contact.city, job_id)

        cover_letter = attempt.application.cover_letter
        if cover_letter:
            motivation = await browser.locate(MOTIVATION_FIELDS)
            if motivation is None:
                toggle = await browser.locate(MOTIVATION_TOGGLE)
                if toggle is not None:
                    await browser.click(toggle)
                    await self._pause(SETTLE)
                    motivation = await browser.wait_for_element(
                        MOTIVATION_FIELDS, timeout=self.settings.browser_action_timeout_sec
                    )
            if motivation is not None:
                await browser.type_text(motivation, cover_letter)
                self.audit.info("cover letter entered", {"length": len(cover_letter)}, job_id=job_id)
            else:
                self.audit.warning("no motivation field, submitting without cover letter", job_id=job_id)

        await self._pause(FORM_INTERACTION)
        return ApplyState.SUBMIT

    async def _apply_submit(self, attempt: _ApplyAttempt) -> ApplyState:
        browser = self._browser
        button = await browser.locate(SUBMIT_BUTTONS)
        if button is None:
            await self._dump_controls("application submit", attempt.job.external_id)
            raise NavigationError("submit control not found")
        if not await button.is_enabled():
            raise ApplicationSubmissionError("submit control is disabled", reason="form-not-found")

        ref = await self._screenshot("before-submit", attempt.job.external_id)
        if ref:
            attempt.screenshots.append(ref)
        attempt.pre_submit_url = browser.current_url
        attempt.baseline_markers = [
            locator for locator in CONFIRMATION_MARKERS if await browser.locate([locator]) is not None
        ]
        page_text = (await browser.page_text()).lower()
        attempt.baseline_text = [fragment for fragment in CONFIRMATION_TEXT if fragment in page_text]
        await browser.click(button)
        return ApplyState.CONFIRMATION_CHECK

    async def _apply_confirm(self, attempt: _ApplyAttempt) -> ApplyState:
        signal = await self._await_confirmation(attempt)
        ref = await self._screenshot("after-submit", attempt.job.external_id)
        if ref:
            attempt.screenshots.append(ref)

        if signal is None:
            attempt.outcome = "uncertain"
            attempt.message = (
                f"no confirmation signal within {self.settings.confirmation_timeout_sec}s, "
                "submission may not have gone through"
            )
        else:
            attempt.outcome = "applied"
            attempt.message = f"application confirmed ({signal})"
        return ApplyState.APPLIED

    async def _await_confirmation(self, attempt: _ApplyAttempt) -> str | None:
        browser = self._browser
        timeout = self.settings.confirmation_timeout_sec
        markers = [locator for locator in CONFIRMATION_MARKERS if locator not in attempt.baseline_markers]
        fragments = [fragment for fragment in CONFIRMATION_TEXT if fragment not in attempt.baseline_text]

        async def _marker() -> bool:
            return bool(markers) and await browser.locate(markers) is not None

        async def _text() -> bool:
            page_text = (await browser.page_text()).lower()
            return any(fragment in page_text for fragment in fragments)

        async def _url() -> bool:
            url = browser.current_url
            return url != attempt.pre_submit_url and CONFIRMATION_URL.search(url) is not None

        async def _watch(name: str, check: Callable[[], Awaitable[bool]]) -> str | None:
            return name if await browser.wait_until(check, timeout, poll_interval=0.5) else None

        tasks = [
            asyncio.create_task(_watch("marker", _marker)),
            asyncio.create_task(_watch("text", _text)),
            asyncio.create_task(_watch("url", _url)),
        ]
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    signal = task.result()
                    if signal is not None:
                        return signal
            return None
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def logout(self) -> None:
        session, self.session = self.session, None
        if session is None:
            return
        await session.close()
        self.audit.info("browser session closed")

    # timeouts

    def _pacing_allowance(self, band_max: float, count: int = 1) -> float:
        scale = self.session.pacing.scale if self.session is not None else self.settings.effective_pacing_scale
        return band_max * count * scale

    def _step_timeout(self) -> float:
        return self.settings.browser_action_timeout_sec * 4 + self._pacing_allowance(PAGE_LOAD.max_sec, 2)

    def _navigation_timeout(self, attempts: int) -> float:
        return self.settings.browser_nav_timeout_sec * attempts + self._step_timeout()

    def _typing_timeout(self, characters: int) -> float:
        return self._step_timeout() + self._pacing_allowance(KEYSTROKE.max_sec, characters) * 2
