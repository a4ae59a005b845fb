from __future__ import annotations

from typing import Optional

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Frame,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)

from ..errors import AuthenticationError, ConfigurationError, NavigationTimeout
from ..settings import Credentials, LoginMode, ScrapeConfig
from .selectors import CardSelectors, DEFAULT_SELECTORS


SIGN_IN_FORM = 'form[name="cognitoSignInForm"]'
USERNAME_INPUT = "#signInFormUsername"
PASSWORD_INPUT = "#signInFormPassword"


class BrowserSession:
    """One Chromium browser, one context, one page for the whole run.

    Used as a context manager; the browser is always closed on exit.
    open_listing() leaves the page authenticated, on the Broker Contacts tab,
    with the first frame of cards rendered.
    """

    def __init__(
        self,
        config: ScrapeConfig,
        *,
        credentials: Optional[Credentials] = None,
        selectors: CardSelectors = DEFAULT_SELECTORS,
        type_delay_ms: int = 120,
        settle_ms: int = 5000,
    ) -> None:
        self.config = config
        self.credentials = credentials
        self.selectors = selectors
        self.type_delay_ms = type_delay_ms
        self.settle_ms = settle_ms
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def __enter__(self) -> "BrowserSession":
        try:
            self.start()
        except BaseException:
            # __exit__ does not run when __enter__ raises
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> Page:
        self._pw = sync_playwright().start()
        self._browser = self._pw.chromium.launch(
            headless=self.config.headless,
            args=[
                '--disable-dev-shm-usage',     # Prevent /dev/shm issues in containers
                '--disable-extensions',
                '--no-first-run',
                '--disable-default-apps',
            ],
        )
        self._context = self._browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height}
        )
        self.page = self._context.new_page()
        return self.page

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._pw is not None:
            self._pw.stop()
            self._pw = None

    # -------------------------
    # Precondition: authenticated listing
    # -------------------------
    def open_listing(self) -> Page:
        page = self.page
        if page is None:
            raise RuntimeError("session not started")
        try:
            page.goto(self.config.start_url, wait_until="networkidle", timeout=self.config.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("start page did not load", operation="navigate", target=self.config.start_url) from e

        if self.config.login == LoginMode.MANUAL:
            self.wait_for_manual_login()
        else:
            self.login_with_credentials()
        page.wait_for_timeout(self.settle_ms)

        print(f"Clicking {self.selectors.broker_tab_text} tab...")
        try:
            page.get_by_text(self.selectors.broker_tab_text, exact=True).first.click(timeout=30000)
            page.locator(self.selectors.card).first.wait_for(state="attached", timeout=30000)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("listing cards did not appear", operation="open tab", target=self.selectors.broker_tab_text) from e
        page.wait_for_timeout(self.settle_ms)
        return page

    def wait_for_manual_login(self) -> None:
        print("Please log in manually...")
        try:
            self.page.locator(self.selectors.card).first.wait_for(
                state="attached", timeout=self.config.manual_login_timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise AuthenticationError("timeout waiting for login/search page", target="manual") from e
        print("Login detected! Search page loaded.")

    def login_with_credentials(self) -> None:
        creds = self.credentials or Credentials.from_env()
        if not creds.username or not creds.password:
            raise ConfigurationError("empty credentials", operation="login")
        page = self.page
        print("🚀 Performing Cognito login...")
        frame = self._login_frame()
        try:
            frame.wait_for_selector(SIGN_IN_FORM, timeout=self.config.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise AuthenticationError("sign-in form not found", target=SIGN_IN_FORM) from e

        user_box = frame.locator(USERNAME_INPUT).first
        pass_box = frame.locator(PASSWORD_INPUT).first
        if user_box.count() == 0 or pass_box.count() == 0:
            raise AuthenticationError("login inputs not found", target=USERNAME_INPUT)
        user_box.press_sequentially(creds.username, delay=self.type_delay_ms)
        pass_box.press_sequentially(creds.password, delay=self.type_delay_ms)
        try:
            with page.expect_navigation(wait_until="networkidle", timeout=self.config.navigation_timeout_ms):
                frame.evaluate("(sel) => document.querySelector(sel).submit()", SIGN_IN_FORM)
        except PlaywrightTimeoutError as e:
            raise AuthenticationError("no navigation after sign-in submit", target=self.config.start_url) from e
        print("✅ Cognito login successful")

    def _login_frame(self) -> Frame:
        for frame in self.page.frames:
            if "cognito" in (frame.url or ""):
                return frame
        return self.page.main_frame
