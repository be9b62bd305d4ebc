"""
browser.py — Chrome session + the DOM capability the navigator drives.

MenuDom is the only surface the core touches:
  find_all / wait_for      locate elements (optionally under a scope element)
  click                    plain or forced (JS) click
  text / attribute         read element content
  parent                   the element's parent node
  evaluate_transform       run an async pixel-transform script, return its result
  settle                   bounded pause after a readiness signal

SeleniumMenuDom implements it on a Chrome WebDriver. The session itself is a
persistent --user-data-dir profile created once by `setup`.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from selenium import webdriver
from selenium.common.exceptions import StaleElementReferenceException, TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support.ui import WebDriverWait

from . import selectors as sel
from .config import Settings
from .errors import AuthenticationMissing, ElementMissing, FilterRenderError, NavigationError

console = Console()
logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://www.google.com"

# Google sign-in rejects a browser that advertises automation.
_SESSION_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-extensions",
    "--no-first-run",
    "--disable-default-apps",
    "--lang=en-US",
]


# ── DOM capability ────────────────────────────────────────────────────────────

class MenuDom:
    """Abstract element-query surface. Elements are opaque handles."""

    def find_all(self, locator, scope=None) -> list:
        raise NotImplementedError

    def wait_for(self, locator, scope=None, timeout: float = 5.0):
        """First displayed match under scope, or ElementMissing after timeout."""
        raise NotImplementedError

    def click(self, element, force: bool = False) -> None:
        raise NotImplementedError

    def text(self, element) -> str:
        raise NotImplementedError

    def attribute(self, element, name: str) -> Optional[str]:
        raise NotImplementedError

    def parent(self, element):
        raise NotImplementedError

    def evaluate_transform(self, script: str, *args):
        raise NotImplementedError

    def settle(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class SeleniumMenuDom(MenuDom):
    def __init__(self, driver: WebDriver, script_timeout: float = 30.0) -> None:
        self.driver = driver
        self.driver.set_script_timeout(script_timeout)

    def find_all(self, locator, scope=None) -> List[WebElement]:
        root = scope if scope is not None else self.driver
        try:
            return root.find_elements(*locator)
        except WebDriverException as e:
            raise ElementMissing(locator, f"lookup failed for {locator!r}: {e.msg}") from e

    def wait_for(self, locator, scope=None, timeout: float = 5.0) -> WebElement:
        root = scope if scope is not None else self.driver

        def _first_displayed(_):
            for el in root.find_elements(*locator):
                if el.is_displayed():
                    return el
            return False

        try:
            return WebDriverWait(
                root, timeout, ignored_exceptions=(StaleElementReferenceException,)
            ).until(_first_displayed)
        except TimeoutException as e:
            raise ElementMissing(locator, f"timed out after {timeout:.1f}s waiting for {locator!r}") from e
        except WebDriverException as e:
            raise ElementMissing(locator, f"wait failed for {locator!r}: {e.msg}") from e

    def click(self, element: WebElement, force: bool = False) -> None:
        try:
            if force:
                self.driver.execute_script("arguments[0].click();", element)
            else:
                element.click()
        except WebDriverException as e:
            raise ElementMissing(None, f"click failed: {e.msg}") from e

    def text(self, element: WebElement) -> str:
        try:
            return element.get_attribute("textContent") or ""
        except WebDriverException as e:
            raise ElementMissing(None, f"text read failed: {e.msg}") from e

    def attribute(self, element: WebElement, name: str) -> Optional[str]:
        try:
            return element.get_attribute(name)
        except WebDriverException as e:
            raise ElementMissing(None, f"attribute {name!r} read failed: {e.msg}") from e

    def parent(self, element: WebElement) -> WebElement:
        try:
            return element.find_element(By.XPATH, "..")
        except WebDriverException as e:
            raise ElementMissing(None, f"parent lookup failed: {e.msg}") from e

    def evaluate_transform(self, script: str, *args):
        try:
            return self.driver.execute_async_script(script, *args)
        except WebDriverException as e:
            raise FilterRenderError(e.msg or type(e).__name__, url=args[0] if args else None) from e

    # ── frames ────────────────────────────────────────────────────────────────

    def enter_frame(self, frame: WebElement) -> None:
        try:
            self.driver.switch_to.frame(frame)
        except WebDriverException as e:
            raise ElementMissing(None, f"could not switch into iframe: {e.msg}") from e

    def leave_frames(self) -> None:
        self.driver.switch_to.default_content()


# ── Session ───────────────────────────────────────────────────────────────────

def require_session(settings: Settings) -> Path:
    """Return the profile dir, or raise AuthenticationMissing if setup never ran."""
    profile = Path(settings.profile_dir)
    if not profile.is_dir():
        raise AuthenticationMissing(profile)
    return profile


def create_driver(settings: Settings, fresh: bool = False) -> webdriver.Chrome:
    """
    Start Chrome on the persistent profile.

    fresh=True wipes the profile first (used by `setup`).
    """
    from webdriver_manager.chrome import ChromeDriverManager
    from selenium.webdriver.chrome.service import Service

    profile = Path(settings.profile_dir).resolve()
    if fresh and profile.exists():
        console.print("  [yellow]⚠ Found existing persistent context — removing it for a fresh start[/yellow]")
        shutil.rmtree(profile)

    opts = Options()
    if settings.headless and not fresh:
        opts.add_argument("--headless=new")
    width, height = settings.viewport
    opts.add_argument(f"--user-data-dir={profile}")
    opts.add_argument(f"--window-size={width},{height}")
    for arg in _SESSION_ARGS:
        opts.add_argument(arg)
    opts.add_experimental_option("excludeSwitches", ["enable-automation"])
    opts.add_experimental_option("useAutomationExtension", False)

    driver = webdriver.Chrome(service=Service(ChromeDriverManager().install()), options=opts)
    logger.info("Chrome started (profile=%s, headless=%s)", profile, settings.headless and not fresh)
    return driver


def run_setup(settings: Settings) -> Path:
    """Open a visible browser for a manual Google sign-in; the profile keeps the session."""
    driver = create_driver(settings, fresh=True)
    try:
        driver.get(SIGN_IN_URL)
        console.print("\n  [bold]📋 INSTRUCTIONS[/bold]")
        console.print("  1. A Chrome window has opened")
        console.print("  2. Sign in to Google")
        console.print("  3. Come back here and press ENTER")
        console.input("\n  Press ENTER once you are signed in… ")
    finally:
        driver.quit()
    console.print(f"  [green]💾 Authentication saved to {settings.profile_dir}[/green]")
    return Path(settings.profile_dir)


# ── Picker bootstrap ──────────────────────────────────────────────────────────

def _frame_has_picker(dom: SeleniumMenuDom, frame: WebElement) -> bool:
    dom.enter_frame(frame)
    try:
        return any(
            dom.find_all(locator)
            for locator in (sel.FRAME_DIALOG, sel.CHANGE_BUTTON, sel.FRAME_SECTION)
        )
    except ElementMissing:
        return False
    finally:
        dom.leave_frames()


def open_picker(dom: SeleniumMenuDom, settings: Settings) -> None:
    """
    Load the personal-info page and open the picture picker.

    Leaves the driver switched into the iframe that hosts the collections
    screen, with at least one collection section rendered.
    """
    try:
        dom.driver.get(settings.start_url)
    except WebDriverException as e:
        raise NavigationError(f"could not load {settings.start_url}: {e.msg}") from e

    try:
        console.print("📸 Clicking on profile picture...")
        dom.click(dom.wait_for(sel.CHANGE_PHOTO_BUTTON, timeout=settings.picker_timeout))
        dom.settle(settings.settle_delay * 2)

        frames = dom.find_all(sel.IFRAMES)
        if not frames:
            raise NavigationError("profile picture dialog did not open an iframe")
        dialog = next((f for f in frames if _frame_has_picker(dom, f)), frames[-1])

        console.print("🔄 Clicking on Change button...")
        dom.enter_frame(dialog)
        dom.click(dom.wait_for(sel.CHANGE_BUTTON, timeout=settings.picker_timeout))
        dom.leave_frames()
        dom.settle(settings.settle_delay)

        frames = dom.find_all(sel.IFRAMES)
        if len(frames) <= sel.PICKER_FRAME_INDEX:
            raise NavigationError(
                f"expected at least {sel.PICKER_FRAME_INDEX + 1} iframes after Change, found {len(frames)}"
            )
        dom.enter_frame(frames[sel.PICKER_FRAME_INDEX])
        dom.wait_for(sel.COLLECTION_SECTIONS, timeout=settings.picker_timeout)
        dom.settle(settings.settle_delay)
    except ElementMissing as e:
        raise NavigationError(f"opening picker: {e}") from e
