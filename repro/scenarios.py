"""
repro.scenarios
~~~~~~~~~~~~~~~
Browser scripts reproducing checkout error 205001.

The checkout widget loads the Google Pay script in one hook and renders the
Google Pay button in another.  With Google Pay as the first payment method
its accordion opens straight away and the render runs before the script has
loaded, so the widget dispatches 205001 "Unknown error".  Putting the card
first gives the script time to load and the error does not appear.

The page under ``site/`` surfaces the error through ``#error-banner`` and a
``ERROR 205001 DETECTED`` line in ``#log-container``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from playwright.sync_api import BrowserContext, Error as PlaywrightError, Page

ERROR_CODE = "205001"
ERROR_MARKER = f"ERROR {ERROR_CODE} DETECTED"
ORDER_CARD_FIRST = "card-first"

WALLET_FIRST_WAIT_MS = 5000
CARD_FIRST_WAIT_MS = 3000
ACCORDION_WAIT_MS = 2000

RULE = "=" * 40


@dataclass
class ScenarioReport:
    name: str
    url: str
    banner_visible: bool = False
    marker_in_log: bool = False
    marker_after_switch: Optional[bool] = None
    wallet_rendered: Optional[bool] = None
    console: List[str] = field(default_factory=list)
    screenshot: Optional[Path] = None

    @property
    def bug_observed(self) -> bool:
        return self.banner_visible or self.marker_in_log or bool(self.marker_after_switch)


def scenario_path(order: Optional[str] = None) -> str:
    return f"/?order={order}" if order else "/"


def _watch_console(page: Page, report: ScenarioReport, *needles: str) -> None:
    def on_console(msg):
        text = msg.text
        if any(n in text for n in needles):
            report.console.append(text)
            print("Console:", text)

    page.on("console", on_console)


def _log_has_marker(page: Page) -> bool:
    text = page.locator("#log-container").text_content() or ""
    return ERROR_MARKER in text


def _wallet_section(page: Page):
    return page.frame_locator("iframe").first.locator("text=Google Pay")


def _is_visible(locator) -> bool:
    try:
        return locator.is_visible()
    except PlaywrightError:  # detached frame
        return False


def reproduce_wallet_first(
    page: Page, context: BrowserContext, artifact_dir: str | Path = "."
) -> ScenarioReport:
    """Google Pay first (the default ordering): expected to trigger 205001."""
    context.clear_cookies()
    report = ScenarioReport(name="gpay-first", url=scenario_path())
    _watch_console(page, report, ERROR_CODE)

    page.goto(report.url)
    page.wait_for_timeout(WALLET_FIRST_WAIT_MS)

    report.banner_visible = page.locator("#error-banner").is_visible()
    report.marker_in_log = _log_has_marker(page)

    report.screenshot = Path(artifact_dir) / "reproduction-gpay-first.png"
    page.screenshot(path=str(report.screenshot), full_page=True)

    print(f"\n{RULE}\nTEST: Google Pay FIRST (should trigger bug)\n{RULE}")
    print("Error banner visible:", report.banner_visible)
    print(f"Error {ERROR_CODE} in log:", report.marker_in_log)
    print(f"{RULE}\n")

    if report.bug_observed:
        # the widget still renders Google Pay after the error, which is the race
        report.wallet_rendered = _is_visible(_wallet_section(page))
        print(f"BUG CONFIRMED: Error {ERROR_CODE} was detected.")
        print("Google Pay UI rendered after error:", report.wallet_rendered)
    else:
        print("No error detected - the Google Pay script may have been cached.")
        print("Retry with REPRO_HEADLESS=false or a cleared browser cache.")
    return report


def reproduce_card_first(
    page: Page, context: BrowserContext, artifact_dir: str | Path = "."
) -> ScenarioReport:
    """Card first (control): 205001 should not appear, even after opening Google Pay."""
    context.clear_cookies()
    report = ScenarioReport(name="card-first", url=scenario_path(ORDER_CARD_FIRST))
    _watch_console(page, report, ERROR_CODE, "Payment method order")

    page.goto(report.url)
    page.wait_for_timeout(CARD_FIRST_WAIT_MS)

    report.marker_in_log = _log_has_marker(page)

    print(f"\n{RULE}\nTEST: Card FIRST (control - should NOT trigger bug)\n{RULE}")
    print(f"Error {ERROR_CODE} on initial load:", report.marker_in_log)

    accordion = _wallet_section(page)
    if _is_visible(accordion):
        print("Clicking Google Pay accordion...")
        accordion.click()
        page.wait_for_timeout(ACCORDION_WAIT_MS)
        button = page.frame_locator("iframe").first.locator(
            '[aria-label*="Google Pay"], button:has-text("Google Pay")'
        )
        report.wallet_rendered = _is_visible(button)
        print("Google Pay button visible after click:", report.wallet_rendered)

    report.marker_after_switch = _log_has_marker(page)

    report.screenshot = Path(artifact_dir) / "reproduction-card-first.png"
    page.screenshot(path=str(report.screenshot), full_page=True)

    print(f"Error {ERROR_CODE} after switching to Google Pay:", report.marker_after_switch)
    print(f"{RULE}\n")

    if report.marker_after_switch:
        print(f"Unexpected: Error {ERROR_CODE} occurred even with Card first.")
    else:
        print(f"CONTROL PASSED: No error {ERROR_CODE} when Card is first.")
    return report
