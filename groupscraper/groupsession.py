"""
groupscraper.groupsession.

Browser session lifecycle for a batch run.

A session is one Playwright driver, one browser, one context and one page
reused for every URL. Everything that shapes it (stealth evasions, user
agent, extra headers, launch flags) comes from an explicit
:class:`groupscraper.groupconfig.SessionConfig` rather than process-wide
plugin registration.

Helpers
-------
- context_options(cfg): keyword arguments for ``browser.new_context``.
- open_session(cfg): start Playwright and return a ready
    :class:`BrowserSession`; raises :class:`SessionStartError` on failure.
- BrowserSession.close(): tear everything down, best-effort.
"""

import contextlib
import logging
from dataclasses import dataclass
from typing import Any

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright_stealth import Stealth

from .groupconfig import SessionConfig
from .grouperrors import SessionStartError

logger = logging.getLogger(__name__)


@dataclass
class BrowserSession:
    """Handles for a running browser session."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page

    def close(self) -> None:
        """Close the context and browser, then stop the driver."""
        try:
            with contextlib.suppress(PlaywrightError):
                self.context.close()
            with contextlib.suppress(PlaywrightError):
                self.browser.close()
        finally:
            self.playwright.stop()
        logger.info("Browser closed.")


def context_options(cfg: SessionConfig) -> dict[str, Any]:
    """
    Build ``new_context`` keyword arguments from ``cfg``.

    With no explicit viewport the page follows the window size, matching
    a ``--window-size`` launch flag.
    """
    opts: dict[str, Any] = {
        "user_agent": cfg.user_agent,
        "extra_http_headers": dict(cfg.extra_headers),
        "java_script_enabled": cfg.java_script_enabled,
    }
    if cfg.viewport:
        opts["viewport"] = cfg.viewport
    else:
        opts["no_viewport"] = True
    return opts


def open_session(cfg: SessionConfig) -> BrowserSession:
    """
    Start Playwright and open a single page configured by ``cfg``.

    Any failure here is fatal for the batch and surfaces as
    :class:`SessionStartError`; partially started resources are released.
    """
    logger.info("Launching %s (headless=%s, stealth=%s)", cfg.browser, cfg.headless, cfg.stealth)
    try:
        play = sync_playwright().start()
    except PlaywrightError as exc:
        msg = f"Could not start Playwright: {exc}"
        raise SessionStartError(msg) from exc

    try:
        browser_type = getattr(play, cfg.browser)
        browser = browser_type.launch(headless=cfg.headless, args=list(cfg.launch_args))
        context = browser.new_context(**context_options(cfg))
        if cfg.stealth:
            Stealth().apply_stealth_sync(context)
        page = context.new_page()
    except PlaywrightError as exc:
        play.stop()
        msg = f"Could not launch {cfg.browser}: {exc}"
        raise SessionStartError(msg) from exc

    return BrowserSession(playwright=play, browser=browser, context=context, page=page)
