"""groupscraper.groupscraper.

Core scraper runtime: the interaction sequence that readies a group page,
the page analyzer that turns one URL into one :class:`GroupRecord`, and the
batch driver that walks a list of URLs through a single browser page.

The public contract:

- analyze_page(page, url, cfg, rng) -> GroupRecord (never raises)
- process_urls(page, urls, cfg) -> BatchResult
- GroupScraper(cfg).run(urls) -> BatchResult

Pages are processed strictly one at a time in a single reused browser tab.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pandas as pd
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .groupconfig import Config, InteractionConfig
from .groupextract import (
    FIELD_DEFAULTS,
    FIELD_EXTRACTORS,
    GroupInfo,
    RenderedPage,
    extract_abbreviated_member_count,
    run_extractors,
)
from .grouperrors import PageUnreachableError
from .groupsession import BrowserSession, open_session

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "Active"
STATUS_NOT_ACTIVE = "Not Active"
STATUS_ERROR = "Error"

ERROR_MARKER = "Error"

RECORD_COLUMNS = [
    "LINK",
    "USERNAME",
    "GROUP_NAME",
    "MEMBER",
    "CLASSIFICATION",
    "POST_LAST_MONTH",
    "LOCATION",
    "DATE_JOINED",
    "EMAIL_URL",
    "CONTACT_NUMBER",
    "PAGE_STATUS",
]

SCROLL_SCRIPT = "top => window.scrollBy({ top: top, behavior: 'smooth' })"


# ----------------------------
# Records
# ----------------------------


@dataclass(frozen=True)
class GroupRecord:
    """
    One output row per input URL.

    ``member_count`` and ``posts_last_month`` are ``None`` when unknown;
    a confirmed zero is ``0``. ``diagnostics`` lists every step or field
    that fell back to its default, as ``"<name>: <reason>"``.
    """

    link: str
    username: str = ""
    group_name: str = "N/A"
    member_count: int | None = None
    classification: str = "N/A"
    posts_last_month: int | None = None
    location: str | None = None
    date_joined: str | None = None
    email: str = ""
    contact_number: str = "N/A"
    page_status: str = STATUS_NOT_ACTIVE
    diagnostics: tuple[str, ...] = ()

    @classmethod
    def error(cls, url: str, reason: str = "") -> GroupRecord:
        """Placeholder record for a page that could not be analyzed at all."""
        return cls(
            link=url,
            username="",
            group_name=ERROR_MARKER,
            member_count=None,
            classification=ERROR_MARKER,
            posts_last_month=None,
            location=None,
            date_joined=None,
            email="",
            contact_number=ERROR_MARKER,
            page_status=STATUS_ERROR,
            diagnostics=(reason,) if reason else (),
        )

    @property
    def is_error(self) -> bool:
        return self.page_status == STATUS_ERROR

    def to_row(self) -> dict[str, Any]:
        """Return the record keyed by report column names."""
        return {
            "LINK": self.link,
            "USERNAME": self.username,
            "GROUP_NAME": self.group_name,
            "MEMBER": self.member_count,
            "CLASSIFICATION": self.classification,
            "POST_LAST_MONTH": self.posts_last_month,
            "LOCATION": self.location,
            "DATE_JOINED": self.date_joined,
            "EMAIL_URL": self.email,
            "CONTACT_NUMBER": self.contact_number,
            "PAGE_STATUS": self.page_status,
        }


def classify_activity(posts_last_month: int | None) -> str:
    """Active iff the monthly post count is known and strictly positive."""
    if posts_last_month is not None and posts_last_month > 0:
        return STATUS_ACTIVE
    return STATUS_NOT_ACTIVE


# ----------------------------
# Interaction sequence
# ----------------------------


def normalize_about_url(url: str) -> str:
    """Point ``url`` at the group's about sub-page."""
    if url.endswith("/about"):
        return url
    return f"{url.removesuffix('/')}/about"


class InteractionSequencer:
    """
    Bring a page to a stable, fully rendered state before extraction.

    The ritual is: navigate to the about page and wait for network idle,
    dismiss a login dialog if one shows up, pause for a random interval,
    then scroll up and down at random to trigger lazy content.

    Each step is fault-tolerant. A navigation timeout is logged and the
    remaining steps still run against whatever rendered. Only a navigation
    error other than a timeout raises :class:`PageUnreachableError`.

    ``rng`` is the source of every random pause and scroll so runs can be
    made reproducible with a seeded :class:`random.Random`.
    """

    def __init__(
        self,
        page: Page,
        cfg: InteractionConfig,
        rng: random.Random | None = None,
    ) -> None:
        self.page = page
        self.cfg = cfg
        self.rng = rng or random.Random(cfg.seed)
        self.diagnostics: list[str] = []

    def run(self, url: str) -> str:
        """Run every step for ``url`` and return the about URL visited."""
        self.diagnostics = []
        about_url = normalize_about_url(url)
        self.navigate(about_url)
        self.dismiss_dialog()
        self.random_pause()
        self.random_scroll()
        return about_url

    def navigate(self, about_url: str) -> bool:
        """
        Load ``about_url`` and wait for the network to go idle.

        Returns False when the wait timed out. Raises
        :class:`PageUnreachableError` for any other navigation failure.
        """
        try:
            self.page.goto(
                about_url,
                wait_until=self.cfg.wait_until,
                timeout=self.cfg.navigation_timeout_ms,
            )
        except PlaywrightTimeoutError as exc:
            logger.warning("Navigation timed out for %s: %s", about_url, exc)
            self.diagnostics.append(f"navigate: timeout after {self.cfg.navigation_timeout_ms}ms")
            return False
        except PlaywrightError as exc:
            msg = f"Could not load {about_url}: {exc}"
            raise PageUnreachableError(msg) from exc
        return True

    def dismiss_dialog(self) -> bool:
        """Close the login dialog if it appears; its absence is normal."""
        selector = self.cfg.dialog_close_selector
        try:
            self.page.wait_for_selector(selector, timeout=self.cfg.dialog_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("No dialog to dismiss")
            return False
        except PlaywrightError as exc:
            logger.warning("Dialog lookup failed: %s", exc)
            self.diagnostics.append(f"dismiss_dialog: {exc}")
            return False

        try:
            self.page.click(selector)
        except PlaywrightError as exc:
            logger.warning("Could not close dialog: %s", exc)
            self.diagnostics.append(f"dismiss_dialog: {exc}")
            return False
        return True

    def random_pause(self) -> None:
        seconds = self.rng.uniform(self.cfg.pause_min_s, self.cfg.pause_max_s)
        try:
            self.page.wait_for_timeout(int(seconds * 1000))
        except PlaywrightError as exc:
            logger.warning("Pause interrupted: %s", exc)
            self.diagnostics.append(f"random_pause: {exc}")

    def scroll_plan(self) -> list[tuple[int, int]]:
        """
        Draw the scroll offsets and delays for one routine.

        Returns ``(offset_px, delay_ms)`` pairs; a negative offset scrolls up.
        """
        plan = []
        for _ in range(self.cfg.scroll_times):
            direction = 1 if self.rng.random() > 0.5 else -1
            distance = self.rng.randrange(self.cfg.scroll_min_px, self.cfg.scroll_max_px)
            delay = self.rng.uniform(
                self.cfg.scroll_delay_min_s,
                self.cfg.scroll_delay_max_s,
            )
            plan.append((direction * distance, int(delay * 1000)))
        return plan

    def random_scroll(self) -> int:
        """Smooth-scroll by the drawn offsets; returns the number of scrolls done."""
        done = 0
        for offset, delay_ms in self.scroll_plan():
            try:
                self.page.evaluate(SCROLL_SCRIPT, offset)
                self.page.wait_for_timeout(delay_ms)
            except PlaywrightError as exc:
                logger.warning("Scroll routine stopped after %s scrolls: %s", done, exc)
                self.diagnostics.append(f"random_scroll: {exc}")
                break
            done += 1
        return done


# ----------------------------
# Page analysis
# ----------------------------


def snapshot_page(page: Page, cfg: InteractionConfig) -> RenderedPage:
    """
    Capture the resolved URL, markup and body text of ``page``.

    Waiting for ``<body>`` is best-effort; reading the content is not, and
    a dead page raises :class:`playwright.sync_api.Error` here.
    """
    try:
        page.wait_for_selector("body", timeout=cfg.body_timeout_ms)
    except PlaywrightError as exc:
        logger.debug("body did not attach: %s", exc)

    html = page.content()
    try:
        text = page.inner_text("body", timeout=cfg.body_timeout_ms)
    except PlaywrightError as exc:
        logger.warning("Could not read body text: %s", exc)
        text = ""
    return RenderedPage(url=page.url or "", html=html or "", text=text or "")


def build_record(
    url: str,
    rendered: RenderedPage,
    cfg: Config,
    extractors: dict[str, Callable[[RenderedPage], Any]] | None = None,
    diagnostics: Sequence[str] = (),
) -> GroupRecord:
    """Run the field extractors on ``rendered`` and assemble the record."""
    result = run_extractors(rendered, extractors or FIELD_EXTRACTORS, FIELD_DEFAULTS, url)
    values = result.values
    notes = list(diagnostics) + result.diagnostics

    member_count = values.get("member_count")
    if member_count is None and cfg.extraction.abbreviated_member_fallback:
        try:
            member_count = extract_abbreviated_member_count(rendered)
        except Exception as exc:  # noqa: BLE001 - fallback is optional
            notes.append(f"member_count_abbreviated: {exc}")

    info = values.get("group_info") or GroupInfo()
    if info.location is None:
        notes.append("location: not found")
    if info.created_on is None:
        notes.append("date_joined: not found")

    posts = values.get("posts_last_month")
    return GroupRecord(
        link=url,
        username=values.get("username", ""),
        group_name=values.get("group_name", "N/A"),
        member_count=member_count,
        classification=values.get("classification", "N/A"),
        posts_last_month=posts,
        location=info.location,
        date_joined=info.created_on,
        email=values.get("email", ""),
        contact_number=values.get("contact_number", "N/A"),
        page_status=classify_activity(posts),
        diagnostics=tuple(notes),
    )


def analyze_page(
    page: Page,
    url: str,
    cfg: Config,
    rng: random.Random | None = None,
) -> GroupRecord:
    """
    Analyze one group URL and return its record.

    Never raises: a page that cannot be reached, or a session that dies
    mid-way, yields :meth:`GroupRecord.error` with the URL preserved.
    """
    logger.info("Analyzing: %s", url)
    try:
        sequencer = InteractionSequencer(page, cfg.interaction, rng)
        sequencer.run(url)
        rendered = snapshot_page(page, cfg.interaction)
        record = build_record(url, rendered, cfg, diagnostics=sequencer.diagnostics)
    except Exception as exc:  # noqa: BLE001 - one bad page must not end the batch
        logger.error("Failed to analyze %s: %s", url, exc)
        return GroupRecord.error(url, f"{type(exc).__name__}: {exc}")

    logger.info("Done analyzing: %s (%s)", url, record.page_status)
    return record


# ----------------------------
# Batch driver
# ----------------------------


@dataclass
class BatchResult:
    """Records in input order plus the URLs whose record is an error."""

    records: list[GroupRecord] = field(default_factory=list)
    failed_links: list[str] = field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        dframe = pd.DataFrame(
            [r.to_row() for r in self.records],
            columns=RECORD_COLUMNS,
            dtype=object,
        )
        dframe.attrs["failed_count"] = len(self.failed_links)
        return dframe


def process_urls(
    page: Page,
    urls: Sequence[str],
    cfg: Config,
    rng: random.Random | None = None,
    analyze: Callable[..., GroupRecord] | None = None,
) -> BatchResult:
    """Analyze every URL in order on ``page``; one record per URL."""
    analyze = analyze or analyze_page
    rng = rng or random.Random(cfg.interaction.seed)
    result = BatchResult()
    total = len(urls)
    for index, url in enumerate(urls, start=1):
        logger.info("(%s/%s) Processing: %s", index, total, url)
        record = analyze(page, url, cfg, rng)
        result.records.append(record)
        if record.is_error:
            result.failed_links.append(url)
    return result


class GroupScraper:
    """
    Orchestrates a batch run over a list of group URLs.

    Responsibilities:

    - open the browser session described by :class:`SessionConfig`
    - analyze each URL in order on the single session page
    - collect records and failed URLs into a :class:`BatchResult`.
    """

    def __init__(self, cfg: Config, session: BrowserSession | None = None) -> None:
        self.cfg = cfg
        self.session = session or open_session(cfg.session)
        self.rng = random.Random(cfg.interaction.seed)

    def close(self) -> None:
        """Shut down the browser session."""
        self.session.close()

    def __enter__(self) -> GroupScraper:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def run(self, urls: Sequence[str]) -> BatchResult:
        logger.info("Starting analysis on %s pages", len(urls))
        result = process_urls(self.session.page, urls, self.cfg, self.rng)
        logger.info(
            "Analyzed %s pages, %s failed",
            len(result.records),
            len(result.failed_links),
        )
        return result
