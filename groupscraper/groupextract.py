"""
groupscraper.groupextract
=================================

Field extraction primitives.

Every extractor is a pure function of a :class:`RenderedPage` snapshot
(resolved URL, raw markup and visible body text) returning the field value
or ``None`` when its signal is absent. Extractors never touch the browser,
so they can be exercised against fixture HTML without Playwright.

:data:`FIELD_EXTRACTORS` maps record field names to extractors and
:data:`FIELD_DEFAULTS` holds the value a field takes when its extractor
misses or fails. The page analyzer drives both.
"""

import logging
import math
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag

# Elements whose full text content is scanned for counts and history lines.
TEXT_BEARING_TAGS = ["div", "span", "li"]

MEMBER_COUNT_RE = re.compile(r"(\d[\d,]*)\s+total members", re.IGNORECASE)
ABBREVIATED_MEMBERS_RE = re.compile(r"([\d.]+[KM]?)\s+members\b", re.IGNORECASE)
POSTS_LAST_MONTH_RE = re.compile(r"(\d[\d,]*)\s+in the last month", re.IGNORECASE)
CREATED_ON_RE = re.compile(r"Group created on (.+?)(?:\.|$)", re.IGNORECASE)
NAME_CHANGED_RE = re.compile(r"Name last changed on (.+?)(?:\.|$)", re.IGNORECASE)
LOCATION_RE = re.compile(r"^[A-Z][a-z]+(?:,?\s+[A-Z][a-z]+)*$")
LOCATION_MARKER = "philippines"
CLASSIFICATION_MARKERS = ("public group", "private group")
EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_RE = re.compile(r"(\+?\d{1,3}[\s.-]?)?(\(?\d{3}\)?[\s.-]?)?\d{3}[\s.-]?\d{4}")
USERNAME_URL_RE = re.compile(r"facebook\.com/([^/?&]+)", re.IGNORECASE)
CANONICAL_RE = re.compile(
    r'<link rel="canonical" href="https://www\.facebook\.com/([^/?&"]+)',
)
FOLLOWERS_RE = re.compile(r"^([\d.]+)([KM]?)$", re.IGNORECASE)

SUFFIX_MULTIPLIERS = {"": 1, "K": 1_000, "M": 1_000_000}

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedPage:
    """
    Immutable snapshot of a rendered page.

    ``url`` is the resolved page URL after navigation, ``html`` the raw
    markup (``page.content()``) and ``text`` the visible body text
    (``innerText`` of ``<body>``). The parsed document is built lazily.
    """

    url: str
    html: str
    text: str

    @classmethod
    def from_html(cls, html: str, url: str = "") -> "RenderedPage":
        """Build a snapshot from markup alone, deriving the body text."""
        soup = BeautifulSoup(html or "", "lxml")
        body = soup.body or soup
        return cls(url=url, html=html or "", text=body.get_text("\n"))

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")

    def text_blocks(self) -> Iterator[str]:
        """Yield the trimmed text content of each text-bearing element in document order."""
        for el in self.soup.find_all(TEXT_BEARING_TAGS):
            yield el.get_text().strip()


@dataclass(frozen=True)
class GroupInfo:
    """Result of the combined location/history scan."""

    location: str | None = None
    created_on: str | None = None
    name_changed_on: str | None = None


def _parse_count(raw: str) -> int:
    return int(raw.replace(",", ""))


def _first_count(page: RenderedPage, pattern: re.Pattern[str]) -> int | None:
    for text in page.text_blocks():
        match = pattern.search(text)
        if match:
            return _parse_count(match.group(1))
    return None


def convert_followers(value: str) -> str:
    """
    Convert an abbreviated count such as ``"1.2K"`` or ``"3M"`` to digits.

    ``K`` multiplies by one thousand, ``M`` by one million and a bare
    number is rounded half-up. Input that does not look like a count is
    returned unchanged; empty input yields ``"0"``.
    """
    if not value:
        return "0"

    match = FOLLOWERS_RE.match(value.strip())
    if not match:
        return value

    try:
        number = float(match.group(1))
    except ValueError:
        # e.g. "1.2.3" or "."
        return value

    multiplier = SUFFIX_MULTIPLIERS[match.group(2).upper()]
    return str(math.floor(number * multiplier + 0.5))


# ----------------------------
# Extractors
# ----------------------------


def extract_group_name(page: RenderedPage) -> str | None:
    heading = page.soup.select_one("h1.html-h1") or page.soup.find("h1")
    if heading is None:
        return None
    return heading.get_text().strip() or None


def extract_classification(page: RenderedPage) -> str | None:
    """
    Return the text of the first element whose own text mentions a group type.

    Only direct text nodes are considered (not script, style or comments),
    mirroring an XPath ``contains(text(), ...)`` lookup, but matching is
    case-insensitive.
    """
    for node in page.soup.find_all(string=True):
        if type(node) is not NavigableString:
            continue
        lowered = node.lower()
        if any(marker in lowered for marker in CLASSIFICATION_MARKERS):
            parent = node.parent
            text = parent.get_text() if isinstance(parent, Tag) else str(node)
            return text.strip() or None
    return None


def extract_member_count(page: RenderedPage) -> int | None:
    return _first_count(page, MEMBER_COUNT_RE)


def extract_abbreviated_member_count(page: RenderedPage) -> int | None:
    """Fallback count from header text such as ``"1.2K members"``."""
    for text in page.text_blocks():
        match = ABBREVIATED_MEMBERS_RE.search(text)
        if match:
            converted = convert_followers(match.group(1))
            if converted.isdigit():
                return int(converted)
    return None


def extract_posts_last_month(page: RenderedPage) -> int | None:
    return _first_count(page, POSTS_LAST_MONTH_RE)


def extract_group_info(page: RenderedPage) -> GroupInfo:
    """
    Scan text-bearing elements once for creation date, rename date and location.

    Each signal keeps its last occurrence in document order. A location is
    a Title Case phrase (words, spaces, optional commas) that mentions the
    Philippines.
    """
    location = created_on = name_changed_on = None

    for text in page.text_blocks():
        match = CREATED_ON_RE.search(text)
        if match:
            created_on = match.group(1)

        match = NAME_CHANGED_RE.search(text)
        if match:
            name_changed_on = match.group(1)

        if LOCATION_RE.match(text) and LOCATION_MARKER in text.lower():
            location = text

    return GroupInfo(
        location=location,
        created_on=created_on,
        name_changed_on=name_changed_on,
    )


def extract_email(page: RenderedPage) -> str | None:
    match = EMAIL_RE.search(page.text)
    return match.group(0) if match else None


def extract_username(page: RenderedPage) -> str | None:
    """
    Derive the identity slug from the resolved URL.

    Falls back to the canonical ``<link>`` in the raw markup when the URL
    does not carry a recognizable path segment.
    """
    username = ""
    match = USERNAME_URL_RE.search(page.url or "")
    if match:
        username = match.group(1)
    else:
        canonical = CANONICAL_RE.search(page.html)
        if canonical:
            username = canonical.group(1)

    username = re.sub(r"/$", "", username)
    return username or None


def extract_contact_number(page: RenderedPage) -> str | None:
    match = PHONE_RE.search(page.text)
    if not match:
        return None
    return match.group(0).strip() or None


# ----------------------------
# Registry
# ----------------------------

FIELD_EXTRACTORS: dict[str, Callable[[RenderedPage], Any]] = {
    "group_name": extract_group_name,
    "classification": extract_classification,
    "member_count": extract_member_count,
    "posts_last_month": extract_posts_last_month,
    "group_info": extract_group_info,
    "email": extract_email,
    "username": extract_username,
    "contact_number": extract_contact_number,
}

FIELD_DEFAULTS: dict[str, Any] = {
    "group_name": "N/A",
    "classification": "N/A",
    "member_count": None,
    "posts_last_month": None,
    "group_info": GroupInfo(),
    "email": "",
    "username": "",
    "contact_number": "N/A",
}


@dataclass
class ExtractionResult:
    """Field values from one extraction pass plus the misses and errors seen."""

    values: dict[str, Any] = field(default_factory=dict)
    diagnostics: list[str] = field(default_factory=list)


def run_extractors(
    page: RenderedPage,
    extractors: dict[str, Callable[[RenderedPage], Any]] | None = None,
    defaults: dict[str, Any] | None = None,
    url: str = "",
) -> ExtractionResult:
    """
    Run every extractor against ``page``, isolating failures per field.

    A miss (``None``) or an exception leaves the field at its default and
    appends a ``"<field>: <reason>"`` line to the diagnostics; nothing is
    raised to the caller.
    """
    extractors = FIELD_EXTRACTORS if extractors is None else extractors
    defaults = FIELD_DEFAULTS if defaults is None else defaults
    result = ExtractionResult()

    for name, extract in extractors.items():
        default = defaults.get(name)
        try:
            value = extract(page)
        except Exception as exc:  # noqa: BLE001 - one broken field must not cost the others
            logger.warning("Could not extract %s for %s: %s", name, url or page.url, exc)
            result.diagnostics.append(f"{name}: {type(exc).__name__}: {exc}")
            result.values[name] = default
            continue

        if value is None:
            logger.warning("%s not found for: %s", name, url or page.url)
            result.diagnostics.append(f"{name}: not found")
            value = default
        result.values[name] = value

    return result
