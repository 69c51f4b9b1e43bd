"""
groupscraper.groupconfig
=================================

Configuration dataclasses and helpers used to coerce a JSON configuration
into Python objects consumed by the group scraper runtime.

The primary public surface is :class:`Config`, which mirrors the JSON
structure users author. The module also exposes a small helper,
:func:`load_config`, which reads a JSON file and returns a typed
:class:`Config` instance. Every field has a default, so an empty JSON
object (or no file at all) yields a working configuration.
"""

import json
import types
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Literal, Union, get_args, get_origin

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1920,1080",
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
]

DEFAULT_REPORT_COLUMNS = [
    "GROUP_NAME",
    "LINK",
    "MEMBER",
    "CLASSIFICATION",
    "LOCATION",
    "DATE_JOINED",
    "EMAIL_URL",
    "POST_LAST_MONTH",
    "PAGE_STATUS",
]


def _default_headers() -> dict[str, str]:
    return {
        "Accept-Language": "en-US,en;q=0.9",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    }


@dataclass
class SessionConfig:
    """
    Browser session configuration.

    Replaces process-wide plugin registration: everything that shapes the
    browser (stealth patches, user agent, extra HTTP headers, launch flags)
    is passed explicitly into session creation.

    Fields
    ------
    browser: Playwright browser type to launch.
    headless: run without a visible window. Defaults to False.
    stealth: apply playwright-stealth evasions to the browser context.
    user_agent: user agent string sent with every request.
    extra_headers: additional HTTP headers sent with every request.
    launch_args: command-line flags for the browser process.
    viewport: explicit viewport size; None lets the window size decide.
    """

    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = False
    stealth: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: dict[str, str] = field(default_factory=_default_headers)
    launch_args: list[str] = field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    viewport: dict | None = None
    java_script_enabled: bool = True


@dataclass
class InteractionConfig:
    """
    Timing and selectors for the pre-extraction page ritual.

    Times ending in ``_ms`` are Playwright timeouts in milliseconds; times
    ending in ``_s`` are bounds of uniformly random pauses in seconds.
    ``seed`` makes the random pauses and scrolls reproducible.
    """

    navigation_timeout_ms: int = 100_000
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = (
        "networkidle"
    )
    dialog_close_selector: str = 'div[role="dialog"] div[aria-label="Close"]'
    dialog_timeout_ms: int = 5000
    pause_min_s: float = 1.0
    pause_max_s: float = 3.0
    scroll_times: int = 5
    scroll_min_px: int = 100
    scroll_max_px: int = 400
    scroll_delay_min_s: float = 1.0
    scroll_delay_max_s: float = 2.0
    body_timeout_ms: int = 10_000
    seed: int | None = None


@dataclass
class ExtractionConfig:
    """Switches for optional extraction signals."""

    abbreviated_member_fallback: bool = False


@dataclass
class ReportConfig:
    """
    Output naming and layout for the Excel report and failure log.

    ``columns`` is the ordered list of record keys rendered as report
    columns (see :data:`groupscraper.groupreport.COLUMN_SPECS`).
    """

    output_dir: Path = Path(".")
    file_prefix: str = "Facebook_Pages"
    sheet_name: str = "Facebook Pages"
    failed_links_file: str = "failed_links.txt"
    columns: list[str] = field(default_factory=lambda: list(DEFAULT_REPORT_COLUMNS))


@dataclass
class Config:
    """
    Top-level runtime configuration.

    This dataclass mirrors the keys accepted by the JSON configuration
    files used by the scraper. Users typically author JSON objects that
    are read with :func:`load_config`.
    """

    input_csv: Path = Path("link.csv")
    url_column: str = "URL"

    session: SessionConfig = field(default_factory=SessionConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    report: ReportConfig = field(default_factory=ReportConfig)


def _unwrap_optional(t: Any) -> Any:
    """
    Return the inner type if ``t`` is Optional[...] else ``t``.

    Handles both ``typing.Optional[X]`` and the ``X | None`` spelling.
    """
    if get_origin(t) in (Union, types.UnionType):
        non_none = [a for a in get_args(t) if a is not type(None)]
        if len(non_none) == 1:
            return non_none[0]
    return t


def coerce_value(val: Any, target_type: type[Any]) -> Any:
    inner_type = _unwrap_optional(target_type)

    if val is None:
        return None

    # Dataclass instance from dict
    if is_dataclass(inner_type) and isinstance(val, dict):
        return coerce_nested(val, inner_type)

    # JSON has no path type
    if inner_type is Path and isinstance(val, str):
        return Path(val)

    origin = get_origin(inner_type)
    args = get_args(inner_type)

    if origin in (list, tuple) and args:
        inner_arg = args[0]
        return type(val)(coerce_value(v, inner_arg) for v in val)

    if origin is dict and len(args) == 2:
        key_type, value_type = args
        return {
            coerce_value(k, key_type): coerce_value(v, value_type)
            for k, v in val.items()
        }

    return val


def coerce_nested(obj: dict, cls: type[Any]) -> Any:
    if not is_dataclass(cls):
        return obj

    kwargs = {}
    for f in fields(cls):
        if f.name not in obj:
            continue
        val = obj[f.name]
        if val is MISSING:
            continue
        kwargs[f.name] = coerce_value(val, f.type)

    return cls(**kwargs)


def load_config(path: str | Path | None = None) -> Config:
    """Read a JSON config file; with no path, return the defaults."""
    if path is None:
        return Config()
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return coerce_nested(raw, Config)
