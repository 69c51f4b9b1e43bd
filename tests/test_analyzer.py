import random
from pathlib import Path
from unittest.mock import Mock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from groupscraper.groupconfig import Config, InteractionConfig
from groupscraper.grouperrors import PageUnreachableError
from groupscraper.groupextract import RenderedPage
from groupscraper.groupscraper import (
    SCROLL_SCRIPT,
    GroupRecord,
    InteractionSequencer,
    analyze_page,
    classify_activity,
    normalize_about_url,
)

FIXTURES = Path(__file__).resolve().parent / "fixtures"
DIALOG = InteractionConfig().dialog_close_selector


def fake_page(fixture: str = "group_about.html", url: str = "https://www.facebook.com/manilafoodies/about") -> Mock:
    """Mock standing in for a Playwright page showing ``fixture``."""
    html = (FIXTURES / fixture).read_text(encoding="utf-8")
    page = Mock()
    page.url = url
    page.content.return_value = html
    page.inner_text.return_value = RenderedPage.from_html(html).text
    return page


def no_dialog(selector, timeout=None):
    if selector == DIALOG:
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
    return Mock()


@pytest.mark.parametrize(
    "url",
    ["https://site/x", "https://site/x/", "https://site/x/about"],
)
def test_normalize_about_url(url):
    assert normalize_about_url(url) == "https://site/x/about"


@pytest.mark.parametrize(
    ("posts", "status"),
    [(None, "Not Active"), (0, "Not Active"), (1, "Active"), (1204, "Active")],
)
def test_classify_activity(posts, status):
    assert classify_activity(posts) == status


def test_sequencer_navigates_to_about_page_with_idle_wait():
    page = fake_page()
    seq = InteractionSequencer(page, InteractionConfig(), random.Random(1))

    assert seq.run("https://www.facebook.com/groups/abc/") == "https://www.facebook.com/groups/abc/about"
    page.goto.assert_called_once_with(
        "https://www.facebook.com/groups/abc/about",
        wait_until="networkidle",
        timeout=100000,
    )


def test_sequencer_closes_dialog_when_present():
    page = fake_page()
    InteractionSequencer(page, InteractionConfig(), random.Random(1)).run("https://site/x")

    page.wait_for_selector.assert_called_once_with(DIALOG, timeout=5000)
    page.click.assert_called_once_with(DIALOG)


def test_sequencer_dialog_absence_is_not_an_error():
    page = fake_page()
    page.wait_for_selector.side_effect = no_dialog
    seq = InteractionSequencer(page, InteractionConfig(), random.Random(1))

    seq.run("https://site/x")

    page.click.assert_not_called()
    assert seq.diagnostics == []
    assert page.evaluate.call_count == 5


def test_scroll_plan_is_reproducible_and_bounded():
    cfg = InteractionConfig()
    first = InteractionSequencer(Mock(), cfg, random.Random(42)).scroll_plan()
    second = InteractionSequencer(Mock(), cfg, random.Random(42)).scroll_plan()

    assert first == second
    assert len(first) == 5
    for offset, delay_ms in first:
        assert 100 <= abs(offset) < 400
        assert 1000 <= delay_ms <= 2000


def test_random_scroll_uses_smooth_scroll_script():
    page = Mock()
    seq = InteractionSequencer(page, InteractionConfig(), random.Random(7))
    plan = InteractionSequencer(Mock(), InteractionConfig(), random.Random(7)).scroll_plan()

    assert seq.random_scroll() == 5
    assert [c.args for c in page.evaluate.call_args_list] == [
        (SCROLL_SCRIPT, offset) for offset, _ in plan
    ]
    assert [c.args[0] for c in page.wait_for_timeout.call_args_list] == [d for _, d in plan]


def test_random_pause_within_bounds():
    page = Mock()
    InteractionSequencer(page, InteractionConfig(), random.Random(3)).random_pause()
    (ms,), _ = page.wait_for_timeout.call_args
    assert 1000 <= ms <= 3000


def test_scroll_failure_skips_rest_of_routine():
    page = Mock()
    page.evaluate.side_effect = [None, PlaywrightError("Execution context was destroyed")]
    seq = InteractionSequencer(page, InteractionConfig(), random.Random(1))

    assert seq.random_scroll() == 1
    assert seq.diagnostics[0].startswith("random_scroll:")


def test_navigation_error_raises_page_unreachable():
    page = Mock()
    page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
    seq = InteractionSequencer(page, InteractionConfig(), random.Random(1))

    with pytest.raises(PageUnreachableError):
        seq.navigate("https://nowhere.invalid/about")


def test_analyze_page_extracts_full_record():
    page = fake_page()
    record = analyze_page(page, "https://www.facebook.com/manilafoodies", Config(), random.Random(1))

    assert record.link == "https://www.facebook.com/manilafoodies"
    assert record.username == "manilafoodies"
    assert record.group_name == "Manila Foodies"
    assert record.member_count == 367430
    assert record.classification == "Public group"
    assert record.posts_last_month == 1204
    assert record.location == "Makati City, Philippines"
    assert record.date_joined == "March 3, 2015"
    assert record.email == "hello@manilafoodies.ph"
    assert record.contact_number == "+63 (917) 555-1234"
    assert record.page_status == "Active"
    assert record.diagnostics == ()


def test_analyze_page_without_dialog_still_extracts():
    page = fake_page()
    page.wait_for_selector.side_effect = no_dialog

    record = analyze_page(page, "https://www.facebook.com/manilafoodies", Config(), random.Random(1))

    assert record.group_name == "Manila Foodies"
    assert record.member_count == 367430
    assert record.page_status == "Active"


def test_analyze_page_confirmed_zero_posts_is_not_active():
    page = fake_page("group_quiet.html", url="https://www.facebook.com/quietcorner/about")
    record = analyze_page(page, "https://www.facebook.com/quietcorner", Config(), random.Random(1))

    assert record.posts_last_month == 0
    assert record.page_status == "Not Active"
    assert record.email == ""
    assert record.contact_number == "N/A"
    assert "email: not found" in record.diagnostics
    assert "location: not found" in record.diagnostics


def test_analyze_page_navigation_timeout_degrades_record():
    page = fake_page()
    page.goto.side_effect = PlaywrightTimeoutError("Timeout 100000ms exceeded.")
    page.content.return_value = "<html><body></body></html>"
    page.inner_text.return_value = ""
    page.url = "about:blank"

    record = analyze_page(page, "https://www.facebook.com/slow", Config(), random.Random(1))

    assert record.page_status == "Not Active"
    assert record.group_name == "N/A"
    assert record.member_count is None
    assert record.posts_last_month is None
    assert record.diagnostics[0] == "navigate: timeout after 100000ms"


def test_analyze_page_unreachable_returns_error_record():
    page = fake_page()
    page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

    record = analyze_page(page, "https://nowhere.invalid/g", Config(), random.Random(1))

    assert record.page_status == "Error"
    assert record.link == "https://nowhere.invalid/g"
    assert record.group_name == "Error"
    assert "PageUnreachableError" in record.diagnostics[0]


def test_analyze_page_dead_session_returns_error_record():
    page = fake_page()
    page.content.side_effect = PlaywrightError("Target page, context or browser has been closed")

    record = analyze_page(page, "https://www.facebook.com/manilafoodies", Config(), random.Random(1))

    assert record.is_error


def test_analyze_page_is_idempotent_on_static_page():
    first = analyze_page(fake_page(), "https://www.facebook.com/manilafoodies", Config(), random.Random(1))
    second = analyze_page(fake_page(), "https://www.facebook.com/manilafoodies", Config(), random.Random(99))
    assert first == second


def test_abbreviated_member_fallback_is_opt_in():
    html = "<html><body><h1>Small</h1><div><span>1.2K members</span></div></body></html>"
    page = Mock()
    page.url = "https://www.facebook.com/small/about"
    page.content.return_value = html
    page.inner_text.return_value = "Small\n1.2K members"

    cfg = Config()
    assert analyze_page(page, "https://www.facebook.com/small", cfg, random.Random(1)).member_count is None

    cfg.extraction.abbreviated_member_fallback = True
    assert analyze_page(page, "https://www.facebook.com/small", cfg, random.Random(1)).member_count == 1200


def test_error_record_shape():
    record = GroupRecord.error("https://x", "boom")
    assert record.to_row()["PAGE_STATUS"] == "Error"
    assert record.to_row()["LINK"] == "https://x"
    assert record.diagnostics == ("boom",)
