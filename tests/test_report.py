from datetime import datetime

import pytest
from openpyxl import load_workbook

from groupscraper.groupconfig import ReportConfig
from groupscraper.grouperrors import InputSourceError
from groupscraper.groupreport import (
    read_urls,
    report_filename,
    write_failed_links,
    write_report,
)
from groupscraper.groupscraper import GroupRecord

NOW = datetime(2026, 10, 17, 14, 5, 9)


def records() -> list[GroupRecord]:
    return [
        GroupRecord(
            link="https://www.facebook.com/busy",
            group_name="Busy",
            member_count=367430,
            classification="Public group",
            posts_last_month=12,
            page_status="Active",
        ),
        GroupRecord.error("https://www.facebook.com/broken", "boom"),
        GroupRecord(link="https://www.facebook.com/quiet", group_name="Quiet", posts_last_month=0),
    ]


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (NOW, "Facebook_Pages_10-17-2026_02-05-09_PM.xlsx"),
        (datetime(2026, 1, 5, 0, 3, 4), "Facebook_Pages_01-05-2026_12-03-04_AM.xlsx"),
        (datetime(2026, 7, 4, 12, 0, 0), "Facebook_Pages_07-04-2026_12-00-00_PM.xlsx"),
    ],
)
def test_report_filename(now, expected):
    assert report_filename("Facebook_Pages", now) == expected


def test_write_report_layout_and_highlights(tmp_path):
    out = write_report(records(), ReportConfig(output_dir=tmp_path), now=NOW)

    assert out == tmp_path / "Facebook_Pages_10-17-2026_02-05-09_PM.xlsx"
    ws = load_workbook(out)["Facebook Pages"]

    headers = [c.value for c in ws[1]]
    assert headers == [
        "GROUP NAME",
        "LINK",
        "MEMBER",
        "CLASSIFICATION",
        "LOCATION",
        "DATE JOINED",
        "EMAIL URL",
        "POST LAST MONTH",
        "PAGE STATUS",
    ]
    assert ws.max_row == 4
    assert ws["A2"].value == "Busy"
    assert ws["C2"].value == 367430
    assert ws["A1"].font.bold
    assert ws["A2"].font.bold
    assert ws.column_dimensions["B"].width == 50

    # Active: status cell only
    assert ws["I2"].fill.fgColor.rgb == "FF92D050"
    assert ws["A2"].fill.fgColor.rgb == "FFF2F2F2"

    # Error: no highlight
    assert ws["I3"].value == "Error"
    assert ws["I3"].fill.fill_type is None

    # Not Active: whole row
    assert all(c.fill.fgColor.rgb == "FFFF5C5C" for c in ws[4])


def test_write_report_custom_columns(tmp_path):
    cfg = ReportConfig(output_dir=tmp_path, columns=["LINK", "USERNAME", "CONTACT_NUMBER"])
    ws = load_workbook(write_report(records(), cfg, now=NOW)).active

    assert [c.value for c in ws[1]] == ["LINK", "USERNAME", "CONTACT NUMBER"]
    assert ws["C3"].value == "Error"


def test_write_report_rejects_unknown_column(tmp_path):
    with pytest.raises(ValueError, match="FOLLOWERS"):
        write_report(records(), ReportConfig(output_dir=tmp_path, columns=["FOLLOWERS"]), now=NOW)


def test_write_failed_links(tmp_path):
    path = tmp_path / "failed_links.txt"
    assert write_failed_links(["https://a", "https://b"], path) == path
    assert path.read_text(encoding="utf-8") == "https://a\nhttps://b"


def test_write_failed_links_skips_empty(tmp_path):
    path = tmp_path / "failed_links.txt"
    assert write_failed_links([], path) is None
    assert not path.exists()


def test_read_urls_keeps_order_and_duplicates(tmp_path):
    csv = tmp_path / "link.csv"
    csv.write_text("URL,Note\nhttps://a,x\n,empty\nnot a url,y\nhttps://a,z\n", encoding="utf-8")

    assert read_urls(csv) == ["https://a", "not a url", "https://a"]


def test_read_urls_missing_column(tmp_path):
    csv = tmp_path / "link.csv"
    csv.write_text("Link\nhttps://a\n", encoding="utf-8")

    with pytest.raises(InputSourceError, match="URL"):
        read_urls(csv)


def test_read_urls_missing_file(tmp_path):
    with pytest.raises(InputSourceError):
        read_urls(tmp_path / "nope.csv")
