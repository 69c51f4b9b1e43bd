"""
groupscraper.groupreport
=================================

Input and output around a batch run.

- :func:`read_urls` loads the ordered URL list from a CSV file.
- :func:`write_report` renders records into a styled Excel workbook named
  ``<prefix>_<MM-DD-YYYY_hh-mm-ss_AMPM>.xlsx`` (local time).
- :func:`write_failed_links` writes the newline-joined failed URLs, only
  when there are any.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, GradientFill, PatternFill, Side
from openpyxl.utils import get_column_letter

from .groupconfig import ReportConfig
from .grouperrors import InputSourceError
from .groupscraper import STATUS_ACTIVE, STATUS_NOT_ACTIVE, BatchResult, GroupRecord

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%m-%d-%Y_%I-%M-%S_%p"


@dataclass(frozen=True)
class ColumnSpec:
    header: str
    width: int


COLUMN_SPECS = {
    "GROUP_NAME": ColumnSpec("GROUP NAME", 40),
    "LINK": ColumnSpec("LINK", 50),
    "USERNAME": ColumnSpec("USERNAME", 30),
    "MEMBER": ColumnSpec("MEMBER", 20),
    "CLASSIFICATION": ColumnSpec("CLASSIFICATION", 30),
    "LOCATION": ColumnSpec("LOCATION", 40),
    "DATE_JOINED": ColumnSpec("DATE JOINED", 40),
    "EMAIL_URL": ColumnSpec("EMAIL URL", 35),
    "CONTACT_NUMBER": ColumnSpec("CONTACT NUMBER", 25),
    "POST_LAST_MONTH": ColumnSpec("POST LAST MONTH", 25),
    "PAGE_STATUS": ColumnSpec("PAGE STATUS", 20),
}

BLACK = "FF000000"
ACTIVE_FILL = PatternFill(fill_type="solid", fgColor="FF92D050")
NOT_ACTIVE_FILL = PatternFill(fill_type="solid", fgColor="FFFF5C5C")
ALTERNATE_FILL = PatternFill(fill_type="solid", fgColor="FFF2F2F2")
HEADER_FILL = GradientFill(degree=0, stop=("FF1F4E78", "FF3E73A8"))
HEADER_FONT = Font(name="Calibri", size=14, bold=True, color="FFFFFFFF")
CELL_FONT = Font(name="Calibri", size=12)
NAME_FONT = Font(name="Calibri", size=13, bold=True)
CENTERED = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _border(style: str) -> Border:
    side = Side(style=style, color=BLACK)
    return Border(left=side, right=side, top=side, bottom=side)


HEADER_BORDER = _border("thick")
CELL_BORDER = _border("thin")


def read_urls(path: str | Path, column: str = "URL") -> list[str]:
    """
    Return the non-empty values of ``column`` in file order.

    Duplicates and malformed URLs are passed through untouched. Raises
    :class:`InputSourceError` when the file cannot be read or has no such
    column.
    """
    logger.info("Reading CSV file %s", path)
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as exc:
        msg = f"Failed to read CSV {path}: {exc}"
        raise InputSourceError(msg) from exc

    if column not in frame.columns:
        msg = f"CSV {path} has no {column!r} column (found: {list(frame.columns)})"
        raise InputSourceError(msg)

    links = [v for v in frame[column].tolist() if v]
    logger.info("Total URLs loaded: %s", len(links))
    return links


def report_filename(prefix: str, now: datetime | None = None, ext: str = "xlsx") -> str:
    now = now or datetime.now()
    return f"{prefix}_{now.strftime(TIMESTAMP_FORMAT)}.{ext}"


def _report_frame(records: Sequence[GroupRecord], columns: Sequence[str]) -> pd.DataFrame:
    frame = BatchResult(records=list(records)).to_dataframe()
    return frame[list(columns)]


def write_report(
    records: Sequence[GroupRecord],
    cfg: ReportConfig,
    now: datetime | None = None,
) -> Path:
    """
    Write ``records`` to a styled workbook under ``cfg.output_dir``.

    Rows alternate a light grey fill; an ``Active`` status cell is green
    and a ``Not Active`` row is red across every column. ``Error`` rows get
    no status highlight.
    """
    unknown = [c for c in cfg.columns if c not in COLUMN_SPECS]
    if unknown:
        msg = f"Unknown report columns: {unknown}"
        raise ValueError(msg)

    frame = _report_frame(records, cfg.columns)
    wb = Workbook()
    ws = wb.active
    ws.title = cfg.sheet_name

    ws.append([COLUMN_SPECS[key].header for key in cfg.columns])
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = CENTERED
        cell.border = HEADER_BORDER

    for idx, key in enumerate(cfg.columns, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = COLUMN_SPECS[key].width

    status_col = cfg.columns.index("PAGE_STATUS") + 1 if "PAGE_STATUS" in cfg.columns else None

    for row_index, (record, values) in enumerate(
        zip(records, frame.itertuples(index=False, name=None), strict=True),
    ):
        ws.append([None if pd.isna(v) else v for v in values])
        row = ws[ws.max_row]

        for col_index, cell in enumerate(row, start=1):
            if row_index % 2 == 0:
                cell.fill = ALTERNATE_FILL
            cell.alignment = CENTERED
            cell.border = CELL_BORDER
            cell.font = NAME_FONT if col_index == 1 else CELL_FONT

        if record.page_status == STATUS_ACTIVE and status_col:
            row[status_col - 1].fill = ACTIVE_FILL
        elif record.page_status == STATUS_NOT_ACTIVE:
            for cell in row:
                if cell.value is None:
                    cell.value = ""
                cell.fill = NOT_ACTIVE_FILL

    out_dir = Path(cfg.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / report_filename(cfg.file_prefix, now)
    wb.save(out)
    logger.info("Excel file saved as: %s", out)
    return out


def write_failed_links(failed: Sequence[str], path: str | Path) -> Path | None:
    """Write one failed URL per line; nothing is written for an empty list."""
    if not failed:
        logger.info("All pages processed successfully without errors.")
        return None
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    logger.warning("%s pages failed to analyze. Writing to %s", len(failed), out)
    out.write_text("\n".join(failed), encoding="utf-8")
    return out
