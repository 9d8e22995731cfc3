from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from io import BytesIO
from typing import Any

import numpy as np
import pandas as pd

from xlsx_ingest.errors import AnchorDateUnparseable, EmptyDataset, MalformedWorkbook, UnparseableDate
from xlsx_ingest.excel.classifier import classify_value
from xlsx_ingest.models.config_models import DEFAULT_WORKSHEET
from xlsx_ingest.models.dataset import Dataset
from xlsx_ingest.models.error_record import ErrorRecord
from xlsx_ingest.models.record import Record

"""Workbook reader: bytes -> Dataset.

Row 1 of the worksheet is the header and must name the four fixed columns
(order free, extra columns ignored). Every following non-blank row becomes one
Record. Cells are read with pandas' default NA parsing disabled so that blank
cells, Excel error cells and literal text stay distinguishable.
"""

__all__ = [
    "EXPECTED_COLUMNS",
    "read_workbook",
    "normalize_sheet",
    "extract_dataset",
    "parse_date",
]

logger = logging.getLogger(__name__)

EXPECTED_COLUMNS = ("location", "metric", "value", "date")

# Excel serial day 1 is 1900-01-01; the 1900 leap-year bug is absorbed by this origin
EXCEL_EPOCH = date(1899, 12, 30)
MAX_EXCEL_SERIAL = 2958465  # 9999-12-31


def read_workbook(content: bytes, worksheet: str = DEFAULT_WORKSHEET) -> pd.DataFrame:
    """Open workbook bytes and return the raw worksheet (no header applied).

    Raises:
        MalformedWorkbook: bytes are not a readable xlsx or the worksheet is absent
    """
    try:
        xls = pd.ExcelFile(BytesIO(content), engine="openpyxl")
    except Exception as e:  # zipfile.BadZipFile, openpyxl InvalidFileException, ...
        raise MalformedWorkbook(f"cannot open workbook: {e}") from e
    with xls:
        if worksheet not in [str(n) for n in xls.sheet_names]:
            raise MalformedWorkbook(
                f"worksheet '{worksheet}' not found (sheets: {list(xls.sheet_names)})"
            )
        return xls.parse(worksheet, header=None, dtype=object, keep_default_na=False)


def _is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, (float, np.floating)) and math.isnan(val):
        return True
    return isinstance(val, str) and val.strip() == ""


def _as_text(val: Any) -> str:
    if _is_blank(val):
        return ""
    if isinstance(val, (float, np.floating)) and float(val).is_integer():
        return str(int(val))
    return str(val).strip()


def parse_date(raw: Any) -> date:
    """Parse a ``date`` cell into a calendar date.

    Accepts datetime/date cells, Excel serial day numbers and ISO 8601 text.

    Raises:
        UnparseableDate: for anything else
    """
    if isinstance(raw, datetime):  # includes pd.Timestamp
        if raw is pd.NaT:
            raise UnparseableDate("empty date")
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (bool, np.bool_)):
        raise UnparseableDate(f"not a date: {raw!r}")
    if isinstance(raw, (int, float, np.integer, np.floating)):
        serial = float(raw)
        if not math.isfinite(serial) or not 0 < serial <= MAX_EXCEL_SERIAL:
            raise UnparseableDate(f"not an Excel date serial: {raw!r}")
        return EXCEL_EPOCH + timedelta(days=int(serial))
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise UnparseableDate("empty date")
        try:
            return datetime.fromisoformat(text).date()
        except ValueError as e:
            raise UnparseableDate(f"not an ISO date: {raw!r}") from e
    raise UnparseableDate(f"unsupported date cell: {raw!r}")


def normalize_sheet(
    df: pd.DataFrame,
    sheet_name: str,
    missing_markers: frozenset[str] | None = None,
    source_name: str = "",
) -> Dataset:
    """Turn a raw worksheet frame into a Dataset.

    Steps:
    1. Validate the header row (row 1) names every expected column
    2. Skip fully blank rows
    3. Classify ``value``, parse ``date``; a bad date on the first data row is
       fatal, on later rows the row is rejected and recorded
    4. Fail if no data row remains
    """
    if df.shape[0] < 1:
        raise MalformedWorkbook(f"worksheet '{sheet_name}' has no header row")
    header = [_as_text(c).lower() for c in df.iloc[0].tolist()]
    missing = [c for c in EXPECTED_COLUMNS if c not in header]
    if missing:
        raise MalformedWorkbook(f"worksheet '{sheet_name}' missing columns: {missing}")
    positions = {col: header.index(col) for col in EXPECTED_COLUMNS}

    records: list[Record] = []
    rejected: list[ErrorRecord] = []
    seen_first = False
    for offset, raw in enumerate(df.iloc[1:].itertuples(index=False, name=None)):
        row_number = offset + 2
        cells = {col: raw[pos] for col, pos in positions.items()}
        if all(_is_blank(v) for v in cells.values()):
            continue
        try:
            row_date = parse_date(cells["date"])
        except UnparseableDate as e:
            if not seen_first:
                raise AnchorDateUnparseable(
                    f"first data row {row_number} has no usable date, anchor cannot be set: {e}"
                ) from e
            logger.debug("sheet=%s row=%d dropped: %s", sheet_name, row_number, e)
            rejected.append(
                ErrorRecord.create(
                    file=source_name,
                    sheet=sheet_name,
                    row=row_number,
                    error_type=UnparseableDate.error_type,
                    message=str(e),
                )
            )
            continue
        seen_first = True
        records.append(
            Record(
                location=_as_text(cells["location"]),
                metric=_as_text(cells["metric"]),
                value=classify_value(cells["value"], missing_markers),
                date=row_date,
                row_number=row_number,
            )
        )

    if not records:
        raise EmptyDataset(f"worksheet '{sheet_name}' has no data rows")

    logger.debug(
        "sheet=%s records=%d rejected=%d", sheet_name, len(records), len(rejected)
    )
    return Dataset(sheet_name=sheet_name, records=records, rejected=rejected)


def extract_dataset(
    content: bytes,
    worksheet: str = DEFAULT_WORKSHEET,
    missing_markers: frozenset[str] | None = None,
    source_name: str = "",
) -> Dataset:
    """Read workbook bytes and extract the Dataset of the given worksheet."""
    df = read_workbook(content, worksheet)
    return normalize_sheet(df, worksheet, missing_markers=missing_markers, source_name=source_name)
