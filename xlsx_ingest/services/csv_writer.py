from __future__ import annotations

from datetime import date
from io import StringIO

import numpy as np
import pandas as pd

from xlsx_ingest.excel.reader import EXPECTED_COLUMNS
from xlsx_ingest.models.dataset import CsvOutput, FilteredDataset
from xlsx_ingest.models.output import DATE_FMT
from xlsx_ingest.models.record import ClassifiedValue, ValueKind

"""CSV serializer for a FilteredDataset.

Output is a pure function of the records: fixed column order, ``\\n`` line
endings, UTF-8, ISO dates and positional decimals (no exponent notation), so a
re-run over the same workbook writes byte-identical objects.
"""

__all__ = [
    "CSV_COLUMNS",
    "format_value",
    "output_file_name",
    "serialize_csv",
]

CSV_COLUMNS = EXPECTED_COLUMNS


def format_value(value: ClassifiedValue) -> str:
    """NUMERIC -> decimal text, MISSING -> empty field, INVALID -> original text."""
    if value.kind is ValueKind.NUMERIC:
        return np.format_float_positional(value.number, unique=True, trim="0")
    if value.kind is ValueKind.MISSING:
        return ""
    return value.text or ""


def output_file_name(anchor: date) -> str:
    return f"{anchor.strftime(DATE_FMT)}.csv"


def serialize_csv(filtered: FilteredDataset) -> CsvOutput:
    rows = [
        [r.location, r.metric, format_value(r.value), r.date.strftime(DATE_FMT)]
        for r in filtered.records
    ]
    df = pd.DataFrame(rows, columns=list(CSV_COLUMNS), dtype=object)
    buf = StringIO()
    df.to_csv(buf, index=False, lineterminator="\n")
    return CsvOutput(
        file_name=output_file_name(filtered.anchor_date),
        body=buf.getvalue().encode("utf-8"),
        row_count=len(rows),
        locations=tuple(sorted({r.location for r in filtered.records})),
    )
