from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

"""Per-invocation result model, rendered into the SUMMARY log line."""


@dataclass(frozen=True)
class IngestResult:
    source_uri: str  # s3://bucket/key of the workbook
    output_uri: str  # s3://bucket/label/YYYY-MM-DD.csv
    anchor_date: date
    rows_read: int  # records extracted (after rejections)
    rows_kept: int  # records matching the anchor date
    rows_dropped: int  # records with another date
    rows_rejected: int  # worksheet rows that could not be extracted
    missing_values: int
    invalid_values: int
    rows_deleted: int  # rows removed by replace_existing, -1 when no delete ran
    loaded: bool  # false when the CSV was written but the warehouse load failed
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
