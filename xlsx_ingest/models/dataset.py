from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from .error_record import ErrorRecord
from .record import Record

"""Dataset containers passed between extraction, filtering and serialization."""

__all__ = [
    "Dataset",
    "FilteredDataset",
    "CsvOutput",
]


@dataclass(frozen=True)
class Dataset:
    """Records in worksheet order plus the rows rejected while extracting them."""
    sheet_name: str
    records: list[Record]
    rejected: list[ErrorRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class FilteredDataset:
    """Records sharing the anchor date, original order preserved.

    ``dropped`` counts records discarded because their date differed.
    """
    anchor_date: date
    records: list[Record]
    dropped: int = 0

    def __post_init__(self) -> None:
        for r in self.records:
            if r.date != self.anchor_date:
                raise ValueError(
                    f"record at row {r.row_number} dated {r.date} does not match anchor {self.anchor_date}"
                )


@dataclass(frozen=True)
class CsvOutput:
    file_name: str  # {YYYY-MM-DD}.csv
    body: bytes
    row_count: int
    locations: tuple[str, ...] = ()  # sorted, distinct
