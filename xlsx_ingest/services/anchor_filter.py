from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from xlsx_ingest.errors import EmptyDataset
from xlsx_ingest.models.dataset import FilteredDataset
from xlsx_ingest.models.record import Record

"""Anchor-date filter.

The first record of a workbook defines the batch: its date is the anchor, and
only records with exactly that date are kept. Records from other batches that
share the file are dropped silently. Missing/invalid values do not affect
inclusion.
"""

__all__ = [
    "anchor_date",
    "filter_to_anchor",
]


def anchor_date(records: Sequence[Record]) -> date:
    if not records:
        raise EmptyDataset("dataset is empty, anchor date undefined")
    return records[0].date


def filter_to_anchor(records: Sequence[Record]) -> FilteredDataset:
    anchor = anchor_date(records)
    kept = [r for r in records if r.date == anchor]
    return FilteredDataset(anchor_date=anchor, records=kept, dropped=len(records) - len(kept))
