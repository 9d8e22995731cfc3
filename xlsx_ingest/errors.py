from __future__ import annotations

"""Error taxonomy for the xlsx -> CSV -> warehouse ingestion run.

Every fatal condition of an invocation is one of these classes. ``error_type``
is the UPPER_SNAKE code used in log lines and error records.
"""

__all__ = [
    "IngestError",
    "MalformedKey",
    "MalformedWorkbook",
    "EmptyDataset",
    "UnparseableDate",
    "AnchorDateUnparseable",
    "SourceUnavailable",
    "SinkUnavailable",
    "LoadFailed",
]


class IngestError(Exception):
    """Base class for classified ingestion failures."""
    error_type = "INGEST_ERROR"


class MalformedKey(IngestError):
    """Source key lacks the ``label/filename`` structure."""
    error_type = "MALFORMED_KEY"


class MalformedWorkbook(IngestError):
    """Workbook unreadable, worksheet absent or header incomplete."""
    error_type = "MALFORMED_WORKBOOK"


class EmptyDataset(IngestError):
    """No data rows: the anchor date is undefined."""
    error_type = "EMPTY_DATASET"


class UnparseableDate(IngestError):
    """A date cell that is not a calendar date."""
    error_type = "UNPARSEABLE_DATE"


class AnchorDateUnparseable(UnparseableDate, EmptyDataset):
    """First data row has no usable date, so there is no anchor to filter on.

    Callers handling EmptyDataset see this too; later rows with bad dates are
    rejected individually instead.
    """


class SourceUnavailable(IngestError):
    error_type = "SOURCE_UNAVAILABLE"


class SinkUnavailable(IngestError):
    error_type = "SINK_UNAVAILABLE"


class LoadFailed(IngestError):
    """Warehouse rejected the load. The CSV already written is left in place."""
    error_type = "LOAD_FAILED"
