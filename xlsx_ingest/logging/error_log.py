from __future__ import annotations

import logging

from xlsx_ingest.models.error_record import ErrorRecord

"""Row-level error buffering.

Rejected rows are collected while a workbook is extracted and flushed once per
run as JSON Lines through the application logger (WARN level), so that they
land in the same log stream as the SUMMARY line.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

logger = logging.getLogger(__name__)


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines to the log.

    Not thread safe; one buffer belongs to one invocation.
    """
    def __init__(self) -> None:
        self._records: list[ErrorRecord] = []

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def flush(self) -> int:
        """Emit buffered records and clear the buffer. Returns the count emitted."""
        count = len(self._records)
        for r in self._records:
            logger.warning("row_error %s", r.to_json_line())
        self._records.clear()
        return count
