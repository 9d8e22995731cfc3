from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for row-level rejection logging.

Rows dropped during extraction (for example an unparseable date on a row after
the first) are recorded as ErrorRecords so they show up in the run log as JSON
lines. ``row=-1`` marks an error that applies to the whole file.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: source object key being processed
        sheet: worksheet name
        row: 1-based worksheet row. -1 for file-level errors
        error_type: classification in UPPER_SNAKE_CASE
        message: human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # fixed key set: dataclass -> dict -> json
        return json.dumps(asdict(self), ensure_ascii=False)
