from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum

"""Record and ClassifiedValue models.

A Record is the structured form of one worksheet data row. Its ``value`` column
is held as a ClassifiedValue so that error-marker cells and unparseable text stay
distinguishable from real numbers all the way to the CSV output.
"""

__all__ = [
    "ValueKind",
    "ClassifiedValue",
    "Record",
]


class ValueKind(Enum):
    """Outcome of interpreting a raw ``value`` cell.

    - NUMERIC: finite number
    - MISSING: "not applicable" marker (Excel error cell, #N/A, blank)
    - INVALID: any other content, original text preserved
    """
    NUMERIC = "numeric"
    MISSING = "missing"
    INVALID = "invalid"


@dataclass(frozen=True)
class ClassifiedValue:
    kind: ValueKind
    number: float | None = None  # set only for NUMERIC
    text: str | None = None  # set only for INVALID

    def __post_init__(self) -> None:
        if self.kind is ValueKind.NUMERIC:
            if self.number is None or not math.isfinite(self.number):
                raise ValueError(f"numeric value must be finite, got {self.number!r}")
            if self.text is not None:
                raise ValueError("numeric value cannot carry text")
        elif self.kind is ValueKind.INVALID:
            if self.text is None or self.number is not None:
                raise ValueError("invalid value carries original text only")
        elif self.number is not None or self.text is not None:
            raise ValueError("missing value carries no payload")

    @classmethod
    def numeric(cls, number: float) -> ClassifiedValue:
        return cls(ValueKind.NUMERIC, number=float(number))

    @classmethod
    def missing(cls) -> ClassifiedValue:
        return cls(ValueKind.MISSING)

    @classmethod
    def invalid(cls, text: str) -> ClassifiedValue:
        return cls(ValueKind.INVALID, text=text)

    @property
    def is_numeric(self) -> bool:
        return self.kind is ValueKind.NUMERIC

    @property
    def is_missing(self) -> bool:
        return self.kind is ValueKind.MISSING

    @property
    def is_invalid(self) -> bool:
        return self.kind is ValueKind.INVALID


@dataclass(frozen=True)
class Record:
    """One data row of the ``data`` worksheet after extraction.

    row_number is the 1-based worksheet row (header = 1). It is kept for
    diagnostics only and never written to the CSV.
    """
    location: str
    metric: str
    value: ClassifiedValue
    date: date
    row_number: int = 0
