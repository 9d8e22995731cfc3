from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

import numpy as np

from xlsx_ingest.models.config_models import DEFAULT_MISSING_MARKERS
from xlsx_ingest.models.record import ClassifiedValue

"""Cell value classifier for the ``value`` column.

pandas (openpyxl engine) hands back Excel error cells such as ``#N/A`` as NaN
and empty cells as ``""`` when default NA parsing is disabled, so both map to
MISSING here. Text error literals typed into a cell are matched against the
configured markers. Every input maps to exactly one ClassifiedValue.
"""

__all__ = [
    "classify_value",
    "normalize_markers",
]


def normalize_markers(markers: Iterable[str] | None) -> frozenset[str]:
    if markers is None:
        return DEFAULT_MISSING_MARKERS
    return frozenset(m.strip().upper() for m in markers if isinstance(m, str))


def _is_nan(raw: Any) -> bool:
    return isinstance(raw, (float, np.floating)) and math.isnan(raw)


def classify_value(raw: Any, missing_markers: frozenset[str] | None = None) -> ClassifiedValue:
    """Classify one raw ``value`` cell as NUMERIC, MISSING or INVALID."""
    markers = DEFAULT_MISSING_MARKERS if missing_markers is None else missing_markers

    if raw is None or _is_nan(raw):
        return ClassifiedValue.missing()

    # bool is an int subclass; a TRUE/FALSE cell is not a measurement
    if isinstance(raw, (bool, np.bool_)):
        return ClassifiedValue.invalid(str(bool(raw)).upper())

    if isinstance(raw, (int, float, np.integer, np.floating)):
        number = float(raw)
        if math.isfinite(number):
            return ClassifiedValue.numeric(number)
        return ClassifiedValue.invalid(str(raw))

    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped == "" or stripped.upper() in markers:
            return ClassifiedValue.missing()
        try:
            number = float(stripped)
        except ValueError:
            return ClassifiedValue.invalid(raw)
        if math.isfinite(number):
            return ClassifiedValue.numeric(number)
        # "nan" / "inf" typed as text
        return ClassifiedValue.invalid(raw)

    return ClassifiedValue.invalid(str(raw))
