from __future__ import annotations

from dataclasses import dataclass
from datetime import date

"""OutputObject, LoadCommand and LoadResult: what the orchestrator exchanges with its collaborators."""

__all__ = [
    "OutputObject",
    "LoadCommand",
    "LoadResult",
]

DATE_FMT = "%Y-%m-%d"


@dataclass(frozen=True)
class OutputObject:
    bucket: str
    label: str
    anchor_date: date

    @property
    def key(self) -> str:
        return f"{self.label}/{self.anchor_date.strftime(DATE_FMT)}.csv"

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class LoadCommand:
    """Instruction to bulk-load one CSV object into the target table.

    credentials_ref is opaque (an IAM role ARN for Redshift) and is passed
    through untouched.
    """
    table: str
    location: str  # s3://bucket/key
    credentials_ref: str
    columns: tuple[str, ...]
    anchor_date: date
    locations: tuple[str, ...] = ()


@dataclass(frozen=True)
class LoadResult:
    table: str
    location: str
    deleted_rows: int  # -1 when no delete was issued
    elapsed_seconds: float
