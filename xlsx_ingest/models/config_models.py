from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the ingestion function.

The loader in xlsx_ingest/config/loader.py builds these from YAML and the
environment; everything downstream receives them explicitly.
"""

DEFAULT_WORKSHEET = "data"

# Compared against the upper-cased, stripped cell text.
DEFAULT_MISSING_MARKERS = frozenset({
    "#N/A",
    "#DIV/0!",
    "#VALUE!",
    "#REF!",
    "#NAME?",
    "#NUM!",
    "#NULL!",
    "N/A",
})


@dataclass(frozen=True)
class DatabaseConfig:
    """Warehouse connection settings.

    Environment variables take precedence over these values. ``secret_id``
    names an AWS Secrets Manager secret holding the connection credentials.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    secret_id: str | None = None
    sslmode: str = "require"


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration for one deployment of the function."""
    source_bucket: str
    output_bucket: str
    target_table: str  # schema.table
    credentials_ref: str  # IAM role handed to COPY, opaque
    worksheet: str = DEFAULT_WORKSHEET
    missing_markers: frozenset[str] = DEFAULT_MISSING_MARKERS
    replace_existing: bool = False  # DELETE rows for (anchor date, locations) before COPY
    region: str | None = None
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
