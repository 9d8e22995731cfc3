# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from xlsx_ingest.handler import reset_config
from xlsx_ingest.logging.init import reset_logging
from xlsx_ingest.models.config_models import IngestConfig
from xlsx_ingest.models.output import LoadResult

HEADER = ["location", "metric", "value", "date"]

# (location, metric, value, date) rows from a typical upload:
# four rows for 2020-02-01 and a stray row from the previous batch.
EXAMPLE_ROWS: list[list[object]] = [
    ["UK", "conversion_rate", 0, date(2020, 2, 1)],
    ["ES", "conversion_rate", 0.634, date(2020, 2, 1)],
    ["DE", "conversion_rate", "#N/A", date(2020, 2, 1)],
    ["FR", "conversion_rate", "#N/A", date(2020, 2, 1)],
    ["UK", "conversion_rate", 0.723, date(2020, 1, 31)],
]

ENV_NAMES = [
    "XLSX_INGEST_CONFIG",
    "SOURCE_BUCKET",
    "OUTPUT_BUCKET",
    "TARGET_TABLE",
    "CREDENTIALS_REF",
    "AWS_REGION",
    "DATABASE_URL",
    "PGDSN",
    "PGHOST",
    "PGPORT",
    "PGUSER",
    "PGPASSWORD",
    "PGDATABASE",
    "DB_SECRET_ID",
]


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    reset_logging()
    reset_config()
    yield
    reset_logging()
    reset_config()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_bucket: input-bucket
output_bucket: output-bucket
target_table: public.test_table
credentials_ref: arn:aws:iam::123456789012:role/redshift-copy
worksheet: data
replace_existing: false
region: eu-west-1
database:
  host: warehouse.example.com
  port: 5439
  user: loader
  password: secret
  database: analytics
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def ingest_config() -> IngestConfig:
    return IngestConfig(
        source_bucket="input-bucket",
        output_bucket="output-bucket",
        target_table="public.test_table",
        credentials_ref="arn:aws:iam::123456789012:role/redshift-copy",
    )


def build_workbook(
    rows: list[list[object]],
    sheet: str = "data",
    header: list[str] | None = HEADER,
    extra_sheets: dict[str, list[list[object]]] | None = None,
) -> bytes:
    """Write rows (header first) into an in-memory xlsx."""
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        body = ([header] if header is not None else []) + rows
        pd.DataFrame(body).to_excel(writer, sheet_name=sheet, header=False, index=False)
        for name, extra in (extra_sheets or {}).items():
            pd.DataFrame(extra).to_excel(writer, sheet_name=name, header=False, index=False)
    return buf.getvalue()


@pytest.fixture()
def make_workbook() -> Callable[..., bytes]:
    return build_workbook


@pytest.fixture()
def example_workbook() -> bytes:
    return build_workbook(EXAMPLE_ROWS)


class FakeStore:
    """In-memory object store recording every call."""

    def __init__(self, objects: dict[tuple[str, str], bytes] | None = None) -> None:
        self.objects = dict(objects or {})
        self.puts: list[tuple[str, str, bytes]] = []
        self.fetches: list[tuple[str, str]] = []

    def fetch(self, bucket: str, key: str) -> bytes:
        self.fetches.append((bucket, key))
        return self.objects[(bucket, key)]

    def put(self, bucket: str, key: str, body: bytes) -> None:
        self.puts.append((bucket, key, body))
        self.objects[(bucket, key)] = body


class FakeLoader:
    def __init__(self, error: Exception | None = None, deleted_rows: int = -1) -> None:
        self.commands: list[Any] = []
        self.error = error
        self.deleted_rows = deleted_rows

    def load(self, command: Any) -> LoadResult:
        self.commands.append(command)
        if self.error is not None:
            raise self.error
        return LoadResult(
            table=command.table,
            location=command.location,
            deleted_rows=self.deleted_rows,
            elapsed_seconds=0.0,
        )
