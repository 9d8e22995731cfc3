from __future__ import annotations

from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from xlsx_ingest import handler
from xlsx_ingest.errors import EmptyDataset
from xlsx_ingest.models.processing_result import IngestResult


def _event(*pairs: tuple[str, str]) -> dict:
    return {
        "Records": [
            {"eventName": "ObjectCreated:Put", "s3": {"bucket": {"name": b}, "object": {"key": k}}}
            for b, k in pairs
        ]
    }


def _result() -> IngestResult:
    from datetime import UTC, datetime

    now = datetime.now(UTC)
    return IngestResult(
        source_uri="s3://input-bucket/uk/upload file.xlsx",
        output_uri="s3://output-bucket/uk/2020-02-01.csv",
        anchor_date=date(2020, 2, 1),
        rows_read=5,
        rows_kept=4,
        rows_dropped=1,
        rows_rejected=0,
        missing_values=2,
        invalid_values=0,
        rows_deleted=-1,
        loaded=True,
        start_time=now,
        end_time=now,
        elapsed_seconds=0.0,
    )


def test_parse_s3_event_decodes_keys():
    pairs = handler.parse_s3_event(_event(("input-bucket", "uk/upload+file%281%29.xlsx")))
    assert pairs == [("input-bucket", "uk/upload file(1).xlsx")]


def test_parse_s3_event_skips_malformed_records():
    event = {"Records": [{"s3": {"bucket": {"name": "b"}}}, {"other": 1}]}
    assert handler.parse_s3_event(event) == []
    assert handler.parse_s3_event({}) == []


def test_lambda_handler_runs_each_matching_record(monkeypatch, write_config: Path):
    orchestrator = MagicMock()
    orchestrator.run.return_value = _result()
    monkeypatch.setattr(handler, "build_orchestrator", lambda cfg: orchestrator)

    response = handler.lambda_handler(
        _event(("input-bucket", "uk/upload+file.xlsx"), ("someone-else", "uk/x.xlsx")),
        None,
    )

    orchestrator.run.assert_called_once_with("input-bucket", "uk/upload file.xlsx")
    assert response["statusCode"] == 200
    assert response["results"] == [
        {
            "source": "s3://input-bucket/uk/upload file.xlsx",
            "output": "s3://output-bucket/uk/2020-02-01.csv",
            "anchor_date": "2020-02-01",
            "rows_kept": 4,
        }
    ]


def test_lambda_handler_propagates_failures(monkeypatch, write_config: Path):
    orchestrator = MagicMock()
    orchestrator.run.side_effect = EmptyDataset("no rows")
    monkeypatch.setattr(handler, "build_orchestrator", lambda cfg: orchestrator)
    with pytest.raises(EmptyDataset):
        handler.lambda_handler(_event(("input-bucket", "uk/upload.xlsx")), None)


def test_get_config_reads_dotenv(temp_workdir: Path):
    (temp_workdir / ".env").write_text(
        "SOURCE_BUCKET=env-in\nOUTPUT_BUCKET=env-out\n"
        "TARGET_TABLE=public.test_table\nCREDENTIALS_REF=arn:aws:iam::1:role/r\n",
        encoding="utf-8",
    )
    import os

    try:
        cfg = handler.get_config()
    finally:
        for name in ("SOURCE_BUCKET", "OUTPUT_BUCKET", "TARGET_TABLE", "CREDENTIALS_REF"):
            os.environ.pop(name, None)
    assert cfg.source_bucket == "env-in"
    assert cfg.output_bucket == "env-out"
    # cached for warm invocations
    assert handler.get_config() is cfg


def test_build_orchestrator_wires_collaborators(ingest_config):
    with patch("xlsx_ingest.handler.create_s3_client") as create_client:
        orch = handler.build_orchestrator(ingest_config)
    create_client.assert_called_once_with(ingest_config)
    assert orch.config is ingest_config
    assert orch.loader.replace_existing is False
