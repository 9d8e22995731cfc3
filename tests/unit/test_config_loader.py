from __future__ import annotations

from pathlib import Path

import pytest

from xlsx_ingest.config.loader import ConfigError, config_from_mapping, load_config
from xlsx_ingest.models.config_models import DEFAULT_MISSING_MARKERS


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_bucket == "input-bucket"
    assert cfg.output_bucket == "output-bucket"
    assert cfg.target_table == "public.test_table"
    assert cfg.credentials_ref.startswith("arn:aws:iam::")
    assert cfg.worksheet == "data"
    assert cfg.replace_existing is False
    assert cfg.region == "eu-west-1"
    assert cfg.missing_markers == DEFAULT_MISSING_MARKERS
    assert cfg.database.host == "warehouse.example.com"
    assert cfg.database.port == 5439
    assert cfg.database.sslmode == "require"


def test_load_config_default_path(write_config: Path):
    # temp_workdir is the cwd; config/ingest.yml is picked up implicitly
    assert load_config().source_bucket == "input-bucket"


def test_load_config_path_from_env(temp_workdir: Path, write_config: Path, monkeypatch):
    other = temp_workdir / "other.yml"
    other.write_text(write_config.read_text(encoding="utf-8").replace("input-bucket", "other-in"), encoding="utf-8")
    monkeypatch.setenv("XLSX_INGEST_CONFIG", str(other))
    assert load_config().source_bucket == "other-in"


def test_load_config_missing_explicit_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_env_only_configuration(temp_workdir: Path):
    env = {
        "SOURCE_BUCKET": "in",
        "OUTPUT_BUCKET": "out",
        "TARGET_TABLE": "public.metrics",
        "CREDENTIALS_REF": "arn:aws:iam::1:role/copy",
        "AWS_REGION": "eu-west-1",
    }
    cfg = load_config(environ=env)
    assert (cfg.source_bucket, cfg.output_bucket, cfg.target_table) == ("in", "out", "public.metrics")
    assert cfg.region == "eu-west-1"


def test_env_overrides_file(write_config: Path):
    cfg = load_config(write_config, environ={"OUTPUT_BUCKET": "override-out"})
    assert cfg.output_bucket == "override-out"
    assert cfg.source_bucket == "input-bucket"


def test_missing_required_key(temp_workdir: Path):
    with pytest.raises(ConfigError, match="required property"):
        load_config(environ={"SOURCE_BUCKET": "in"})


def test_invalid_yaml(temp_workdir: Path):
    bad = temp_workdir / "config" / "ingest.yml"
    bad.write_text("source_bucket: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(bad)


def test_custom_missing_markers_are_normalised():
    cfg = config_from_mapping(
        {
            "source_bucket": "in",
            "output_bucket": "out",
            "target_table": "public.t",
            "credentials_ref": "role",
            "missing_markers": [" n.a. ", "#N/A"],
            "replace_existing": True,
        },
        environ={},
    )
    assert cfg.missing_markers == frozenset({"N.A.", "#N/A"})
    assert cfg.replace_existing is True
