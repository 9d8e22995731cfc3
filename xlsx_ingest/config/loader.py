from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from xlsx_ingest.excel.classifier import normalize_markers
from xlsx_ingest.models.config_models import DatabaseConfig, IngestConfig

"""Config loader.

Responsibilities:
- Load YAML (default config/ingest.yml, overridable with XLSX_INGEST_CONFIG)
- Apply environment overrides (env wins over file)
- Validate the merged document against config_schema.json
- Build the frozen IngestConfig handed to the orchestrator
"""

__all__ = [
    "ConfigError",
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "ENV_OVERRIDES",
    "SCHEMA_PATH",
    "load_config",
    "config_from_mapping",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
CONFIG_PATH_ENV = "XLSX_INGEST_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")

# environment variable -> top level config key
ENV_OVERRIDES = {
    "SOURCE_BUCKET": "source_bucket",
    "OUTPUT_BUCKET": "output_bucket",
    "TARGET_TABLE": "target_table",
    "CREDENTIALS_REF": "credentials_ref",
    "AWS_REGION": "region",
}


class ConfigError(Exception):
    error_type = "CONFIG_ERROR"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file unreadable or data fails validation
    """
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    merged = dict(data)
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            merged[key] = value
    return merged


def config_from_mapping(data: Mapping[str, Any], environ: Mapping[str, str] | None = None) -> IngestConfig:
    """Build an IngestConfig from a raw mapping plus environment overrides."""
    env = os.environ if environ is None else environ
    merged = _apply_env_overrides(dict(data), env)
    _validate_config_schema(merged)

    db_raw = merged.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        secret_id=db_raw.get("secret_id"),
        sslmode=db_raw.get("sslmode", "require"),
    )
    kwargs: dict[str, Any] = {}
    if "worksheet" in merged:
        kwargs["worksheet"] = merged["worksheet"]
    if "missing_markers" in merged:
        kwargs["missing_markers"] = normalize_markers(merged["missing_markers"])
    return IngestConfig(
        source_bucket=merged["source_bucket"],
        output_bucket=merged["output_bucket"],
        target_table=merged["target_table"],
        credentials_ref=merged["credentials_ref"],
        replace_existing=bool(merged.get("replace_existing", False)),
        region=merged.get("region"),
        database=db,
        **kwargs,
    )


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> IngestConfig:
    """Load configuration from YAML and the environment.

    When no path is given the XLSX_INGEST_CONFIG variable, then config/ingest.yml
    is used. A missing default file is not an error: the environment alone may
    carry the configuration. An explicitly named file must exist.
    """
    env = os.environ if environ is None else environ
    explicit = path is not None or bool(env.get(CONFIG_PATH_ENV))
    if path is None:
        path = Path(env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config root must be a mapping: {path}")
    elif explicit:
        raise ConfigError(f"config file not found: {path}")

    return config_from_mapping(data, env)
