from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import unquote_plus

from dotenv import load_dotenv

from xlsx_ingest.config.loader import load_config
from xlsx_ingest.db.copy_load import RedshiftCopyLoader
from xlsx_ingest.logging.init import setup_logging
from xlsx_ingest.models.config_models import IngestConfig
from xlsx_ingest.services.orchestrator import IngestOrchestrator
from xlsx_ingest.storage.s3 import S3ObjectStore, create_s3_client

"""S3 event entrypoint.

Turns an object-created notification into (bucket, key) pairs and runs the
orchestrator for each. Errors are not caught: the runtime decides on retries.
"""

__all__ = [
    "lambda_handler",
    "parse_s3_event",
    "build_orchestrator",
    "get_config",
    "reset_config",
]

logger = logging.getLogger(__name__)

_config: IngestConfig | None = None


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load a local .env (no-op when absent); existing variables win by default."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def get_config() -> IngestConfig:
    global _config
    if _config is None:
        _load_env_file(Path(".env"))
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration. Mainly for testing purposes."""
    global _config
    _config = None


def parse_s3_event(event: dict[str, Any]) -> list[tuple[str, str]]:
    """Extract (bucket, decoded key) pairs from an S3 notification."""
    pairs: list[tuple[str, str]] = []
    for rec in event.get("Records", []):
        try:
            bucket = rec["s3"]["bucket"]["name"]
            key = rec["s3"]["object"]["key"]
        except (KeyError, TypeError):
            logger.warning("skipping malformed event record: %s", rec)
            continue
        # keys arrive URL-encoded, spaces as '+'
        pairs.append((bucket, unquote_plus(key)))
    return pairs


def build_orchestrator(config: IngestConfig) -> IngestOrchestrator:
    store = S3ObjectStore(create_s3_client(config))
    loader = RedshiftCopyLoader(
        config.database,
        region=config.region,
        replace_existing=config.replace_existing,
    )
    return IngestOrchestrator(config, store, loader)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    setup_logging()
    config = get_config()
    orchestrator = build_orchestrator(config)

    results = []
    for bucket, key in parse_s3_event(event):
        if bucket != config.source_bucket:
            logger.warning("ignoring object from unexpected bucket s3://%s/%s", bucket, key)
            continue
        result = orchestrator.run(bucket, key)
        results.append(
            {
                "source": result.source_uri,
                "output": result.output_uri,
                "anchor_date": result.anchor_date.isoformat(),
                "rows_kept": result.rows_kept,
            }
        )
    return {"statusCode": 200, "results": results}
