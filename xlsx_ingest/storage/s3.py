from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from xlsx_ingest.errors import SinkUnavailable, SourceUnavailable
from xlsx_ingest.models.config_models import IngestConfig

"""S3 object store adapter.

Wraps a boto3 S3 client behind the two calls the orchestrator needs:
``fetch(bucket, key) -> bytes`` and ``put(bucket, key, body)``. Transport
errors are reclassified; retrying is left to the invocation layer.
"""

__all__ = [
    "S3ObjectStore",
    "create_s3_client",
]

logger = logging.getLogger(__name__)


def create_s3_client(config: IngestConfig) -> Any:
    """Create a boto3 S3 client, honoring the configured region if any."""
    session_kwargs: dict[str, str] = {}
    if config.region:
        session_kwargs["region_name"] = config.region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


class S3ObjectStore:
    def __init__(self, client: Any) -> None:
        self._client = client

    def fetch(self, bucket: str, key: str) -> bytes:
        logger.info("reading s3://%s/%s", bucket, key)
        try:
            obj = self._client.get_object(Bucket=bucket, Key=key)
            return obj["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise SourceUnavailable(f"failed reading s3://{bucket}/{key}: {e}") from e

    def put(self, bucket: str, key: str, body: bytes, content_type: str = "text/csv") -> None:
        logger.info("writing s3://%s/%s (%d bytes)", bucket, key, len(body))
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise SinkUnavailable(f"failed writing s3://{bucket}/{key}: {e}") from e
