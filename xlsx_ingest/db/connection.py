from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import boto3
import psycopg2
from botocore.exceptions import BotoCoreError, ClientError
from psycopg2.extensions import make_dsn

from xlsx_ingest.config.loader import ConfigError
from xlsx_ingest.errors import SinkUnavailable
from xlsx_ingest.models.config_models import DatabaseConfig

"""Warehouse connection handling.

Resolution order for connection parameters:
    1. DATABASE_URL / PGDSN (whole DSN), then ``database.dsn`` from config
    2. Individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. Secrets Manager secret (DB_SECRET_ID or ``database.secret_id``)
    4. ``database`` section of the config file
"""

__all__ = [
    "fetch_secret_credentials",
    "resolve_dsn",
    "db_connection",
]

logger = logging.getLogger(__name__)

REDSHIFT_DEFAULT_PORT = 5439


def fetch_secret_credentials(secret_id: str, region: str | None = None, client: Any = None) -> dict[str, Any]:
    """Read a JSON credentials secret (username, password, host, port[, dbname])."""
    if client is None:
        session_kwargs: dict[str, str] = {}
        if region:
            session_kwargs["region_name"] = region
        client = boto3.session.Session(**session_kwargs).client("secretsmanager")
    try:
        secret = client.get_secret_value(SecretId=secret_id)
    except (ClientError, BotoCoreError) as e:
        raise SinkUnavailable(f"failed reading secret {secret_id}: {e}") from e
    try:
        data = json.loads(secret["SecretString"])
    except (KeyError, TypeError, json.JSONDecodeError) as e:
        raise ConfigError(f"secret {secret_id} is not a JSON credentials document") from e
    if not isinstance(data, dict):
        raise ConfigError(f"secret {secret_id} is not a JSON object")
    return data


def resolve_dsn(db_cfg: DatabaseConfig, region: str | None = None, secrets_client: Any = None) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn

    secret: dict[str, Any] = {}
    secret_id = os.getenv("DB_SECRET_ID") or db_cfg.secret_id
    if secret_id:
        secret = fetch_secret_credentials(secret_id, region=region, client=secrets_client)

    host = os.getenv("PGHOST") or secret.get("host") or db_cfg.host or "localhost"
    port = os.getenv("PGPORT") or secret.get("port") or db_cfg.port or REDSHIFT_DEFAULT_PORT
    user = os.getenv("PGUSER") or secret.get("username") or db_cfg.user
    password = os.getenv("PGPASSWORD") or secret.get("password") or db_cfg.password
    database = os.getenv("PGDATABASE") or secret.get("dbname") or db_cfg.database
    params: dict[str, Any] = {
        "host": host,
        "port": str(port),
        "sslmode": db_cfg.sslmode,
    }
    if user:
        params["user"] = user
    if password:
        params["password"] = password
    if database:
        params["dbname"] = database
    return make_dsn(**params)


@contextmanager
def db_connection(db_cfg: DatabaseConfig, region: str | None = None) -> Iterator[Any]:
    """Yield a psycopg2 connection with an explicit transaction boundary.

    The caller commits; the connection is always closed on exit.
    """
    dsn = resolve_dsn(db_cfg, region=region)
    try:
        conn = psycopg2.connect(dsn)
    except psycopg2.OperationalError as e:
        raise SinkUnavailable(f"cannot connect to warehouse: {e}") from e
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()
