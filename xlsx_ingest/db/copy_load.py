from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any

import psycopg2

from xlsx_ingest.config.loader import ConfigError
from xlsx_ingest.db.connection import db_connection
from xlsx_ingest.errors import LoadFailed
from xlsx_ingest.models.config_models import DatabaseConfig
from xlsx_ingest.models.output import LoadCommand, LoadResult

"""Warehouse load invoker: Redshift COPY from S3.

One call issues one bulk-load of the CSV object into the target table. With
``replace_existing`` the rows for the same anchor date and locations are deleted
first, inside the same transaction, so reprocessing a file does not duplicate
data. There is no retry here; failures are reclassified and raised.
"""

__all__ = [
    "LoadResult",
    "RedshiftCopyLoader",
    "build_copy_sql",
    "build_delete_sql",
    "quote_table",
]

logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$")

COPY_OPTIONS = "FORMAT AS CSV EMPTYASNULL BLANKSASNULL IGNOREHEADER 1 IGNOREBLANKLINES"


def quote_table(name: str) -> str:
    """Quote ``schema.table`` as identifiers. Raises ConfigError if not a plain name."""
    if not _TABLE_RE.match(name):
        raise ConfigError(f"invalid target table name: {name!r}")
    return ".".join(f'"{part}"' for part in name.split("."))


def build_copy_sql(command: LoadCommand) -> tuple[str, tuple[Any, ...]]:
    cols_sql = ",".join(f'"{c}"' for c in command.columns)
    sql = (
        f"COPY {quote_table(command.table)} ({cols_sql}) "
        f"FROM %s IAM_ROLE %s {COPY_OPTIONS}"
    )
    return sql, (command.location, command.credentials_ref)


def build_delete_sql(command: LoadCommand) -> tuple[str, tuple[Any, ...]]:
    sql = f'DELETE FROM {quote_table(command.table)} WHERE "date" = %s AND "location" IN %s'
    return sql, (command.anchor_date, tuple(command.locations))


class RedshiftCopyLoader:
    """Runs COPY (and the optional replace-delete) over one connection."""

    def __init__(
        self,
        database: DatabaseConfig,
        region: str | None = None,
        replace_existing: bool = False,
        connection_factory: Callable[[], AbstractContextManager[Any]] | None = None,
    ) -> None:
        self.replace_existing = replace_existing
        self._connection_factory = connection_factory or (lambda: db_connection(database, region=region))

    def load(self, command: LoadCommand) -> LoadResult:
        copy_sql, copy_params = build_copy_sql(command)
        delete_stmt = None
        if self.replace_existing and command.locations:
            delete_stmt = build_delete_sql(command)

        start_time = time.time()
        with self._connection_factory() as conn:
            deleted = -1
            try:
                with conn.cursor() as cur:
                    if delete_stmt is not None:
                        cur.execute(*delete_stmt)
                        deleted = cur.rowcount
                        logger.info(
                            "deleted %d existing rows from %s for date=%s",
                            deleted, command.table, command.anchor_date,
                        )
                    logger.info("COPY %s FROM %s", command.table, command.location)
                    cur.execute(copy_sql, copy_params)
                conn.commit()
            except psycopg2.Error as e:
                try:
                    conn.rollback()
                except psycopg2.Error as rollback_err:
                    # connection already gone; the load error is the one to report
                    logger.warning("rollback after failed load did not complete: %s", rollback_err)
                raise LoadFailed(f"load of {command.location} into {command.table} failed: {e}") from e
        elapsed = time.time() - start_time
        return LoadResult(
            table=command.table,
            location=command.location,
            deleted_rows=deleted,
            elapsed_seconds=elapsed,
        )
