from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol

from ..errors import IngestError, LoadFailed, MalformedKey
from ..excel.reader import extract_dataset
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..logging.init import get_logger, log_summary
from ..models.config_models import IngestConfig
from ..models.dataset import Dataset, FilteredDataset
from ..models.output import LoadCommand, LoadResult, OutputObject
from ..models.processing_result import IngestResult
from ..models.record import ValueKind
from .anchor_filter import filter_to_anchor
from .csv_writer import CSV_COLUMNS, serialize_csv
from .summary import render_summary_line

"""Ingestion orchestration: one source object in, one CSV object and one load out.

Stages run strictly in sequence (extract -> filter -> serialize -> put -> load).
Any failure before the put leaves no trace in the output bucket or warehouse;
a load failure after the put is summarized with loaded=false, then propagates
and leaves the CSV in place.
"""

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    def fetch(self, bucket: str, key: str) -> bytes: ...

    def put(self, bucket: str, key: str, body: bytes) -> None: ...


class WarehouseLoader(Protocol):
    def load(self, command: LoadCommand) -> LoadResult: ...


def parse_label(key: str) -> str:
    """Return the first path segment of ``label/filename.ext``.

    Raises:
        MalformedKey: no separator, empty label or empty filename
    """
    label, sep, rest = key.partition("/")
    if not sep or not label or not rest.rsplit("/", 1)[-1]:
        raise MalformedKey(f"key must look like 'label/filename.xlsx': {key!r}")
    return label


class IngestOrchestrator:
    """Runs the pipeline for one source object.

    Collaborators are injected: ``store`` provides fetch/put, ``loader``
    provides load(LoadCommand). Neither is constructed here.
    """

    def __init__(self, config: IngestConfig, store: ObjectStore, loader: WarehouseLoader) -> None:
        self.config = config
        self.store = store
        self.loader = loader

    def run(self, bucket: str, key: str) -> IngestResult:
        get_logger()
        start_time = datetime.now(UTC)
        error_log = ErrorLogBuffer()
        source_uri = f"s3://{bucket}/{key}"
        try:
            return self._run(bucket, key, source_uri, start_time, error_log)
        except IngestError as e:
            error_log.append(
                ErrorRecord.create(
                    file=key,
                    sheet=self.config.worksheet,
                    row=-1,
                    error_type=e.error_type,
                    message=str(e),
                )
            )
            logger.error("ingest failed source=%s type=%s: %s", source_uri, e.error_type, e)
            raise
        finally:
            # flushing is log output only; it must not replace the run's own outcome
            try:
                error_log.flush()
            except Exception:  # pragma: no cover
                logger.debug("error log flush failed", exc_info=True)

    def _run(
        self,
        bucket: str,
        key: str,
        source_uri: str,
        start_time: datetime,
        error_log: ErrorLogBuffer,
    ) -> IngestResult:
        label = parse_label(key)
        logger.info("ingest start source=%s label=%s", source_uri, label)

        content = self.store.fetch(bucket, key)
        dataset = extract_dataset(
            content,
            worksheet=self.config.worksheet,
            missing_markers=self.config.missing_markers,
            source_name=key,
        )
        error_log.extend(dataset.rejected)

        filtered = filter_to_anchor(dataset.records)
        logger.info(
            "anchor date=%s kept=%d dropped=%d",
            filtered.anchor_date, len(filtered.records), filtered.dropped,
        )
        csv_out = serialize_csv(filtered)

        output = OutputObject(
            bucket=self.config.output_bucket,
            label=label,
            anchor_date=filtered.anchor_date,
        )
        self.store.put(output.bucket, output.key, csv_out.body)

        command = LoadCommand(
            table=self.config.target_table,
            location=output.uri,
            credentials_ref=self.config.credentials_ref,
            columns=tuple(CSV_COLUMNS),
            anchor_date=filtered.anchor_date,
            locations=csv_out.locations,
        )
        try:
            load_result = self.loader.load(command)
        except LoadFailed:
            # the CSV is already in the output bucket; report the run as unloaded
            self._summarize(source_uri, output, dataset, filtered, start_time, None)
            raise
        return self._summarize(source_uri, output, dataset, filtered, start_time, load_result)

    def _summarize(
        self,
        source_uri: str,
        output: OutputObject,
        dataset: Dataset,
        filtered: FilteredDataset,
        start_time: datetime,
        load_result: LoadResult | None,
    ) -> IngestResult:
        end_time = datetime.now(UTC)
        result = IngestResult(
            source_uri=source_uri,
            output_uri=output.uri,
            anchor_date=filtered.anchor_date,
            rows_read=len(dataset.records),
            rows_kept=len(filtered.records),
            rows_dropped=filtered.dropped,
            rows_rejected=len(dataset.rejected),
            missing_values=sum(1 for r in filtered.records if r.value.kind is ValueKind.MISSING),
            invalid_values=sum(1 for r in filtered.records if r.value.kind is ValueKind.INVALID),
            rows_deleted=load_result.deleted_rows if load_result is not None else -1,
            loaded=load_result is not None,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
        )
        # render_summary_line carries the prefix; log_summary adds its own label
        log_summary(render_summary_line(result)[len("SUMMARY "):])
        return result
