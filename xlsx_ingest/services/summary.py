from __future__ import annotations

from ..models.output import DATE_FMT
from ..models.processing_result import IngestResult

"""SUMMARY line rendering for one ingestion run."""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation for very small numbers
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def _format_deleted(rows: int) -> str:
    return "-" if rows < 0 else str(rows)


def render_summary_line(result: IngestResult) -> str:
    """Render the SUMMARY line for an IngestResult.

    Format:
    SUMMARY source={uri} output={uri} anchor={YYYY-MM-DD} rows_read={n} rows_kept={n}
    rows_dropped={n} rows_rejected={n} missing={n} invalid={n} deleted={n|-} loaded={true|false}
    elapsed_sec={elapsed}
    """
    return (
        f"SUMMARY source={result.source_uri} "
        f"output={result.output_uri} "
        f"anchor={result.anchor_date.strftime(DATE_FMT)} "
        f"rows_read={result.rows_read} "
        f"rows_kept={result.rows_kept} "
        f"rows_dropped={result.rows_dropped} "
        f"rows_rejected={result.rows_rejected} "
        f"missing={result.missing_values} "
        f"invalid={result.invalid_values} "
        f"deleted={_format_deleted(result.rows_deleted)} "
        f"loaded={'true' if result.loaded else 'false'} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
