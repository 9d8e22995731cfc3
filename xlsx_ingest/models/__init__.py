"""Domain models for the xlsx -> CSV -> warehouse ingestion function."""

from .config_models import DatabaseConfig, IngestConfig
from .dataset import CsvOutput, Dataset, FilteredDataset
from .error_record import ErrorRecord
from .output import LoadCommand, LoadResult, OutputObject
from .processing_result import IngestResult
from .record import ClassifiedValue, Record, ValueKind

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "IngestConfig",
    # Processing models
    "ClassifiedValue",
    "ValueKind",
    "Record",
    "Dataset",
    "FilteredDataset",
    "CsvOutput",
    "OutputObject",
    "LoadCommand",
    "LoadResult",
    "ErrorRecord",
    "IngestResult",
]
