"""
Data ingestion pipeline module.

Exports:
    Dataset: Immutable ordered rows + headers from one CSV
    parse_csv_text: Parse CSV text into a ParseResult
    parse_csv_bytes: Decode and parse uploaded bytes
    parse_csv_file: Parse a CSV file from disk
    ParseResult: Result dataclass from parsing
    ParseWarning: Non-fatal per-line parse problem
    clean_dataset: Deduplicate, range-filter and altitude-correct a dataset
    clean_parse_result: Clean the dataset from a ParseResult
    CleaningResult: Result of cleaning process
    CleaningReport: What the cleaning removed or altered
"""

from cansat.ingestion.cleaner import (
    CleaningReport,
    CleaningResult,
    DuplicateEntry,
    OutlierEntry,
    clean_dataset,
    clean_parse_result,
)
from cansat.ingestion.dataset import Dataset, to_number
from cansat.ingestion.parser import (
    ParseResult,
    ParseWarning,
    parse_csv_bytes,
    parse_csv_file,
    parse_csv_text,
)

__all__ = [
    # Dataset exports
    "Dataset",
    "to_number",
    # Parser exports
    "parse_csv_text",
    "parse_csv_bytes",
    "parse_csv_file",
    "ParseResult",
    "ParseWarning",
    # Cleaner exports
    "clean_dataset",
    "clean_parse_result",
    "CleaningResult",
    "CleaningReport",
    "DuplicateEntry",
    "OutlierEntry",
]
