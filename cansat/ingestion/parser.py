"""
GAIA CanSat CSV Parser

Parses flight computer CSV exports into a ``Dataset`` of raw string rows.

Behaviour:
- The header row defines column names verbatim (no renaming)
- Empty lines are skipped
- Rows with too few or too many fields are kept and reported as warnings
- Duplicate header names: the last value wins, the name is listed once
- Undecodable input, a missing header or a reader error aborts the parse
"""

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import structlog

from cansat.exceptions import ParseFailure
from cansat.ingestion.dataset import EXPECTED_VARIABLES, Dataset

logger = structlog.get_logger(__name__)

# Warning codes, named after the field-mismatch codes of common CSV parsers
TOO_FEW_FIELDS = "TooFewFields"
TOO_MANY_FIELDS = "TooManyFields"
DUPLICATE_HEADER = "DuplicateHeader"

# Cap on individually logged warnings; the rest are only counted
MAX_LOGGED_WARNINGS = 10


@dataclass
class ParseWarning:
    """Non-fatal problem found while reading a single line."""
    code: str
    message: str
    row: Optional[int] = None  # Data row index (0-based), None for header issues


@dataclass
class ParseResult:
    """Complete result from parsing a CSV file."""
    success: bool
    error_message: Optional[str] = None
    source_name: Optional[str] = None
    dataset: Optional[Dataset] = None
    warnings: list[ParseWarning] = field(default_factory=list)
    missing_variables: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        """Number of data rows extracted."""
        return self.dataset.row_count if self.dataset is not None else 0

    def raise_for_failure(self) -> Dataset:
        """Return the dataset, or raise ParseFailure if parsing failed."""
        if not self.success or self.dataset is None:
            raise ParseFailure(
                self.error_message or "CSV parsing failed",
                source_name=self.source_name,
            )
        return self.dataset


def validate_structure(headers: list[str]) -> list[str]:
    """
    Report expected CanSat variables that the header does not contain.

    A variable counts as present when any header contains its name,
    case-insensitively. Missing variables are advisory only.

    Args:
        headers: Column names from the CSV header

    Returns:
        Expected variable names not found, in canonical order
    """
    lowered = [h.lower() for h in headers]
    return [
        variable for variable in EXPECTED_VARIABLES
        if not any(variable.lower() in header for header in lowered)
    ]


def _is_empty_line(fields: list[str]) -> bool:
    return all(field.strip() == "" for field in fields)


def _unique_headers(header: list[str]) -> tuple[list[str], list[ParseWarning]]:
    """Drop repeated header names, keeping the first position of each."""
    unique: list[str] = []
    warnings: list[ParseWarning] = []
    for name in header:
        if name in unique:
            warnings.append(ParseWarning(
                code=DUPLICATE_HEADER,
                message=f"Duplicate column name {name!r}; the last value in each row is used",
            ))
            continue
        unique.append(name)
    return unique, warnings


def _failure(message: str, source_name: Optional[str]) -> ParseResult:
    return ParseResult(success=False, error_message=message, source_name=source_name)


def parse_csv_text(text: str, source_name: Optional[str] = None) -> ParseResult:
    """
    Parse CSV text with a mandatory header row.

    Args:
        text: Full CSV content
        source_name: Optional file name for logging context

    Returns:
        ParseResult with success=True and the dataset, or success=False
        with the reader diagnostic
    """
    log = logger.bind(source=source_name) if source_name else logger
    log.info("parse_started", chars=len(text))

    if text.startswith("\ufeff"):
        text = text[1:]

    header: Optional[list[str]] = None
    headers: list[str] = []
    rows: list[dict[str, str]] = []
    warnings: list[ParseWarning] = []

    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        for fields in reader:
            if _is_empty_line(fields):
                continue

            if header is None:
                header = fields
                headers, header_warnings = _unique_headers(header)
                warnings.extend(header_warnings)
                continue

            row_index = len(rows)
            if len(fields) < len(header):
                warnings.append(ParseWarning(
                    code=TOO_FEW_FIELDS,
                    message=f"Expected {len(header)} fields but parsed {len(fields)}",
                    row=row_index,
                ))
            elif len(fields) > len(header):
                warnings.append(ParseWarning(
                    code=TOO_MANY_FIELDS,
                    message=f"Expected {len(header)} fields but parsed {len(fields)}",
                    row=row_index,
                ))

            # zip() stops at the shorter side: missing trailing fields stay
            # absent, surplus fields are dropped. Repeated names overwrite.
            values: dict[str, str] = {}
            for name, value in zip(header, fields):
                values[name] = value
            rows.append(values)
    except csv.Error as e:
        log.error("parse_failed", error=str(e), line=reader.line_num)
        return _failure(f"CSV error on line {reader.line_num}: {e}", source_name)

    if header is None:
        log.error("parse_failed", error="missing header row")
        return _failure("CSV file is empty or has no header row", source_name)

    for warning in warnings[:MAX_LOGGED_WARNINGS]:
        log.warning("parse_warning", code=warning.code, row=warning.row, detail=warning.message)
    if len(warnings) > MAX_LOGGED_WARNINGS:
        log.warning("parse_warnings_truncated", total=len(warnings), logged=MAX_LOGGED_WARNINGS)

    missing = validate_structure(headers)
    if missing:
        log.warning("csv_missing_expected_variables", missing=missing)

    dataset = Dataset.from_rows(headers, rows)

    log.info(
        "parse_complete",
        rows=dataset.row_count,
        columns=len(headers),
        warnings=len(warnings),
    )

    return ParseResult(
        success=True,
        source_name=source_name,
        dataset=dataset,
        warnings=warnings,
        missing_variables=missing,
    )


def parse_csv_bytes(data: bytes, source_name: Optional[str] = None) -> ParseResult:
    """Decode UTF-8 bytes (BOM tolerated) and parse them."""
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.error("parse_failed", source=source_name, error=str(e))
        return _failure(f"File is not valid UTF-8 text: {e}", source_name)
    return parse_csv_text(text, source_name=source_name)


def parse_csv_file(file_path: Union[str, Path]) -> ParseResult:
    """
    Parse a CSV file from disk.

    Args:
        file_path: Path to the CSV file

    Returns:
        ParseResult (failed if the file cannot be read)
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error("parse_failed", source=path.name, error=str(e))
        return _failure(f"Cannot read file: {e}", path.name)
    return parse_csv_bytes(data, source_name=path.name)
