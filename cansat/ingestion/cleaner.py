"""
GAIA CanSat Data Cleaner Module

Removes duplicate and physically implausible rows from a parsed flight
dataset and corrects altitude to height above the launch site.

Stages run in a fixed order, each one seeing only the rows that survived the
previous one:
1. Duplicate removal on the raw Tiempo_ms value (first occurrence kept)
2. Physical-range filtering (first violated column per row is reported)
3. Altitude baseline correction (Altitud_m - base altitude)

Physical bounds (sensor datasheet limits):
- Temperature: -50°C to 85°C
- Pressure: 300 to 1100 hPa
- Humidity: 0 to 100 %
- Acceleration: -160 to 160 m/s² per axis
- Angular rate: -2000 to 2000 °/s per axis
- Altitude: -500 to 100000 m
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from cansat.config import settings
from cansat.ingestion.dataset import ALTITUDE_COLUMN, TIME_COLUMN, Dataset, Row, to_number
from cansat.ingestion.parser import ParseResult

logger = structlog.get_logger(__name__)


# Physical bounds for flight variables, checked in this order
# Format: (min_value, max_value), both inclusive
PHYSICAL_RANGES = {
    "Temperatura_C": (-50.0, 85.0),
    "Presion_hPa": (300.0, 1100.0),
    "Humedad_%": (0.0, 100.0),
    "Accel_X_m_s2": (-160.0, 160.0),
    "Accel_Y_m_s2": (-160.0, 160.0),
    "Accel_Z_m_s2": (-160.0, 160.0),
    "Gyro_X_deg_s": (-2000.0, 2000.0),
    "Gyro_Y_deg_s": (-2000.0, 2000.0),
    "Gyro_Z_deg_s": (-2000.0, 2000.0),
    ALTITUDE_COLUMN: (-500.0, 100000.0),
}

DUPLICATE_REASON = "Duplicate timestamp"


@dataclass
class DuplicateEntry:
    """A row dropped because its timestamp was already seen."""
    index: int
    time: Any
    reason: str = DUPLICATE_REASON


@dataclass
class OutlierEntry:
    """A row dropped because a bounded column was non-numeric or out of range."""
    index: int
    column: str
    value: Optional[float]  # None when the cell is not numeric
    raw_value: Any
    min_range: float
    max_range: float
    reason: str


@dataclass
class CleaningReport:
    """What the cleaning run removed or altered."""
    original_count: int = 0
    cleaned_count: int = 0
    base_altitude: float = 0.0
    duplicates: list[DuplicateEntry] = field(default_factory=list)
    outliers: list[OutlierEntry] = field(default_factory=list)

    @property
    def duplicates_removed(self) -> int:
        return len(self.duplicates)

    @property
    def outliers_removed(self) -> int:
        return len(self.outliers)

    @property
    def total_removed(self) -> int:
        return self.original_count - self.cleaned_count

    @property
    def valid_percentage(self) -> float:
        """Percentage of rows that survived cleaning."""
        if self.original_count == 0:
            return 0.0
        return (self.cleaned_count / self.original_count) * 100


@dataclass
class CleaningResult:
    """Result of the cleaning process."""
    success: bool
    dataset: Optional[Dataset] = None
    report: Optional[CleaningReport] = None
    error_message: Optional[str] = None


def _format_value(value: float) -> str:
    return f"{value:g}"


def validate_against_bounds(
    value: Optional[float],
    column: str,
) -> tuple[bool, Optional[str]]:
    """
    Validate a single value against the physical bounds of a column.

    Args:
        value: The parsed value (None for a non-numeric cell)
        column: The column name

    Returns:
        Tuple of (is_valid, reason)
    """
    if column not in PHYSICAL_RANGES:
        return True, None

    min_val, max_val = PHYSICAL_RANGES[column]

    if value is None:
        return False, "Non-numeric value"
    if value < min_val:
        return False, f"Value too low ({_format_value(value)} < {_format_value(min_val)})"
    if value > max_val:
        return False, f"Value too high ({_format_value(value)} > {_format_value(max_val)})"

    return True, None


def find_violation(row: Row, index: int) -> Optional[OutlierEntry]:
    """
    Return the first bounded column this row violates, or None.

    Columns absent from the row are not checked.
    """
    for column, (min_val, max_val) in PHYSICAL_RANGES.items():
        raw = row.get(column)
        if raw is None:
            continue
        value = to_number(raw)
        is_valid, reason = validate_against_bounds(value, column)
        if not is_valid:
            return OutlierEntry(
                index=index,
                column=column,
                value=value,
                raw_value=raw,
                min_range=min_val,
                max_range=max_val,
                reason=reason,
            )
    return None


def clean_dataset(
    dataset: Dataset,
    base_altitude: Optional[float] = None,
    source_name: Optional[str] = None,
) -> CleaningResult:
    """
    Deduplicate, range-filter and altitude-correct a dataset.

    The input dataset is not modified; corrected rows are new mappings.

    Args:
        dataset: Parsed flight dataset
        base_altitude: Ground altitude subtracted from Altitud_m
            (defaults to DEFAULT_BASE_ALTITUDE_M)
        source_name: Optional file name for logging context

    Returns:
        CleaningResult with the cleaned dataset and its report
    """
    log = logger.bind(source=source_name) if source_name else logger

    if base_altitude is None:
        base_altitude = settings.DEFAULT_BASE_ALTITUDE_M

    report = CleaningReport(
        original_count=dataset.row_count,
        base_altitude=base_altitude,
    )
    log.info("cleaning_started", record_count=report.original_count, base_altitude=base_altitude)

    # 1. Duplicates by raw timestamp, keeping (original index, row) pairs
    seen_times: set = set()
    unique: list[tuple[int, Row]] = []
    for index, row in enumerate(dataset.rows):
        time = row.get(TIME_COLUMN)
        if time is not None and time in seen_times:
            report.duplicates.append(DuplicateEntry(index=index, time=time))
            continue
        if time is not None:
            seen_times.add(time)
        unique.append((index, row))

    # 2. Physical ranges
    in_range: list[Row] = []
    for index, row in unique:
        violation = find_violation(row, index)
        if violation is not None:
            report.outliers.append(violation)
            continue
        in_range.append(row)

    # 3. Altitude baseline
    cleaned_rows = []
    for row in in_range:
        values = dict(row)
        altitude = to_number(values.get(ALTITUDE_COLUMN))
        if altitude is not None:
            values[ALTITUDE_COLUMN] = altitude - base_altitude
        cleaned_rows.append(values)

    cleaned = dataset.with_rows(cleaned_rows)
    report.cleaned_count = cleaned.row_count

    log.info(
        "cleaning_complete",
        original_count=report.original_count,
        cleaned_count=report.cleaned_count,
        duplicates_removed=report.duplicates_removed,
        outliers_removed=report.outliers_removed,
        valid_percentage=f"{report.valid_percentage:.1f}%",
    )

    return CleaningResult(success=True, dataset=cleaned, report=report)


def clean_parse_result(
    parse_result: Optional[ParseResult],
    base_altitude: Optional[float] = None,
) -> CleaningResult:
    """
    Clean the dataset carried by a ParseResult.

    Convenience function that refuses to run without a successful parse.

    Args:
        parse_result: Result from parse_csv_text() / parse_csv_file()
        base_altitude: Ground altitude subtracted from Altitud_m

    Returns:
        CleaningResult (success=False when there is nothing to clean)
    """
    if parse_result is not None and not parse_result.success:
        logger.warning(
            "cleaning_skipped_failed_parse",
            error=parse_result.error_message,
        )
        return CleaningResult(
            success=False,
            error_message=f"Cannot clean failed parse: {parse_result.error_message}",
        )

    if parse_result is None or parse_result.dataset is None:
        logger.warning("cleaning_skipped_no_data")
        return CleaningResult(
            success=False,
            error_message="No data loaded to clean",
        )

    return clean_dataset(
        parse_result.dataset,
        base_altitude=base_altitude,
        source_name=parse_result.source_name,
    )


def get_physical_ranges() -> dict[str, tuple[float, float]]:
    """
    Get the current physical bounds configuration.

    Returns:
        Dictionary mapping column names to (min, max) tuples
    """
    return PHYSICAL_RANGES.copy()
