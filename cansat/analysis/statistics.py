"""
Descriptive statistics for flight dataset columns.

The median is the element at index n // 2 of the sorted values (the upper of
the two middle values for even n, never an average). Standard deviation is
the population form (divide by n).
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import structlog

from cansat.ingestion.dataset import VARIABLE_UNITS, Dataset

logger = structlog.get_logger(__name__)


@dataclass
class ColumnStats:
    """Summary statistics over the numeric cells of one column."""
    min: float
    max: float
    mean: float
    median: float
    std_dev: float
    count: int
    column: Optional[str] = None
    unit: str = ""


def describe(values: Sequence[float]) -> ColumnStats:
    """
    Compute min, max, mean, median and population standard deviation.

    Args:
        values: Numeric values, already stripped of unparseable cells

    Returns:
        ColumnStats for the values

    Raises:
        ValueError: If values is empty
    """
    if len(values) == 0:
        raise ValueError("describe() requires at least one value")

    arr = np.asarray(values, dtype=float)
    ordered = np.sort(arr)

    return ColumnStats(
        min=float(ordered[0]),
        max=float(ordered[-1]),
        mean=float(arr.mean()),
        median=float(ordered[len(ordered) // 2]),
        std_dev=float(arr.std()),
        count=int(arr.size),
    )


def describe_dataset(dataset: Dataset) -> list[ColumnStats]:
    """
    Describe every column that has at least one numeric value.

    Columns are returned in header order; columns without numeric values
    are omitted.
    """
    results = []
    for column in dataset.headers:
        values = dataset.numeric_values(column)
        if not values:
            continue
        stats = describe(values)
        stats.column = column
        stats.unit = VARIABLE_UNITS.get(column, "")
        results.append(stats)

    logger.info(
        "statistics_computed",
        columns=len(results),
        skipped=len(dataset.headers) - len(results),
        rows=dataset.row_count,
    )
    return results
