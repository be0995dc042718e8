"""
Axis-pair series for ad-hoc charts.

The presentation layer picks two columns and a chart type; this module only
extracts the aligned numeric coordinates. Rendering happens elsewhere.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from cansat.ingestion.dataset import TIME_COLUMN, Dataset, to_number

CHART_TYPES = ("scatter", "line", "bar")


@dataclass
class ChartSeries:
    """Aligned x/y values for one chart request."""
    x_column: str
    y_column: str
    chart_type: str
    x: list[float] = field(default_factory=list)
    y: list[float] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"{self.y_column} vs {self.x_column}"

    @property
    def point_count(self) -> int:
        return len(self.x)


def default_axes(headers: Sequence[str]) -> tuple[Optional[str], Optional[str]]:
    """Suggested (x, y) axis selection: time on x when available."""
    x_axis = TIME_COLUMN if TIME_COLUMN in headers else None
    return x_axis, None


def validate_axes(headers: Sequence[str], x_column: str, y_column: str, chart_type: str) -> Optional[str]:
    """Return an error message for an unusable axis selection, or None."""
    if not x_column or not y_column:
        return "Both axes must be selected"
    if x_column == y_column:
        return "X and Y axes must be different columns"
    for column in (x_column, y_column):
        if column not in headers:
            return f"Unknown column: {column}"
    if chart_type not in CHART_TYPES:
        return f"Unsupported chart type {chart_type!r}; expected one of {', '.join(CHART_TYPES)}"
    return None


def extract_series(
    dataset: Dataset,
    x_column: str,
    y_column: str,
    chart_type: str = "scatter",
) -> ChartSeries:
    """
    Collect (x, y) pairs from rows where both cells are numeric.

    Raises:
        ValueError: If the axis selection or chart type is invalid
    """
    error = validate_axes(dataset.headers, x_column, y_column, chart_type)
    if error:
        raise ValueError(error)

    series = ChartSeries(x_column=x_column, y_column=y_column, chart_type=chart_type)
    for row in dataset.rows:
        x = to_number(row.get(x_column))
        y = to_number(row.get(y_column))
        if x is None or y is None:
            continue
        series.x.append(x)
        series.y.append(y)
    return series
