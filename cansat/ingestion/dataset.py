"""
CanSat flight dataset model.

A ``Dataset`` is the ordered set of rows read from one CSV ingestion plus the
header list. Rows keep their raw string values; numeric coercion happens at
use time through ``to_number`` so that a single malformed cell never rejects
the whole row at parse time.

Datasets are immutable: cleaning builds a new ``Dataset`` instead of editing
the rows of an existing one.
"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

Row = Mapping[str, Any]

# Column names written by the GAIA flight computer
TIME_COLUMN = "Tiempo_ms"
TEMPERATURE_COLUMN = "Temperatura_C"
HUMIDITY_COLUMN = "Humedad_%"
PRESSURE_COLUMN = "Presion_hPa"
RESISTANCE_COLUMN = "Resistencia_kOhms"
ALTITUDE_COLUMN = "Altitud_m"

# Expected variable → display unit
VARIABLE_UNITS = {
    TIME_COLUMN: "ms",
    TEMPERATURE_COLUMN: "°C",
    HUMIDITY_COLUMN: "%",
    PRESSURE_COLUMN: "hPa",
    RESISTANCE_COLUMN: "kΩ",
    "Accel_X_m_s2": "m/s²",
    "Accel_Y_m_s2": "m/s²",
    "Accel_Z_m_s2": "m/s²",
    "Gyro_X_deg_s": "°/s",
    "Gyro_Y_deg_s": "°/s",
    "Gyro_Z_deg_s": "°/s",
    "Roll_deg": "°",
    "Pitch_deg": "°",
    ALTITUDE_COLUMN: "m",
}

EXPECTED_VARIABLES = tuple(VARIABLE_UNITS.keys())


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a raw cell to a finite float.

    Returns None for missing, blank, non-numeric or non-finite values.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def freeze_row(values: Mapping[str, Any]) -> Row:
    """Wrap a row dict in a read-only view."""
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class Dataset:
    """Ordered rows plus the header list from one CSV ingestion."""
    headers: tuple[str, ...]
    rows: tuple[Row, ...] = field(default_factory=tuple)

    @classmethod
    def from_rows(cls, headers: Iterable[str], rows: Iterable[Mapping[str, Any]]) -> "Dataset":
        """Build a dataset, freezing every row."""
        return cls(
            headers=tuple(headers),
            rows=tuple(freeze_row(row) for row in rows),
        )

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def has_column(self, column: str) -> bool:
        return column in self.headers

    def numeric_values(self, column: str) -> list[float]:
        """Numeric subset of a column, in row order. Unparseable cells are skipped."""
        values = []
        for row in self.rows:
            number = to_number(row.get(column))
            if number is not None:
                values.append(number)
        return values

    def with_rows(self, rows: Iterable[Mapping[str, Any]]) -> "Dataset":
        """Derive a new dataset with the same headers and different rows."""
        return Dataset.from_rows(self.headers, rows)
