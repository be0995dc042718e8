"""
Air quality analysis from the gas sensor resistance.

Higher gas resistance means cleaner air. Readings are bucketed into five
fixed tiers (kΩ, lower bound inclusive, upper bound exclusive):

    excellent   >= 300
    good        [200, 300)
    moderate    [100, 200)
    poor        [50, 100)
    veryPoor    [0, 50)

Negative and non-finite readings belong to no tier and are left out of the
classification. The vertical profile view pairs readings with altitude,
either one point per row or averaged per altitude band.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

import structlog

from cansat.exceptions import NoAirQualitySignal
from cansat.ingestion.dataset import ALTITUDE_COLUMN, RESISTANCE_COLUMN, Dataset, Row, to_number

logger = structlog.get_logger(__name__)

# Interval sentinel: no aggregation, one point per reading
ALL_READINGS = "all"

Interval = Union[str, float]


class QualityTier(str, Enum):
    """Air quality tiers, best first. Declaration order is the tie-break order."""
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"
    VERY_POOR = "veryPoor"


# Format: (min_value inclusive, max_value exclusive)
TIER_THRESHOLDS = {
    QualityTier.EXCELLENT: (300.0, math.inf),
    QualityTier.GOOD: (200.0, 300.0),
    QualityTier.MODERATE: (100.0, 200.0),
    QualityTier.POOR: (50.0, 100.0),
    QualityTier.VERY_POOR: (0.0, 50.0),
}

TIER_LABELS = {
    QualityTier.EXCELLENT: "Excelente",
    QualityTier.GOOD: "Buena",
    QualityTier.MODERATE: "Moderada",
    QualityTier.POOR: "Mala",
    QualityTier.VERY_POOR: "Muy mala",
}


@dataclass
class AltitudePoint:
    """A single resistance reading placed at its altitude."""
    altitude: float
    resistance: float


@dataclass
class AltitudeBucket:
    """Mean resistance over the readings of one altitude band."""
    altitude: float  # Mean altitude of the members
    resistance: float  # Mean resistance of the members
    count: int
    band_start: float  # floor(altitude / width) * width


@dataclass
class QualitySummary:
    """Headline figures for the air quality panel."""
    total: int = 0
    mean: Optional[float] = None
    max: Optional[float] = None
    min: Optional[float] = None
    predominant_tier: Optional[QualityTier] = None
    predominant_percentage: float = 0.0


@dataclass
class AirQualityReport:
    """Classification, summary and altitude profile for one dataset."""
    interval: Interval
    classification: dict[QualityTier, list[float]]
    summary: QualitySummary
    points: list[Union[AltitudePoint, AltitudeBucket]] = field(default_factory=list)

    @property
    def tier_counts(self) -> dict[QualityTier, int]:
        return {tier: len(values) for tier, values in self.classification.items()}

    @property
    def tier_percentages(self) -> dict[QualityTier, float]:
        """Share of classified readings per tier, in percent."""
        total = sum(self.tier_counts.values())
        if total == 0:
            return {tier: 0.0 for tier in QualityTier}
        return {tier: (count / total) * 100 for tier, count in self.tier_counts.items()}


def tier_for(value: float) -> Optional[QualityTier]:
    """Return the tier of a resistance reading, or None if it has none."""
    if value is None or not math.isfinite(value) or value < 0:
        return None
    for tier, (min_val, _max_val) in TIER_THRESHOLDS.items():
        if value >= min_val:
            return tier
    return None


def classify(resistance_values: Iterable[float]) -> dict[QualityTier, list[float]]:
    """
    Partition resistance readings into quality tiers.

    Every finite, non-negative value lands in exactly one tier; other values
    are dropped. All five tiers are always present in the result.
    """
    classification: dict[QualityTier, list[float]] = {tier: [] for tier in QualityTier}
    for value in resistance_values:
        tier = tier_for(value)
        if tier is not None:
            classification[tier].append(value)
    return classification


def parse_interval(interval: Interval) -> Interval:
    """
    Validate an altitude interval choice.

    Returns ALL_READINGS or a positive float bucket width.

    Raises:
        ValueError: For anything other than "all" or a positive number
    """
    if isinstance(interval, str):
        text = interval.strip()
        if text.lower() == ALL_READINGS:
            return ALL_READINGS
        width = to_number(text)
    elif isinstance(interval, bool):
        width = None
    else:
        width = to_number(interval)

    if width is None or width <= 0:
        raise ValueError(f"Altitude interval must be 'all' or a positive number, got {interval!r}")
    return width


def _readings(rows: Iterable[Row]) -> list[AltitudePoint]:
    """
    Pair each numeric resistance reading with its own row's altitude.

    Rows without a numeric altitude fall back to their ordinal index. This
    holds per row: a single unreadable cell in a present altitude column also
    takes the index, so on uncleaned data such points share the axis with
    real metres. Cleaning drops rows with a non-numeric altitude.
    """
    points = []
    for index, row in enumerate(rows):
        resistance = to_number(row.get(RESISTANCE_COLUMN))
        if resistance is None:
            continue
        altitude = to_number(row.get(ALTITUDE_COLUMN))
        if altitude is None:
            altitude = float(index)
        points.append(AltitudePoint(altitude=altitude, resistance=resistance))
    return points


def aggregate_by_altitude(
    rows: Iterable[Row],
    interval: Interval = ALL_READINGS,
) -> Union[list[AltitudePoint], list[AltitudeBucket]]:
    """
    Build the vertical profile of resistance against altitude.

    Args:
        rows: Dataset rows, in flight order
        interval: "all" for one point per reading, or a bucket width in metres

    Returns:
        AltitudePoints in row order for "all", otherwise AltitudeBuckets
        sorted by ascending mean altitude

    Raises:
        ValueError: If the interval is invalid, or too small to band the
            readings
    """
    interval = parse_interval(interval)
    points = _readings(rows)

    if interval == ALL_READINGS:
        return points

    groups: dict[float, list[AltitudePoint]] = {}
    for point in points:
        band = point.altitude / interval
        if not math.isfinite(band):
            raise ValueError(f"Altitude interval {interval!r} is too small for altitude {point.altitude:g}")
        band_start = math.floor(band) * interval
        groups.setdefault(band_start, []).append(point)

    buckets = [
        AltitudeBucket(
            altitude=sum(p.altitude for p in members) / len(members),
            resistance=sum(p.resistance for p in members) / len(members),
            count=len(members),
            band_start=float(band_start),
        )
        for band_start, members in groups.items()
    ]
    buckets.sort(key=lambda bucket: bucket.altitude)
    return buckets


def summarize(
    classification: dict[QualityTier, list[float]],
    resistance_values: Sequence[float],
) -> QualitySummary:
    """
    Mean, max, min and the predominant tier of a set of readings.

    Ties on the predominant tier go to the first tier in QualityTier order.
    """
    values = list(resistance_values)
    summary = QualitySummary(total=len(values))
    if not values:
        return summary

    summary.mean = sum(values) / len(values)
    summary.max = max(values)
    summary.min = min(values)

    best_count = 0
    for tier in QualityTier:
        count = len(classification.get(tier, []))
        if count > best_count:
            best_count = count
            summary.predominant_tier = tier

    if summary.predominant_tier is not None:
        summary.predominant_percentage = (best_count / len(values)) * 100
    return summary


def analyze_air_quality(dataset: Dataset, interval: Interval = ALL_READINGS) -> AirQualityReport:
    """
    Run the full air quality analysis on a dataset.

    With interval "all" the classification covers every numeric reading;
    with a bucket width it covers the per-band means.

    Raises:
        NoAirQualitySignal: If the dataset has no resistance column
        ValueError: If the interval is invalid
    """
    if not dataset.has_column(RESISTANCE_COLUMN):
        logger.warning("air_quality_no_signal", headers=list(dataset.headers))
        raise NoAirQualitySignal()

    interval = parse_interval(interval)
    points = aggregate_by_altitude(dataset.rows, interval)
    values = [point.resistance for point in points]

    classification = classify(values)
    summary = summarize(classification, values)

    logger.info(
        "air_quality_analyzed",
        interval=interval,
        readings=len(values),
        predominant_tier=summary.predominant_tier.value if summary.predominant_tier else None,
    )

    return AirQualityReport(
        interval=interval,
        classification=classification,
        summary=summary,
        points=points,
    )
