"""
Analysis session: the loaded flight and its cleaned derivative.

A session owns at most one ``original`` dataset (set once per upload, never
modified) and one ``cleaned`` dataset (rebuilt wholesale on every cleaning
run). Which of the two feeds statistics, charts and air quality is selected
by ``DatasetState``; switching only moves the selection.

Operations that need an earlier stage raise ``InputMissing`` and leave the
session untouched.
"""

from enum import Enum
from typing import Optional

import structlog

from cansat.analysis.air_quality import ALL_READINGS, AirQualityReport, Interval, analyze_air_quality
from cansat.analysis.series import ChartSeries, extract_series
from cansat.analysis.statistics import ColumnStats, describe_dataset
from cansat.exceptions import InputMissing
from cansat.ingestion.cleaner import CleaningReport, clean_dataset
from cansat.ingestion.dataset import Dataset
from cansat.ingestion.parser import ParseResult, ParseWarning

log = structlog.get_logger(__name__)


class DatasetState(str, Enum):
    """Which snapshot downstream analysis reads."""
    ORIGINAL = "original"
    CLEANED = "cleaned"


class AnalysisSession:
    """Holds the loaded flight, its cleaned copy and the active selection."""

    def __init__(self) -> None:
        self.source_name: Optional[str] = None
        self.warnings: list[ParseWarning] = []
        self.missing_variables: list[str] = []
        self.original: Optional[Dataset] = None
        self.cleaned: Optional[Dataset] = None
        self.cleaning_report: Optional[CleaningReport] = None
        self.state = DatasetState.ORIGINAL

    # ── Loading ─────────────────────────────────────────────────────────────

    def load(self, parse_result: ParseResult) -> Dataset:
        """
        Replace the session contents with a freshly parsed flight.

        Raises:
            ParseFailure: If the parse did not succeed (session unchanged)
        """
        dataset = parse_result.raise_for_failure()
        self.reset()
        self.source_name = parse_result.source_name
        self.warnings = list(parse_result.warnings)
        self.missing_variables = list(parse_result.missing_variables)
        self.original = dataset
        log.info("session_loaded", source=self.source_name, rows=dataset.row_count)
        return dataset

    def reset(self) -> None:
        """Forget everything."""
        self.source_name = None
        self.warnings = []
        self.missing_variables = []
        self.original = None
        self.cleaned = None
        self.cleaning_report = None
        self.state = DatasetState.ORIGINAL

    @property
    def is_loaded(self) -> bool:
        return self.original is not None

    # ── Cleaning and selection ──────────────────────────────────────────────

    def clean(self, base_altitude: Optional[float] = None) -> CleaningReport:
        """
        Rebuild the cleaned dataset from the original.

        The active selection does not change; call use_cleaned() to analyse
        the cleaned rows.
        """
        if self.original is None:
            raise InputMissing("No data loaded to clean")

        result = clean_dataset(self.original, base_altitude=base_altitude, source_name=self.source_name)
        self.cleaned = result.dataset
        self.cleaning_report = result.report
        return result.report

    def use_cleaned(self) -> Dataset:
        if self.cleaned is None:
            raise InputMissing("No cleaned data available; run cleaning first")
        self.state = DatasetState.CLEANED
        log.info("session_state_changed", state=self.state.value)
        return self.cleaned

    def use_original(self) -> Dataset:
        if self.original is None:
            raise InputMissing("No original data available")
        self.state = DatasetState.ORIGINAL
        log.info("session_state_changed", state=self.state.value)
        return self.original

    def select(self, state: DatasetState) -> Dataset:
        if DatasetState(state) is DatasetState.CLEANED:
            return self.use_cleaned()
        return self.use_original()

    @property
    def current(self) -> Dataset:
        """The dataset selected for analysis."""
        if self.original is None:
            raise InputMissing("No data loaded")
        if self.state is DatasetState.CLEANED and self.cleaned is not None:
            return self.cleaned
        return self.original

    @property
    def headers(self) -> tuple[str, ...]:
        return self.current.headers

    # ── Analysis on the current dataset ─────────────────────────────────────

    def statistics(self) -> list[ColumnStats]:
        return describe_dataset(self.current)

    def air_quality(self, interval: Interval = ALL_READINGS) -> AirQualityReport:
        return analyze_air_quality(self.current, interval)

    def series(self, x_column: str, y_column: str, chart_type: str = "scatter") -> ChartSeries:
        return extract_series(self.current, x_column, y_column, chart_type)
