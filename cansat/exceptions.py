"""
Exception hierarchy for the GAIA CanSat Analyzer.

All analyzer exceptions descend from ``AnalyzerError``. The API layer maps
each kind onto an HTTP status; library callers can catch the base class.
"""

from typing import Optional


class AnalyzerError(Exception):
    """Root of the analyzer exception hierarchy."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ParseFailure(AnalyzerError):
    """The CSV could not be parsed; the whole ingestion is aborted."""

    def __init__(self, message: str, source_name: Optional[str] = None):
        super().__init__(message, code="parse_failure")
        self.source_name = source_name


class InputMissing(AnalyzerError):
    """An operation was invoked before the stage it depends on has run."""

    def __init__(self, message: str):
        super().__init__(message, code="input_missing")


class NoAirQualitySignal(AnalyzerError):
    """The dataset carries no resistance column to classify."""

    def __init__(self, message: str = "Resistencia_kOhms column not found in the data"):
        super().__init__(message, code="no_air_quality_signal")
