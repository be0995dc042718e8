"""
GAIA CanSat flight data analyzer.

Cleans CanSat telemetry CSV exports and derives statistics and an air
quality profile from them.
"""

__version__ = "1.0.0"
