"""
Derived metrics for cleaned or original flight data.

Modules:
    statistics   per-column descriptive statistics
    air_quality  resistance tiers, altitude profile, summary
    series       aligned axis-pair values for ad-hoc charts
"""
