"""Novant data source backend for time-series dashboards."""

__version__ = "1.0.0"
