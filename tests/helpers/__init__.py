"""Shared helper utilities for the test-suite."""

from .data import points_flat, points_grouped, trend_rows_for
from .mocks import FakeHttpResponse, FakeSession

__all__ = [
    "points_flat",
    "points_grouped",
    "trend_rows_for",
    "FakeHttpResponse",
    "FakeSession",
]
