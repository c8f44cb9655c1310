"""Outbound data sources used by the tool handlers."""

from __future__ import annotations


class DataProviderError(Exception):
    """An upstream API or website could not be reached or returned unusable data."""
