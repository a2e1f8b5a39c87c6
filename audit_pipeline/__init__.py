"""Audit-event analytics pipeline: classification, filtering, sessions, chart series, SWR cache."""

__version__ = "0.1.0"
