"""
plantrace - PostgreSQL execution plans as OpenTelemetry traces.

This package pulls EXPLAIN ANALYZE plan documents from PostgreSQL on a fixed
interval and converts each one into a span tree (one span per plan operator
plus a span for the whole query) that is exported through OpenTelemetry.
"""

__version__ = "1.0.0"
