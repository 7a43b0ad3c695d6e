"""
Analytics Module
Pure metric aggregation over a window of probe results.

Structure:
    analytics/
    ├── models.py      → AdvancedMetrics, ErrorCategory, MetricId
    └── aggregator.py  → aggregate() and its building blocks

Usage:
    from analytics import aggregate
    
    metrics = aggregate(results, endpoints=["/users", "/orders"])
    metrics.response_time_p95

Design Principles:
    ✓ ALL functions are PURE (inputs → computation → outputs)
    ✓ NO store access
    ✓ NO state carried between calls
"""

from . import aggregator
from .aggregator import aggregate, categorize_error, percentile

from .models import (
    AdvancedMetrics,
    ErrorCategory,
    MetricId,
)

__all__ = [
    # Modules
    "aggregator",
    # Functions
    "aggregate",
    "categorize_error",
    "percentile",
    # Types
    "AdvancedMetrics",
    "ErrorCategory",
    "MetricId",
]
