"""
Core Module
Probe results and the in-memory store they are retained in.

Exports:
    Models: MonitoringResult, ResourceDescriptor, IngestionResult
    Time: to_utc, utc_now
    Store: ResultStore (protocol), ResultBuffer
    Logging: get_logger, setup_logging
"""

from .models import (
    MonitoringResult,
    ResourceDescriptor,
    IngestionResult,
    DEFAULT_ENDPOINT,
    to_utc,
    utc_now,
)

from .buffer import ResultStore, ResultBuffer
from .logging import get_logger, setup_logging

__all__ = [
    # Models
    "MonitoringResult",
    "ResourceDescriptor",
    "IngestionResult",
    "DEFAULT_ENDPOINT",
    "to_utc",
    "utc_now",
    # Store
    "ResultStore",
    "ResultBuffer",
    # Logging
    "get_logger",
    "setup_logging",
]
