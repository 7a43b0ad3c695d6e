"""
Services
Long-running drivers around the alert engine.
"""

from .scheduler import EvaluationScheduler, SchedulerStats

__all__ = [
    "EvaluationScheduler",
    "SchedulerStats",
]
