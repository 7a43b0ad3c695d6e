"""
Rule Evaluation
Resolve metric paths and evaluate (possibly compound) conditions
against a metrics snapshot. Pure functions, no state.
"""

import operator as op
from typing import Callable, Dict, Optional

from analytics.models import AdvancedMetrics, MetricId
from core.logging import get_logger
from .models import (
    AlertCondition,
    AlertOperator,
    CompoundCondition,
    CompoundOperator,
    ThresholdCondition,
)

logger = get_logger("alerts.evaluator")

_COMPARATORS: Dict[AlertOperator, Callable[[float, float], bool]] = {
    AlertOperator.GT: op.gt,
    AlertOperator.LT: op.lt,
    AlertOperator.EQ: op.eq,
    AlertOperator.NEQ: op.ne,
    AlertOperator.GTE: op.ge,
    AlertOperator.LTE: op.le,
}


def resolve_metric(path: str, metrics: AdvancedMetrics) -> Optional[float]:
    """
    Look up a metric path in a snapshot.
    
    Returns None for unknown identifiers and for keys missing from a
    keyed metric (e.g. an endpoint that was never probed).
    """
    parsed = MetricId.parse(path)
    if parsed is None:
        return None
    metric, key = parsed
    return metrics.get(metric, key)


def metric_value(path: str, metrics: AdvancedMetrics) -> float:
    """resolve_metric with the documented default: unresolved paths read as 0."""
    value = resolve_metric(path, metrics)
    if value is None:
        logger.debug("Metric path %r did not resolve; using 0", path)
        return 0.0
    return value


def compare(value: float, operator: AlertOperator, threshold: float) -> bool:
    return _COMPARATORS[operator](value, threshold)


def evaluate_condition(condition: AlertCondition, metrics: AdvancedMetrics) -> bool:
    """
    Evaluate a condition tree.
    
    Compound conditions evaluate every sub-condition; AND needs all of
    them true, OR at least one.
    """
    if isinstance(condition, CompoundCondition):
        results = [evaluate_condition(c, metrics) for c in condition.conditions]
        if condition.operator == CompoundOperator.AND:
            return all(results)
        return any(results)
    
    if isinstance(condition, ThresholdCondition):
        value = metric_value(condition.metric, metrics)
        return compare(value, condition.operator, condition.value)
    
    raise TypeError(f"Unsupported condition: {type(condition).__name__}")
