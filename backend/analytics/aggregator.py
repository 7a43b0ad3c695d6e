"""
Metrics Aggregation
Turns a window of probe results into one AdvancedMetrics snapshot.

Update: Every evaluation pass
Use: Alert rule evaluation, metrics endpoint

Every call recomputes from the full retained window. Nothing is carried
over between calls.
"""

import math
import numpy as np
import pandas as pd
from typing import Dict, Iterable, Sequence, Tuple

from core.models import MonitoringResult
from .models import AdvancedMetrics, ErrorCategory

# Probes per minute assumed to overlap; coarse, not measured.
REQUESTS_PER_CONCURRENT_SLOT = 10

TIMEOUT_MARKERS = ("timeout", "timed out", "超时")
NETWORK_MARKERS = ("network", "connection", "网络")


def percentile(sorted_values: np.ndarray, q: float) -> float:
    """
    Nearest-rank percentile of an ascending array.
    
    index = floor(n * q), clamped to the last element.
    Empty input yields 0.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = min(int(math.floor(n * q)), n - 1)
    return float(sorted_values[index])


def response_time_percentiles(results: Sequence[MonitoringResult]) -> Tuple[float, float]:
    """P95 and P99 over successful results only."""
    times = np.sort(np.array(
        [r.response_time_ms for r in results if r.success], dtype=float
    ))
    return percentile(times, 0.95), percentile(times, 0.99)


def categorize_error(result: MonitoringResult) -> ErrorCategory:
    """
    Classify a failed result.
    
    Error text is checked first (timeout, then network), then status code.
    """
    text = (result.error or "").lower()
    if any(marker in text for marker in TIMEOUT_MARKERS):
        return ErrorCategory.TIMEOUT
    if any(marker in text for marker in NETWORK_MARKERS):
        return ErrorCategory.NETWORK
    if 400 <= result.status_code < 500:
        return ErrorCategory.CLIENT_ERROR
    if result.status_code >= 500:
        return ErrorCategory.SERVER_ERROR
    return ErrorCategory.OTHER


def error_distribution(results: Sequence[MonitoringResult]) -> Dict[str, int]:
    """Per-category failure counts."""
    counts: Dict[str, int] = {}
    for r in results:
        if r.success:
            continue
        category = categorize_error(r).value
        counts[category] = counts.get(category, 0) + 1
    return counts


def endpoint_breakdown(
    results: Sequence[MonitoringResult],
    endpoints: Iterable[str] = None
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """
    Per-endpoint success rate (%) and mean successful response time.
    
    An endpoint with no samples has a 100% success rate and 0 response time.
    Declared endpoints are included even if no result mentions them.
    """
    success_rate: Dict[str, float] = {}
    response_time: Dict[str, float] = {}
    
    for endpoint in endpoints or []:
        success_rate[endpoint] = 100.0
        response_time[endpoint] = 0.0
    
    if not results:
        return success_rate, response_time
    
    frame = pd.DataFrame({
        "endpoint": [r.endpoint for r in results],
        "success": [r.success for r in results],
        "response_time": [r.response_time_ms for r in results],
    })
    
    for endpoint, group in frame.groupby("endpoint", sort=True):
        ok = group[group["success"]]
        total = len(group)
        success_rate[endpoint] = len(ok) / total * 100 if total > 0 else 100.0
        response_time[endpoint] = float(ok["response_time"].mean()) if len(ok) > 0 else 0.0
    
    return success_rate, response_time


def request_rates(results: Sequence[MonitoringResult]) -> Tuple[float, float, int]:
    """
    Requests per minute, per hour, and the concurrency estimate.
    
    window = max(1, newest - oldest) in minutes
    peak   = max(1, ceil(rpm / 10))
    """
    if not results:
        return 0.0, 0.0, 0
    
    timestamps = [r.timestamp for r in results]
    span_minutes = (max(timestamps) - min(timestamps)).total_seconds() / 60
    window_minutes = max(1.0, span_minutes)
    
    per_minute = len(results) / window_minutes
    per_hour = per_minute * 60
    peak = max(1, math.ceil(per_minute / REQUESTS_PER_CONCURRENT_SLOT))
    return per_minute, per_hour, peak


def aggregate(
    results: Sequence[MonitoringResult],
    endpoints: Iterable[str] = None
) -> AdvancedMetrics:
    """
    Compute the full snapshot for one resource window.
    
    An empty window is a defined state: every figure is zero and the
    per-endpoint maps only hold declared endpoints.
    
    Args:
        results: Retained results, any order
        endpoints: Endpoints to report even without samples
    
    Returns:
        AdvancedMetrics
    """
    success_rate, response_time = endpoint_breakdown(results, endpoints)
    
    if not results:
        return AdvancedMetrics(
            success_rate_by_endpoint=success_rate,
            response_time_by_endpoint=response_time,
        )
    
    p95, p99 = response_time_percentiles(results)
    per_minute, per_hour, peak = request_rates(results)
    
    total = len(results)
    success_times = [r.response_time_ms for r in results if r.success]
    successes = len(success_times)
    failures = total - successes
    
    return AdvancedMetrics(
        response_time_p95=p95,
        response_time_p99=p99,
        error_distribution=error_distribution(results),
        success_rate_by_endpoint=success_rate,
        response_time_by_endpoint=response_time,
        requests_per_minute=per_minute,
        requests_per_hour=per_hour,
        peak_concurrent_requests=peak,
        total_requests=total,
        successful_requests=successes,
        failed_requests=failures,
        availability=successes / total * 100,
        error_rate=failures / total * 100,
        avg_response_time=float(np.mean(success_times)) if success_times else 0.0,
    )
