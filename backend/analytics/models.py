"""
Analytics Output Types
Metric snapshot types and the closed set of metric identifiers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Any


# =============================================================================
# ERROR CATEGORIES
# =============================================================================

class ErrorCategory(str, Enum):
    """Buckets for failed probe outcomes"""
    TIMEOUT = "timeout"
    NETWORK = "network"
    CLIENT_ERROR = "client_error"    # 4xx
    SERVER_ERROR = "server_error"    # 5xx
    OTHER = "other"


# =============================================================================
# METRIC IDENTIFIERS
# =============================================================================

class MetricId(str, Enum):
    """
    Metric identifiers a rule condition can reference.
    
    Keyed metrics are addressed with a dotted key:
        error_distribution.server_error
        success_rate_by_endpoint./v1/users
    """
    RESPONSE_TIME_P95 = "response_time_p95"
    RESPONSE_TIME_P99 = "response_time_p99"
    AVG_RESPONSE_TIME = "avg_response_time"
    REQUESTS_PER_MINUTE = "requests_per_minute"
    REQUESTS_PER_HOUR = "requests_per_hour"
    PEAK_CONCURRENT_REQUESTS = "peak_concurrent_requests"
    TOTAL_REQUESTS = "total_requests"
    SUCCESSFUL_REQUESTS = "successful_requests"
    FAILED_REQUESTS = "failed_requests"
    AVAILABILITY = "availability"
    ERROR_RATE = "error_rate"
    ERROR_DISTRIBUTION = "error_distribution"
    SUCCESS_RATE_BY_ENDPOINT = "success_rate_by_endpoint"
    RESPONSE_TIME_BY_ENDPOINT = "response_time_by_endpoint"
    
    @property
    def is_keyed(self) -> bool:
        return self in _KEYED_METRICS
    
    @classmethod
    def lookup(cls, name: str) -> Optional["MetricId"]:
        """Find a metric by its identifier or camelCase alias"""
        try:
            return cls(name)
        except ValueError:
            return _METRIC_ALIASES.get(name)
    
    @classmethod
    def parse(cls, path: str) -> Optional[Tuple["MetricId", Optional[str]]]:
        """
        Split a metric path into (metric, key).
        
        Returns None when the head is unknown, when a keyed metric has
        no key, or when a scalar metric is given one.
        """
        if not path:
            return None
        head, sep, key = path.partition(".")
        metric = cls.lookup(head)
        if metric is None:
            return None
        if metric.is_keyed:
            if not sep or not key:
                return None
            return metric, key
        if sep:
            return None
        return metric, None


_KEYED_METRICS = frozenset({
    MetricId.ERROR_DISTRIBUTION,
    MetricId.SUCCESS_RATE_BY_ENDPOINT,
    MetricId.RESPONSE_TIME_BY_ENDPOINT,
})

_METRIC_ALIASES = {
    "responseTimeP95": MetricId.RESPONSE_TIME_P95,
    "responseTimeP99": MetricId.RESPONSE_TIME_P99,
    "avgResponseTime": MetricId.AVG_RESPONSE_TIME,
    "requestsPerMinute": MetricId.REQUESTS_PER_MINUTE,
    "requestsPerHour": MetricId.REQUESTS_PER_HOUR,
    "peakConcurrentRequests": MetricId.PEAK_CONCURRENT_REQUESTS,
    "totalRequests": MetricId.TOTAL_REQUESTS,
    "successfulRequests": MetricId.SUCCESSFUL_REQUESTS,
    "failedRequests": MetricId.FAILED_REQUESTS,
    "errorRate": MetricId.ERROR_RATE,
    "errorDistribution": MetricId.ERROR_DISTRIBUTION,
    "successRateByEndpoint": MetricId.SUCCESS_RATE_BY_ENDPOINT,
    "responseTimeByEndpoint": MetricId.RESPONSE_TIME_BY_ENDPOINT,
}


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class AdvancedMetrics:
    """
    Aggregated statistical snapshot of one resource's retained window.
    
    Recomputed from scratch on every evaluation, never mutated.
    """
    response_time_p95: float = 0.0
    response_time_p99: float = 0.0
    error_distribution: Dict[str, int] = field(default_factory=dict)
    success_rate_by_endpoint: Dict[str, float] = field(default_factory=dict)
    response_time_by_endpoint: Dict[str, float] = field(default_factory=dict)
    requests_per_minute: float = 0.0
    requests_per_hour: float = 0.0
    peak_concurrent_requests: int = 0
    
    # Summary figures
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    availability: float = 0.0
    error_rate: float = 0.0
    avg_response_time: float = 0.0
    
    def get(self, metric: MetricId, key: str = None) -> Optional[float]:
        """Value of a metric in this snapshot, None when absent"""
        value = getattr(self, metric.value)
        if metric.is_keyed:
            if key is None or key not in value:
                return None
            value = value[key]
        return float(value)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "response_time_p95": self.response_time_p95,
            "response_time_p99": self.response_time_p99,
            "error_distribution": dict(self.error_distribution),
            "success_rate_by_endpoint": {k: round(v, 4) for k, v in self.success_rate_by_endpoint.items()},
            "response_time_by_endpoint": {k: round(v, 4) for k, v in self.response_time_by_endpoint.items()},
            "requests_per_minute": round(self.requests_per_minute, 4),
            "requests_per_hour": round(self.requests_per_hour, 4),
            "peak_concurrent_requests": self.peak_concurrent_requests,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "availability": round(self.availability, 4),
            "error_rate": round(self.error_rate, 4),
            "avg_response_time": round(self.avg_response_time, 4),
        }
