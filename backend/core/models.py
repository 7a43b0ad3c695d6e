"""
Domain Models
Probe outcome records as they enter the system.

After normalization, the aggregation and alerting layers only see these types.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone


DEFAULT_ENDPOINT = "default"


def to_utc(value: datetime) -> datetime:
    """Timezone-aware UTC. Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# MonitoringResult — The Core Data Contract
# =============================================================================

class MonitoringResult(BaseModel):
    """
    One recorded outcome of a probe against a monitored resource.
    
    Immutable once recorded. The aggregator never sees raw probe payloads,
    only MonitoringResults.
    
    Fields:
        timestamp: When the probe completed
        success: Whether the probe counted as a success
        response_time_ms: Round-trip time in milliseconds
        status_code: HTTP status (0 when no response was received)
        error: Optional error text
        endpoint: Probed endpoint, "default" when not given
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    
    timestamp: datetime
    success: bool
    response_time_ms: int = Field(default=0, ge=0, alias="responseTimeMs")
    status_code: int = Field(default=0, ge=0, alias="statusCode")
    error: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    
    @field_validator('endpoint', mode='before')
    @classmethod
    def default_endpoint(cls, v):
        """Empty endpoints land in the default bucket"""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_ENDPOINT
        return v
    
    @field_validator('timestamp', mode='before')
    @classmethod
    def parse_timestamp(cls, v):
        """Handle various timestamp formats"""
        if isinstance(v, datetime):
            return v
        if isinstance(v, str):
            return datetime.fromisoformat(v.replace('Z', '+00:00'))
        if isinstance(v, (int, float)):
            # Unix timestamp (seconds or milliseconds)
            if v > 1e12:
                return datetime.fromtimestamp(v / 1000, tz=timezone.utc)
            return datetime.fromtimestamp(v, tz=timezone.utc)
        return v
    
    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        """All timestamps are compared as aware UTC"""
        return to_utc(v)


# =============================================================================
# Resource Descriptor
# =============================================================================

class ResourceDescriptor(BaseModel):
    """
    The monitored API/service configuration, as far as alerting cares.
    
    Endpoints listed here are reported in per-endpoint metrics even
    before any probe has hit them.
    """
    id: str = Field(..., min_length=1)
    name: str = ""
    endpoints: List[str] = Field(default_factory=list)
    
    @property
    def display_name(self) -> str:
        return self.name or self.id


# =============================================================================
# API Response Models
# =============================================================================

class IngestionResult(BaseModel):
    """Result of result ingestion"""
    success: bool = True
    resource_id: str
    count: int = 0
    retained: int = 0
    message: str = ""
