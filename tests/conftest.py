from datetime import datetime, timedelta, timezone

import pytest

from alerts import AlertDispatcher, AlertEngine, LoggingGateway
from core import MonitoringResult, ResultBuffer

T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


def make_result(offset_sec: float = 0, success: bool = True, response_time: int = 100,
                status: int = 200, error: str = None, endpoint: str = "default") -> MonitoringResult:
    return MonitoringResult(
        timestamp=T0 + timedelta(seconds=offset_sec),
        success=success,
        response_time_ms=response_time,
        status_code=status,
        error=error,
        endpoint=endpoint,
    )


class FixedClock:
    def __init__(self, now: datetime = T0 + timedelta(minutes=30)):
        self.now = now
    
    def __call__(self) -> datetime:
        return self.now
    
    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


@pytest.fixture
def buffer():
    return ResultBuffer(maxlen=1000)


@pytest.fixture
def gateway():
    return LoggingGateway()


@pytest.fixture
def dispatcher(gateway):
    return AlertDispatcher.create(gateway=gateway)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def engine(buffer, dispatcher, clock):
    return AlertEngine(store=buffer, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def slow_results():
    """20 successful probes at 1500 ms over ten minutes"""
    return [make_result(i * 30, response_time=1500) for i in range(20)]
