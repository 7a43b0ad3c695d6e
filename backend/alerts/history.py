"""
Alert History
Bounded, per-resource FIFO log of triggered events.
"""

import threading
from collections import deque
from typing import Dict, List

from .models import AlertEvent


class AlertHistory:
    """
    Per-resource event log.
    
    - One deque per resource, capped at maxlen
    - Appending beyond the cap drops the oldest event
    - Resources never share a log
    
    Usage:
        history = AlertHistory(maxlen=100)
        history.append(event)
        recent = history.get("payments-api", limit=20)
    """
    
    def __init__(self, maxlen: int = 100):
        self.maxlen = maxlen
        self._logs: Dict[str, deque] = {}
        self._lock = threading.Lock()
    
    def append(self, event: AlertEvent) -> None:
        with self._lock:
            log = self._logs.get(event.resource_id)
            if log is None:
                log = deque(maxlen=self.maxlen)
                self._logs[event.resource_id] = log
            log.append(event)
    
    def get(self, resource_id: str, limit: int = None) -> List[AlertEvent]:
        """Events for resource, oldest first (limit keeps the most recent)"""
        with self._lock:
            events = list(self._logs.get(resource_id, ()))
        if limit:
            return events[-limit:]
        return events
    
    def count(self, resource_id: str = None) -> int:
        with self._lock:
            if resource_id:
                return len(self._logs.get(resource_id, ()))
            return sum(len(log) for log in self._logs.values())
    
    def clear(self, resource_id: str = None) -> None:
        with self._lock:
            if resource_id:
                self._logs.pop(resource_id, None)
            else:
                self._logs.clear()
