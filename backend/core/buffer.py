"""
In-Memory Result Store
Bounded, resource-keyed storage for recent probe outcomes.

Purpose:
- The aggregator needs the full retained window per resource
- Probes append, evaluation reads
- No disk I/O allowed here

This is READ-OPTIMIZED, NOT DURABLE.
"""

import threading
from collections import deque
from typing import Dict, List, Iterable, Protocol

from .models import MonitoringResult


class ResultStore(Protocol):
    """Append-only source of raw probe outcomes per monitored resource."""
    
    def get_results(self, resource_id: str) -> List[MonitoringResult]:
        ...


class ResultBuffer:
    """
    In-memory store for probe results.
    
    - Per-resource deques with automatic eviction (oldest first)
    - O(1) append
    - Results returned in insertion order
    
    Usage:
        buffer = ResultBuffer(maxlen=1000)
        buffer.append("payments-api", result)
        window = buffer.get_results("payments-api")
    """
    
    def __init__(self, maxlen: int = 1000):
        self.maxlen = maxlen
        self._data: Dict[str, deque] = {}
        self._count: int = 0
        self._lock = threading.Lock()
    
    def append(self, resource_id: str, result: MonitoringResult) -> None:
        """Add single result to buffer"""
        with self._lock:
            if resource_id not in self._data:
                self._data[resource_id] = deque(maxlen=self.maxlen)
            self._data[resource_id].append(result)
            self._count += 1
    
    def extend(self, resource_id: str, results: Iterable[MonitoringResult]) -> int:
        """Add multiple results. Returns count added."""
        added = 0
        for result in results:
            self.append(resource_id, result)
            added += 1
        return added
    
    def get_results(self, resource_id: str, limit: int = None) -> List[MonitoringResult]:
        """Get retained results for resource (most recent last)"""
        with self._lock:
            if resource_id not in self._data:
                return []
            data = list(self._data[resource_id])
        if limit:
            return data[-limit:]
        return data
    
    def resources(self) -> List[str]:
        """List all resources with retained results"""
        with self._lock:
            return list(self._data.keys())
    
    def count(self, resource_id: str = None) -> int:
        """Get result count (retained per resource, or total ingested)"""
        if resource_id:
            return len(self._data.get(resource_id, []))
        return self._count
    
    def clear(self, resource_id: str = None) -> None:
        """Clear buffer"""
        with self._lock:
            if resource_id:
                self._data.pop(resource_id, None)
            else:
                self._data.clear()
                self._count = 0
    
    def stats(self) -> dict:
        """Buffer statistics"""
        with self._lock:
            return {
                "total_results": self._count,
                "resources": len(self._data),
                "per_resource": {rid: len(d) for rid, d in self._data.items()}
            }
