"""
Evaluation Scheduler
Runs one alert evaluation pass per watched resource per tick.

Usage:
    scheduler = EvaluationScheduler(engine, interval_sec=60)
    scheduler.watch(ResourceDescriptor(id="payments-api", name="Payments"))
    scheduler.start()          # inside a running event loop
    ...
    await scheduler.stop()
"""

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Any

from alerts.engine import AlertEngine
from alerts.models import AlertEvent
from core.logging import get_logger
from core.models import ResourceDescriptor

logger = get_logger("services.scheduler")


@dataclass
class SchedulerStats:
    """Scheduler statistics"""
    is_running: bool = False
    ticks: int = 0
    passes: int = 0
    alerts: int = 0
    errors: int = 0
    last_tick_time: Optional[datetime] = None
    started_at: Optional[datetime] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "ticks": self.ticks,
            "passes": self.passes,
            "alerts": self.alerts,
            "errors": self.errors,
            "last_tick_time": self.last_tick_time.isoformat() if self.last_tick_time else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "uptime_seconds": (datetime.now() - self.started_at).total_seconds() if self.started_at else 0,
        }


class EvaluationScheduler:
    """
    Poll-model driver for the alert engine.
    
    Passes for different resources share no state and run concurrently.
    A failing pass is logged and counted; the loop keeps going.
    """
    
    def __init__(self, engine: AlertEngine, interval_sec: float = 60.0):
        self._engine = engine
        self._interval = interval_sec
        self._resources: Dict[str, ResourceDescriptor] = {}
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None
        self._stats = SchedulerStats()
    
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    @property
    def stats(self) -> SchedulerStats:
        return self._stats
    
    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------
    
    def watch(self, resource: ResourceDescriptor) -> ResourceDescriptor:
        with self._lock:
            self._resources[resource.id] = resource
        return resource
    
    def unwatch(self, resource_id: str) -> bool:
        with self._lock:
            return self._resources.pop(resource_id, None) is not None
    
    def get_resource(self, resource_id: str) -> Optional[ResourceDescriptor]:
        with self._lock:
            return self._resources.get(resource_id)
    
    def resources(self) -> List[ResourceDescriptor]:
        with self._lock:
            return list(self._resources.values())
    
    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------
    
    def start(self) -> Dict[str, Any]:
        if self.is_running:
            return {"status": "already_running"}
        self._stats = SchedulerStats(is_running=True, started_at=datetime.now())
        self._task = asyncio.get_running_loop().create_task(self._run())
        return {"status": "started", "interval_sec": self._interval}
    
    async def stop(self) -> Dict[str, Any]:
        if not self.is_running:
            return {"status": "not_running"}
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._stats.is_running = False
        return {"status": "stopped", "ticks": self._stats.ticks}
    
    async def _run(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval)
    
    async def run_once(self) -> Dict[str, List[AlertEvent]]:
        """One tick: evaluate every watched resource concurrently."""
        resources = self.resources()
        self._stats.ticks += 1
        self._stats.last_tick_time = datetime.now()
        
        outcomes = await asyncio.gather(
            *(self._engine.evaluate_alert_rules(r.id, r) for r in resources),
            return_exceptions=True,
        )
        
        triggered: Dict[str, List[AlertEvent]] = {}
        for resource, outcome in zip(resources, outcomes):
            self._stats.passes += 1
            if isinstance(outcome, BaseException):
                self._stats.errors += 1
                logger.error("Evaluation pass for %s failed: %r", resource.id, outcome,
                             extra={"resource_id": resource.id})
                continue
            self._stats.alerts += len(outcome)
            triggered[resource.id] = outcome
        return triggered
