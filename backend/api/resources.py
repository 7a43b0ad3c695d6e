"""
Resources API
Watched resources and their metric snapshots.

Endpoints:
    GET    /api/resources                 → List watched resources
    POST   /api/resources                 → Watch a resource
    DELETE /api/resources/{id}            → Stop watching
    GET    /api/resources/{id}/metrics    → AdvancedMetrics snapshot
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from alerts import AlertEngine
from core import ResourceDescriptor
from services import EvaluationScheduler
from .deps import get_alert_engine, get_scheduler

router = APIRouter(prefix="/resources", tags=["Resources"])


@router.get("")
async def list_resources(scheduler: EvaluationScheduler = Depends(get_scheduler)):
    resources = scheduler.resources()
    return {
        "count": len(resources),
        "resources": [r.model_dump() for r in resources],
        "scheduler": scheduler.stats.to_dict()
    }


@router.post("")
async def watch_resource(
    resource: ResourceDescriptor,
    with_defaults: bool = Query(default=False),
    scheduler: EvaluationScheduler = Depends(get_scheduler),
    engine: AlertEngine = Depends(get_alert_engine)
):
    """Watch a resource; optionally bootstrap the default rule set"""
    scheduler.watch(resource)
    rules = engine.create_default_alert_rules(resource.id) if with_defaults else []
    return {
        "message": f"Watching {resource.id}",
        "resource": resource.model_dump(),
        "rules_created": len(rules)
    }


@router.delete("/{resource_id}")
async def unwatch_resource(resource_id: str, scheduler: EvaluationScheduler = Depends(get_scheduler)):
    if not scheduler.unwatch(resource_id):
        raise HTTPException(404, f"Resource not watched: {resource_id}")
    return {"message": f"Stopped watching {resource_id}"}


@router.get("/{resource_id}/metrics")
async def get_metrics(
    resource_id: str,
    endpoints: Optional[List[str]] = Query(default=None),
    engine: AlertEngine = Depends(get_alert_engine),
    scheduler: EvaluationScheduler = Depends(get_scheduler)
):
    """
    Advanced metrics over the retained window.
    
    An empty window returns an all-zero snapshot, not an error.
    """
    if endpoints is None:
        resource = scheduler.get_resource(resource_id)
        endpoints = resource.endpoints if resource else None
    
    metrics = engine.calculate_advanced_metrics(resource_id, endpoints)
    return {
        "resource_id": resource_id,
        "metrics": metrics.to_dict()
    }
