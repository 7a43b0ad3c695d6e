"""
Alerts API
Endpoints for managing alert rules and streaming events.

Endpoints:
    POST   /api/alerts/{resource_id}/rules                  → Create alert rule
    GET    /api/alerts/{resource_id}/rules                  → List rules
    POST   /api/alerts/{resource_id}/rules/defaults         → Create default rules
    GET    /api/alerts/{resource_id}/rules/{id}             → Get rule by ID
    DELETE /api/alerts/{resource_id}/rules/{id}             → Delete rule
    POST   /api/alerts/{resource_id}/rules/{id}/enable      → Enable rule
    POST   /api/alerts/{resource_id}/rules/{id}/disable     → Disable rule
    POST   /api/alerts/{resource_id}/evaluate               → Run one evaluation pass
    GET    /api/alerts/{resource_id}/history                → Get alert history
    DELETE /api/alerts/{resource_id}/history                → Clear alert history
    GET    /api/alerts/stream                               → SSE stream for notifications
    GET    /api/alerts/stats                                → Engine statistics
    POST   /api/alerts/reset                                → Clear all cooldowns
"""

import asyncio
import json
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from alerts import AlertEngine, AlertRule, InvalidRuleError
from core import ResourceDescriptor
from services import EvaluationScheduler
from .deps import get_alert_engine, get_scheduler

router = APIRouter(prefix="/alerts", tags=["Alerts"])


# =============================================================================
# Request Models
# =============================================================================

class CreateAlertRequest(BaseModel):
    """Request body for creating an alert rule"""
    id: str = ""
    name: str = ""
    description: str = ""
    condition: Dict[str, Any]
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    enabled: bool = True
    cooldown_minutes: int = Field(default=15, ge=0)
    severity: Optional[str] = None
    
    class Config:
        json_schema_extra = {
            "example": {
                "name": "Slow and failing",
                "condition": {
                    "type": "compound",
                    "operator": "and",
                    "conditions": [
                        {"type": "threshold", "metric": "response_time_p95", "operator": "gt", "value": 1000},
                        {"type": "threshold", "metric": "error_rate", "operator": "gt", "value": 5}
                    ]
                },
                "actions": [
                    {"type": "notification", "target": "dashboard"},
                    {"type": "webhook", "url": "https://hooks.example.com/alerts"}
                ],
                "cooldown_minutes": 15
            }
        }


# =============================================================================
# Live stream & engine management
# =============================================================================

@router.get("/stream")
async def stream_alerts(engine: AlertEngine = Depends(get_alert_engine)):
    """
    Server-Sent Events stream for notification actions.
    
    Connect via EventSource in browser:
        const es = new EventSource('/api/alerts/stream');
        es.onmessage = (e) => console.log(JSON.parse(e.data));
    """
    notifications = engine.dispatcher.notifications
    
    async def event_generator():
        yield f"data: {json.dumps({'type': 'connected', 'message': 'Alert stream connected'})}\n\n"
        
        while True:
            try:
                event = await notifications.get_event(timeout=30.0)
                
                if event:
                    yield f"data: {json.dumps(event.to_dict())}\n\n"
                else:
                    yield ": keepalive\n\n"
                    
            except asyncio.CancelledError:
                break
    
    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@router.get("/stats")
async def get_stats(engine: AlertEngine = Depends(get_alert_engine)):
    """Get alert engine statistics"""
    return engine.stats()


@router.post("/reset")
async def reset_states(engine: AlertEngine = Depends(get_alert_engine)):
    """Reset all rule cooldowns"""
    engine.reset_states()
    return {"message": "Alert states reset"}


# =============================================================================
# Rule Management
# =============================================================================

@router.post("/{resource_id}/rules")
async def create_rule(
    resource_id: str,
    request: CreateAlertRequest,
    engine: AlertEngine = Depends(get_alert_engine)
):
    """
    Create (or replace) an alert rule for a resource.
    
    Condition types: threshold, anomaly, trend, compound
    Operators: gt, lt, eq, neq, gte, lte (compound: and, or)
    Actions: notification, webhook, email, sms, custom
    """
    try:
        rule = AlertRule.from_dict(request.model_dump())
    except InvalidRuleError as e:
        raise HTTPException(400, str(e))
    
    engine.add_alert_rule(resource_id, rule)
    
    return {
        "message": "Alert rule created",
        "rule": rule.to_dict()
    }


@router.get("/{resource_id}/rules")
async def list_rules(resource_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Get all alert rules of a resource"""
    rules = engine.get_alert_rules(resource_id)
    
    return {
        "resource_id": resource_id,
        "count": len(rules),
        "rules": [r.to_dict() for r in rules]
    }


@router.post("/{resource_id}/rules/defaults")
async def create_default_rules(resource_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Create the response time, error rate and availability rules"""
    rules = engine.create_default_alert_rules(resource_id)
    
    return {
        "message": f"Created {len(rules)} default rules",
        "rules": [r.to_dict() for r in rules]
    }


@router.get("/{resource_id}/rules/{rule_id}")
async def get_rule(resource_id: str, rule_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Get a specific alert rule"""
    rule = engine.get_alert_rule(resource_id, rule_id)
    
    if not rule:
        raise HTTPException(404, f"Rule not found: {rule_id}")
    
    return {"rule": rule.to_dict()}


@router.delete("/{resource_id}/rules/{rule_id}")
async def delete_rule(resource_id: str, rule_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Delete an alert rule"""
    if not engine.remove_alert_rule(resource_id, rule_id):
        raise HTTPException(404, f"Rule not found: {rule_id}")
    
    return {"message": f"Rule {rule_id} deleted"}


@router.post("/{resource_id}/rules/{rule_id}/enable")
async def enable_rule(resource_id: str, rule_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Enable an alert rule"""
    if not engine.enable_rule(resource_id, rule_id):
        raise HTTPException(404, f"Rule not found: {rule_id}")
    
    return {"message": f"Rule {rule_id} enabled"}


@router.post("/{resource_id}/rules/{rule_id}/disable")
async def disable_rule(resource_id: str, rule_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Disable an alert rule"""
    if not engine.disable_rule(resource_id, rule_id):
        raise HTTPException(404, f"Rule not found: {rule_id}")
    
    return {"message": f"Rule {rule_id} disabled"}


# =============================================================================
# Evaluation & History
# =============================================================================

@router.post("/{resource_id}/evaluate")
async def evaluate(
    resource_id: str,
    engine: AlertEngine = Depends(get_alert_engine),
    scheduler: EvaluationScheduler = Depends(get_scheduler)
):
    """
    Run one evaluation pass now.
    
    Uses the watched resource descriptor when there is one.
    """
    resource = scheduler.get_resource(resource_id) or ResourceDescriptor(id=resource_id)
    triggered = await engine.evaluate_alert_rules(resource_id, resource)
    
    return {
        "resource_id": resource_id,
        "triggered_count": len(triggered),
        "triggered": [e.to_dict() for e in triggered]
    }


@router.get("/{resource_id}/history")
async def get_history(
    resource_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    engine: AlertEngine = Depends(get_alert_engine)
):
    """Get recent alert history (newest first)"""
    history = engine.get_alert_history(resource_id, limit)
    history.reverse()
    
    return {
        "resource_id": resource_id,
        "count": len(history),
        "alerts": [e.to_dict() for e in history]
    }


@router.delete("/{resource_id}/history")
async def clear_history(resource_id: str, engine: AlertEngine = Depends(get_alert_engine)):
    """Clear alert history of a resource"""
    engine.clear_history(resource_id)
    
    return {"message": f"Alert history cleared for {resource_id}"}
