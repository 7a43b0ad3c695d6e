"""
Alert System
Rule-based alerts over aggregated probe metrics.

Structure:
    alerts/
    ├── models.py      → conditions, actions, AlertRule, AlertEvent
    ├── evaluator.py   → metric resolution + condition evaluation
    ├── history.py     → AlertHistory (bounded per-resource log)
    ├── channels.py    → one channel per action type
    ├── dispatcher.py  → AlertDispatcher (isolated fan-out)
    └── engine.py      → AlertEngine (cooldown, history, dispatch)

Usage:
    from alerts import AlertEngine, AlertDispatcher, AlertRule, ThresholdCondition, AlertOperator
    
    engine = AlertEngine(store=buffer, dispatcher=AlertDispatcher.create())
    engine.add_alert_rule("payments-api", AlertRule(
        id="",
        name="Slow payments",
        condition=ThresholdCondition("response_time_p95", AlertOperator.GT, 800),
        actions=[WebhookAction(url="https://hooks.example.com/alerts")],
        cooldown_minutes=15,
    ))
    
    # Evaluate (called by the scheduler each tick)
    events = await engine.evaluate_alert_rules("payments-api", descriptor)
    
    # Get history
    history = engine.get_alert_history("payments-api")
"""

from .models import (
    InvalidRuleError,
    AlertOperator,
    CompoundOperator,
    ConditionType,
    AlertSeverity,
    ActionType,
    ThresholdCondition,
    CompoundCondition,
    AlertCondition,
    NotificationAction,
    WebhookAction,
    EmailAction,
    SmsAction,
    CustomAction,
    AlertAction,
    AlertRule,
    AlertEvent,
    condition_from_dict,
    action_from_dict,
    determine_severity,
)

from .evaluator import resolve_metric, metric_value, evaluate_condition
from .history import AlertHistory
from .channels import (
    UnknownHandlerError,
    OutboundMessage,
    MessageGateway,
    LoggingGateway,
)
from .dispatcher import AlertDispatcher, ActionOutcome
from .engine import AlertEngine

__all__ = [
    # Models
    "InvalidRuleError",
    "AlertOperator",
    "CompoundOperator",
    "ConditionType",
    "AlertSeverity",
    "ActionType",
    "ThresholdCondition",
    "CompoundCondition",
    "AlertCondition",
    "NotificationAction",
    "WebhookAction",
    "EmailAction",
    "SmsAction",
    "CustomAction",
    "AlertAction",
    "AlertRule",
    "AlertEvent",
    "condition_from_dict",
    "action_from_dict",
    "determine_severity",
    # Evaluation
    "resolve_metric",
    "metric_value",
    "evaluate_condition",
    # History
    "AlertHistory",
    # Dispatch
    "UnknownHandlerError",
    "OutboundMessage",
    "MessageGateway",
    "LoggingGateway",
    "AlertDispatcher",
    "ActionOutcome",
    # Engine
    "AlertEngine",
]
