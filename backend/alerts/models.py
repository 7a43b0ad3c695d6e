"""
Alert Models
Data structures for alert conditions, actions, rules, and events.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Dict, Any, Union

from core.models import to_utc, utc_now


class InvalidRuleError(ValueError):
    """A rule, condition, or action definition could not be parsed"""


class AlertOperator(str, Enum):
    """Threshold comparison operators"""
    GT = "gt"
    LT = "lt"
    EQ = "eq"
    NEQ = "neq"
    GTE = "gte"
    LTE = "lte"


class CompoundOperator(str, Enum):
    """Boolean combinators for compound conditions"""
    AND = "and"
    OR = "or"


class ConditionType(str, Enum):
    THRESHOLD = "threshold"
    ANOMALY = "anomaly"     # evaluated with threshold semantics
    TREND = "trend"         # evaluated with threshold semantics
    COMPOUND = "compound"


class AlertSeverity(str, Enum):
    """Alert severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ActionType(str, Enum):
    NOTIFICATION = "notification"
    WEBHOOK = "webhook"
    EMAIL = "email"
    SMS = "sms"
    CUSTOM = "custom"


def _enum_value(enum_cls, raw, what: str):
    try:
        return enum_cls(raw.lower() if isinstance(raw, str) else raw)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise InvalidRuleError(f"Invalid {what}: {raw!r}. Use: {allowed}")


# =============================================================================
# Conditions
# =============================================================================

@dataclass(frozen=True)
class ThresholdCondition:
    """
    Compare one metric against a literal value.
    
    Example:
        ThresholdCondition("response_time_p95", AlertOperator.GT, 1000)
    """
    metric: str
    operator: AlertOperator
    value: float
    kind: ConditionType = ConditionType.THRESHOLD
    
    def leaves(self) -> List["ThresholdCondition"]:
        return [self]
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "metric": self.metric,
            "operator": self.operator.value,
            "value": self.value,
        }


@dataclass(frozen=True)
class CompoundCondition:
    """AND/OR combination of sub-conditions"""
    operator: CompoundOperator
    conditions: List["AlertCondition"]
    
    def leaves(self) -> List[ThresholdCondition]:
        found = []
        for sub in self.conditions:
            found.extend(sub.leaves())
        return found
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": ConditionType.COMPOUND.value,
            "operator": self.operator.value,
            "conditions": [c.to_dict() for c in self.conditions],
        }


AlertCondition = Union[ThresholdCondition, CompoundCondition]


def condition_from_dict(data: Dict[str, Any]) -> AlertCondition:
    """
    Parse a condition definition.
    
    Accepts {"type": "compound", "operator": "and", "conditions": [...]}
    (also "compoundOperator"/"compoundRules") and threshold leaves
    {"type": "threshold", "metric": ..., "operator": ..., "value": ...}.
    """
    if not isinstance(data, dict):
        raise InvalidRuleError("Condition must be an object")
    
    kind = _enum_value(ConditionType, data.get("type", "threshold"), "condition type")
    
    if kind == ConditionType.COMPOUND:
        subs = data.get("conditions", data.get("compoundRules"))
        if not subs:
            raise InvalidRuleError("Compound condition needs at least one sub-condition")
        op = data.get("compoundOperator", data.get("operator", "and"))
        return CompoundCondition(
            operator=_enum_value(CompoundOperator, op, "compound operator"),
            conditions=[condition_from_dict(s) for s in subs],
        )
    
    for key in ("metric", "operator", "value"):
        if key not in data:
            raise InvalidRuleError(f"Threshold condition missing '{key}'")
    try:
        value = float(data["value"])
    except (TypeError, ValueError):
        raise InvalidRuleError(f"Threshold value must be numeric: {data['value']!r}")
    
    return ThresholdCondition(
        metric=str(data["metric"]),
        operator=_enum_value(AlertOperator, data["operator"], "operator"),
        value=value,
        kind=kind,
    )


# =============================================================================
# Actions
# =============================================================================

@dataclass(frozen=True)
class NotificationAction:
    """Best-effort local alert (pushed to the live notification stream)"""
    target: str = "dashboard"
    type: ActionType = field(default=ActionType.NOTIFICATION, init=False)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "target": self.target}


@dataclass(frozen=True)
class WebhookAction:
    """POST the serialized event to a URL"""
    url: str
    type: ActionType = field(default=ActionType.WEBHOOK, init=False)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "url": self.url}


@dataclass(frozen=True)
class EmailAction:
    target: str
    template: Optional[str] = None
    type: ActionType = field(default=ActionType.EMAIL, init=False)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "target": self.target, "template": self.template}


@dataclass(frozen=True)
class SmsAction:
    target: str
    template: Optional[str] = None
    type: ActionType = field(default=ActionType.SMS, init=False)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "target": self.target, "template": self.template}


@dataclass(frozen=True)
class CustomAction:
    """Invoke a handler registered with the dispatcher under handler_ref"""
    handler_ref: str
    type: ActionType = field(default=ActionType.CUSTOM, init=False)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "handler_ref": self.handler_ref}


AlertAction = Union[NotificationAction, WebhookAction, EmailAction, SmsAction, CustomAction]


def action_from_dict(data: Dict[str, Any]) -> AlertAction:
    if not isinstance(data, dict):
        raise InvalidRuleError("Action must be an object")
    
    kind = _enum_value(ActionType, data.get("type"), "action type")
    target = data.get("target")
    
    if kind == ActionType.NOTIFICATION:
        return NotificationAction(target=target or "dashboard")
    if kind == ActionType.WEBHOOK:
        url = data.get("url") or target
        if not url:
            raise InvalidRuleError("Webhook action needs a url")
        return WebhookAction(url=url)
    if kind == ActionType.CUSTOM:
        ref = data.get("handler_ref") or data.get("handlerRef") or target
        if not ref:
            raise InvalidRuleError("Custom action needs a handler_ref")
        return CustomAction(handler_ref=ref)
    
    if not target:
        raise InvalidRuleError(f"{kind.value} action needs a target")
    if kind == ActionType.EMAIL:
        return EmailAction(target=target, template=data.get("template"))
    return SmsAction(target=target, template=data.get("template"))


# =============================================================================
# Rules
# =============================================================================

@dataclass
class AlertRule:
    """
    Operator-defined alert rule.
    
    Example:
        "Alert me when P95 response time > 1000ms, at most every 15 minutes"
    
    last_triggered_at is the only state carried between evaluations.
    try_trigger() checks and advances it atomically.
    """
    id: str
    name: str
    condition: AlertCondition
    actions: List[AlertAction] = field(default_factory=list)
    description: str = ""
    enabled: bool = True
    cooldown_minutes: int = 15
    severity: Optional[AlertSeverity] = None
    last_triggered_at: Optional[datetime] = None
    trigger_count: int = 0
    created_at: datetime = field(default_factory=utc_now)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)
    
    def __post_init__(self):
        if not self.id:
            self.id = f"rule_{uuid.uuid4().hex[:8]}"
        if not self.name:
            self.name = self.id
        if self.cooldown_minutes < 0:
            raise InvalidRuleError("cooldown_minutes must be >= 0")
        if self.last_triggered_at is not None:
            self.last_triggered_at = to_utc(self.last_triggered_at)
        self.created_at = to_utc(self.created_at)
    
    def can_trigger(self, now: datetime) -> bool:
        """Check if cooldown has elapsed"""
        if self.last_triggered_at is None:
            return True
        return to_utc(now) - to_utc(self.last_triggered_at) >= timedelta(minutes=self.cooldown_minutes)
    
    def try_trigger(self, now: datetime) -> bool:
        """Claim this cooldown window. Only one caller per window wins."""
        with self._lock:
            if not self.can_trigger(now):
                return False
            self.last_triggered_at = to_utc(now)
            self.trigger_count += 1
            return True
    
    def reset(self) -> None:
        """Forget the last trigger so the next evaluation may fire"""
        with self._lock:
            self.last_triggered_at = None
    
    def primary_condition(self) -> ThresholdCondition:
        """First threshold leaf, depth first"""
        return self.condition.leaves()[0]
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "condition": self.condition.to_dict(),
            "actions": [a.to_dict() for a in self.actions],
            "enabled": self.enabled,
            "cooldown_minutes": self.cooldown_minutes,
            "severity": self.severity.value if self.severity else None,
            "last_triggered_at": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
            "trigger_count": self.trigger_count,
            "created_at": self.created_at.isoformat(),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertRule":
        if "condition" not in data:
            raise InvalidRuleError("Rule needs a condition")
        
        severity = data.get("severity")
        last = data.get("last_triggered_at", data.get("lastTriggered"))
        cooldown = data.get("cooldown_minutes", data.get("cooldownPeriod", 15))
        
        try:
            return cls(
                id=data.get("id", ""),
                name=data.get("name", ""),
                description=data.get("description", ""),
                condition=condition_from_dict(data["condition"]),
                actions=[action_from_dict(a) for a in data.get("actions", [])],
                enabled=bool(data.get("enabled", True)),
                cooldown_minutes=int(cooldown),
                severity=_enum_value(AlertSeverity, severity, "severity") if severity else None,
                last_triggered_at=datetime.fromisoformat(last.replace("Z", "+00:00")) if isinstance(last, str) else last,
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, InvalidRuleError):
                raise
            raise InvalidRuleError(str(e)) from e


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class AlertEvent:
    """
    A triggered alert.
    
    This is what gets dispatched to channels and kept in history.
    """
    rule_id: str
    rule_name: str
    resource_id: str
    resource_name: str
    metric: str
    operator: str
    value: float
    threshold: float
    timestamp: datetime
    severity: AlertSeverity
    message: str
    id: str = field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:8]}")
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "metric": self.metric,
            "operator": self.operator,
            "value": round(self.value, 4),
            "threshold": self.threshold,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "message": self.message,
        }


def determine_severity(rule: AlertRule) -> AlertSeverity:
    """
    Severity for a triggered rule.
    
    The rule's own severity wins. Otherwise a name-based approximation:
    error/fail metrics are critical, response metrics over a limit are
    errors, everything else is a warning.
    """
    if rule.severity is not None:
        return rule.severity
    
    leaf = rule.primary_condition()
    metric = leaf.metric.lower()
    if "error" in metric or "fail" in metric:
        return AlertSeverity.CRITICAL
    if "response" in metric and leaf.operator == AlertOperator.GT:
        return AlertSeverity.ERROR
    return AlertSeverity.WARNING
