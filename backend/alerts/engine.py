import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Any, Set

from analytics.aggregator import aggregate
from analytics.models import AdvancedMetrics
from core.buffer import ResultStore
from core.logging import get_logger
from core.models import ResourceDescriptor, to_utc, utc_now
from .dispatcher import AlertDispatcher
from .evaluator import evaluate_condition, metric_value
from .history import AlertHistory
from .models import (
    AlertEvent,
    AlertOperator,
    AlertRule,
    NotificationAction,
    ThresholdCondition,
    determine_severity,
)

logger = get_logger("alerts.engine")

Clock = Callable[[], datetime]


@dataclass
class _ResourceRules:
    rules: Dict[str, AlertRule] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class AlertEngine:
    def __init__(
        self,
        store: ResultStore,
        dispatcher: AlertDispatcher,
        history_size: int = 100,
        dispatch_deadline: float = 10.0,
        skip_empty_windows: bool = False,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._history = AlertHistory(maxlen=history_size)
        self._resources: Dict[str, _ResourceRules] = {}
        self._resources_lock = threading.Lock()
        self._dispatch_deadline = dispatch_deadline
        self._skip_empty = skip_empty_windows
        self._clock = clock
        self._background: Set[asyncio.Task] = set()
        self._stats = {
            "evaluations": 0,
            "triggers": 0,
            "suppressed": 0,
            "rule_errors": 0,
            "start_time": datetime.now()
        }
    
    @property
    def dispatcher(self) -> AlertDispatcher:
        return self._dispatcher
    
    def _resource(self, resource_id: str) -> _ResourceRules:
        with self._resources_lock:
            state = self._resources.get(resource_id)
            if state is None:
                state = _ResourceRules()
                self._resources[resource_id] = state
            return state
    
    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------
    
    def calculate_advanced_metrics(self, resource_id: str, endpoints: List[str] = None) -> AdvancedMetrics:
        return aggregate(self._store.get_results(resource_id), endpoints)
    
    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------
    
    def add_alert_rule(self, resource_id: str, rule: AlertRule) -> AlertRule:
        state = self._resource(resource_id)
        with state.lock:
            state.rules[rule.id] = rule
        return rule
    
    def remove_alert_rule(self, resource_id: str, rule_id: str) -> bool:
        state = self._resource(resource_id)
        with state.lock:
            return state.rules.pop(rule_id, None) is not None
    
    def get_alert_rules(self, resource_id: str) -> List[AlertRule]:
        state = self._resource(resource_id)
        with state.lock:
            return list(state.rules.values())
    
    def get_alert_rule(self, resource_id: str, rule_id: str) -> Optional[AlertRule]:
        state = self._resource(resource_id)
        with state.lock:
            return state.rules.get(rule_id)
    
    def enable_rule(self, resource_id: str, rule_id: str) -> bool:
        rule = self.get_alert_rule(resource_id, rule_id)
        if rule is None:
            return False
        rule.enabled = True
        return True
    
    def disable_rule(self, resource_id: str, rule_id: str) -> bool:
        rule = self.get_alert_rule(resource_id, rule_id)
        if rule is None:
            return False
        rule.enabled = False
        return True
    
    def create_default_alert_rules(self, resource_id: str) -> List[AlertRule]:
        notify = [NotificationAction(target="dashboard")]
        rules = [
            AlertRule(
                id=f"{resource_id}-response-time",
                name="High response time",
                description="P95 response time is above 1000 ms",
                condition=ThresholdCondition("response_time_p95", AlertOperator.GT, 1000),
                actions=list(notify),
                cooldown_minutes=15,
            ),
            AlertRule(
                id=f"{resource_id}-error-rate",
                name="High error rate",
                description="Error rate is above 5%",
                condition=ThresholdCondition("error_rate", AlertOperator.GT, 5),
                actions=list(notify),
                cooldown_minutes=15,
            ),
            AlertRule(
                id=f"{resource_id}-availability",
                name="Low availability",
                description="Availability is below 95%",
                condition=ThresholdCondition("availability", AlertOperator.LT, 95),
                actions=list(notify),
                cooldown_minutes=15,
            ),
        ]
        for rule in rules:
            self.add_alert_rule(resource_id, rule)
        return rules
    
    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------
    
    async def evaluate_alert_rules(
        self,
        resource_id: str,
        resource: ResourceDescriptor = None
    ) -> List[AlertEvent]:
        resource = resource or ResourceDescriptor(id=resource_id)
        self._stats["evaluations"] += 1
        
        results = self._store.get_results(resource_id)
        if not results and self._skip_empty:
            logger.debug("No results for %s, skipping evaluation", resource_id,
                         extra={"resource_id": resource_id})
            return []
        
        metrics = aggregate(results, resource.endpoints)
        now = to_utc(self._clock())
        triggered: List[AlertEvent] = []
        tasks: List[asyncio.Task] = []
        
        for rule in self.get_alert_rules(resource_id):
            if not rule.enabled:
                continue
            
            try:
                if not rule.can_trigger(now):
                    self._stats["suppressed"] += 1
                    logger.debug("Rule %s in cooldown", rule.id,
                                 extra={"resource_id": resource_id, "rule_id": rule.id})
                    continue
                event = self._evaluate_rule(rule, metrics, resource, now)
            except Exception:
                self._stats["rule_errors"] += 1
                logger.exception("Evaluating rule %s failed", rule.id,
                                 extra={"resource_id": resource_id, "rule_id": rule.id})
                continue
            
            if event is None:
                continue
            
            triggered.append(event)
            self._history.append(event)
            self._stats["triggers"] += 1
            logger.info("Rule %s triggered for %s: %s", rule.id, resource_id, event.message,
                        extra={"resource_id": resource_id, "rule_id": rule.id, "event_id": event.id})
            
            if rule.actions:
                tasks.append(asyncio.create_task(self._dispatcher.dispatch(event, list(rule.actions))))
        
        if tasks:
            await self._await_dispatch(resource_id, tasks)
        
        return triggered
    
    def _evaluate_rule(
        self,
        rule: AlertRule,
        metrics: AdvancedMetrics,
        resource: ResourceDescriptor,
        now: datetime
    ) -> Optional[AlertEvent]:
        if not evaluate_condition(rule.condition, metrics):
            return None
        
        leaf = rule.primary_condition()
        event = AlertEvent(
            rule_id=rule.id,
            rule_name=rule.name,
            resource_id=resource.id,
            resource_name=resource.display_name,
            metric=leaf.metric,
            operator=leaf.operator.value,
            value=metric_value(leaf.metric, metrics),
            threshold=leaf.value,
            timestamp=now,
            severity=determine_severity(rule),
            message=rule.description or f'Alert rule "{rule.name}" triggered',
        )
        
        # Another pass may have claimed the window since the cooldown check.
        if not rule.try_trigger(now):
            self._stats["suppressed"] += 1
            return None
        return event
    
    async def _await_dispatch(self, resource_id: str, tasks: List[asyncio.Task]) -> None:
        done, pending = await asyncio.wait(tasks, timeout=self._dispatch_deadline)
        
        for task in done:
            failed = [o for o in task.result() if not o.ok]
            if failed:
                logger.warning("%d alert action(s) failed for %s", len(failed), resource_id,
                               extra={"resource_id": resource_id})
        
        if pending:
            logger.warning(
                "%d dispatch(es) for %s still running after %.1fs",
                len(pending), resource_id, self._dispatch_deadline,
                extra={"resource_id": resource_id},
            )
            for task in pending:
                self._background.add(task)
                task.add_done_callback(self._background.discard)
    
    async def drain(self) -> None:
        """Wait for dispatches that outlived their evaluation deadline"""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
    
    # -------------------------------------------------------------------------
    # History & state
    # -------------------------------------------------------------------------
    
    def get_alert_history(self, resource_id: str, limit: int = None) -> List[AlertEvent]:
        return self._history.get(resource_id, limit)
    
    def clear_history(self, resource_id: str = None) -> None:
        self._history.clear(resource_id)
    
    def reset_states(self, resource_id: str = None) -> None:
        with self._resources_lock:
            targets = [self._resources[resource_id]] if resource_id in self._resources else []
            if resource_id is None:
                targets = list(self._resources.values())
        for state in targets:
            with state.lock:
                rules = list(state.rules.values())
            for rule in rules:
                rule.reset()
                rule.trigger_count = 0
    
    def resources(self) -> List[str]:
        with self._resources_lock:
            return list(self._resources.keys())
    
    def stats(self) -> Dict[str, Any]:
        uptime = (datetime.now() - self._stats["start_time"]).total_seconds()
        with self._resources_lock:
            states = list(self._resources.values())
        rules: List[AlertRule] = []
        for state in states:
            with state.lock:
                rules.extend(state.rules.values())
        return {
            **self._stats,
            "start_time": self._stats["start_time"].isoformat(),
            "uptime_seconds": round(uptime, 2),
            "resources": len(states),
            "rules_count": len(rules),
            "enabled_rules": sum(1 for r in rules if r.enabled),
            "history_size": self._history.count(),
            "pending_dispatches": len(self._background),
            "dispatcher": self._dispatcher.stats(),
        }
