"""
Tests for rule parsing, cooldown bookkeeping and severity.
"""

from datetime import datetime, timedelta, timezone

import pytest

from alerts import (
    ActionType,
    AlertOperator,
    AlertRule,
    AlertSeverity,
    CompoundCondition,
    ConditionType,
    CustomAction,
    EmailAction,
    InvalidRuleError,
    NotificationAction,
    ThresholdCondition,
    WebhookAction,
    action_from_dict,
    condition_from_dict,
    determine_severity,
)
from core import MonitoringResult


def rule_for(metric, operator="gt", severity=None):
    return AlertRule(
        id="r1",
        name="rule",
        condition=ThresholdCondition(metric, AlertOperator(operator), 1),
        severity=severity,
    )


class TestConditionParsing:
    
    def test_threshold(self):
        cond = condition_from_dict({"type": "threshold", "metric": "error_rate", "operator": "GT", "value": "5"})
        assert cond == ThresholdCondition("error_rate", AlertOperator.GT, 5.0)
    
    def test_anomaly_and_trend_parse_as_thresholds(self):
        cond = condition_from_dict({"type": "trend", "metric": "error_rate", "operator": "gt", "value": 5})
        assert isinstance(cond, ThresholdCondition)
        assert cond.kind == ConditionType.TREND
    
    def test_compound_with_original_field_names(self):
        cond = condition_from_dict({
            "type": "compound",
            "compoundOperator": "or",
            "compoundRules": [
                {"metric": "error_rate", "operator": "gt", "value": 5},
                {"metric": "availability", "operator": "lt", "value": 95},
            ],
        })
        assert isinstance(cond, CompoundCondition)
        assert cond.operator.value == "or"
        assert len(cond.conditions) == 2
    
    @pytest.mark.parametrize("data", [
        {"type": "threshold", "metric": "x", "operator": "between", "value": 1},
        {"type": "threshold", "metric": "x", "operator": "gt"},
        {"type": "threshold", "metric": "x", "operator": "gt", "value": "lots"},
        {"type": "compound", "operator": "and", "conditions": []},
        {"type": "compound", "operator": "xor", "conditions": [{"metric": "x", "operator": "gt", "value": 1}]},
        {"type": "sideways"},
    ])
    def test_invalid(self, data):
        with pytest.raises(InvalidRuleError):
            condition_from_dict(data)


class TestActionParsing:
    
    def test_each_type(self):
        assert action_from_dict({"type": "notification"}) == NotificationAction()
        assert action_from_dict({"type": "webhook", "target": "http://h/x"}) == WebhookAction(url="http://h/x")
        assert action_from_dict({"type": "email", "target": "ops@example.com", "template": "{message}"}) == \
            EmailAction(target="ops@example.com", template="{message}")
        assert action_from_dict({"type": "sms", "target": "+15550100"}).type == ActionType.SMS
        assert action_from_dict({"type": "custom", "handlerRef": "pager"}) == CustomAction(handler_ref="pager")
    
    @pytest.mark.parametrize("data", [
        {"type": "webhook"},
        {"type": "email"},
        {"type": "custom"},
        {"type": "pigeon", "target": "roof"},
    ])
    def test_invalid(self, data):
        with pytest.raises(InvalidRuleError):
            action_from_dict(data)


class TestRule:
    
    def test_round_trip_keeps_definition(self):
        rule = AlertRule.from_dict({
            "id": "latency",
            "name": "Latency",
            "condition": {"type": "threshold", "metric": "response_time_p95", "operator": "gt", "value": 800},
            "actions": [{"type": "webhook", "url": "http://hooks/a"}],
            "cooldown_minutes": 5,
            "severity": "critical",
        })
        again = AlertRule.from_dict(rule.to_dict())
        assert again.condition == rule.condition
        assert again.actions == rule.actions
        assert again.cooldown_minutes == 5
        assert again.severity == AlertSeverity.CRITICAL
    
    def test_generated_id(self):
        rule = AlertRule(id="", name="", condition=ThresholdCondition("x", AlertOperator.GT, 1))
        assert rule.id.startswith("rule_")
        assert rule.name == rule.id
    
    def test_negative_cooldown_rejected(self):
        with pytest.raises(InvalidRuleError):
            AlertRule.from_dict({"condition": {"metric": "x", "operator": "gt", "value": 1}, "cooldown_minutes": -1})
    
    def test_try_trigger_claims_window_once(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        rule = rule_for("error_rate")
        rule.cooldown_minutes = 15
        
        assert rule.try_trigger(now) is True
        assert rule.try_trigger(now + timedelta(minutes=5)) is False
        assert rule.try_trigger(now + timedelta(minutes=15)) is True
        assert rule.last_triggered_at == now + timedelta(minutes=15)
        assert rule.trigger_count == 2
    
    def test_offset_last_triggered_compared_in_utc(self):
        rule = AlertRule.from_dict({
            "id": "latency",
            "condition": {"metric": "response_time_p95", "operator": "gt", "value": 1000},
            "cooldownPeriod": 15,
            "lastTriggered": "2026-01-01T14:00:00+02:00",
        })
        assert rule.last_triggered_at == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert rule.can_trigger(datetime(2026, 1, 1, 12, 10, tzinfo=timezone.utc)) is False
        assert rule.can_trigger(datetime(2026, 1, 1, 12, 15)) is True  # naive is read as UTC
    
    def test_zulu_last_triggered(self):
        rule = AlertRule.from_dict({
            "condition": {"metric": "error_rate", "operator": "gt", "value": 5},
            "lastTriggered": "2026-01-01T12:00:00Z",
        })
        assert rule.last_triggered_at.tzinfo is not None


class TestSeverity:
    
    @pytest.mark.parametrize("metric,operator,expected", [
        ("error_rate", "gt", AlertSeverity.CRITICAL),
        ("error_distribution.timeout", "gte", AlertSeverity.CRITICAL),
        ("failed_requests", "gt", AlertSeverity.CRITICAL),
        ("response_time_p95", "gt", AlertSeverity.ERROR),
        ("response_time_p95", "lt", AlertSeverity.WARNING),
        ("availability", "lt", AlertSeverity.WARNING),
    ])
    def test_heuristic(self, metric, operator, expected):
        assert determine_severity(rule_for(metric, operator)) == expected
    
    def test_explicit_severity_wins(self):
        assert determine_severity(rule_for("error_rate", severity=AlertSeverity.INFO)) == AlertSeverity.INFO
    
    def test_compound_uses_first_leaf(self):
        rule = AlertRule.from_dict({
            "condition": {
                "type": "compound",
                "operator": "and",
                "conditions": [
                    {"metric": "response_time_p99", "operator": "gt", "value": 2000},
                    {"metric": "error_rate", "operator": "gt", "value": 1},
                ],
            },
        })
        assert determine_severity(rule) == AlertSeverity.ERROR


class TestMonitoringResult:
    
    @pytest.mark.parametrize("raw", [
        "2026-03-02T12:00:00Z",
        "2026-03-02T14:00:00+02:00",
        "2026-03-02T12:00:00",
        1772452800,
        1772452800000,
        datetime(2026, 3, 2, 12, 0),
    ])
    def test_timestamps_normalized_to_utc(self, raw):
        result = MonitoringResult(timestamp=raw, success=True)
        assert result.timestamp == datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert result.timestamp.utcoffset() == timedelta(0)
    
    def test_blank_endpoint_goes_to_default(self):
        result = MonitoringResult(timestamp="2026-03-02T12:00:00Z", success=False, endpoint=" ")
        assert result.endpoint == "default"
