"""
Tests for action dispatch and per-channel failure isolation.
"""

import asyncio
from dataclasses import replace
from datetime import datetime

import pytest
import requests

from alerts import (
    ActionType,
    AlertDispatcher,
    AlertEvent,
    AlertSeverity,
    CustomAction,
    EmailAction,
    NotificationAction,
    SmsAction,
    WebhookAction,
)
from alerts.channels import NotificationChannel, WebhookChannel, render_message


@pytest.fixture
def event():
    return AlertEvent(
        rule_id="latency",
        rule_name="Slow payments",
        resource_id="payments-api",
        resource_name="Payments",
        metric="response_time_p95",
        operator="gt",
        value=1500.0,
        threshold=1000.0,
        timestamp=datetime(2026, 3, 2, 12, 30),
        severity=AlertSeverity.ERROR,
        message="P95 over budget",
    )


def dispatch(dispatcher, event, actions):
    return asyncio.run(dispatcher.dispatch(event, actions))


class FakeResponse:
    def __init__(self, status):
        self.status_code = status
    
    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    def __init__(self, status=200):
        self.status = status
        self.calls = []
    
    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        return FakeResponse(self.status)


class TestIsolation:
    
    def test_unreachable_webhook_does_not_block_notification(self, dispatcher, event):
        outcomes = dispatch(dispatcher, event, [
            WebhookAction(url="http://127.0.0.1:1/alerts"),
            NotificationAction(),
        ])
        
        webhook, notification = outcomes
        assert webhook.action == ActionType.WEBHOOK
        assert webhook.ok is False
        assert notification.action == ActionType.NOTIFICATION
        assert notification.ok is True
        assert dispatcher.notifications.qsize() == 1
    
    def test_failed_custom_handler_isolated(self, dispatcher, gateway, event):
        def broken(evt):
            raise RuntimeError("boom")
        
        dispatcher.custom.register("broken", broken)
        outcomes = dispatch(dispatcher, event, [
            CustomAction("broken"),
            EmailAction(target="ops@example.com"),
        ])
        
        assert [o.ok for o in outcomes] == [False, True]
        assert "boom" in outcomes[0].error
        assert len(gateway.sent) == 1
    
    def test_unknown_handler_reported(self, dispatcher, event):
        [outcome] = dispatch(dispatcher, event, [CustomAction("nobody")])
        assert outcome.ok is False
        assert "nobody" in outcome.error
    
    def test_missing_channel_reported(self, event):
        dispatcher = AlertDispatcher({})
        [outcome] = dispatch(dispatcher, event, [SmsAction(target="+15550100")])
        assert outcome.ok is False
    
    def test_no_actions(self, dispatcher, event):
        assert dispatch(dispatcher, event, []) == []


class TestNotificationQueue:
    
    def test_full_queue_keeps_newest(self, event):
        channel = NotificationChannel(maxsize=2)
        
        async def scenario():
            for n in range(4):
                await channel.send(replace(event, rule_id=f"rule-{n}"), NotificationAction())
            return [(await channel.get_event(timeout=0.1)).rule_id for _ in range(channel.qsize())]
        
        assert asyncio.run(scenario()) == ["rule-2", "rule-3"]
        assert channel.dropped == 2


class TestWebhook:
    
    def test_posts_serialized_event(self, event):
        session = FakeSession()
        channel = WebhookChannel(session=session, timeout=3)
        dispatcher = AlertDispatcher({ActionType.WEBHOOK: channel})
        
        [outcome] = dispatch(dispatcher, event, [WebhookAction(url="http://hooks/a")])
        
        assert outcome.ok
        assert session.calls == [{"url": "http://hooks/a", "json": event.to_dict(), "timeout": 3}]
    
    def test_error_status_is_failure(self, event):
        dispatcher = AlertDispatcher({ActionType.WEBHOOK: WebhookChannel(session=FakeSession(500))})
        [outcome] = dispatch(dispatcher, event, [WebhookAction(url="http://hooks/a")])
        assert outcome.ok is False
        assert "500" in outcome.error


class TestGatewayChannels:
    
    def test_email_payload(self, dispatcher, gateway, event):
        dispatch(dispatcher, event, [EmailAction(target="ops@example.com")])
        [message] = gateway.sent
        assert message.channel == ActionType.EMAIL
        assert message.target == "ops@example.com"
        assert message.subject == "[ERROR] Slow payments"
        assert "P95 over budget" in message.body
        assert message.event_id == event.id
    
    def test_sms_template(self, dispatcher, gateway, event):
        dispatch(dispatcher, event, [SmsAction(target="+15550100", template="{resource_name}: {metric}={value}")])
        [message] = gateway.sent
        assert message.channel == ActionType.SMS
        assert message.body.endswith("Payments: response_time_p95=1500.0")
    
    def test_bad_template_falls_back(self, event):
        body = render_message(event, "{no_such_field}")
        assert body.startswith("P95 over budget")


class TestCustomHandlers:
    
    def test_async_handler_awaited(self, dispatcher, event):
        seen = []
        
        async def record(evt):
            await asyncio.sleep(0)
            seen.append(evt.id)
        
        dispatcher.custom.register("record", record)
        [outcome] = dispatch(dispatcher, event, [CustomAction("record")])
        assert outcome.ok
        assert seen == [event.id]
    
    def test_sync_handler(self, dispatcher, event):
        seen = []
        dispatcher.custom.register("record", lambda evt: seen.append(evt.rule_id))
        dispatch(dispatcher, event, [CustomAction("record")])
        assert seen == ["latency"]
    
    def test_stats(self, dispatcher, event):
        dispatch(dispatcher, event, [NotificationAction(), CustomAction("missing")])
        stats = dispatcher.stats()
        assert stats["dispatched"] == 1
        assert stats["delivered"] == 1
        assert stats["failed"] == 1
