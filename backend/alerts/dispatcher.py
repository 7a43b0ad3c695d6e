"""
Alert Dispatcher
Runs every action of a triggered event, each in isolation.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Any

from core.logging import get_logger
from .models import ActionType, AlertAction, AlertEvent
from .channels import (
    CustomChannel,
    GatewayChannel,
    LoggingGateway,
    MessageGateway,
    NotificationChannel,
    WebhookChannel,
)

logger = get_logger("alerts.dispatcher")


class Channel(Protocol):
    async def send(self, event: AlertEvent, action: AlertAction) -> None:
        ...


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one action for one event"""
    action: ActionType
    ok: bool
    error: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action.value, "ok": self.ok, "error": self.error}


class AlertDispatcher:
    """
    Fans an event out to its actions.
    
    Actions run concurrently. A failing action is logged and reported in
    its outcome; it never stops sibling actions and never raises out of
    dispatch().
    
    Usage:
        dispatcher = AlertDispatcher.create(gateway=my_gateway)
        dispatcher.custom.register("pager", page_oncall)
        outcomes = await dispatcher.dispatch(event, rule.actions)
    """
    
    def __init__(self, channels: Dict[ActionType, Channel]):
        self._channels = dict(channels)
        self._stats = {"dispatched": 0, "delivered": 0, "failed": 0}
    
    @classmethod
    def create(
        cls,
        gateway: MessageGateway = None,
        webhook_timeout: Optional[float] = None,
        notification_queue_size: int = 1000,
        handlers: Dict[str, Any] = None,
    ) -> "AlertDispatcher":
        gateway = gateway or LoggingGateway()
        return cls({
            ActionType.NOTIFICATION: NotificationChannel(maxsize=notification_queue_size),
            ActionType.WEBHOOK: WebhookChannel(timeout=webhook_timeout),
            ActionType.EMAIL: GatewayChannel(ActionType.EMAIL, gateway),
            ActionType.SMS: GatewayChannel(ActionType.SMS, gateway),
            ActionType.CUSTOM: CustomChannel(handlers),
        })
    
    def channel(self, action_type: ActionType) -> Optional[Channel]:
        return self._channels.get(action_type)
    
    @property
    def notifications(self) -> NotificationChannel:
        return self._channels[ActionType.NOTIFICATION]
    
    @property
    def custom(self) -> CustomChannel:
        return self._channels[ActionType.CUSTOM]
    
    async def dispatch(self, event: AlertEvent, actions: List[AlertAction]) -> List[ActionOutcome]:
        if not actions:
            return []
        self._stats["dispatched"] += 1
        return list(await asyncio.gather(*(self._run(event, a) for a in actions)))
    
    async def _run(self, event: AlertEvent, action: AlertAction) -> ActionOutcome:
        extra = {"event_id": event.id, "rule_id": event.rule_id, "action": action.type.value}
        channel = self._channels.get(action.type)
        if channel is None:
            self._stats["failed"] += 1
            logger.warning("No channel configured for %s actions", action.type.value, extra=extra)
            return ActionOutcome(action.type, False, "no channel configured")
        
        try:
            await channel.send(event, action)
        except Exception as e:
            self._stats["failed"] += 1
            logger.warning(
                "Alert action %s failed for rule %s: %s", action.type.value, event.rule_id, e,
                extra=extra,
            )
            return ActionOutcome(action.type, False, str(e) or type(e).__name__)
        
        self._stats["delivered"] += 1
        return ActionOutcome(action.type, True)
    
    def stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "notification_queue": self.notifications.qsize() if ActionType.NOTIFICATION in self._channels else 0,
        }
