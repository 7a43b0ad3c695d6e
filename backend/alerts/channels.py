"""
Notification Channels
One channel per action type. Each exposes `async send(event, action)`
and raises on failure; isolation is the dispatcher's job.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Protocol, Union

import requests

from core.logging import get_logger
from .models import AlertEvent, EmailAction, SmsAction, ActionType

logger = get_logger("alerts.channels")

CustomHandler = Callable[[AlertEvent], Union[None, Awaitable[None]]]


class UnknownHandlerError(LookupError):
    """A custom action references a handler that was never registered"""


# =============================================================================
# Local notifications
# =============================================================================

class NotificationChannel:
    """
    In-process notification queue.
    
    Consumed by the live alert stream. Best effort: when the queue is
    full the oldest waiting notification is dropped to make room.
    """
    
    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
    
    async def send(self, event: AlertEvent, action) -> None:
        if self._queue.maxsize > 0 and self._queue.full():
            stale = self._queue.get_nowait()
            self.dropped += 1
            logger.warning("Notification queue full, dropped %s", stale.id)
        self._queue.put_nowait(event)
    
    async def get_event(self, timeout: float = None) -> Optional[AlertEvent]:
        try:
            if timeout:
                return await asyncio.wait_for(self._queue.get(), timeout)
            return await self._queue.get()
        except asyncio.TimeoutError:
            return None
    
    def qsize(self) -> int:
        return self._queue.qsize()


# =============================================================================
# Webhook
# =============================================================================

class WebhookChannel:
    """
    Single synchronous POST of the event JSON, run off the event loop.
    
    No retries. Timeout is whatever the caller configured (None = wait).
    """
    
    def __init__(self, session: requests.Session = None, timeout: Optional[float] = None):
        self._session = session or requests.Session()
        self._timeout = timeout
    
    async def send(self, event: AlertEvent, action) -> None:
        await asyncio.to_thread(self._post, action.url, event.to_dict())
    
    def _post(self, url: str, payload: dict) -> None:
        resp = self._session.post(url, json=payload, timeout=self._timeout)
        resp.raise_for_status()


# =============================================================================
# Email / SMS
# =============================================================================

@dataclass(frozen=True)
class OutboundMessage:
    """Payload handed to an email/SMS gateway"""
    channel: ActionType
    target: str
    subject: str
    body: str
    event_id: str


class MessageGateway(Protocol):
    def send(self, message: OutboundMessage) -> None:
        ...


class LoggingGateway:
    """Gateway that only records what would have been sent"""
    
    def __init__(self):
        self.sent = []
    
    def send(self, message: OutboundMessage) -> None:
        self.sent.append(message)
        logger.info(
            "%s to %s: %s", message.channel.value, message.target, message.subject,
            extra={"event_id": message.event_id, "action": message.channel.value},
        )


def render_message(event: AlertEvent, template: Optional[str] = None) -> str:
    """
    Message body for an event.
    
    Templates use str.format fields of the event dict:
        "{rule_name} on {resource_name}: {metric}={value}"
    """
    fields = event.to_dict()
    if template:
        try:
            return template.format_map(fields)
        except (KeyError, IndexError, ValueError) as e:
            logger.warning("Bad alert template %r: %s", template, e)
    return (
        f"{event.message}\n"
        f"Resource: {event.resource_name}\n"
        f"{event.metric} {event.operator} {event.threshold} (value: {event.value:.2f})\n"
        f"At: {event.timestamp.isoformat()}"
    )


class GatewayChannel:
    """Builds email/SMS payloads and submits them to a gateway"""
    
    def __init__(self, channel: ActionType, gateway: MessageGateway):
        self._channel = channel
        self._gateway = gateway
    
    def build(self, event: AlertEvent, action: Union[EmailAction, SmsAction]) -> OutboundMessage:
        subject = f"[{event.severity.value.upper()}] {event.rule_name}"
        body = render_message(event, action.template)
        if self._channel == ActionType.SMS:
            body = f"{subject}: {body}"
        return OutboundMessage(
            channel=self._channel,
            target=action.target,
            subject=subject,
            body=body,
            event_id=event.id,
        )
    
    async def send(self, event: AlertEvent, action) -> None:
        message = self.build(event, action)
        await asyncio.to_thread(self._gateway.send, message)


# =============================================================================
# Custom handlers
# =============================================================================

class CustomChannel:
    """
    Registry of operator-supplied handlers.
    
    Rules only store a handler_ref; the handler itself is injected here.
    Coroutine handlers are awaited, plain callables run in a worker thread.
    """
    
    def __init__(self, handlers: Dict[str, CustomHandler] = None):
        self._handlers: Dict[str, CustomHandler] = dict(handlers or {})
    
    def register(self, ref: str, handler: CustomHandler) -> None:
        self._handlers[ref] = handler
    
    def unregister(self, ref: str) -> bool:
        return self._handlers.pop(ref, None) is not None
    
    def handlers(self):
        return sorted(self._handlers)
    
    async def send(self, event: AlertEvent, action) -> None:
        handler = self._handlers.get(action.handler_ref)
        if handler is None:
            raise UnknownHandlerError(f"No handler registered for {action.handler_ref!r}")
        
        if inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(getattr(handler, "__call__", None)):
            await handler(event)
            return
        result = await asyncio.to_thread(handler, event)
        if inspect.isawaitable(result):
            await result
