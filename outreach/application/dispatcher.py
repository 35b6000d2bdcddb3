"""
Event Dispatcher - Single Consumer of Gateway Events
=====================================================

Pulls tagged events off the gateway queue in order and routes them:
messages to the inbound handler, lifecycle events to SessionStatus.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.events import (
    AuthFailure,
    Disconnected,
    GatewayEvent,
    MessageReceived,
    QrCodeReceived,
    SessionReady,
)
from .inbound import InboundMessageHandler

logger = logging.getLogger(__name__)


@dataclass
class SessionStatus:
    """What the HTTP surface shows about the WhatsApp session."""
    state: str = "starting"
    qr_code: Optional[str] = None
    last_error: str = ""

    @property
    def ready(self) -> bool:
        return self.state == "ready"


class EventDispatcher:
    """Routes gateway events; a failing handler never stops the loop."""

    def __init__(self, events: asyncio.Queue, inbound: InboundMessageHandler, status: SessionStatus):
        self._events = events
        self._inbound = inbound
        self.status = status

    async def run(self) -> None:
        """Consume events until cancelled."""
        while True:
            event = await self._events.get()
            try:
                await self.dispatch(event)
            finally:
                self._events.task_done()

    async def dispatch(self, event: GatewayEvent) -> None:
        try:
            if isinstance(event, MessageReceived):
                await self._inbound.handle(event)
            elif isinstance(event, QrCodeReceived):
                self.status.state = "waiting_for_qr"
                self.status.qr_code = event.code
                logger.info("New QR code generated. Scan it from /qr")
            elif isinstance(event, SessionReady):
                self.status.state = "ready"
                self.status.qr_code = None
                logger.info("WhatsApp client ready")
            elif isinstance(event, AuthFailure):
                self.status.state = "auth_failure"
                self.status.last_error = event.reason
                logger.error(f"Authentication failure: {event.reason}")
            elif isinstance(event, Disconnected):
                self.status.state = "disconnected"
                self.status.last_error = event.reason
                logger.warning(f"Client disconnected: {event.reason}")
            else:
                logger.warning(f"Unknown gateway event: {event!r}")
        except Exception as e:
            logger.exception(f"Error handling {type(event).__name__}: {e}")
