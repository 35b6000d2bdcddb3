"""
Gateway Events - Tagged Variants of Everything the Session Reports
===================================================================

The WhatsApp gateway pushes these onto a single asyncio.Queue; the
dispatcher consumes them in order.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class QrCodeReceived:
    """A new pairing code is on screen and must be scanned."""
    code: str


@dataclass(frozen=True)
class SessionReady:
    """Chats loaded, the session can send and receive."""


@dataclass(frozen=True)
class AuthFailure:
    reason: str


@dataclass(frozen=True)
class Disconnected:
    reason: str


@dataclass(frozen=True)
class MessageReceived:
    """
    Inbound chat message.

    sender is the gateway chat id, e.g. "573001112233@c.us".
    """
    sender: str
    body: str
    received_at: datetime = field(default_factory=datetime.now)

    @property
    def contact_id(self) -> str:
        """Sender without the chat-server suffix."""
        return self.sender.split("@", 1)[0]


GatewayEvent = Union[QrCodeReceived, SessionReady, AuthFailure, Disconnected, MessageReceived]
