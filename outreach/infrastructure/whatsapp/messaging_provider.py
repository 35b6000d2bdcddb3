"""
Messaging Gateway - Abstraction Layer for WhatsApp Messaging
=============================================================

Provides a unified async interface for sending WhatsApp messages and
receiving session events. Currently backed by Selenium WhatsApp Web
automation; any other backend only has to implement MessagingGateway.

USAGE:
    gateway = SeleniumGateway(settings.whatsapp)
    await gateway.start()
    await gateway.send_text("573001112233", "Hola!")
    event = await gateway.events.get()
"""

import asyncio
import base64
import binascii
import logging
import mimetypes
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from selenium.common.exceptions import WebDriverException

from ...domain.events import (
    AuthFailure,
    Disconnected,
    GatewayEvent,
    MessageReceived,
    QrCodeReceived,
    SessionReady,
)
from ...domain.reminders import digits_only
from ..config import WhatsAppSettings
from .whatsapp_client import WhatsAppBlockedError, WhatsAppClient

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """A message could not be delivered."""
    pass


class RecipientNotRegisteredError(GatewayError):
    """The recipient number has no WhatsApp account."""
    pass


def render_choice_prompt(prompt: str, options: Sequence[str], title: str = "", footer: str = "") -> str:
    """
    Text rendition of a button prompt:

        *Información adicional*
        ¿Qué deseas hacer ahora?

        1. Ver más
        2. Contactar

        _Selecciona una opción_
    """
    lines = []
    if title:
        lines.append(f"*{title}*")
    lines.append(prompt)
    lines.append("")
    lines.extend(f"{i}. {option}" for i, option in enumerate(options, start=1))
    if footer:
        lines.append("")
        lines.append(f"_{footer}_")
    return "\n".join(lines)


class MessagingGateway(ABC):
    """
    Abstract base class for WhatsApp messaging backends.

    Session lifecycle and inbound messages are delivered as tagged events
    on `self.events`.
    """

    def __init__(self):
        self.events: "asyncio.Queue[GatewayEvent]" = asyncio.Queue()

    @abstractmethod
    async def start(self) -> None:
        """Open the session and begin producing events."""
        ...

    @abstractmethod
    async def is_known_contact(self, chat_id: str) -> bool:
        """True if the recipient has a WhatsApp account."""
        ...

    @abstractmethod
    async def send_text(self, chat_id: str, text: str) -> None:
        """Send a text message. Raises GatewayError on failure."""
        ...

    @abstractmethod
    async def send_media(self, chat_id: str, mime_type: str, base64_payload: str, caption: str = "") -> None:
        """Send a base64-encoded file. Raises GatewayError on failure."""
        ...

    @abstractmethod
    async def send_choice_prompt(
        self,
        chat_id: str,
        prompt: str,
        options: Sequence[str],
        title: str = "",
        footer: str = "",
    ) -> None:
        """Send a multiple-choice prompt. Raises GatewayError on failure."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources."""
        ...


class SeleniumGateway(MessagingGateway):
    """
    Selenium-based WhatsApp Web gateway.

    The synchronous WhatsAppClient runs in worker threads; a single lock
    keeps the one browser tab from being driven by two calls at once.
    """

    QR_POLL_SECONDS = 2

    def __init__(self, settings: WhatsAppSettings):
        super().__init__()
        self._settings = settings
        self._client: Optional[WhatsAppClient] = None
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    async def _call(self, fn, *args):
        async with self._lock:
            return await asyncio.to_thread(fn, *args)

    def _require_client(self) -> WhatsAppClient:
        if self._client is None:
            raise GatewayError("WhatsApp session not started")
        return self._client

    async def start(self) -> None:
        """Launch browser and open WhatsApp Web."""
        self._client = await asyncio.to_thread(
            WhatsAppClient, self._settings.profile_dir, self._settings.headless
        )
        self._task = asyncio.create_task(self._run_session(), name="whatsapp-session")

    async def _await_login(self) -> bool:
        client = self._require_client()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.login_timeout
        last_qr = None

        while loop.time() < deadline:
            if await self._call(client.is_logged_in):
                return True
            qr = await self._call(client.read_qr_code)
            if qr and qr != last_qr:
                last_qr = qr
                await self.events.put(QrCodeReceived(code=qr))
            await asyncio.sleep(self.QR_POLL_SECONDS)

        await self.events.put(AuthFailure(reason="Timed out waiting for QR scan"))
        return False

    async def _run_session(self) -> None:
        client = self._require_client()
        try:
            if not await self._await_login():
                return
            await self.events.put(SessionReady())

            while True:
                try:
                    messages = await self._call(client.read_unread_messages)
                except (WebDriverException, WhatsAppBlockedError):
                    raise
                except Exception as e:
                    logger.exception(f"Inbound poll failed: {e}")
                    messages = []

                for sender, body in messages:
                    await self.events.put(MessageReceived(sender=sender, body=body))

                await asyncio.sleep(self._settings.inbound_poll_interval)

        except WhatsAppBlockedError as e:
            await self.events.put(AuthFailure(reason=str(e)))
        except WebDriverException as e:
            await self.events.put(Disconnected(reason=str(e).strip() or type(e).__name__))

    async def _open_chat(self, chat_id: str) -> None:
        client = self._require_client()
        phone = digits_only(chat_id.split("@", 1)[0])
        if not await self._call(client.open_chat, phone):
            raise RecipientNotRegisteredError(f"Cannot open chat with {phone}")

    async def is_known_contact(self, chat_id: str) -> bool:
        try:
            await self._open_chat(chat_id)
            return True
        except RecipientNotRegisteredError:
            return False

    async def send_text(self, chat_id: str, text: str) -> None:
        await self._open_chat(chat_id)
        if not await self._call(self._require_client().send_message, text):
            raise GatewayError(f"Failed to send text to {chat_id}")

    async def send_media(self, chat_id: str, mime_type: str, base64_payload: str, caption: str = "") -> None:
        try:
            data = base64.b64decode(base64_payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise GatewayError(f"Malformed media payload: {e}") from e

        suffix = mimetypes.guess_extension(mime_type) or ""
        fd, path = tempfile.mkstemp(suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            await self._open_chat(chat_id)
            if not await self._call(self._require_client().send_attachment, path, caption):
                raise GatewayError(f"Failed to send {mime_type} to {chat_id}")
        finally:
            os.remove(path)

    async def send_choice_prompt(
        self,
        chat_id: str,
        prompt: str,
        options: Sequence[str],
        title: str = "",
        footer: str = "",
    ) -> None:
        # Personal WhatsApp accounts cannot send interactive buttons
        await self.send_text(chat_id, render_choice_prompt(prompt, options, title, footer))

    async def close(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._client:
            await asyncio.to_thread(self._client.close)
            self._client = None
