"""
Inbound Message Handler - Allow-list, Confirmations and Interest Flow
======================================================================

Order of checks for every inbound message:
1. Sender not allow-listed      -> one log line, nothing else
2. SI/NO reply to a reminder    -> stored by the confirmation handler
3. Contact already resolved     -> logged, no reply
4. Classify                     -> positive flow / negative ack / ignored

Each outbound step of the positive flow runs in its own error boundary, so
a missing brochure never prevents the price list or the prompt.
"""

import asyncio
import base64
import logging
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from ..domain.classifier import Intent, IntentClassifier
from ..domain.conversation import ConversationState, ConversationStore
from ..domain.events import MessageReceived
from ..infrastructure.config import ConversationSettings
from ..infrastructure.importer import AllowListProvider
from ..infrastructure.whatsapp import MessagingGateway

logger = logging.getLogger(__name__)

ConfirmationHandler = Callable[[MessageReceived], Awaitable[bool]]


class InboundOutcome(Enum):
    """What happened to an inbound message."""
    SUPPRESSED = "suppressed"
    CONFIRMATION = "confirmation"
    ALREADY_RESOLVED = "already_resolved"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    UNRECOGNIZED = "unrecognized"


class InboundMessageHandler:
    """
    Runs the unset -> positive/negative conversation for allow-listed contacts.

    USAGE:
        handler = InboundMessageHandler(gateway, allowlist, classifier, states, settings.conversation)
        outcome = await handler.handle(MessageReceived(sender="573001112233@c.us", body="Sí"))
    """

    def __init__(
        self,
        gateway: MessagingGateway,
        allowlist: AllowListProvider,
        classifier: IntentClassifier,
        states: ConversationStore,
        settings: ConversationSettings,
        confirmation_handler: Optional[ConfirmationHandler] = None,
    ):
        self._gateway = gateway
        self._allowlist = allowlist
        self._classifier = classifier
        self._states = states
        self._settings = settings
        self._confirmation_handler = confirmation_handler

    async def handle(self, message: MessageReceived) -> InboundOutcome:
        contact_id = message.contact_id

        if not self._allowlist.contains(contact_id):
            logger.info(f"Number {contact_id} is not in the allow-list. Not replying.")
            return InboundOutcome.SUPPRESSED

        logger.info(f"Message from {contact_id}: {message.body[:50]!r}")

        if self._confirmation_handler and await self._confirmation_handler(message):
            return InboundOutcome.CONFIRMATION

        state = self._states.get(contact_id)
        if state.is_resolved:
            logger.info(f"Contact {contact_id} already registered as {state.value}")
            return InboundOutcome.ALREADY_RESOLVED

        intent = self._classifier.classify(message.body)

        if intent is Intent.AFFIRMATIVE:
            if not self._states.resolve(contact_id, ConversationState.POSITIVE):
                return InboundOutcome.ALREADY_RESOLVED
            await self._send_positive_flow(message.sender)
            return InboundOutcome.POSITIVE

        if intent is Intent.NEGATIVE:
            if not self._states.resolve(contact_id, ConversationState.NEGATIVE):
                return InboundOutcome.ALREADY_RESOLVED
            await self._attempt(
                "negative reply",
                lambda: self._gateway.send_text(message.sender, self._settings.negative_reply),
            )
            return InboundOutcome.NEGATIVE

        logger.info(f"Unclassified message from {contact_id}, ignored")
        return InboundOutcome.UNRECOGNIZED

    async def _send_positive_flow(self, chat_id: str) -> None:
        s = self._settings
        await self._attempt("positive reply", lambda: self._gateway.send_text(chat_id, s.positive_reply))
        await self._attempt("document", lambda: self._send_file(chat_id, s.document_path, s.document_caption))
        await self._attempt("image", lambda: self._send_file(chat_id, s.image_path, s.image_caption))
        await self._attempt(
            "choice prompt",
            lambda: self._gateway.send_choice_prompt(
                chat_id, s.choice_prompt, list(s.choice_options), s.choice_title, s.choice_footer
            ),
        )

    async def _send_file(self, chat_id: str, path: Path, caption: str) -> None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Media file not found: {path}")

        data = await asyncio.to_thread(path.read_bytes)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        payload = base64.b64encode(data).decode("ascii")
        await self._gateway.send_media(chat_id, mime_type, payload, caption)

    async def _attempt(self, step: str, send: Callable[[], Awaitable[None]]) -> bool:
        """Run one outbound step; failures are logged, never raised."""
        try:
            await send()
            return True
        except FileNotFoundError as e:
            logger.warning(f"Skipped {step}: {e}")
            return False
        except Exception as e:
            logger.exception(f"Failed to send {step}: {e}")
            return False
