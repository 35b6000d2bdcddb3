from .messaging_provider import (
    GatewayError,
    MessagingGateway,
    RecipientNotRegisteredError,
    SeleniumGateway,
    render_choice_prompt,
)
from .session import SessionFolderError, ensure_session_folder
from .whatsapp_client import WhatsAppBlockedError, WhatsAppClient, WhatsAppClientError

__all__ = [
    "GatewayError",
    "MessagingGateway",
    "RecipientNotRegisteredError",
    "SeleniumGateway",
    "SessionFolderError",
    "WhatsAppBlockedError",
    "WhatsAppClient",
    "WhatsAppClientError",
    "ensure_session_folder",
    "render_choice_prompt",
]
