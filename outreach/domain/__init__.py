# Domain Layer
# ============
# Pure business rules: intent classification, conversation states,
# reminder formatting and gateway event types. No I/O here.
from .classifier import Intent, IntentClassifier, normalize
from .conversation import ConversationState, ConversationStore, InMemoryConversationStore
from .events import (
    AuthFailure,
    Disconnected,
    GatewayEvent,
    MessageReceived,
    QrCodeReceived,
    SessionReady,
)
from .reminders import Confirmation, ReminderEvent, parse_confirmation

__all__ = [
    "AuthFailure",
    "Confirmation",
    "ConversationState",
    "ConversationStore",
    "Disconnected",
    "GatewayEvent",
    "InMemoryConversationStore",
    "Intent",
    "IntentClassifier",
    "MessageReceived",
    "QrCodeReceived",
    "ReminderEvent",
    "SessionReady",
    "normalize",
    "parse_confirmation",
]
