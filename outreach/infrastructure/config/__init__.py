from .settings import (
    AllowListSettings,
    ConversationSettings,
    ReminderSettings,
    Settings,
    WebSettings,
    WhatsAppSettings,
    get_settings,
)

__all__ = [
    "AllowListSettings",
    "ConversationSettings",
    "ReminderSettings",
    "Settings",
    "WebSettings",
    "WhatsAppSettings",
    "get_settings",
]
