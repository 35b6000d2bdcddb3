from .database import (
    Database,
    EventStoreError,
    EventStoreSession,
    SqliteConversationStore,
)

__all__ = [
    "Database",
    "EventStoreError",
    "EventStoreSession",
    "SqliteConversationStore",
]
