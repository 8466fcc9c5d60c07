"""Message Store - persistence and retrieval for direct messages.

This package stores messages exchanged between users identified by email
address and groups a user's messages into per-correspondent conversations.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from message_store.config import Settings, get_settings
from message_store.models import Message, MessageUpdate
from message_store.repository import MessageRepository
from message_store.store import SQLiteMessageStore

__all__ = [
    "Message",
    "MessageRepository",
    "MessageUpdate",
    "SQLiteMessageStore",
    "Settings",
    "get_settings",
    "__version__",
    "__author__",
]
