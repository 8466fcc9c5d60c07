"""Data models for Message Store.

This module contains Pydantic models for data validation and serialization.
"""

from message_store.models.message import Conversations, Message, MessageUpdate

__all__ = ["Conversations", "Message", "MessageUpdate"]
