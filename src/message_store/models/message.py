"""Direct message models.

A ``Message`` is the only persisted entity. Its author, recipient and
creation date are fixed once stored; the content can be replaced through a
``MessageUpdate``, and the read flag only moves from unread to read.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    # Naive timestamps are taken as UTC so aware and naive values compare.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Message(BaseModel):
    """A direct message between two users."""

    id: int | None = Field(default=None, description="Store-assigned message ID")
    author: str = Field(description="Sender email address")
    recipient: str = Field(description="Recipient email address")
    content: str = Field(default="", description="Message body")
    create_date: datetime = Field(
        default_factory=_utcnow,
        description="When the message was created",
    )
    read: bool = Field(default=False, description="Whether the recipient has read it")
    read_date: datetime | None = Field(
        default=None,
        description="When the message was marked as read",
    )

    @field_validator("create_date", "read_date")
    @classmethod
    def _normalize_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_read_state(self) -> Message:
        if self.read and self.read_date is None:
            raise ValueError("read_date is required once a message is read")
        if not self.read and self.read_date is not None:
            raise ValueError("read_date must be unset while a message is unread")
        return self

    def correspondent_of(self, email: str) -> str:
        """Return the other party of this message as seen by ``email``."""

        return self.recipient if self.author == email else self.author


class MessageUpdate(BaseModel):
    """Replacement values for the mutable fields of a stored message."""

    id: int = Field(description="ID of the message to update")
    content: str = Field(description="New message body")

    @classmethod
    def from_message(cls, message: Message) -> MessageUpdate:
        """Build an update request from a full message, keeping only mutable fields."""

        if message.id is None:
            raise ValueError("message has no id")
        return cls(id=message.id, content=message.content)


Conversations = dict[str, list[Message]]
