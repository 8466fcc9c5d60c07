"""Repository for direct messages.

``MessageRepository`` is a stateless facade over a message store. It checks
inputs, runs each operation as one store transaction and turns the flat
message table into per-correspondent conversations.

Expected misses (unknown ids, invalid addresses, empty input) are reported
through ``None``, ``False`` or an empty mapping. Store failures propagate as
``StoreError``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone

import structlog

from message_store.models import Conversations, Message, MessageUpdate
from message_store.store import SQLiteMessageStore
from message_store.validation import EmailValidator, is_valid_email_syntax

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRepository:
    """Create, read, update and delete direct messages and group them by correspondent."""

    def __init__(
        self,
        store: SQLiteMessageStore,
        email_validator: EmailValidator = is_valid_email_syntax,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Create a repository.

        Args:
            store: Store handle every operation runs against.
            email_validator: Predicate deciding whether an address is usable.
            clock: Source of the timestamp recorded when messages are read.
        """

        self._store = store
        self._is_valid_email = email_validator
        self._clock = clock or _utcnow

    def create(self, message: Message | None) -> Message | None:
        """Persist a new message.

        Any id on the input is ignored; the store assigns a fresh one.

        Returns:
            The stored message including its id, or None if no message was given.
        """

        if message is None:
            return None
        with self._store.session() as session:
            created = session.insert(message.model_copy(update={"id": None}))
        logger.info("message_created", message_id=created.id)
        return created

    def read(self, message_id: int) -> Message | None:
        with self._store.session() as session:
            return session.get(message_id)

    def update(self, request: MessageUpdate | None) -> bool:
        """Replace the content of an existing message.

        Author, recipient, creation date and read state are not part of
        ``MessageUpdate`` and therefore never change here.
        """

        if request is None:
            return False
        with self._store.session() as session:
            updated = session.update_content(request.id, request.content)
        if not updated:
            logger.debug("message_update_missing", message_id=request.id)
            return False
        logger.info("message_updated", message_id=request.id)
        return True

    def delete(self, message_id: int) -> bool:
        with self._store.session() as session:
            deleted = session.delete(message_id)
        if deleted:
            logger.info("message_deleted", message_id=message_id)
        return deleted

    def count(self) -> int:
        with self._store.session() as session:
            return session.count()

    def get_all_messages_for_user(self, email: str | None) -> Conversations:
        """Group every message a user sent or received by the other party.

        Args:
            email: Address of the user whose conversations are requested.

        Returns:
            Mapping of correspondent address to that conversation's messages,
            oldest first. Messages created at the same instant keep their
            insertion order. An invalid or empty address yields an empty
            mapping, the same as a user without messages.
        """

        if not email or not self._is_valid_email(email):
            logger.debug("conversations_invalid_email", email=email)
            return {}

        with self._store.session() as session:
            messages = session.find_by_participant(email)

        conversations: Conversations = {}
        for message in messages:
            # A message to oneself lands under the user's own address.
            conversations.setdefault(message.correspondent_of(email), []).append(message)

        for thread in conversations.values():
            thread.sort(key=lambda m: m.create_date)

        logger.debug(
            "conversations_loaded",
            email=email,
            correspondents=len(conversations),
            messages=len(messages),
        )
        return conversations

    def delete_all_messages_for_user(self, email: str | None) -> bool:
        """Delete every message a user sent or received.

        Returns:
            True if at least one message was deleted. False for an invalid
            address or a user without messages.
        """

        if not email or not self._is_valid_email(email):
            logger.debug("purge_invalid_email", email=email)
            return False

        with self._store.session() as session:
            messages = session.find_by_participant(email)
            if not messages:
                return False
            deleted = session.delete_many(m.id for m in messages if m.id is not None)

        logger.info("user_messages_deleted", email=email, deleted=deleted)
        return True

    def messages_as_read(self, message_ids: Sequence[int] | None) -> bool:
        """Mark the given messages as read.

        Unknown ids are ignored. Messages that are already read keep their
        original read date.

        Returns:
            True if any of the ids matched a stored message, whether or not
            its state changed.
        """

        if not message_ids:
            return False

        with self._store.session() as session:
            found = session.find_by_ids(message_ids)
            if not found:
                logger.debug("mark_read_nothing_found", requested=len(message_ids))
                return False
            changed = session.mark_read(
                [m.id for m in found if m.id is not None and not m.read],
                self._clock(),
            )

        logger.info("messages_marked_read", found=len(found), changed=changed)
        return True
