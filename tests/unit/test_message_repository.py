"""Unit tests for the message repository."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from message_store.exceptions import StoreError
from message_store.models import Message, MessageUpdate
from message_store.repository import MessageRepository
from message_store.store import StoreSession

ALICE = "alice@example.com"
BOB = "bob@example.com"
CAROL = "carol@example.com"


def at(hour: int) -> datetime:
    return datetime(2025, 1, 1, hour, tzinfo=timezone.utc)


def _send(repo: MessageRepository, author: str, recipient: str, hour: int, content: str = "") -> Message:
    created = repo.create(
        Message(author=author, recipient=recipient, content=content, create_date=at(hour))
    )
    assert created is not None
    return created


class TestCrud:
    """Create, read, update, delete and count."""

    def test_create_returns_copy_with_id(self, repo) -> None:
        created = _send(repo, ALICE, BOB, 1, "hi bob")

        assert created.id is not None
        assert repo.read(created.id).model_dump() == created.model_dump()
        assert repo.count() == 1

    def test_create_none_is_rejected(self, repo) -> None:
        assert repo.create(None) is None
        assert repo.count() == 0

    def test_create_ignores_caller_supplied_id(self, repo) -> None:
        first = _send(repo, ALICE, BOB, 1)
        second = repo.create(Message(id=first.id, author=BOB, recipient=ALICE))

        assert second.id != first.id
        assert repo.count() == 2

    def test_read_unknown_id(self, repo) -> None:
        assert repo.read(404) is None

    def test_update_changes_content_only(self, repo, read_time) -> None:
        original = _send(repo, ALICE, BOB, 1, "draft")
        tampered = original.model_copy(
            update={
                "author": "mallory@example.com",
                "recipient": CAROL,
                "content": "final",
                "create_date": at(9),
                "read": True,
                "read_date": read_time,
            }
        )

        assert repo.update(MessageUpdate.from_message(tampered)) is True

        stored = repo.read(original.id)
        assert stored.content == "final"
        assert stored.author == ALICE
        assert stored.recipient == BOB
        assert stored.create_date == at(1)
        assert stored.read is False
        assert stored.read_date is None

    def test_update_rejects_missing_input(self, repo) -> None:
        assert repo.update(None) is False
        assert repo.update(MessageUpdate(id=404, content="x")) is False

    def test_delete(self, repo) -> None:
        created = _send(repo, ALICE, BOB, 1)

        assert repo.delete(created.id) is True
        assert repo.read(created.id) is None
        assert repo.delete(created.id) is False
        assert repo.count() == 0

    def test_deleted_ids_are_not_reused(self, repo) -> None:
        first = _send(repo, ALICE, BOB, 1)
        repo.delete(first.id)
        second = _send(repo, ALICE, BOB, 2)

        assert second.id > first.id


class TestConversations:
    """Grouping a user's messages by correspondent."""

    def test_groups_by_correspondent_in_date_order(self, repo) -> None:
        # Inserted out of chronological order on purpose.
        m2 = _send(repo, BOB, ALICE, 2)
        m1 = _send(repo, ALICE, BOB, 1)
        m3 = _send(repo, ALICE, CAROL, 3)
        _send(repo, BOB, CAROL, 4)

        conversations = repo.get_all_messages_for_user(ALICE)

        assert set(conversations) == {BOB, CAROL}
        assert [m.id for m in conversations[BOB]] == [m1.id, m2.id]
        assert [m.id for m in conversations[CAROL]] == [m3.id]

    def test_view_from_the_other_side(self, repo) -> None:
        _send(repo, ALICE, BOB, 1)
        _send(repo, CAROL, BOB, 2)

        conversations = repo.get_all_messages_for_user(BOB)

        assert set(conversations) == {ALICE, CAROL}

    def test_sequences_are_non_decreasing(self, repo) -> None:
        for hour in (5, 3, 8, 1, 3):
            _send(repo, ALICE, BOB, hour)

        dates = [m.create_date for m in repo.get_all_messages_for_user(ALICE)[BOB]]

        assert dates == sorted(dates)

    def test_ties_keep_insertion_order(self, repo) -> None:
        first = _send(repo, ALICE, BOB, 1, "first")
        second = _send(repo, BOB, ALICE, 1, "second")
        third = _send(repo, ALICE, BOB, 1, "third")

        thread = repo.get_all_messages_for_user(ALICE)[BOB]

        assert [m.id for m in thread] == [first.id, second.id, third.id]

    def test_self_addressed_messages_key_on_own_address(self, repo) -> None:
        note = _send(repo, ALICE, ALICE, 1, "note to self")

        conversations = repo.get_all_messages_for_user(ALICE)

        assert [m.id for m in conversations[ALICE]] == [note.id]

    @pytest.mark.parametrize("email", [None, "", "not-an-email"])
    def test_invalid_email_yields_empty_mapping(self, repo, email) -> None:
        _send(repo, ALICE, BOB, 1)

        assert repo.get_all_messages_for_user(email) == {}

    def test_user_without_messages(self, repo) -> None:
        _send(repo, ALICE, BOB, 1)

        assert repo.get_all_messages_for_user(CAROL) == {}

    def test_injected_validator_is_used(self, store) -> None:
        repo = MessageRepository(store, email_validator=lambda email: True)
        repo.create(Message(author="alice", recipient="bob", create_date=at(1)))

        assert set(repo.get_all_messages_for_user("alice")) == {"bob"}

    def test_single_label_domain_is_accepted(self, repo) -> None:
        _send(repo, "ops@mail", BOB, 1)

        assert set(repo.get_all_messages_for_user("ops@mail")) == {BOB}
        assert repo.delete_all_messages_for_user("ops@mail") is True


class TestMessagesAsRead:
    """Batch read-marking."""

    @pytest.mark.parametrize("ids", [None, []])
    def test_empty_input(self, repo, ids) -> None:
        assert repo.messages_as_read(ids) is False

    def test_unknown_ids(self, repo) -> None:
        _send(repo, ALICE, BOB, 1)

        assert repo.messages_as_read([404, 405]) is False

    def test_marks_unread_messages(self, repo, read_time) -> None:
        m1 = _send(repo, ALICE, BOB, 1)
        m2 = _send(repo, BOB, ALICE, 2)

        assert repo.messages_as_read([m1.id, m2.id, 404]) is True

        for message_id in (m1.id, m2.id):
            stored = repo.read(message_id)
            assert stored.read is True
            assert stored.read_date == read_time

    def test_repeat_is_idempotent(self, store, read_time) -> None:
        now = read_time
        repo = MessageRepository(store, clock=lambda: now)
        created = _send(repo, ALICE, BOB, 1)
        assert repo.messages_as_read([created.id]) is True

        now = read_time + timedelta(days=1)

        assert repo.messages_as_read([created.id]) is True
        assert repo.read(created.id).read_date == read_time

    def test_leaves_other_messages_untouched(self, repo) -> None:
        target = _send(repo, ALICE, BOB, 1)
        other = _send(repo, ALICE, BOB, 2)

        repo.messages_as_read([target.id])

        assert repo.read(other.id).read is False

    def test_failure_leaves_messages_unread(self, store) -> None:
        def broken_clock() -> datetime:
            raise RuntimeError("clock unavailable")

        repo = MessageRepository(store, clock=broken_clock)
        created = _send(repo, ALICE, BOB, 1)

        with pytest.raises(RuntimeError):
            repo.messages_as_read([created.id])

        assert repo.read(created.id).read is False


class TestDeleteAllMessagesForUser:
    """Bulk deletion by participant."""

    @pytest.mark.parametrize("email", [None, "", "not-an-email"])
    def test_invalid_email(self, repo, email) -> None:
        assert repo.delete_all_messages_for_user(email) is False

    def test_user_without_messages(self, repo) -> None:
        _send(repo, ALICE, BOB, 1)

        assert repo.delete_all_messages_for_user(CAROL) is False
        assert repo.count() == 1

    def test_deletes_sent_and_received(self, repo) -> None:
        _send(repo, ALICE, BOB, 1)
        _send(repo, BOB, ALICE, 2)
        _send(repo, CAROL, ALICE, 3)
        kept = _send(repo, BOB, CAROL, 4)

        assert repo.delete_all_messages_for_user(ALICE) is True

        assert repo.get_all_messages_for_user(ALICE) == {}
        assert repo.count() == 1
        assert repo.read(kept.id) is not None

    def test_second_purge_reports_nothing_deleted(self, repo) -> None:
        _send(repo, ALICE, BOB, 1)

        assert repo.delete_all_messages_for_user(ALICE) is True
        assert repo.delete_all_messages_for_user(ALICE) is False

    def test_failure_keeps_every_message(self, repo, monkeypatch: pytest.MonkeyPatch) -> None:
        sent = [_send(repo, ALICE, BOB, 1), _send(repo, BOB, ALICE, 2), _send(repo, CAROL, ALICE, 3)]
        real_delete = StoreSession.delete

        def delete_then_fail(session: StoreSession, message_ids) -> int:
            # Remove one row inside the transaction before failing.
            real_delete(session, next(iter(message_ids)))
            raise RuntimeError("disk full")

        monkeypatch.setattr(StoreSession, "delete_many", delete_then_fail)

        with pytest.raises(RuntimeError):
            repo.delete_all_messages_for_user(ALICE)

        assert repo.count() == 3
        for message in sent:
            assert repo.read(message.id) is not None


def test_store_failures_propagate(repo, store) -> None:
    conn = sqlite3.connect(store.db_path)
    conn.execute("DROP TABLE messages")
    conn.commit()
    conn.close()

    with pytest.raises(StoreError):
        repo.count()
    with pytest.raises(StoreError):
        repo.get_all_messages_for_user(ALICE)
