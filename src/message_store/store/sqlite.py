"""SQLite-backed message store.

Each ``session()`` opens one connection and one ``BEGIN IMMEDIATE``
transaction, so every mutation made through the session is committed
together or rolled back together.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import structlog

from message_store.exceptions import SchemaVersionError, StoreError
from message_store.models import Message

logger = structlog.get_logger()


_SCHEMA_VERSION = 1

_COLUMNS = "id, author, recipient, content, create_date_iso, is_read, read_date_iso"


class StoreSession:
    """Store primitives bound to one open transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, message_id: int) -> Message | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        ).fetchone()
        return self._row_to_message(row) if row else None

    def find_by_participant(self, email: str) -> list[Message]:
        """Return every message the given address sent or received, oldest id first."""

        rows = self._conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM messages
            WHERE author = ? OR recipient = ?
            ORDER BY id;
            """,
            (email, email),
        ).fetchall()
        return [self._row_to_message(row) for row in rows]

    def find_by_ids(self, message_ids: Iterable[int]) -> list[Message]:
        """Return the existing messages among ``message_ids``; unknown ids are skipped."""

        ids = _unique(message_ids)
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM messages WHERE id IN ({placeholders}) ORDER BY id",
            ids,
        ).fetchall()
        return [self._row_to_message(row) for row in rows]

    def insert(self, message: Message) -> Message:
        """Persist a new message and return it with its assigned id."""

        cursor = self._conn.execute(
            """
            INSERT INTO messages (
                author,
                recipient,
                content,
                create_date_iso,
                is_read,
                read_date_iso
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                message.author,
                message.recipient,
                message.content,
                message.create_date.isoformat(),
                1 if message.read else 0,
                message.read_date.isoformat() if message.read_date else None,
            ),
        )
        return message.model_copy(update={"id": cursor.lastrowid})

    def update_content(self, message_id: int, content: str) -> bool:
        cursor = self._conn.execute(
            "UPDATE messages SET content = ? WHERE id = ?",
            (content, message_id),
        )
        return cursor.rowcount > 0

    def mark_read(self, message_ids: Iterable[int], read_date: datetime) -> int:
        """Flag unread messages among ``message_ids`` as read.

        Messages that are already read keep their original read date.

        Returns:
            Number of messages that changed state.
        """

        ids = _unique(message_ids)
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        cursor = self._conn.execute(
            f"""
            UPDATE messages
            SET is_read = 1, read_date_iso = ?
            WHERE id IN ({placeholders}) AND is_read = 0;
            """,
            [read_date.isoformat(), *ids],
        )
        return cursor.rowcount

    def delete(self, message_id: int) -> bool:
        cursor = self._conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        return cursor.rowcount > 0

    def delete_many(self, message_ids: Iterable[int]) -> int:
        ids = _unique(message_ids)
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        cursor = self._conn.execute(
            f"DELETE FROM messages WHERE id IN ({placeholders})",
            ids,
        )
        return cursor.rowcount

    def count(self) -> int:
        (total,) = self._conn.execute("SELECT COUNT(*) FROM messages").fetchone()
        return total

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> Message:
        read_date = row["read_date_iso"]
        return Message(
            id=row["id"],
            author=row["author"],
            recipient=row["recipient"],
            content=row["content"],
            create_date=datetime.fromisoformat(row["create_date_iso"]),
            read=bool(row["is_read"]),
            read_date=datetime.fromisoformat(read_date) if read_date else None,
        )


class SQLiteMessageStore:
    """Message store persisted in a local SQLite database."""

    def __init__(self, db_path: Path, busy_timeout: float = 5.0) -> None:
        """Create a store.

        Args:
            db_path: Path to the SQLite database file.
            busy_timeout: Seconds to wait on a locked database before failing.
        """

        self._db_path = db_path
        self._busy_timeout = busy_timeout

    @property
    def db_path(self) -> Path:
        return self._db_path

    def initialize(self) -> None:
        """Create or verify the message schema."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            try:
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS _schema_meta (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    );
                    """
                )

                current_version = self._get_schema_version(conn)
                if current_version is None:
                    self._create_schema_v1(conn)
                    self._set_schema_version(conn, _SCHEMA_VERSION)
                    logger.info("message_store_schema_created", version=_SCHEMA_VERSION)
                    return
            except sqlite3.Error as exc:
                logger.error("message_store_initialize_failed", db_path=str(self._db_path), error=str(exc))
                raise StoreError(f"Failed to initialize {self._db_path}: {exc}") from exc

            if current_version != _SCHEMA_VERSION:
                raise SchemaVersionError(
                    f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                )

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        """Open a transaction and yield the store primitives bound to it.

        The transaction commits when the block exits normally and rolls back
        if it raises. Driver errors surface as ``StoreError``.
        """

        with self._connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE;")
                yield StoreSession(conn)
                conn.execute("COMMIT;")
            except sqlite3.Error as exc:
                self._rollback(conn)
                logger.error("message_store_transaction_failed", error=str(exc))
                raise StoreError(str(exc)) from exc
            except BaseException:
                self._rollback(conn)
                raise

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            # Autocommit mode; transactions are started explicitly by session().
            conn = sqlite3.connect(
                self._db_path,
                timeout=self._busy_timeout,
                isolation_level=None,
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open {self._db_path}: {exc}") from exc
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        row = conn.execute(
            "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?) ",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                author TEXT NOT NULL,
                recipient TEXT NOT NULL,
                content TEXT NOT NULL,
                create_date_iso TEXT NOT NULL,
                is_read INTEGER NOT NULL DEFAULT 0,
                read_date_iso TEXT,
                CHECK ((is_read = 0) = (read_date_iso IS NULL))
            );

            CREATE INDEX IF NOT EXISTS idx_messages_author
                ON messages(author);

            CREATE INDEX IF NOT EXISTS idx_messages_recipient
                ON messages(recipient);
            """
        )


def _unique(message_ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(message_ids))
