"""Command-line interface for Message Store.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import structlog

from message_store import __version__
from message_store.config import Settings, get_settings
from message_store.exceptions import ConfigurationError
from message_store.models import Message, MessageUpdate
from message_store.repository import MessageRepository
from message_store.store import SQLiteMessageStore

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="message-store", description="Direct message store")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite message database (default: settings db_path)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create", help="Store a new message")
    create_parser.add_argument("--author", required=True, help="Sender email address")
    create_parser.add_argument("--recipient", required=True, help="Recipient email address")
    create_parser.add_argument("--content", default="", help="Message body")

    read_parser = subparsers.add_parser("read", help="Show a single message")
    read_parser.add_argument("id", type=int, help="Message ID")

    update_parser = subparsers.add_parser("update", help="Replace the body of a message")
    update_parser.add_argument("id", type=int, help="Message ID")
    update_parser.add_argument("--content", required=True, help="New message body")

    delete_parser = subparsers.add_parser("delete", help="Delete a single message")
    delete_parser.add_argument("id", type=int, help="Message ID")

    subparsers.add_parser("count", help="Show the number of stored messages")

    conversations_parser = subparsers.add_parser(
        "conversations",
        help="List a user's messages grouped by correspondent",
    )
    conversations_parser.add_argument("email", help="User email address")

    mark_read_parser = subparsers.add_parser("mark-read", help="Mark messages as read")
    mark_read_parser.add_argument("ids", type=int, nargs="+", help="Message IDs")

    purge_parser = subparsers.add_parser(
        "purge-user",
        help="Delete every message a user sent or received",
    )
    purge_parser.add_argument("email", help="User email address")

    return parser


def _open_repository(args: argparse.Namespace, settings: Settings) -> MessageRepository:
    db_path: Path = args.db or settings.db_path
    store = SQLiteMessageStore(db_path, busy_timeout=settings.busy_timeout)
    store.initialize()
    return MessageRepository(store)


def _exit_code(ok: bool) -> int:
    return 0 if ok else 1


def _cmd_create(repo: MessageRepository, args: argparse.Namespace) -> int:
    created = repo.create(
        Message(author=args.author, recipient=args.recipient, content=args.content)
    )
    if created is None:
        return 1
    print(created.model_dump_json())
    return 0


def _cmd_read(repo: MessageRepository, args: argparse.Namespace) -> int:
    message = repo.read(args.id)
    if message is None:
        print(f"Message {args.id} not found", file=sys.stderr)
        return 1
    print(message.model_dump_json())
    return 0


def _cmd_conversations(repo: MessageRepository, args: argparse.Namespace) -> int:
    conversations = repo.get_all_messages_for_user(args.email)
    for correspondent, messages in conversations.items():
        print(f"{correspondent} ({len(messages)} messages)")
        for m in messages:
            direction = "->" if m.author == args.email else "<-"
            status = "READ" if m.read else "UNREAD"
            print(f"  {m.id}\t{m.create_date.isoformat()}\t{direction}\t{status}\t{m.content}")
    return 0


def _configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {settings.log_level}")
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Message Store CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging
    _configure_logging(settings)

    logger.info("message_store_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)
    repo = _open_repository(parsed, settings)

    if parsed.command == "create":
        return _cmd_create(repo, parsed)
    if parsed.command == "read":
        return _cmd_read(repo, parsed)
    if parsed.command == "update":
        return _exit_code(repo.update(MessageUpdate(id=parsed.id, content=parsed.content)))
    if parsed.command == "delete":
        return _exit_code(repo.delete(parsed.id))
    if parsed.command == "count":
        print(repo.count())
        return 0
    if parsed.command == "conversations":
        return _cmd_conversations(repo, parsed)
    if parsed.command == "mark-read":
        return _exit_code(repo.messages_as_read(parsed.ids))
    if parsed.command == "purge-user":
        return _exit_code(repo.delete_all_messages_for_user(parsed.email))

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
