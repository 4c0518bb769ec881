"""Command-line interface for Recipient Suggest.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import structlog

from recipient_suggest.config import Settings, get_settings
from recipient_suggest.contacts import ContactIndexer, ContactStore, SuggestionResolver
from recipient_suggest.contacts.ranking import rank_entries
from recipient_suggest.gmail.client import GmailClient

logger = structlog.get_logger()


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite contact store (default: settings contacts_db_path)",
    )
    parser.add_argument(
        "--account",
        default=None,
        help="Account/connection id owning the contact set (default: settings account_id)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="recipient-suggest", description="Recipient Suggest")
    subparsers = parser.add_subparsers(dest="command", required=True)

    contacts_parser = subparsers.add_parser(
        "contacts",
        help="Build and query the per-account contact cache",
    )
    contacts_sub = contacts_parser.add_subparsers(dest="contacts_command", required=True)

    index_parser = contacts_sub.add_parser("index", help="Scan the mailbox and rebuild contacts")
    _add_common_arguments(index_parser)

    suggest_parser = contacts_sub.add_parser("suggest", help="Suggest recipients for a query")
    suggest_parser.add_argument("query", nargs="?", default="", help="Typed text")
    suggest_parser.add_argument("--limit", type=int, default=None, help="Max suggestions")
    suggest_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Address already chosen (repeatable)",
    )
    _add_common_arguments(suggest_parser)

    list_parser = contacts_sub.add_parser("list", help="Show stored contacts by rank")
    list_parser.add_argument("--limit", type=int, default=25, help="Number of contacts")
    _add_common_arguments(list_parser)

    clear_parser = contacts_sub.add_parser("clear", help="Delete the stored contacts of an account")
    _add_common_arguments(clear_parser)

    return parser


def _open_store(settings: Settings, args: argparse.Namespace) -> ContactStore:
    store = ContactStore(args.db or settings.contacts_db_path)
    store.initialize()
    return store


async def _cmd_contacts_index(args: argparse.Namespace) -> int:
    settings = get_settings()
    account_id: str = args.account or settings.account_id
    store = _open_store(settings, args)

    gmail = GmailClient(settings)
    await gmail.authenticate()

    indexer = ContactIndexer(store, settings)
    count = await indexer.run(account_id, gmail)

    print(f"Indexed {count} contacts for {account_id} into {args.db or settings.contacts_db_path}")
    return 0


async def _cmd_contacts_suggest(args: argparse.Namespace) -> int:
    settings = get_settings()
    account_id: str = args.account or settings.account_id
    store = _open_store(settings, args)

    gmail = GmailClient(settings)
    await gmail.authenticate()
    identity = await gmail.get_identity(account_id)

    indexer = ContactIndexer(store, settings)
    resolver = SuggestionResolver(identity, gmail, store, indexer, settings)

    suggestions = await resolver.suggest_recipients_safe(args.query, args.limit, args.exclude)
    for s in suggestions:
        print(s.display_text)

    if indexer.is_running(account_id):
        print("Contact cache is being rebuilt; waiting for it to finish...", file=sys.stderr)
        await indexer.drain()

    return 0


def _cmd_contacts_list(args: argparse.Namespace) -> int:
    settings = get_settings()
    account_id: str = args.account or settings.account_id
    store = _open_store(settings, args)

    entries = rank_entries(store.get(account_id))

    print(f"Contacts for {account_id}: {len(entries)}")
    for e in entries[: args.limit]:
        name = f" ({e.name})" if e.name else ""
        print(f"- {e.email}{name}: score {e.frequency}, last {e.last_interaction_at.date().isoformat()}")

    return 0


def _cmd_contacts_clear(args: argparse.Namespace) -> int:
    settings = get_settings()
    account_id: str = args.account or settings.account_id
    store = _open_store(settings, args)

    store.clear(account_id)

    print(f"Cleared contacts for {account_id}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Recipient Suggest CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
    )

    logger.info("recipient_suggest_started", version="0.1.0", debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    if parsed.command == "contacts":
        if parsed.contacts_command == "index":
            return asyncio.run(_cmd_contacts_index(parsed))
        if parsed.contacts_command == "suggest":
            return asyncio.run(_cmd_contacts_suggest(parsed))
        if parsed.contacts_command == "list":
            return _cmd_contacts_list(parsed)
        if parsed.contacts_command == "clear":
            return _cmd_contacts_clear(parsed)

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
