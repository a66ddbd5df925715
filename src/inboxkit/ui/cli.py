from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from inboxkit.adapters.sqlalchemy.session import shutdown
from inboxkit.app import (
    archive_item,
    list_inbox,
    list_pending_requests,
    mark_item_read,
    upgrade_database,
)
from inboxkit.config import configure_logging
from inboxkit.domain.errors import InboxValidationError
from inboxkit.domain.model import EntityRef, InboxItemStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

DEFAULT_ENTITY_KIND = "user"


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and maintain inboxkit inboxes")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upgrade = subparsers.add_parser("db-upgrade", help="Migrate the database schema to head")
    upgrade.add_argument(
        "--database-uri",
        type=str,
        help="Database URI to migrate (defaults to config)",
    )

    inbox = subparsers.add_parser("inbox", help="List a recipient's inbox")
    _add_tenant(inbox)
    inbox.add_argument(
        "--recipient",
        type=str,
        required=True,
        help="Recipient as TYPE:ID or KIND:TYPE:ID",
    )
    inbox.add_argument(
        "--status",
        choices=[status.value for status in InboxItemStatus],
        help="Only list items with this status",
    )
    inbox.add_argument(
        "--limit",
        type=int,
        help="Page size (defaults to config)",
    )
    inbox.add_argument("--cursor", type=str, help="Cursor returned by a previous page")

    for name, help_text in (
        ("mark-read", "Mark an inbox item read"),
        ("archive", "Archive an inbox item"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        _add_tenant(command)
        command.add_argument("item_id", type=str, help="Inbox item id")

    pending = subparsers.add_parser("pending", help="List pending follow requests for a target")
    _add_tenant(pending)
    pending.add_argument(
        "--target",
        type=str,
        required=True,
        help="Target as TYPE:ID or KIND:TYPE:ID",
    )

    return parser.parse_args(list(argv))


def _add_tenant(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tenant", type=str, required=True, help="Tenant id")


def _parse_entity(value: str) -> EntityRef:
    parts = [part.strip() for part in value.split(":")]
    if len(parts) == 2:  # noqa: PLR2004
        parts.insert(0, DEFAULT_ENTITY_KIND)
    if len(parts) != 3 or not all(parts):  # noqa: PLR2004
        raise ValueError(f"Invalid entity reference: {value} (expected TYPE:ID or KIND:TYPE:ID)")
    kind, type_, id_ = parts
    return EntityRef(kind=kind, type=type_, id=id_)


async def _run(args: argparse.Namespace) -> None:
    try:
        if args.command == "db-upgrade":
            await upgrade_database(database_uri=args.database_uri)
        elif args.command == "inbox":
            page = await list_inbox(
                tenant_id=args.tenant,
                recipient=args.recipient,
                status=InboxItemStatus(args.status) if args.status else None,
                limit=args.limit,
                cursor=args.cursor,
            )
            for item in page.items:
                log.info(
                    "%s [%s] %s (x%s) %s",
                    item.id,
                    item.status,
                    item.title or item.event.kind,
                    item.thread_count,
                    item.last_activity_at,
                )
            if page.next_cursor:
                log.info("Next cursor: %s", page.next_cursor)
        elif args.command == "mark-read":
            item = await mark_item_read(tenant_id=args.tenant, item_id=args.item_id)
            log.info("Marked %s read", item.id)
        elif args.command == "archive":
            item = await archive_item(tenant_id=args.tenant, item_id=args.item_id)
            log.info("Archived %s", item.id)
        elif args.command == "pending":
            requests = await list_pending_requests(tenant_id=args.tenant, target=args.target)
            for request in requests:
                log.info(
                    "%s %s -> %s (%s) since %s",
                    request.id,
                    request.requester,
                    request.target,
                    request.requested_kind,
                    request.created_at,
                )
            log.info("%s pending requests", len(requests))
        else:
            raise ValueError(f"Unsupported command: {args.command}")
    finally:
        await shutdown()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "inbox":
            parsed_args.recipient = _parse_entity(parsed_args.recipient)
        elif parsed_args.command == "pending":
            parsed_args.target = _parse_entity(parsed_args.target)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        asyncio.run(_run(parsed_args))
    except InboxValidationError:
        log.exception("Invalid request")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
