"""SQLAlchemy adapters: table metadata, async stores and schema migrations."""

from __future__ import annotations

from .mappings import follow_request_table, inbox_item_table, metadata
from .stores import SqlAlchemyFollowRequestStore, SqlAlchemyInboxStore

__all__ = [
    "SqlAlchemyFollowRequestStore",
    "SqlAlchemyInboxStore",
    "follow_request_table",
    "inbox_item_table",
    "metadata",
]
