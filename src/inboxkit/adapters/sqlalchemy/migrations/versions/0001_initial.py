"""Create inbox item and follow request tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inbox_item",
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("recipient_key", sa.String(), nullable=False),
        sa.Column("recipient", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("event", sa.Text(), nullable=False),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("targets", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("dedup_key", sa.String(), nullable=True),
        sa.Column("thread_key", sa.String(), nullable=True),
        sa.Column("thread_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sort_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("tenant_id", "id", name="pk_inbox_item"),
        sa.UniqueConstraint("tenant_id", "recipient_key", "dedup_key", name="uq_inbox_item_dedup"),
    )
    op.create_index(
        "ix_inbox_item_thread", "inbox_item", ["tenant_id", "recipient_key", "thread_key"]
    )
    op.create_index(
        "ix_inbox_item_recipient_sort",
        "inbox_item",
        ["tenant_id", "recipient_key", "sort_at", "id"],
    )

    op.create_table(
        "follow_request",
        sa.Column("tenant_id", sa.String(100), nullable=False),
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("requester", sa.Text(), nullable=False),
        sa.Column("target_key", sa.String(), nullable=False),
        sa.Column("target", sa.Text(), nullable=False),
        sa.Column("requested_kind", sa.String(32), nullable=False),
        sa.Column("scope", sa.String(32), nullable=False),
        sa.Column("filter", sa.Text(), nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("decided_by", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decision_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("tenant_id", "id", name="pk_follow_request"),
        sa.UniqueConstraint(
            "tenant_id", "idempotency_key", name="uq_follow_request_idempotency"
        ),
    )
    op.create_index(
        "ix_follow_request_target_status",
        "follow_request",
        ["tenant_id", "target_key", "status"],
    )


def downgrade() -> None:
    op.drop_index("ix_follow_request_target_status", table_name="follow_request")
    op.drop_table("follow_request")
    op.drop_index("ix_inbox_item_recipient_sort", table_name="inbox_item")
    op.drop_index("ix_inbox_item_thread", table_name="inbox_item")
    op.drop_table("inbox_item")
