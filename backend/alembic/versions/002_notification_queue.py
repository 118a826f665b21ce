"""Staggered notification queue: one row per (spare request, candidate member).

claimed_at lets several processors share the queue without double-sending.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "spare_request_notification_queue",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "spare_request_id",
            sa.Integer(),
            sa.ForeignKey("spare_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("queue_order", sa.Integer(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("spare_request_id", "member_id", name="uq_notification_queue_request_member"),
    )
    op.create_index(
        "ix_spare_request_notification_queue_spare_request_id",
        "spare_request_notification_queue",
        ["spare_request_id"],
        unique=False,
    )
    op.create_index(
        "ix_notification_queue_order",
        "spare_request_notification_queue",
        ["spare_request_id", "queue_order"],
        unique=False,
    )
    op.create_index(
        "ix_notification_queue_notified",
        "spare_request_notification_queue",
        ["spare_request_id", "notified_at"],
        unique=False,
    )
    op.create_index(
        "ix_notification_queue_claimed",
        "spare_request_notification_queue",
        ["spare_request_id", "claimed_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_notification_queue_claimed", table_name="spare_request_notification_queue")
    op.drop_index("ix_notification_queue_notified", table_name="spare_request_notification_queue")
    op.drop_index("ix_notification_queue_order", table_name="spare_request_notification_queue")
    op.drop_index(
        "ix_spare_request_notification_queue_spare_request_id",
        table_name="spare_request_notification_queue",
    )
    op.drop_table("spare_request_notification_queue")
