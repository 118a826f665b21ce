"""Delivery idempotency ledger and spare_requests.notification_generation.

One ledger row per (request, member, generation, channel, kind); sent_at is write-once.
Bumping notification_generation opens a fresh key space for a re-opened request.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "spare_requests",
        sa.Column("notification_generation", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "spare_request_notification_deliveries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "spare_request_id",
            sa.Integer(),
            sa.ForeignKey("spare_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("notification_generation", sa.Integer(), nullable=False),
        sa.Column("channel", sa.String(16), nullable=False),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "spare_request_id",
            "member_id",
            "notification_generation",
            "channel",
            "kind",
            name="uq_notification_deliveries_key",
        ),
    )
    op.create_index(
        "ix_spare_request_notification_deliveries_spare_request_id",
        "spare_request_notification_deliveries",
        ["spare_request_id"],
        unique=False,
    )
    op.create_index(
        "ix_spare_request_notification_deliveries_member_id",
        "spare_request_notification_deliveries",
        ["member_id"],
        unique=False,
    )
    op.create_index(
        "ix_notification_deliveries_claimed",
        "spare_request_notification_deliveries",
        ["spare_request_id", "claimed_at"],
        unique=False,
    )
    op.create_index(
        "ix_notification_deliveries_sent",
        "spare_request_notification_deliveries",
        ["spare_request_id", "sent_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_notification_deliveries_sent", table_name="spare_request_notification_deliveries")
    op.drop_index("ix_notification_deliveries_claimed", table_name="spare_request_notification_deliveries")
    op.drop_index(
        "ix_spare_request_notification_deliveries_member_id",
        table_name="spare_request_notification_deliveries",
    )
    op.drop_index(
        "ix_spare_request_notification_deliveries_spare_request_id",
        table_name="spare_request_notification_deliveries",
    )
    op.drop_table("spare_request_notification_deliveries")
    op.drop_column("spare_requests", "notification_generation")
