"""Members, leagues, spare_requests and the single-row server_config."""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("opted_in_sms", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_subscribed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_members_email", "members", ["email"], unique=False)

    op.create_table(
        "leagues",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "spare_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("league_id", sa.Integer(), sa.ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True),
        sa.Column("requested_for_name", sa.String(255), nullable=False),
        sa.Column("game_date", sa.String(10), nullable=False),
        sa.Column("game_time", sa.String(8), nullable=False),
        sa.Column("position", sa.String(16), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("request_type", sa.String(16), nullable=False, server_default="public"),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("filled_by_member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("filled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by_member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("notification_status", sa.String(16), nullable=True),
        sa.Column("notification_paused", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("next_notification_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notifications_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_spare_requests_requester_id", "spare_requests", ["requester_id"], unique=False)
    op.create_index("ix_spare_requests_league_id", "spare_requests", ["league_id"], unique=False)
    op.create_index("ix_spare_requests_game_date", "spare_requests", ["game_date"], unique=False)
    op.create_index("ix_spare_requests_status", "spare_requests", ["status"], unique=False)

    op.create_table(
        "server_config",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("notification_delay_seconds", sa.Integer(), nullable=False, server_default="180"),
        sa.Column("test_current_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.execute("INSERT INTO server_config (id, notification_delay_seconds) VALUES (1, 180)")


def downgrade() -> None:
    op.drop_table("server_config")
    op.drop_index("ix_spare_requests_status", table_name="spare_requests")
    op.drop_index("ix_spare_requests_game_date", table_name="spare_requests")
    op.drop_index("ix_spare_requests_league_id", table_name="spare_requests")
    op.drop_index("ix_spare_requests_requester_id", table_name="spare_requests")
    op.drop_table("spare_requests")
    op.drop_table("leagues")
    op.drop_index("ix_members_email", table_name="members")
    op.drop_table("members")
