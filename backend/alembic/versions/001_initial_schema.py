"""Initial schema — profiles, groups, devices, posts, ledgers, games, Alexa linking.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False,
        server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), nullable=False,
        server_default=sa.func.now(),
    )


def _profile_fk(name: str, ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True),
        sa.ForeignKey("profiles.id", ondelete=ondelete), nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "profiles",
        _id(),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("username", sa.String(100), nullable=True, unique=True),
        sa.Column("avatar_url", sa.String(2000), nullable=True),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("pet_coins", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "connected_accounts",
        _id(),
        _profile_fk("primary_user_id"),
        _profile_fk("connected_user_id"),
        _created_at(),
        sa.UniqueConstraint("primary_user_id", "connected_user_id"),
    )

    op.create_table(
        "groups",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("group_code", sa.String(32), nullable=True, unique=True),
        _profile_fk("created_by", ondelete="SET NULL", nullable=True),
        _created_at(),
    )

    op.create_table(
        "group_members",
        _id(),
        sa.Column(
            "group_id", UUID(as_uuid=True),
            sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
        sa.UniqueConstraint("group_id", "user_id"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])

    op.create_table(
        "devices",
        _id(),
        _profile_fk("user_id"),
        sa.Column("pairing_code", sa.String(32), nullable=False, unique=True),
        sa.Column("pet_name", sa.String(100), nullable=False),
        sa.Column("pet_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="paired"),
        sa.Column("coins", sa.Integer, nullable=False, server_default="0"),
        sa.Column("mac_address", sa.String(17), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_jobs_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_rejection_id", UUID(as_uuid=True), nullable=True),
        sa.Column("rejection_message", sa.Text, nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_devices_user_id", "devices", ["user_id"])

    op.create_table(
        "posts",
        _id(),
        _profile_fk("user_id"),
        sa.Column(
            "group_id", UUID(as_uuid=True),
            sa.ForeignKey("groups.id", ondelete="SET NULL"), nullable=True,
        ),
        _profile_fk("assigned_to", ondelete="SET NULL", nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(2000), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("reward", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(200), nullable=True),
        sa.Column("fixed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("claimed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("under_review", sa.Boolean, nullable=False, server_default=sa.false()),
        _profile_fk("fixed_by", ondelete="SET NULL", nullable=True),
        sa.Column("fixed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fix_note", sa.Text, nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_posts_user_id", "posts", ["user_id"])
    op.create_index("ix_posts_group_id", "posts", ["group_id"])
    op.create_index("ix_posts_assigned_to", "posts", ["assigned_to"])
    op.create_index("ix_posts_created_at", "posts", ["created_at"])

    op.create_table(
        "transactions",
        _id(),
        _profile_fk("user_id"),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="completed"),
        sa.Column("memo", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])

    op.create_table(
        "activities",
        _id(),
        _profile_fk("user_id"),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("related_id", UUID(as_uuid=True), nullable=True),
        sa.Column("related_table", sa.String(40), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False),
        _created_at(),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])

    op.create_table(
        "pending_spends",
        _id(),
        sa.Column("spend_id", sa.String(100), nullable=False),
        sa.Column(
            "device_id", UUID(as_uuid=True),
            sa.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("device_timestamp", sa.BigInteger, nullable=True),
        _created_at(),
        sa.UniqueConstraint("spend_id", "device_id", name="uq_pending_spend"),
    )

    op.create_table(
        "flappy_bird_game",
        _id(),
        sa.Column(
            "device_id", UUID(as_uuid=True),
            sa.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        sa.Column("score", sa.Integer, nullable=False),
        _created_at(),
    )
    op.create_index("ix_flappy_bird_game_device_id", "flappy_bird_game", ["device_id"])
    op.create_index("ix_flappy_bird_game_score", "flappy_bird_game", ["score"])

    op.create_table(
        "pickleball_games",
        _id(),
        sa.Column(
            "host_device_id", UUID(as_uuid=True),
            sa.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("host_user_id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="lobby"),
        sa.Column("players", sa.JSON, nullable=False),
        sa.Column("score_left", sa.Integer, nullable=True),
        sa.Column("score_right", sa.Integer, nullable=True),
        sa.Column("winner_side", sa.String(5), nullable=True),
        sa.Column("lobby_expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        _updated_at(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_pickleball_games_host_device_id", "pickleball_games", ["host_device_id"],
    )

    op.create_table(
        "bitcoin_prices",
        _id(),
        sa.Column("price", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("source", sa.String(50), nullable=True),
        _created_at(),
    )
    op.create_index("ix_bitcoin_prices_created_at", "bitcoin_prices", ["created_at"])

    op.create_table(
        "alexa_auth_codes",
        _id(),
        sa.Column("code", sa.String(100), nullable=False, unique=True),
        _profile_fk("user_id"),
        sa.Column("client_id", sa.String(200), nullable=False),
        sa.Column("redirect_uri", sa.Text, nullable=False),
        sa.Column("state", sa.Text, nullable=True),
        sa.Column(
            "selected_group_id", UUID(as_uuid=True),
            sa.ForeignKey("groups.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "alexa_linked_accounts",
        _id(),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("client_id", sa.String(200), nullable=True),
        sa.Column("alexa_user_id", sa.String(300), nullable=True),
        sa.Column("access_token", sa.Text, nullable=True),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "selected_group_id", UUID(as_uuid=True),
            sa.ForeignKey("groups.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "notification_queue",
        _id(),
        sa.Column("recipient_email", sa.String(320), nullable=False),
        sa.Column("template", sa.String(50), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
    )


def downgrade() -> None:
    for table in (
        "notification_queue",
        "alexa_linked_accounts",
        "alexa_auth_codes",
        "bitcoin_prices",
        "pickleball_games",
        "flappy_bird_game",
        "pending_spends",
        "activities",
        "transactions",
        "posts",
        "devices",
        "group_members",
        "groups",
        "connected_accounts",
        "profiles",
    ):
        op.drop_table(table)
