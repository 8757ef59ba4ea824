"""Create identity, connection and verification flow tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Discord accounts that completed OAuth at least once
    op.create_table(
        "discord_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("discord_id", sa.String(32), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("discord_id", name="uq_discord_users_discord_id"),
    )

    op.create_table(
        "minecraft_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("minecraft_uuid", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("minecraft_uuid", name="uq_minecraft_users_minecraft_uuid"),
    )

    # 1:1 link; both sides unique, upserts target minecraft_user_id
    op.create_table(
        "connections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "discord_user_id",
            sa.Integer(),
            sa.ForeignKey("discord_users.id"),
            nullable=False,
        ),
        sa.Column(
            "minecraft_user_id",
            sa.Integer(),
            sa.ForeignKey("minecraft_users.id"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("discord_user_id", name="uq_connections_discord_user_id"),
        sa.UniqueConstraint(
            "minecraft_user_id", name="uq_connections_minecraft_user_id"
        ),
    )

    # Transient linking codes; at most one per Minecraft account
    op.create_table(
        "verification_flows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("linking_code", sa.String(32), nullable=False),
        sa.Column("minecraft_uuid", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("linking_code", name="uq_verification_flows_linking_code"),
        sa.UniqueConstraint(
            "minecraft_uuid", name="uq_verification_flows_minecraft_uuid"
        ),
    )


def downgrade() -> None:
    op.drop_table("verification_flows")
    op.drop_table("connections")
    op.drop_table("minecraft_users")
    op.drop_table("discord_users")
