"""Connection model - the 1:1 binding between a Discord and a Minecraft account.

Both foreign keys are unique: a Discord account links at most one
Minecraft account and vice versa. Re-linking a Minecraft account
overwrites its row (upsert on minecraft_user_id) instead of adding one.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guildlink.models.base import Base

if TYPE_CHECKING:
    from guildlink.models.discord_user import DiscordUser
    from guildlink.models.minecraft_user import MinecraftUser


class Connection(Base):
    """Link between one DiscordUser and one MinecraftUser.

    Attributes:
        id: Integer primary key.
        discord_user_id: FK to discord_users (unique).
        minecraft_user_id: FK to minecraft_users (unique, upsert target).
        created_at: When the current link was made; refreshed on overwrite.
    """

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    discord_user_id: Mapped[int] = mapped_column(
        Integer(),
        ForeignKey("discord_users.id"),
        nullable=False,
        unique=True,
    )
    minecraft_user_id: Mapped[int] = mapped_column(
        Integer(),
        ForeignKey("minecraft_users.id"),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Relationships
    discord_user: Mapped["DiscordUser"] = relationship(
        "DiscordUser", back_populates="connection"
    )
    minecraft_user: Mapped["MinecraftUser"] = relationship(
        "MinecraftUser", back_populates="connection"
    )
