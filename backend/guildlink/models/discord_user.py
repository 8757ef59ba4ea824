"""Discord user model - the linked social identity.

One row per Discord account, unique on the Discord snowflake id.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guildlink.models.base import Base

if TYPE_CHECKING:
    from guildlink.models.connection import Connection


class DiscordUser(Base):
    """A Discord account that completed the OAuth flow at least once.

    Attributes:
        id: Integer primary key.
        discord_id: Discord's snowflake id for the account (opaque string).
        username: Discord username at the time of the last link.
        refresh_token: Latest OAuth refresh token. Discord rotates it on
            every refresh, so only the most recent value is valid.
        created_at: When the account was first seen.
    """

    __tablename__ = "discord_users"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    discord_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Relationships
    connection: Mapped["Connection | None"] = relationship(
        "Connection", back_populates="discord_user", uselist=False
    )
