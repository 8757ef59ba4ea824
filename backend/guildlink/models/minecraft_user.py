"""Minecraft user model - the game-server identity.

One row per Minecraft account, unique on the account UUID.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guildlink.models.base import Base

if TYPE_CHECKING:
    from guildlink.models.connection import Connection


class MinecraftUser(Base):
    """A Minecraft account known to the service.

    Attributes:
        id: Integer primary key.
        minecraft_uuid: Mojang account UUID.
        created_at: When the account was first linked.
    """

    __tablename__ = "minecraft_users"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    minecraft_uuid: Mapped[uuid.UUID] = mapped_column(
        Uuid(), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Relationships
    connection: Mapped["Connection | None"] = relationship(
        "Connection", back_populates="minecraft_user", uselist=False
    )
