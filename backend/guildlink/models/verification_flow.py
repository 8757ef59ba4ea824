"""Verification flow model - short-lived linking codes.

Single-use and time-limited. A flow is created when the game server asks
for a code, extended when it asks again before expiry, and deleted when
the Discord side completes or a fresh flow supplants it.
"""

import uuid
from datetime import datetime

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from guildlink.models.base import Base


class VerificationFlow(Base):
    """A linking code waiting for the Discord side of the flow.

    Attributes:
        id: Integer primary key.
        linking_code: Code shown to the player (unique).
        minecraft_uuid: Minecraft account the code links (unique: at most
            one flow per account).
        created_at: When the code was issued.
        expires_at: When the code stops resolving.
    """

    __tablename__ = "verification_flows"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    linking_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    minecraft_uuid: Mapped[uuid.UUID] = mapped_column(
        Uuid(), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    def is_active(self, now: datetime) -> bool:
        """Check whether the code still resolves at ``now``."""
        return self.expires_at > now
