"""SQLAlchemy ORM models for guildlink.

All models are exported from this module for convenient imports:
    from guildlink.models import Connection, DiscordUser, ...

- discord_user.py: DiscordUser (social identity)
- minecraft_user.py: MinecraftUser (game identity)
- connection.py: Connection (1:1 link)
- verification_flow.py: VerificationFlow (transient linking codes)
"""

from guildlink.models.base import Base, UTCDateTime
from guildlink.models.connection import Connection
from guildlink.models.discord_user import DiscordUser
from guildlink.models.minecraft_user import MinecraftUser
from guildlink.models.verification_flow import VerificationFlow

__all__ = [
    "Base",
    "UTCDateTime",
    "Connection",
    "DiscordUser",
    "MinecraftUser",
    "VerificationFlow",
]
