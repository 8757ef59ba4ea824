"""Tests for identity and connection repositories.

Upsert semantics (insert or update on conflict) and the 1:1 connection
invariant, against an in-memory database.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from guildlink.models import Connection, DiscordUser, MinecraftUser
from guildlink.repositories.connection_repository import ConnectionRepository
from guildlink.repositories.discord_user_repository import DiscordUserRepository
from guildlink.repositories.minecraft_user_repository import MinecraftUserRepository

_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)
_UUID = uuid.UUID("6f1a7c8e-0b1d-4c55-9d7e-2a4b6c8d0e1f")


async def _all(db, model):
    stmt = select(model).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalars().all()


class TestDiscordUserRepository:
    """Discord account upsert and token rotation."""

    @pytest.mark.asyncio
    async def test_insert_then_update_on_conflict(self, db_session):
        """A second upsert for the same Discord id updates token and username."""
        first = await DiscordUserRepository.upsert(
            db_session, discord_id="42", username="steve", refresh_token="r1", now=_NOW
        )
        second = await DiscordUserRepository.upsert(
            db_session,
            discord_id="42",
            username="steve_renamed",
            refresh_token="r2",
            now=_NOW + timedelta(days=1),
        )

        assert first == second
        users = await _all(db_session, DiscordUser)
        assert len(users) == 1
        assert users[0].username == "steve_renamed"
        assert users[0].refresh_token == "r2"
        assert users[0].created_at == _NOW

    @pytest.mark.asyncio
    async def test_update_refresh_token(self, db_session):
        user_id = await DiscordUserRepository.upsert(
            db_session, discord_id="42", username="steve", refresh_token="r1", now=_NOW
        )

        await DiscordUserRepository.update_refresh_token(db_session, user_id, "r9")

        user = await DiscordUserRepository.get_by_id(db_session, user_id)
        assert user is not None
        assert user.refresh_token == "r9"


class TestMinecraftUserRepository:
    """Minecraft account upsert."""

    @pytest.mark.asyncio
    async def test_upsert_returns_existing_id(self, db_session):
        first = await MinecraftUserRepository.upsert(db_session, minecraft_uuid=_UUID, now=_NOW)
        second = await MinecraftUserRepository.upsert(
            db_session, minecraft_uuid=_UUID, now=_NOW + timedelta(hours=1)
        )

        assert first == second
        user = await MinecraftUserRepository.get_by_uuid(db_session, _UUID)
        assert user is not None
        assert user.created_at == _NOW

    @pytest.mark.asyncio
    async def test_get_by_uuid_missing(self, db_session):
        assert await MinecraftUserRepository.get_by_uuid(db_session, uuid.uuid4()) is None


class TestConnectionRepository:
    """Connection upsert keeps the link 1:1."""

    async def _identities(self, db):
        steve = await DiscordUserRepository.upsert(
            db, discord_id="1", username="steve", refresh_token="r", now=_NOW
        )
        alex = await DiscordUserRepository.upsert(
            db, discord_id="2", username="alex", refresh_token="r", now=_NOW
        )
        mc_a = await MinecraftUserRepository.upsert(db, minecraft_uuid=_UUID, now=_NOW)
        mc_b = await MinecraftUserRepository.upsert(db, minecraft_uuid=uuid.uuid4(), now=_NOW)
        return steve, alex, mc_a, mc_b

    @pytest.mark.asyncio
    async def test_relink_overwrites_discord_side(self, db_session):
        """Linking a Minecraft account again replaces its Discord account."""
        steve, alex, mc_a, _ = await self._identities(db_session)

        await ConnectionRepository.upsert(
            db_session, discord_user_id=steve, minecraft_user_id=mc_a, now=_NOW
        )
        later = _NOW + timedelta(minutes=1)
        await ConnectionRepository.upsert(
            db_session, discord_user_id=alex, minecraft_user_id=mc_a, now=later
        )

        connections = await _all(db_session, Connection)
        assert len(connections) == 1
        assert connections[0].discord_user_id == alex
        assert connections[0].created_at == later

    @pytest.mark.asyncio
    async def test_discord_account_moves_to_new_minecraft_account(self, db_session):
        """A Discord account linked elsewhere is released from its old link."""
        steve, _, mc_a, mc_b = await self._identities(db_session)

        await ConnectionRepository.upsert(
            db_session, discord_user_id=steve, minecraft_user_id=mc_a, now=_NOW
        )
        await ConnectionRepository.upsert(
            db_session, discord_user_id=steve, minecraft_user_id=mc_b, now=_NOW
        )

        connections = await _all(db_session, Connection)
        assert [(c.discord_user_id, c.minecraft_user_id) for c in connections] == [
            (steve, mc_b)
        ]

    @pytest.mark.asyncio
    async def test_get_and_delete(self, db_session):
        steve, _, mc_a, _ = await self._identities(db_session)
        await ConnectionRepository.upsert(
            db_session, discord_user_id=steve, minecraft_user_id=mc_a, now=_NOW
        )

        connection = await ConnectionRepository.get_by_minecraft_user_id(db_session, mc_a)
        assert connection is not None
        await ConnectionRepository.delete(db_session, connection.id)

        assert await ConnectionRepository.get_by_minecraft_user_id(db_session, mc_a) is None
        assert len(await _all(db_session, MinecraftUser)) == 2
