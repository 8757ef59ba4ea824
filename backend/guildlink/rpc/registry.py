"""Registered RPC methods."""

from collections.abc import Mapping

from guildlink.rpc.dispatcher import RPCMethod, build_method_table
from guildlink.rpc.methods import (
    create_verification_flow,
    get_discord_oauth_link,
    link_discord_account,
    verify_connection,
)

RPC_METHODS: tuple[RPCMethod, ...] = (
    create_verification_flow.METHOD,
    get_discord_oauth_link.METHOD,
    link_discord_account.METHOD,
    verify_connection.METHOD,
)


def build_default_method_table() -> Mapping[str, RPCMethod]:
    """Routing table for every registered method."""
    return build_method_table(RPC_METHODS)
