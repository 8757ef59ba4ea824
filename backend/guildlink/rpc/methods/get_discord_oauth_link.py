"""getDiscordOAuthLink: build the Discord authorize URL for a linking code."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from guildlink.core.errors import RPCResultError
from guildlink.core.oauth import encode_oauth_state
from guildlink.core.result import Err, Ok, Result
from guildlink.rpc.context import RPCContext
from guildlink.rpc.dispatcher import RPCMethod


class GetDiscordOAuthLinkParams(BaseModel):
    linking_code: str = Field(alias="linkingCode")


class GetDiscordOAuthLinkResult(BaseModel):
    oauth_url: str = Field(serialization_alias="oauthURL")


async def get_discord_oauth_link(
    params: GetDiscordOAuthLinkParams,
    context: RPCContext,
) -> Result[GetDiscordOAuthLinkResult, RPCResultError]:
    """Return the authorize URL whose state carries the linking code."""
    services = context.services
    flow = await services.flows.resolve_active(
        context.db, params.linking_code, context.logger
    )
    if isinstance(flow, Err):
        return flow

    state = encode_oauth_state(flow.value.linking_code, datetime.now(UTC))
    return Ok(GetDiscordOAuthLinkResult(oauth_url=services.oauth.build_authorize_url(state)))


METHOD = RPCMethod(
    name="getDiscordOAuthLink",
    params_model=GetDiscordOAuthLinkParams,
    handler=get_discord_oauth_link,
)
