"""linkDiscordAccount: complete the OAuth callback and bind the accounts."""

from pydantic import BaseModel, Field

from guildlink.core.errors import RPCResultError
from guildlink.core.result import Err, Ok, Result
from guildlink.rpc.context import RPCContext
from guildlink.rpc.dispatcher import RPCMethod


class LinkDiscordAccountParams(BaseModel):
    code: str
    state: str


class LinkDiscordAccountResult(BaseModel):
    discord_username: str = Field(serialization_alias="discordUsername")


async def link_discord_account(
    params: LinkDiscordAccountParams,
    context: RPCContext,
) -> Result[LinkDiscordAccountResult, RPCResultError]:
    linked = await context.services.linker.link(
        context.db,
        code=params.code,
        state=params.state,
        logger=context.logger,
    )
    if isinstance(linked, Err):
        return linked
    return Ok(LinkDiscordAccountResult(discord_username=linked.value.discord_username))


METHOD = RPCMethod(
    name="linkDiscordAccount",
    params_model=LinkDiscordAccountParams,
    handler=link_discord_account,
)
