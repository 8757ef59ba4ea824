"""verifyConnection: re-check a linked account's guild membership."""

from pydantic import BaseModel, Field

from guildlink.core.errors import RPCResultError
from guildlink.core.result import Err, Result
from guildlink.core.shared_secret import compare_shared_secret
from guildlink.rpc.context import RPCContext
from guildlink.rpc.dispatcher import RPCMethod
from guildlink.rpc.params import MinecraftUUID


class VerifyConnectionParams(BaseModel):
    minecraft_uuid: MinecraftUUID = Field(alias="minecraftUUID")
    shared_secret: str = Field(alias="sharedSecret")


async def verify_connection(
    params: VerifyConnectionParams,
    context: RPCContext,
) -> Result[None, RPCResultError]:
    """Succeed with null while the link stands; see ConnectionVerifier.verify."""
    services = context.services
    if not compare_shared_secret(params.shared_secret, services.shared_secret):
        context.logger.warning("shared_secret_mismatch")
        return Err(RPCResultError.INVALID_SHARED_SECRET)

    return await services.verifier.verify(context.db, params.minecraft_uuid, context.logger)


METHOD = RPCMethod(
    name="verifyConnection",
    params_model=VerifyConnectionParams,
    handler=verify_connection,
)
