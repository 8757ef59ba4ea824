"""createVerificationFlow: issue a linking code to the game server."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_serializer

from guildlink.core.errors import RPCResultError
from guildlink.core.result import Err, Ok, Result
from guildlink.core.shared_secret import compare_shared_secret
from guildlink.rpc.context import RPCContext
from guildlink.rpc.dispatcher import RPCMethod
from guildlink.rpc.params import MinecraftUUID


class CreateVerificationFlowParams(BaseModel):
    minecraft_uuid: MinecraftUUID = Field(alias="minecraftUUID")
    shared_secret: str = Field(alias="sharedSecret")


class CreateVerificationFlowResult(BaseModel):
    linking_code: str = Field(serialization_alias="linkingCode")
    expires_at: datetime = Field(serialization_alias="expiresAt")

    @field_serializer("expires_at")
    def _serialize_expires_at(self, value: datetime) -> str:
        # ISO 8601, millisecond precision, "Z" suffix
        return (
            value.astimezone(UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )


async def create_verification_flow(
    params: CreateVerificationFlowParams,
    context: RPCContext,
) -> Result[CreateVerificationFlowResult, RPCResultError]:
    """Return the Minecraft account's active linking code, or a new one."""
    services = context.services
    if not compare_shared_secret(params.shared_secret, services.shared_secret):
        context.logger.warning("shared_secret_mismatch")
        return Err(RPCResultError.INVALID_SHARED_SECRET)

    issued = await services.flows.create_or_reuse(
        context.db, params.minecraft_uuid, context.logger
    )
    if isinstance(issued, Err):
        return issued
    return Ok(
        CreateVerificationFlowResult(
            linking_code=issued.value.linking_code,
            expires_at=issued.value.expires_at,
        )
    )


METHOD = RPCMethod(
    name="createVerificationFlow",
    params_model=CreateVerificationFlowParams,
    handler=create_verification_flow,
)
