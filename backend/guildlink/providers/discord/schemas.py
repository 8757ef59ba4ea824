"""Discord wire payloads.

Only the fields this service reads are declared; unknown fields are
ignored. These models are the schema-check step between an untyped
``FetchResponse.body`` and a domain value.
"""

from pydantic import BaseModel, TypeAdapter


class TokenResponse(BaseModel):
    """Successful ``/oauth2/token`` response."""

    access_token: str
    expires_in: int
    refresh_token: str
    scope: str
    token_type: str


class TokenErrorResponse(BaseModel):
    """RFC 6749 error response from ``/oauth2/token``."""

    error: str
    error_description: str | None = None


class UserResponse(BaseModel):
    """``/users/@me`` response."""

    id: str
    username: str


class PartialGuild(BaseModel):
    """One entry of ``/users/@me/guilds``."""

    id: str
    name: str


PartialGuildList: TypeAdapter[list[PartialGuild]] = TypeAdapter(list[PartialGuild])
