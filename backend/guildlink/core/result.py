"""Tagged success/failure values.

Every fallible step in the linking pipeline returns ``Ok(value)`` or
``Err(error)`` and callers propagate failures by early return:

    profile = await directory.fetch_profile(token, logger)
    if isinstance(profile, Err):
        return Err(RPCResultError.DISCORD_ERROR)

Exceptions are reserved for programming errors; the RPC dispatcher
converts any that escape a handler into a generic internal error.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying a typed error (usually a StrEnum member)."""

    error: E


Result: TypeAlias = Ok[T] | Err[E]


def to_wire(result: "Ok[Any] | Err[Any]") -> dict[str, Any]:
    """Serialize a result into the ``{success, value|error}`` wire shape.

    Values that are pydantic models are dumped by alias in JSON mode so
    field names match the camelCase RPC contract.

    Args:
        result: Result to serialize.

    Returns:
        ``{"success": True, "value": ...}`` or ``{"success": False, "error": ...}``.
    """
    if isinstance(result, Err):
        return {"success": False, "error": str(result.error)}

    value = result.value
    dump = getattr(value, "model_dump", None)
    if dump is not None:
        value = dump(by_alias=True, mode="json")
    return {"success": True, "value": value}
