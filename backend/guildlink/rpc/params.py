"""Parameter types shared by RPC methods."""

import re
import uuid
from typing import Annotated, Any

from pydantic import BeforeValidator

# Canonical 8-4-4-4-12 form only; no braces, URN prefix or bare hex
_HYPHENATED_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def _require_hyphenated(value: Any) -> Any:
    if not isinstance(value, str) or not _HYPHENATED_UUID.fullmatch(value):
        msg = "expected a hyphenated UUID string"
        raise ValueError(msg)
    return value


MinecraftUUID = Annotated[uuid.UUID, BeforeValidator(_require_hyphenated)]
