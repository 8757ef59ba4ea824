"""Tests for the JSON-RPC dispatcher.

Protocol errors, result wrapping and the internal-error boundary, with
stub methods and a mocked session.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel, Field

from guildlink.core.errors import RPCResultError
from guildlink.core.result import Err, Ok
from guildlink.rpc.dispatcher import RPCDispatcher, RPCMethod, build_method_table
from guildlink.rpc.registry import build_default_method_table


class _EchoParams(BaseModel):
    text: str = Field(alias="textValue")


class _EchoResult(BaseModel):
    text: str = Field(serialization_alias="textValue")


async def _echo(params: _EchoParams, context) -> Ok[_EchoResult]:
    return Ok(_EchoResult(text=params.text))


async def _deny(params: _EchoParams, context) -> Err[RPCResultError]:
    return Err(RPCResultError.ACCESS_DENIED)


async def _explode(params: _EchoParams, context):
    raise RuntimeError("boom")


@pytest.fixture
def dispatcher() -> RPCDispatcher:
    return RPCDispatcher(
        build_method_table(
            [
                RPCMethod(name="echo", params_model=_EchoParams, handler=_echo),
                RPCMethod(name="deny", params_model=_EchoParams, handler=_deny),
                RPCMethod(name="explode", params_model=_EchoParams, handler=_explode),
            ]
        )
    )


@pytest.fixture
def mock_db() -> AsyncMock:
    return AsyncMock()


async def _call(dispatcher, body, mock_db, logger):
    raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    return await dispatcher.dispatch(raw, db=mock_db, services=MagicMock(), logger=logger)


def _request(method: str, params=None, request_id=1) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


class TestProtocolErrors:
    """Malformed requests map to the standard error codes."""

    @pytest.mark.asyncio
    async def test_parse_error(self, dispatcher, mock_db, logger):
        response = await _call(dispatcher, b"{not json", mock_db, logger)

        assert response == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": -32700, "message": "Parse error"},
        }

    @pytest.mark.asyncio
    async def test_deeply_nested_body_is_parse_error(
        self, dispatcher, mock_db, logger
    ):
        """Nesting beyond the decoder's recursion limit is still answered."""
        body = b"[" * 100_000 + b"]" * 100_000

        response = await _call(dispatcher, body, mock_db, logger)

        assert response["error"] == {"code": -32700, "message": "Parse error"}
        assert response["id"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("constant", [b"NaN", b"Infinity", b"-Infinity"])
    async def test_non_json_constants_are_parse_error(
        self, dispatcher, mock_db, logger, constant
    ):
        body = b'{"jsonrpc": "2.0", "id": ' + constant + b', "method": "echo"}'

        response = await _call(dispatcher, body, mock_db, logger)

        assert response["error"]["code"] == -32700

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            [],
            "echo",
            {"jsonrpc": "1.0", "id": 1, "method": "echo"},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "id": 1, "method": 7},
        ],
    )
    async def test_invalid_request(self, dispatcher, mock_db, logger, body):
        response = await _call(dispatcher, body, mock_db, logger)

        assert response["error"]["code"] == -32600
        assert response["error"]["message"] == "Invalid Request"

    @pytest.mark.asyncio
    async def test_invalid_request_keeps_usable_id(self, dispatcher, mock_db, logger):
        response = await _call(
            dispatcher, {"jsonrpc": "1.0", "id": "abc", "method": "echo"}, mock_db, logger
        )

        assert response["id"] == "abc"

    @pytest.mark.asyncio
    async def test_method_not_found(self, dispatcher, mock_db, logger):
        response = await _call(dispatcher, _request("nope", {}), mock_db, logger)

        assert response == {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32601, "message": "Method not found"},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [None, {}, {"textValue": 5}, ["positional"]])
    async def test_invalid_params(self, dispatcher, mock_db, logger, params):
        response = await _call(dispatcher, _request("echo", params), mock_db, logger)

        assert response["error"] == {"code": -32602, "message": "Invalid params"}


class TestResults:
    """Handler outcomes are wrapped as success or domain error."""

    @pytest.mark.asyncio
    async def test_success_uses_wire_aliases(self, dispatcher, mock_db, logger):
        response = await _call(
            dispatcher, _request("echo", {"textValue": "hi"}, "req-1"), mock_db, logger
        )

        assert response == {
            "jsonrpc": "2.0",
            "id": "req-1",
            "result": {"success": True, "value": {"textValue": "hi"}},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_id", [7, "abc", 1.5, None])
    async def test_request_id_is_echoed(self, dispatcher, mock_db, logger, request_id):
        response = await _call(
            dispatcher, _request("echo", {"textValue": "hi"}, request_id), mock_db, logger
        )

        assert response["id"] == request_id
        assert response["result"]["success"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_id", [True, [1], {"n": 1}])
    async def test_unusable_request_id_is_invalid_request(
        self, dispatcher, mock_db, logger, request_id
    ):
        response = await _call(
            dispatcher, _request("echo", {"textValue": "hi"}, request_id), mock_db, logger
        )

        assert response["error"]["code"] == -32600
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_domain_error_is_a_result(self, dispatcher, mock_db, logger):
        response = await _call(
            dispatcher, _request("deny", {"textValue": "hi"}), mock_db, logger
        )

        assert response["result"] == {"success": False, "error": "AccessDenied"}
        assert "error" not in response

    @pytest.mark.asyncio
    async def test_handler_exception_is_internal_error(
        self, dispatcher, mock_db, logger
    ):
        """A raising handler is answered generically and its session rolled back."""
        response = await _call(
            dispatcher, _request("explode", {"textValue": "hi"}, 9), mock_db, logger
        )

        assert response == {
            "jsonrpc": "2.0",
            "id": 9,
            "error": {"code": -32603, "message": "Internal error"},
        }
        assert "boom" not in json.dumps(response)
        mock_db.rollback.assert_awaited_once()


class TestMethodTable:
    """Routing table construction."""

    def test_duplicate_names_rejected(self):
        method = RPCMethod(name="echo", params_model=_EchoParams, handler=_echo)

        with pytest.raises(ValueError, match="Duplicate RPC method: echo"):
            build_method_table([method, method])

    def test_table_is_read_only(self):
        table = build_default_method_table()

        with pytest.raises(TypeError):
            table["extra"] = table["verifyConnection"]  # type: ignore[index]

    def test_default_table_registers_all_methods(self):
        assert set(build_default_method_table()) == {
            "createVerificationFlow",
            "getDiscordOAuthLink",
            "linkDiscordAccount",
            "verifyConnection",
        }
