"""Tests for MCP JSON-RPC handling."""

import asyncio
import json

from sf_mcp_server.mcp_models import ExecutionResult
from sf_mcp_server.mcp_protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    handle_message,
    handle_raw,
    tool_call_result,
)


def handle(payload):
    return asyncio.run(handle_message(payload))


def test_initialize_echoes_supported_version():
    response = handle(
        {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2024-11-05"}}
    )
    result = response["result"]
    assert response["id"] == 1
    assert result["protocolVersion"] == "2024-11-05"
    assert result["serverInfo"]["name"] == "salesforce-cli-mcp-server"
    assert result["capabilities"] == {"tools": {}}


def test_initialize_unknown_version_gets_latest():
    response = handle({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "1999"}})
    assert response["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION


def test_ping():
    assert handle({"jsonrpc": "2.0", "id": "a", "method": "ping"}) == {
        "jsonrpc": "2.0",
        "id": "a",
        "result": {},
    }


def test_tools_list():
    response = handle({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
    names = [tool["name"] for tool in response["result"]["tools"]]
    assert len(names) == 8
    assert "sf_custom_command" in names


def test_tools_call_success(fake_executor):
    fake_executor.result = ExecutionResult(stdout='{"status": 0}')
    response = handle(
        {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "sf_org_list", "arguments": {"all": True}}}
    )
    content = response["result"]["content"]
    assert content[0]["type"] == "text"
    assert json.loads(content[0]["text"]) == {"status": 0}
    assert "isError" not in response["result"]
    assert fake_executor.calls == [("sf", "org", "list", "--json", "--all")]


def test_tools_call_failure_is_tool_error_not_rpc_error(fake_executor):
    response = handle(
        {"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": {"name": "sf_nonexistent"}}
    )
    assert "error" not in response
    assert response["result"] == {
        "content": [{"type": "text", "text": "Error: Unknown tool: sf_nonexistent"}],
        "isError": True,
    }


def test_tools_call_without_name():
    response = handle({"jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {}})
    assert response["error"]["code"] == INVALID_PARAMS


def test_unknown_method():
    response = handle({"jsonrpc": "2.0", "id": 6, "method": "resources/list"})
    assert response["error"]["code"] == METHOD_NOT_FOUND


def test_notification_gets_no_response():
    assert handle({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None


def test_client_response_gets_no_response():
    assert handle({"jsonrpc": "2.0", "id": 9, "result": {}}) is None


def test_non_object_message():
    response = handle([1, 2, 3])
    assert response["error"]["code"] == INVALID_REQUEST


def test_missing_method():
    response = handle({"jsonrpc": "2.0", "id": 7})
    assert response["error"]["code"] == INVALID_REQUEST


def test_params_must_be_object():
    response = handle({"jsonrpc": "2.0", "id": 8, "method": "tools/list", "params": [1]})
    assert response["error"]["code"] == INVALID_PARAMS


def test_parse_error():
    response = asyncio.run(handle_raw("{not json"))
    assert response["error"]["code"] == PARSE_ERROR
    assert response["id"] is None


def test_tool_call_result_text_is_indented_json():
    result = tool_call_result({"success": True, "data": {"a": [1]}})
    assert result["content"][0]["text"] == json.dumps({"a": [1]}, indent=2)
