"""
mcp_protocol.py - MCP JSON-RPC message handling

Shared by the stdio and HTTP/SSE hosts. Each host only moves messages;
method handling and result formatting live here.
"""

import json
import logging
from typing import Any, Dict, Optional

from .mcp_schemas import get_tool_definitions
from .mcp_settings import config
from .mcp_tools import execute_tool

logger = logging.getLogger(__name__)

LATEST_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class McpMethodError(Exception):
    """JSON-RPC level failure (as opposed to a failed tool call)."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def tool_call_result(envelope: Dict[str, Any]) -> Dict[str, Any]:
    """Pack a response envelope as MCP text content."""
    if envelope.get("success"):
        text = json.dumps(envelope.get("data"), ensure_ascii=False, indent=2)
        return {"content": [{"type": "text", "text": text}]}
    return {
        "content": [{"type": "text", "text": f"Error: {envelope.get('error')}"}],
        "isError": True,
    }


def server_info() -> Dict[str, Any]:
    return {"name": config["server"]["name"], "version": config["server"]["version"]}


async def dispatch_method(method: str, params: Dict[str, Any]) -> Any:
    """Business logic per MCP method"""
    if method == "initialize":
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {}},
            "serverInfo": server_info(),
        }
    elif method == "ping":
        return {}
    elif method == "tools/list":
        return {"tools": get_tool_definitions()}
    elif method == "tools/call":
        name = params.get("name")
        if not isinstance(name, str):
            raise McpMethodError(INVALID_PARAMS, "tools/call requires a string 'name'")
        envelope = await execute_tool(name, params.get("arguments"))
        return tool_call_result(envelope)
    raise McpMethodError(METHOD_NOT_FOUND, f"Method not found: {method}")


async def handle_message(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Handle one decoded JSON-RPC message.

    Returns:
        Dict | None: the response, or None for notifications
    """
    if not isinstance(payload, dict):
        return error_response(None, INVALID_REQUEST, "Invalid Request")

    request_id = payload.get("id")
    is_notification = "id" not in payload
    method = payload.get("method")

    if not isinstance(method, str):
        if "result" in payload or "error" in payload:
            # A response from the client; this server sends no requests
            return None
        if is_notification:
            return None
        return error_response(request_id, INVALID_REQUEST, "Invalid Request: missing method")

    params = payload.get("params")
    if params is None:
        params = {}

    if is_notification:
        logger.debug(f"[Protocol] Notification received: {method}")
        return None

    if not isinstance(params, dict):
        return error_response(request_id, INVALID_PARAMS, "params must be an object")

    try:
        result = await dispatch_method(method, params)
    except McpMethodError as e:
        logger.warning(f"[Protocol] {method} rejected: {e.message}")
        return error_response(request_id, e.code, e.message)

    return {"jsonrpc": "2.0", "id": request_id, "result": result}


async def handle_raw(line: str) -> Optional[Dict[str, Any]]:
    """Decode one JSON text and handle it."""
    try:
        payload = json.loads(line)
    except ValueError as e:
        logger.error(f"[Protocol] Invalid JSON received: {e}")
        return error_response(None, PARSE_ERROR, "Parse error")
    return await handle_message(payload)
