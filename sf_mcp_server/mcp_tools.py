"""
mcp_tools.py - Tool dispatcher

Turns a tool call (name + raw arguments) into one sf child process and
wraps the outcome in a response envelope:

    {"success": True, "data": <parsed JSON or raw text>}
    {"success": False, "error": "<message>"}

Nothing raised below this layer reaches a transport.
"""

import json
import logging
import shlex
from typing import Any, Dict, List, Mapping, Optional

from . import mcp_executor
from .mcp_errors import ToolError, ValidationError
from .mcp_flags import build_flag_args
from .mcp_models import CommandInvocation, ToolDefinition
from .mcp_output import normalize_output
from .mcp_schemas import lookup, validate_arguments
from .mcp_settings import config

logger = logging.getLogger(__name__)


def cli_name() -> str:
    return config["cli"]["name"]


def success_envelope(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def error_envelope(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message}


def split_command(command: Any, field: str = "command") -> List[str]:
    """Split a caller-supplied command line into argv without a shell."""
    if not isinstance(command, str):
        raise ValidationError(field, f"expected string, got {type(command).__name__}")
    try:
        tokens = shlex.split(command)
    except ValueError as e:
        raise ValidationError(field, f"cannot parse command line: {e}")
    if not tokens:
        raise ValidationError(field, "command is empty")
    return tokens


def build_invocation(tool: ToolDefinition, record: Mapping[str, Any]) -> CommandInvocation:
    """sf + the tool's fixed subcommand + flags, or sf + the caller's own command."""
    if tool.raw_command:
        tail = split_command(record["command"])
    else:
        tail = [*tool.command, *build_flag_args(record)]
    return CommandInvocation(argv=(cli_name(), *tail))


async def _run(invocation: CommandInvocation) -> Any:
    logger.info(f"[Tools] Running: {invocation.display}")
    result = await mcp_executor.run_command(
        invocation.argv,
        timeout=config["cli"]["timeout_seconds"],
        max_output_bytes=config["cli"]["max_output_bytes"],
    )
    return normalize_output(result)


async def execute_tool(tool_name: str, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Run a tool.

    Args:
        tool_name: name of the tool to run
        arguments: untyped arguments from the caller

    Returns:
        Dict: response envelope
    """
    logger.info(f"[Tools] Tool call requested: {tool_name}")
    logger.debug(f"[Tools] Arguments: {json.dumps(arguments, ensure_ascii=False, default=str)}")

    try:
        tool = lookup(tool_name)
        record = validate_arguments(tool, arguments)
        invocation = build_invocation(tool, record)
        data = await _run(invocation)
    except ToolError as e:
        logger.error(f"[Tools] {tool_name} failed: {e}")
        return error_envelope(str(e))
    except Exception as e:
        logger.exception(f"[Tools] Unexpected error in {tool_name}")
        return error_envelope(f"Internal error: {e}")

    logger.info(f"[Tools] Tool call completed: {tool_name}")
    return success_envelope(data)


async def execute_raw_command(command: Any) -> Dict[str, Any]:
    """Run an sf command line given as one string (REST /api/execute)."""
    logger.info(f"[Tools] Raw command requested: {command}")

    try:
        invocation = CommandInvocation(argv=(cli_name(), *split_command(command)))
        data = await _run(invocation)
    except ToolError as e:
        logger.error(f"[Tools] Raw command failed: {e}")
        return error_envelope(str(e))
    except Exception as e:
        logger.exception("[Tools] Unexpected error in raw command")
        return error_envelope(f"Internal error: {e}")

    return success_envelope(data)
