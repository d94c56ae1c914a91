"""
Salesforce CLI MCP server.

Exposes a fixed catalog of `sf` commands as MCP tools over stdio and
HTTP/SSE, plus a small REST API.
"""

__version__ = "1.0.0"

from .mcp_errors import ExecutionError, ToolError, UnknownToolError, ValidationError
from .mcp_tools import execute_raw_command, execute_tool

__all__ = [
    "ExecutionError",
    "ToolError",
    "UnknownToolError",
    "ValidationError",
    "execute_raw_command",
    "execute_tool",
    "__version__",
]
