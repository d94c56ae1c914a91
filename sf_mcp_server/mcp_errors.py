"""
mcp_errors.py - Error types raised by the tool-dispatch core

Every one of these is caught at the dispatcher boundary and turned into
a {"success": False, "error": ...} envelope.
"""

from typing import Optional


class ToolError(Exception):
    """Base class for per-call failures."""


class ValidationError(ToolError):
    """Caller-supplied arguments violate a parameter spec."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid argument '{field}': {message}")


class UnknownToolError(ToolError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ExecutionError(ToolError):
    """The child process failed to spawn, exited non-zero, timed out or overflowed."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"Salesforce CLI command failed: {message}")
