#!/usr/bin/env python3
"""
mcp_tools_runner.py - One-shot tool runner

Runs a single tool call from the command line and prints the response
envelope, without starting a server.
Usage: sf-mcp-run <tool_name> [json_arguments]
"""

import asyncio
import json
import logging
import sys
from typing import List, Optional

from .mcp_schemas import TOOL_REGISTRY
from .mcp_settings import config, setup_logging
from .mcp_tools import execute_tool

USAGE = "Usage: sf-mcp-run <tool_name> [json_arguments]"


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # Errors only on stderr; the result goes to stdout
    setup_logging({**config, "logging": {"level": "ERROR"}}, stream=sys.stderr)

    if not argv or len(argv) > 2:
        print(USAGE)
        print(f"Tools: {', '.join(TOOL_REGISTRY)}")
        return 1

    tool_name = argv[0]
    json_args_str = argv[1] if len(argv) > 1 else "{}"

    try:
        args = json.loads(json_args_str)
    except json.JSONDecodeError:
        print(f"Error: Invalid JSON arguments: {json_args_str}")
        return 1

    result = asyncio.run(execute_tool(tool_name, args))
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
