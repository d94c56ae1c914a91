"""
mcp_output.py - Normalize captured CLI output

sf prints machine-readable JSON only when --json was requested, so the
output is decoded in three tiers: JSON, then stdout text, then stderr text.
Normalization itself never fails.
"""

import json
from typing import Any

from .mcp_models import ExecutionResult


def _reject_constant(name: str) -> Any:
    # NaN/Infinity are not JSON and cannot be sent back out as JSON
    raise ValueError(f"non-standard JSON constant: {name}")


def normalize_output(result: ExecutionResult) -> Any:
    try:
        return json.loads(result.stdout, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return result.stdout or result.stderr
