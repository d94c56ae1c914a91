"""
mcp_flags.py - Argument record to sf command-line flags

camelCase keys become kebab-case flags: targetOrg -> --target-org.
"""

import re
from typing import Any, List, Mapping

_UPPER = re.compile(r"[A-Z]")


def to_flag_name(key: str) -> str:
    return _UPPER.sub(lambda m: "-" + m.group(0).lower(), key)


def _format_value(value: Any) -> str:
    # sf reads "--wait 5", not "--wait 5.0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_flag_args(args: Mapping[str, Any]) -> List[str]:
    """
    Translate arguments into flag tokens, in the mapping's iteration order.

    None and False are skipped, True becomes a bare flag and lists are
    comma-joined into a single value.
    """
    tokens: List[str] = []
    for key, value in args.items():
        if value is None:
            continue

        flag = f"--{to_flag_name(key)}"

        if isinstance(value, bool):
            if value:
                tokens.append(flag)
        elif isinstance(value, (list, tuple)):
            tokens.extend([flag, ",".join(str(item) for item in value)])
        else:
            tokens.extend([flag, _format_value(value)])

    return tokens


def build_flags(args: Mapping[str, Any]) -> str:
    """Flag tokens joined with single spaces. For display only; values are not quoted."""
    return " ".join(build_flag_args(args))
