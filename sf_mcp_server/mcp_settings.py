"""
mcp_settings.py - Server configuration and logging setup

Loads the bundled mcp_config.json once at import time. The only runtime
override is the MCP_PORT environment variable for the HTTP transport.
"""

import copy
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

logger = logging.getLogger(__name__)

# Config file path
CONFIG_PATH = Path(__file__).parent / "mcp_config" / "mcp_config.json"

PORT_ENV_VAR = "MCP_PORT"

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {"name": "salesforce-cli-mcp-server", "version": "1.0.0"},
    "mcp": {"host": "0.0.0.0", "port": 3000},
    "cli": {"name": "sf", "timeout_seconds": 300, "max_output_bytes": 10 * 1024 * 1024},
    "logging": {"level": "INFO"},
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_config(path: Path = CONFIG_PATH, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Load the config file, falling back to the built-in defaults.

    Missing sections are filled from DEFAULT_CONFIG, then MCP_PORT is applied.
    """
    environ = os.environ if environ is None else environ
    config = copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, encoding="utf-8") as f:
            loaded = json.load(f)
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
    except (OSError, ValueError) as e:
        logger.warning(f"⚠️ [Config] Failed to load {path} (using defaults): {e}")

    port = environ.get(PORT_ENV_VAR)
    if port:
        try:
            config["mcp"]["port"] = int(port)
        except ValueError:
            logger.warning(f"⚠️ [Config] Ignoring invalid {PORT_ENV_VAR}={port!r}")

    return config


def setup_logging(config: Dict[str, Any], stream: TextIO = sys.stdout) -> None:
    """Configure root logging. The stdio host passes stderr since stdout carries the protocol."""
    level_name = str(config.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(stream)],
        force=True,
    )


config = load_config()
