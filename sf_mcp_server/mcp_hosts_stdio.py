"""
mcp_hosts_stdio.py - stdio MCP server

Newline-delimited JSON-RPC on stdin/stdout for clients that spawn the
server as a subprocess. Each request runs as its own task, so a slow sf
command does not hold up other calls. stdout carries only protocol
messages; logs go to stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, Set, TextIO

from .mcp_protocol import INTERNAL_ERROR, error_response, handle_raw
from .mcp_settings import config, setup_logging

logger = logging.getLogger(__name__)


def _internal_error(line: str, exc: Exception) -> Optional[Dict[str, Any]]:
    """Error reply for a request that blew up; notifications stay unanswered."""
    try:
        payload = json.loads(line)
    except (ValueError, RecursionError):
        return error_response(None, INTERNAL_ERROR, f"Internal error: {exc}")
    if isinstance(payload, dict) and "id" not in payload:
        return None
    request_id = payload.get("id") if isinstance(payload, dict) else None
    return error_response(request_id, INTERNAL_ERROR, f"Internal error: {exc}")


class StdioHost:
    """Reads requests from one stream and writes responses to another."""

    def __init__(self, stdin: TextIO, stdout: TextIO):
        self.stdin = stdin
        self.stdout = stdout
        self._write_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    async def _write(self, message: Dict[str, Any]) -> None:
        async with self._write_lock:
            self.stdout.write(json.dumps(message, ensure_ascii=False) + "\n")
            self.stdout.flush()

    async def _handle(self, line: str) -> None:
        try:
            response = await handle_raw(line)
        except Exception as e:
            logger.exception("[Stdio] Failed to handle message")
            response = _internal_error(line, e)
        if response is not None:
            await self._write(response)

    def _spawn(self, line: str) -> None:
        task = asyncio.create_task(self._handle(line))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def serve(self) -> None:
        """Serve until EOF on stdin, then finish the calls still running."""
        logger.info("🚀 [Stdio] Salesforce CLI MCP server running on stdio")

        while True:
            line: Optional[str] = await asyncio.to_thread(self.stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            self._spawn(line)

        if self._tasks:
            logger.info(f"[Stdio] EOF received, waiting for {len(self._tasks)} call(s)")
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("👋 [Stdio] Server stopped")


def main() -> None:
    setup_logging(config, stream=sys.stderr)
    try:
        asyncio.run(StdioHost(sys.stdin, sys.stdout).serve())
    except KeyboardInterrupt:
        logger.info("👋 [Stdio] Interrupted")


if __name__ == "__main__":
    main()
