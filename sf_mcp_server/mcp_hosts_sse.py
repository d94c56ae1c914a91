"""
mcp_hosts_sse.py - HTTP MCP server (SSE + request/response) with REST API

MCP over HTTP in two flavours:
- POST /mcp            one JSON-RPC message in, its response out
- GET /sse + POST /sse/message   session stream; responses arrive as SSE events

plus a REST convenience surface (/api/execute, /api/tools, /api/status,
/health) that shares the same dispatcher.

The engine that runs tool calls is separate from the SSE connections, so
a client reconnecting does not interrupt calls already in flight.
"""

import asyncio
import json
import logging
import os
import platform
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional, Set

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .mcp_models import ExecuteRequest
from .mcp_protocol import PARSE_ERROR, error_response, handle_message
from .mcp_schemas import get_tool_catalog, get_tool_definitions
from .mcp_settings import config, setup_logging
from .mcp_tools import execute_raw_command

logger = logging.getLogger(__name__)

SERVICE_MODE = "http"
KEEPALIVE_SECONDS = 20.0
STARTED_AT = time.monotonic()


# ============================================================
# ⚙️ MCP Engine (single background task)
# ============================================================
class McpEngine:
    def __init__(self):
        self.input_queue: Optional[asyncio.Queue] = None
        self.sessions: Dict[str, asyncio.Queue] = {}
        self.is_running = False
        self._tasks: Set[asyncio.Task] = set()

    def start(self) -> asyncio.Task:
        """Create the input queue and launch the engine loop on the running event loop."""
        self.input_queue = asyncio.Queue()
        self.is_running = True
        return asyncio.create_task(self.run())

    async def stop(self, loop_task: asyncio.Task) -> None:
        self.is_running = False
        await self.input_queue.put(None)
        await loop_task
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.sessions.clear()

    async def submit(self, session_id: str, payload: Any) -> None:
        await self.input_queue.put({"session_id": session_id, "payload": payload})

    async def run(self):
        """Main engine loop; every request becomes its own task."""
        logger.info("⚙️ [Engine] MCP engine loop started")

        while self.is_running:
            request_data = await self.input_queue.get()
            if request_data is None:
                break

            task = asyncio.create_task(
                self.process(request_data["session_id"], request_data["payload"])
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.info("⚙️ [Engine] MCP engine loop stopped")

    async def process(self, session_id: str, payload: Any) -> None:
        method = payload.get("method") if isinstance(payload, dict) else None
        logger.info(f"⚙️ [Engine] Processing: {method} (Session: {session_id})")

        try:
            response = await handle_message(payload)
        except Exception:
            logger.exception(f"⚙️ [Engine] Failed to handle {method} (Session: {session_id})")
            return

        if response is None:
            return

        session_queue = self.sessions.get(session_id)
        if session_queue is None:
            logger.warning(f"⚙️ [Engine] Session not found, dropping response: {session_id}")
            return

        await session_queue.put(response)
        logger.info(f"⚙️ [Engine] Response delivered (Session: {session_id})")


engine = McpEngine()


# ============================================================
# 📡 SSE Transport Layer
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the engine on startup, drain it on shutdown."""
    loop_task = engine.start()
    logger.info(f"🚀 {config['server']['name']} started (port {config['mcp']['port']})")
    yield
    await engine.stop(loop_task)
    logger.info("👋 MCP server stopped")


app = FastAPI(
    title="Salesforce CLI MCP Server",
    description="Salesforce CLI tools over MCP (HTTP/SSE) and REST",
    version=config["server"]["version"],
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


async def sse_event_stream(
    request: Request,
    session_id: str,
    session_queue: asyncio.Queue,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncGenerator[str, None]:
    """Endpoint event first, then one message event per response until the client leaves."""
    endpoint_url = f"/sse/message?session_id={session_id}"
    logger.info(f"📡 [SSE] Sending endpoint event: {endpoint_url}")
    yield f"event: endpoint\ndata: {endpoint_url}\n\n"

    try:
        while True:
            if await request.is_disconnected():
                break

            try:
                message = await asyncio.wait_for(session_queue.get(), timeout=keepalive)
                yield f"event: message\ndata: {json.dumps(message, ensure_ascii=False)}\n\n"
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
    finally:
        engine.sessions.pop(session_id, None)
        logger.info(f"📡 [SSE] Connection closed, session removed: {session_id}")


@app.get("/sse")
async def sse_connect(request: Request):
    """Open an SSE session."""
    session_id = str(uuid.uuid4())
    session_queue: asyncio.Queue = asyncio.Queue()
    engine.sessions[session_id] = session_queue

    logger.info(f"📡 [SSE] New connection: {session_id}")

    return StreamingResponse(
        sse_event_stream(request, session_id, session_queue),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@app.post("/sse/message", status_code=202)
async def sse_message(request: Request):
    """Queue a client message for the engine; the response goes out on the session's stream."""
    session_id = request.query_params.get("session_id")
    if not session_id or session_id not in engine.sessions:
        logger.error(f"📨 [POST] Invalid session ID: {session_id}")
        raise HTTPException(status_code=400, detail="Invalid Session")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    method = payload.get("method") if isinstance(payload, dict) else None
    logger.info(f"📨 [POST] Message received: {method} (Session: {session_id})")

    await engine.submit(session_id, payload)
    return {"status": "accepted"}


@app.post("/mcp")
@app.post("/sse")
async def mcp_request(request: Request):
    """JSON-RPC over plain request/response (also accepted on /sse for older clients)."""
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(error_response(None, PARSE_ERROR, "Parse error"))

    response = await handle_message(payload)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(response)


# ============================================================
# 🛠️ REST API
# ============================================================
@app.post("/api/execute")
async def api_execute(body: ExecuteRequest):
    """Run a raw sf command line (without the 'sf' prefix)."""
    if not body.command or not body.command.strip():
        return JSONResponse(status_code=400, content={"error": "Command is required"})

    logger.info(f"[API] Executing command: {body.command}")
    envelope = await execute_raw_command(body.command)

    if not envelope["success"]:
        logger.error(f"[API] Command execution failed: {envelope['error']}")
        return JSONResponse(status_code=500, content={**envelope, "command": body.command})
    return {**envelope, "command": body.command}


@app.get("/api/tools")
async def api_tools():
    return {"tools": get_tool_catalog()}


@app.get("/tools")
async def list_tools():
    """Tool list in MCP format (discovery)"""
    return {"tools": get_tool_definitions()}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": config["server"]["name"],
        "mode": SERVICE_MODE,
    }


ENDPOINTS = {
    "health": "/health",
    "status": "/api/status",
    "tools": "/api/tools",
    "execute": "/api/execute",
    "mcp": "/mcp",
    "sse": "/sse",
}


@app.get("/api/status")
async def status():
    return {
        "service": "Salesforce CLI MCP Server",
        "version": config["server"]["version"],
        "mode": SERVICE_MODE,
        "uptime": time.monotonic() - STARTED_AT,
        "pid": os.getpid(),
        "python": platform.python_version(),
        "sessions": len(engine.sessions),
        "features": ["rest-api", "mcp-protocol", "sse"],
        "endpoints": ENDPOINTS,
    }


@app.get("/")
async def root():
    return {
        "status": "running",
        "service": config["server"]["name"],
        "version": config["server"]["version"],
        "endpoints": ENDPOINTS,
    }


def main() -> None:
    import uvicorn

    setup_logging(config)
    host = config["mcp"]["host"]
    port = config["mcp"]["port"]
    logger.info(f"🚀 [FastAPI] Starting server on {host}:{port}")

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        loop="asyncio",
        timeout_graceful_shutdown=5,
    )
    uvicorn.Server(server_config).run()


if __name__ == "__main__":
    main()
