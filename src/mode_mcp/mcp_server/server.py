"""
server.py — Mode MCP Server (Dual Transport)

Supports two modes:
1. Stdio (default) — Content-Length framed JSON-RPC 2.0 for desktop MCP hosts.
2. HTTP (/rpc)     — JSON-RPC 2.0 over POST, plus /health, /ready, /metrics.

Both transports share one RpcDispatcher built around a ToolRegistry bound to a
single ModeClient.

Start stdio:
    python -m mode_mcp.mcp_server.server

Start HTTP:
    python -m mode_mcp.mcp_server.server --http --port 8001
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Any

import mcp.types as types
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from mode_mcp.mcp_server.auth import (
    UnauthorizedRequest,
    require_bearer_token,
    unauthorized_handler,
)
from mode_mcp.mcp_server.config import ModeSettings, env_bool
from mode_mcp.mcp_server.mode_client import ModeClient
from mode_mcp.mcp_server.observability import RuntimeMetrics
from mode_mcp.mcp_server.rpc_dispatch import RpcDispatcher, rpc_error, server_info
from mode_mcp.mcp_server.session import Session, StdinReader, StdoutWriter
from mode_mcp.mcp_server.tools import build_tool_registry

try:
    __version__ = version("mode-mcp")
except PackageNotFoundError:
    __version__ = os.environ.get("MODE_MCP_VERSION_FALLBACK", "0.1.0+local")

SERVER_NAME = "mode-mcp"

logger = logging.getLogger("mode_mcp.mcp_server")


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,  # stdout carries the protocol in stdio mode
    )


def build_dispatcher(
    settings: ModeSettings,
    client: ModeClient | None = None,
    *,
    metrics: RuntimeMetrics | None = None,
) -> RpcDispatcher:
    """Wire a ModeClient, the tool registry and the dispatcher together."""
    client = client or ModeClient(settings)
    missing = settings.missing_credentials()
    if missing:
        logger.warning(
            "Mode credentials missing (%s); every tool call will fail", ", ".join(missing)
        )
    return RpcDispatcher(
        build_tool_registry(client),
        server_info=server_info(SERVER_NAME, __version__),
        metrics=metrics,
        logger=logger,
        structured_logs=env_bool("MODE_MCP_STRUCTURED_LOGS", False),
        tool_timeout_sec=settings.tool_timeout_sec,
    )


def create_app(
    dispatcher: RpcDispatcher,
    *,
    auth_token: str = "",
    client: ModeClient | None = None,
) -> FastAPI:
    """FastAPI app for the HTTP transport."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        if client is not None:
            await client.aclose()

    app = FastAPI(
        title="mode-mcp Server",
        version=__version__,
        lifespan=lifespan,
        dependencies=[Depends(require_bearer_token)],
    )
    app.add_exception_handler(UnauthorizedRequest, unauthorized_handler)
    app.state.dispatcher = dispatcher
    app.state.auth_token = auth_token

    @app.post("/rpc")
    async def rpc_handler(request: Request) -> Response:
        """HTTP JSON-RPC 2.0 endpoint."""
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(rpc_error(None, types.PARSE_ERROR, "Parse error"))
        if not isinstance(body, dict):
            return JSONResponse(rpc_error(None, types.INVALID_REQUEST, "Invalid Request"))

        payload = await app.state.dispatcher.dispatch(body)
        if payload is None:
            return Response(status_code=204)
        return JSONResponse(payload, status_code=200)

    @app.get("/health")
    async def health() -> Any:
        return {
            "status": "ok",
            "version": __version__,
            "tools": app.state.dispatcher.registry.names(),
            "uptime_sec": app.state.dispatcher.metrics.uptime_sec(),
        }

    @app.get("/ready")
    async def ready() -> Any:
        return {"status": "ready"}

    @app.get("/metrics")
    async def metrics() -> Any:
        return app.state.dispatcher.metrics.snapshot()

    return app


async def run_stdio(settings: ModeSettings) -> None:
    """Serve one session over stdin/stdout until EOF."""
    async with ModeClient(settings) as client:
        dispatcher = build_dispatcher(settings, client)
        session = Session(dispatcher, StdinReader(), StdoutWriter())
        await session.run()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Mode Analytics MCP Server")
    parser.add_argument(
        "--http", action="store_true", help="Serve JSON-RPC over HTTP instead of stdio"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MODE_MCP_PORT", 8001)),
        help="HTTP port (default: 8001)",
    )
    parser.add_argument("--host", default=os.environ.get("MODE_MCP_HOST", "127.0.0.1"))
    parser.add_argument("--config", default=None, help="Optional YAML settings file")
    args = parser.parse_args(argv)

    configure_logging()
    settings = ModeSettings.load(config_path=args.config)

    if args.http or env_bool("MODE_MCP_HTTP", False):
        import uvicorn

        logger.info(f"Starting Mode MCP Server in HTTP mode on {args.host}:{args.port}")
        client = ModeClient(settings)
        app = create_app(
            build_dispatcher(settings, client),
            auth_token=os.environ.get("MODE_MCP_AUTH_TOKEN", "").strip(),
            client=client,
        )
        uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    else:
        logger.info("Starting Mode MCP Server in stdio mode")
        asyncio.run(run_stdio(settings))


if __name__ == "__main__":
    main()
