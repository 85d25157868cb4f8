"""JSON-RPC method dispatch shared by the stdio and HTTP transports."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import mcp.types as types

from mode_mcp.mcp_server.errors import ToolTimeoutError
from mode_mcp.mcp_server.observability import RuntimeMetrics, log_rpc_event
from mode_mcp.mcp_server.registry import ToolRegistry
from mode_mcp.mcp_server.response_utils import envelope_for_exception, new_trace_id
from mode_mcp.mcp_server.schemas import (
    InitializeRequest,
    InvalidParamsRequest,
    RpcRequest,
    ToolsCallRequest,
    ToolsListRequest,
    parse_request,
)

PROTOCOL_VERSION = "2024-11-05"

# Tool handler failures. Unknown methods and unknown tools share METHOD_NOT_FOUND.
TOOL_EXECUTION_ERROR = -32000


@dataclass(frozen=True)
class RpcDispatchResult:
    payload: dict[str, Any]
    ok: bool
    level: int = logging.INFO
    error_code: int | None = None


def rpc_error(req_id: Any, code: int, message: str, data: dict | None = None) -> dict:
    error_obj: dict[str, Any] = {"code": code, "message": message}
    if data:
        error_obj["data"] = data
    return {"jsonrpc": "2.0", "id": req_id, "error": error_obj}


def rpc_ok(req_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def text_content(value: Any) -> dict[str, Any]:
    """Wrap a tool return value as an MCP text content block of compact JSON."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return types.TextContent(type="text", text=text).model_dump(mode="json", exclude_none=True)


def server_info(name: str, version: str) -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "serverInfo": {"name": name, "version": version},
        "capabilities": {"tools": {}},
    }


class RpcDispatcher:
    """
    Routes JSON-RPC requests to ``initialize``, ``tools/list`` and ``tools/call``.

    Returns the response payload, or ``None`` when nothing must be sent back
    (undecodable input, or a notification without ``id``).
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        server_info: dict[str, Any],
        metrics: RuntimeMetrics | None = None,
        logger: logging.Logger | None = None,
        structured_logs: bool = False,
        tool_timeout_sec: float = 0.0,
    ) -> None:
        self.registry = registry
        self.server_info = server_info
        self.metrics = metrics or RuntimeMetrics()
        self.logger = logger or logging.getLogger("mode_mcp.mcp_server.rpc")
        self.structured_logs = structured_logs
        self.tool_timeout_sec = tool_timeout_sec

    def _log(self, level: int, event: str, **fields: Any) -> None:
        log_rpc_event(
            logger=self.logger,
            structured_logs=self.structured_logs,
            level=level,
            event=event,
            **fields,
        )

    async def dispatch_body(self, body: bytes) -> dict[str, Any] | None:
        """Decode one framed body and dispatch it. Undecodable bodies are dropped."""
        try:
            message = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            self.metrics.record_dropped_frame()
            self.logger.warning("Dropping message with invalid JSON body: %s", exc)
            return None
        return await self.dispatch(message)

    async def dispatch(self, message: Any) -> dict[str, Any] | None:
        try:
            request = parse_request(message)
        except ValueError as exc:
            self.metrics.record_dropped_frame()
            self.logger.warning("Dropping message: %s", exc)
            return None

        start = time.perf_counter()
        trace_id = new_trace_id()
        method = str(getattr(request, "method", request.kind))
        tool_name = request.name if isinstance(request, ToolsCallRequest) else None
        self._log(
            logging.INFO,
            "rpc_request_received",
            trace_id=trace_id,
            req_id=request.id,
            method=method,
            tool=tool_name,
            notification=not request.has_id or None,
        )

        outcome = await self.handle(request, trace_id=trace_id)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        self.metrics.record_rpc(
            method=method,
            duration_ms=duration_ms,
            ok=outcome.ok,
            tool_name=tool_name,
            error_code=outcome.error_code,
        )
        self._log(
            outcome.level,
            "rpc_request_completed",
            trace_id=trace_id,
            req_id=request.id,
            method=method,
            tool=tool_name,
            ok=outcome.ok,
            error_code=outcome.error_code,
            duration_ms=duration_ms,
        )
        if not request.has_id:
            return None
        return outcome.payload

    async def handle(self, request: RpcRequest, *, trace_id: str = "") -> RpcDispatchResult:
        req_id = request.id

        if isinstance(request, InitializeRequest):
            return RpcDispatchResult(payload=rpc_ok(req_id, self.server_info), ok=True)

        if isinstance(request, ToolsListRequest):
            tools = self.registry.descriptors()
            return RpcDispatchResult(payload=rpc_ok(req_id, {"tools": tools}), ok=True)

        if isinstance(request, InvalidParamsRequest):
            return RpcDispatchResult(
                payload=rpc_error(
                    req_id,
                    types.INVALID_PARAMS,
                    f"Invalid params for {request.method}: {request.detail}",
                ),
                ok=False,
                level=logging.WARNING,
                error_code=types.INVALID_PARAMS,
            )

        if isinstance(request, ToolsCallRequest):
            return await self._call_tool(request, trace_id=trace_id or new_trace_id())

        return RpcDispatchResult(
            payload=rpc_error(req_id, types.METHOD_NOT_FOUND, f"Unknown method: {request.method}"),
            ok=False,
            level=logging.WARNING,
            error_code=types.METHOD_NOT_FOUND,
        )

    async def _call_tool(self, request: ToolsCallRequest, *, trace_id: str) -> RpcDispatchResult:
        req_id = request.id
        spec = self.registry.get(request.name)
        if spec is None:
            return RpcDispatchResult(
                payload=rpc_error(
                    req_id,
                    types.METHOD_NOT_FOUND,
                    f"Unknown tool: {request.name or '<missing name>'}",
                ),
                ok=False,
                level=logging.WARNING,
                error_code=types.METHOD_NOT_FOUND,
            )

        try:
            if self.tool_timeout_sec > 0:
                try:
                    value = await asyncio.wait_for(
                        spec(request.arguments), timeout=self.tool_timeout_sec
                    )
                except asyncio.TimeoutError as exc:
                    raise ToolTimeoutError(spec.name, self.tool_timeout_sec) from exc
            else:
                value = await spec(request.arguments)
        except Exception as exc:
            self.logger.exception(f"Tool {spec.name} raised an error (trace_id={trace_id})")
            envelope = envelope_for_exception(exc, tool_name=spec.name, trace_id=trace_id)
            return RpcDispatchResult(
                payload=rpc_error(
                    req_id,
                    TOOL_EXECUTION_ERROR,
                    str(exc) or type(exc).__name__,
                    data={"error": envelope},
                ),
                ok=False,
                level=logging.ERROR,
                error_code=TOOL_EXECUTION_ERROR,
            )

        return RpcDispatchResult(
            payload=rpc_ok(req_id, {"content": [text_content(value)]}),
            ok=True,
        )
