"""
schemas.py — JSON-RPC envelope models and JSON Schema fragments for MCP tool I/O.

Inbound messages are validated once, at the parse boundary, into one of the
request types below so the dispatcher never re-checks shapes ad hoc.
"""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mode_mcp.mcp_server.errors import ToolArgumentError


class JsonRpcEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    jsonrpc: Any = "2.0"
    id: Any = None
    method: Any = ""
    params: Any = None

    @property
    def has_id(self) -> bool:
        """False for notifications. An explicit ``"id": null`` still counts as present."""
        return "id" in self.model_fields_set


class _RpcRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Any = None
    has_id: bool = True


class InitializeRequest(_RpcRequest):
    kind: Literal["initialize"] = "initialize"


class ToolsListRequest(_RpcRequest):
    kind: Literal["tools/list"] = "tools/list"


class ToolsCallRequest(_RpcRequest):
    kind: Literal["tools/call"] = "tools/call"
    name: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)


class InvalidParamsRequest(_RpcRequest):
    kind: Literal["invalid_params"] = "invalid_params"
    method: str
    detail: str


class UnknownRequest(_RpcRequest):
    kind: Literal["unknown"] = "unknown"
    method: Any


RpcRequest = Union[
    InitializeRequest, ToolsListRequest, ToolsCallRequest, InvalidParamsRequest, UnknownRequest
]


class _ToolsCallParams(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    arguments: dict[str, Any] | None = None


def parse_request(message: Any) -> RpcRequest:
    """
    Map a decoded JSON value onto the request union.

    Raises ``ValueError`` when ``message`` is not a JSON object at all. Any other
    ``method`` value, including a non-string one, maps to ``UnknownRequest``.
    """
    if not isinstance(message, dict):
        raise ValueError(f"JSON-RPC message must be an object, got {type(message).__name__}")
    envelope = JsonRpcEnvelope.model_validate(message)

    common = {"id": envelope.id, "has_id": envelope.has_id}
    method = envelope.method

    if method == "initialize":
        return InitializeRequest(**common)
    if method == "tools/list":
        return ToolsListRequest(**common)
    if method == "tools/call":
        params = envelope.params if envelope.params is not None else {}
        if not isinstance(params, dict):
            return InvalidParamsRequest(**common, method=method, detail="params must be an object")
        try:
            call = _ToolsCallParams.model_validate(params)
        except ValidationError as exc:
            err = exc.errors()[0]
            where = ".".join(str(p) for p in err["loc"]) or "params"
            return InvalidParamsRequest(**common, method=method, detail=f"{where}: {err['msg']}")
        return ToolsCallRequest(**common, name=call.name or None, arguments=call.arguments or {})
    return UnknownRequest(**common, method=method)


# ------------------------------------------------------------------
# Reusable input schema fragments
# ------------------------------------------------------------------

_REPORT_TOKEN_PROP = {
    "reportToken": {
        "type": "string",
        "description": "Mode report token (the id in the report URL).",
    }
}

_RUN_ID_PROP = {
    "runId": {
        "type": "string",
        "description": "Report run token returned by runReport or listed on the report.",
    }
}


def tool_input_schema(extra_props: dict | None = None) -> dict:
    """Return a JSON Schema object for tool inputs. Required arguments are checked by the tool."""
    props: dict[str, Any] = {}
    if extra_props:
        props.update(extra_props)
    return {"type": "object", "properties": props}


def report_input_schema(extra_props: dict | None = None) -> dict:
    return tool_input_schema({**_REPORT_TOKEN_PROP, **(extra_props or {})})


def run_input_schema(extra_props: dict | None = None) -> dict:
    return report_input_schema({**_RUN_ID_PROP, **(extra_props or {})})


def require_argument(value: Any, name: str) -> Any:
    """Return ``value``, raising ToolArgumentError naming ``name`` when absent or blank."""
    if value is None or value is False or (isinstance(value, str) and not value.strip()):
        raise ToolArgumentError(name)
    if isinstance(value, (dict, list)):
        raise ToolArgumentError(name, f"{name} must be a string")
    return value
