"""
response_utils.py — Shared response helpers for MCP tool and RPC UX.
"""

from typing import Any
from uuid import uuid4

from mode_mcp.mcp_server.errors import (
    ConfigurationError,
    ModeApiError,
    ModeConnectionError,
    ToolArgumentError,
    ToolTimeoutError,
)


def new_trace_id() -> str:
    """Generate a short correlation ID for request/response tracing."""
    return uuid4().hex[:12]


def build_error_envelope(
    *,
    category: str,
    code: str,
    message: str,
    remediation: str,
    retryable: bool,
    trace_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Return a machine- and human-friendly error envelope.
    """
    envelope: dict[str, Any] = {
        "category": category,
        "code": code,
        "message": message,
        "remediation": remediation,
        "retryable": retryable,
        "trace_id": trace_id,
    }
    if details:
        envelope["details"] = details
    return envelope


def envelope_for_exception(exc: BaseException, *, tool_name: str, trace_id: str) -> dict[str, Any]:
    """Classify a tool failure into an error envelope."""
    if isinstance(exc, ConfigurationError):
        return build_error_envelope(
            category="config",
            code="credentials_missing",
            message=str(exc),
            remediation="Set MODE_WORKSPACE, MODE_TOKEN and MODE_SECRET (env or .env.local).",
            retryable=False,
            trace_id=trace_id,
            details={"missing": exc.missing},
        )
    if isinstance(exc, ToolArgumentError):
        return build_error_envelope(
            category="argument",
            code="invalid_tool_arguments",
            message=str(exc),
            remediation=f"Check the inputSchema of {tool_name} from tools/list.",
            retryable=False,
            trace_id=trace_id,
            details={"argument": exc.argument},
        )
    if isinstance(exc, ModeApiError):
        return build_error_envelope(
            category="remote",
            code="mode_api_error",
            message=str(exc),
            remediation="Verify the report token / run id and the API key permissions.",
            retryable=exc.status_code >= 500 or exc.status_code == 429,
            trace_id=trace_id,
            details={"status_code": exc.status_code},
        )
    if isinstance(exc, ModeConnectionError):
        return build_error_envelope(
            category="remote",
            code="mode_api_unreachable",
            message=str(exc),
            remediation="Check network access to the Mode API and MODE_API_BASE_URL.",
            retryable=True,
            trace_id=trace_id,
        )
    if isinstance(exc, ToolTimeoutError):
        return build_error_envelope(
            category="timeout",
            code="tool_timeout",
            message=str(exc),
            remediation="Retry, or raise MODE_MCP_TOOL_TIMEOUT_SEC for large reports.",
            retryable=True,
            trace_id=trace_id,
        )
    return build_error_envelope(
        category="internal",
        code="tool_execution_failed",
        message=f"{type(exc).__name__}: {str(exc)}",
        remediation=(
            "Retry once for transient failures. "
            "If it continues, inspect server logs with trace_id."
        ),
        retryable=False,
        trace_id=trace_id,
    )
