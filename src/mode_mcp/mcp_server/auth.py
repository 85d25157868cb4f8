"""
auth.py — Bearer-token gate for the HTTP transport.

When ``app.state.auth_token`` is non-empty every route requires
``Authorization: Bearer <token>``. The stdio transport is never gated.
"""

import logging
import secrets

from fastapi import Request
from fastapi.responses import JSONResponse

from mode_mcp.mcp_server.response_utils import new_trace_id

logger = logging.getLogger("mode_mcp.mcp_server.auth")


class UnauthorizedRequest(Exception):
    def __init__(self, path: str, trace_id: str) -> None:
        super().__init__(f"Unauthorized request to {path}")
        self.path = path
        self.trace_id = trace_id


def bearer_token(request: Request) -> str | None:
    """The credentials of a ``Bearer`` Authorization header, if any."""
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


async def require_bearer_token(request: Request) -> None:
    """FastAPI dependency rejecting requests that lack the configured token."""
    expected = getattr(request.app.state, "auth_token", "")
    if not expected:
        return
    provided = bearer_token(request)
    if provided is not None and secrets.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        return
    raise UnauthorizedRequest(request.url.path, new_trace_id())


async def unauthorized_handler(_request: Request, exc: UnauthorizedRequest) -> JSONResponse:
    logger.warning("Rejected unauthorized %s request (trace_id=%s)", exc.path, exc.trace_id)
    return JSONResponse(
        {"error": "Unauthorized", "trace_id": exc.trace_id},
        status_code=401,
        headers={"WWW-Authenticate": "Bearer"},
    )
