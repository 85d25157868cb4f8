"""ModeClient — authenticated async access to the Mode Analytics REST API."""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from mode_mcp.mcp_server.config import ModeSettings
from mode_mcp.mcp_server.errors import ModeApiError, ModeConnectionError

logger = logging.getLogger("mode_mcp.mcp_server.mode_client")

ERROR_BODY_LIMIT = 500


def encode_segment(value: Any) -> str:
    return quote(str(value), safe="")


def _truncate(text: str, limit: int = ERROR_BODY_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class ModeClient:
    """Thin wrapper over :class:`httpx.AsyncClient` for one Mode workspace.

    Every request is checked against the configured credentials first, so a
    missing workspace/token/secret fails before any network traffic.

    Usage::

        async with ModeClient(settings) as client:
            reports = await client.request_json("GET", "reports")
    """

    def __init__(
        self,
        settings: ModeSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def settings(self) -> ModeSettings:
        return self._settings

    async def __aenter__(self) -> "ModeClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        self._settings.require_credentials()
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.workspace_url,
                auth=httpx.BasicAuth(self._settings.token, self._settings.secret),
                headers={"Accept": "application/json"},
                timeout=self._settings.http_timeout_sec,
                transport=self._transport,
            )
        return self._client

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        json_body: Any | None = None,
    ) -> Any:
        """Call the API and decode the body (JSON when labelled so, text otherwise)."""
        http = self._http()
        path = path.lstrip("/")
        logger.debug("Mode API %s %s", method, path)
        try:
            response = await http.request(method, path, json=json_body)
        except httpx.HTTPError as exc:
            raise ModeConnectionError(path, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise ModeApiError(
                "Mode API", response.status_code, response.reason_phrase, _truncate(response.text)
            )
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            return response.json()
        return response.text

    async def download(self, path: str, dest: Path) -> int:
        """Stream ``path`` into ``dest`` without buffering the body; return bytes written.

        The body lands in a sibling ``.part`` file that replaces ``dest`` only
        once the stream completes, so a failed download never leaves a
        truncated CSV behind.
        """
        http = self._http()
        path = path.lstrip("/")
        partial = dest.with_name(f".{dest.name}.part")
        written = 0
        try:
            async with http.stream("GET", path) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise ModeApiError(
                        "CSV download failed",
                        response.status_code,
                        response.reason_phrase,
                        _truncate(body),
                    )
                with open(partial, "wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
                        written += len(chunk)
            partial.replace(dest)
        except httpx.HTTPError as exc:
            raise ModeConnectionError(path, f"{type(exc).__name__}: {exc}") from exc
        finally:
            partial.unlink(missing_ok=True)
        logger.info("Saved %d bytes from %s to %s", written, path, dest)
        return written
