import json

import httpx
import pytest
from fastapi.testclient import TestClient

from mode_mcp.mcp_server.config import ModeSettings
from mode_mcp.mcp_server.mode_client import ModeClient
from mode_mcp.mcp_server.rpc_dispatch import RpcDispatcher, server_info
from mode_mcp.mcp_server.server import create_app
from mode_mcp.mcp_server.tools import build_tool_registry


class FakeModeApi:
    """Records requests and answers from a (method, path) → response table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], httpx.Response] = {}

    def add(self, method: str, path: str, response: httpx.Response) -> None:
        self.routes[(method, path)] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.raw_path.decode("ascii"))
        if key not in self.routes:
            return httpx.Response(404, text=f"no route for {key}")
        return self.routes[key]

    def last_json(self) -> object:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings() -> ModeSettings:
    return ModeSettings(workspace="acme", token="key-id", secret="key-secret")


@pytest.fixture
def mode_api() -> FakeModeApi:
    return FakeModeApi()


@pytest.fixture
def mode_client(settings, mode_api) -> ModeClient:
    return ModeClient(settings, transport=httpx.MockTransport(mode_api.handler))


@pytest.fixture
def dispatcher(mode_client) -> RpcDispatcher:
    return RpcDispatcher(
        build_tool_registry(mode_client),
        server_info=server_info("mode-mcp", "test"),
    )


@pytest.fixture
def client(dispatcher) -> TestClient:
    return TestClient(create_app(dispatcher))
