import pytest

_MODE_ENV_VARS = (
    "MODE_WORKSPACE",
    "MODE_TOKEN",
    "MODE_SECRET",
    "MODE_API_BASE_URL",
    "MODE_MCP_OUTPUT_DIR",
    "MODE_MCP_TOOL_NAMESPACE",
    "MODE_MCP_HTTP_TIMEOUT_SEC",
    "MODE_MCP_TOOL_TIMEOUT_SEC",
    "MODE_MCP_CONFIG",
    "MODE_MCP_AUTH_TOKEN",
    "MODE_MCP_STRUCTURED_LOGS",
    "MODE_MCP_PORT",
    "MODE_MCP_HOST",
    "MODE_MCP_HTTP",
)


@pytest.fixture(autouse=True)
def isolate_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """
    Keep tests deterministic by clearing Mode credentials and server env vars,
    and by running from an empty directory so no .env file or CSV output leaks.
    """
    for name in _MODE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
