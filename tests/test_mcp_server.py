"""
test_mcp_server.py — Smoke tests for the mode_mcp server entry point.

Drives run_stdio() end to end over in-memory stdin/stdout streams.
"""

import asyncio
import io
import json

import pytest

import mode_mcp.mcp_server.server as server_module
from mode_mcp.mcp_server.config import ModeSettings
from mode_mcp.mcp_server.framing import MessageFramer, encode_message
from mode_mcp.mcp_server.session import StdinReader, StdoutWriter


def _frames(*messages: dict) -> bytes:
    return b"".join(encode_message(m) for m in messages)


def test_build_dispatcher_registers_all_tools():
    dispatcher = server_module.build_dispatcher(ModeSettings())
    assert dispatcher.registry.names() == [
        "listReports",
        "getReport",
        "runReport",
        "getRun",
        "listSpaces",
        "downloadRunCsv",
    ]
    assert dispatcher.server_info["serverInfo"]["name"] == "mode-mcp"


@pytest.mark.asyncio
async def test_run_stdio_end_to_end(mocker):
    stdin = io.BytesIO(
        _frames(
            {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}},
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
            {
                "jsonrpc": "2.0",
                "id": 3,
                "method": "tools/call",
                "params": {"name": "listReports", "arguments": {}},
            },
        )
    )
    stdout = io.BytesIO()
    mocker.patch.object(server_module, "StdinReader", lambda: StdinReader(stdin))
    mocker.patch.object(server_module, "StdoutWriter", lambda: StdoutWriter(stdout))

    await server_module.run_stdio(ModeSettings())

    responses = {m["id"]: m for m in map(json.loads, MessageFramer().feed(stdout.getvalue()))}
    assert sorted(responses) == [1, 2, 3]
    assert responses[1]["result"]["protocolVersion"] == "2024-11-05"
    assert len(responses[2]["result"]["tools"]) == 6
    assert responses[3]["error"]["code"] == -32000
    assert "Mode credentials not configured" in responses[3]["error"]["message"]


def test_main_defaults_to_stdio(mocker):
    run = mocker.patch.object(server_module.asyncio, "run")

    server_module.main([])

    run.assert_called_once()
    coro = run.call_args.args[0]
    assert asyncio.iscoroutine(coro)
    coro.close()


def test_main_http_mode_uses_uvicorn(mocker):
    uvicorn_run = mocker.patch("uvicorn.run")

    server_module.main(["--http", "--port", "9123"])

    uvicorn_run.assert_called_once()
    assert uvicorn_run.call_args.kwargs["port"] == 9123
