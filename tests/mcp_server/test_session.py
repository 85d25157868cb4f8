"""Session tests: stdio-style framing in, dispatch, framed responses out."""

import asyncio
import json

import pytest

from mode_mcp.mcp_server.framing import MessageFramer, encode_message
from mode_mcp.mcp_server.registry import ToolRegistry
from mode_mcp.mcp_server.rpc_dispatch import RpcDispatcher, server_info
from mode_mcp.mcp_server.session import Session


class ChunkReader:
    def __init__(self, *chunks: bytes) -> None:
        self._chunks = list(chunks)

    async def read(self, n: int = -1) -> bytes:
        await asyncio.sleep(0)
        return self._chunks.pop(0) if self._chunks else b""


class BufferWriter:
    def __init__(self) -> None:
        self.data = bytearray()

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def messages(self) -> list[dict]:
        return [json.loads(body) for body in MessageFramer().feed(bytes(self.data))]


class BrokenWriter(BufferWriter):
    def write(self, data: bytes) -> None:
        raise BrokenPipeError("stdout closed")


def _request(req_id, method, params=None) -> bytes:
    msg = {"jsonrpc": "2.0", "method": method}
    if req_id is not None:
        msg["id"] = req_id
    if params is not None:
        msg["params"] = params
    return encode_message(msg)


def _registry_with_gate() -> ToolRegistry:
    gate = asyncio.Event()

    async def _slow() -> str:
        await gate.wait()
        return "slow"

    async def _fast() -> str:
        gate.set()
        return "fast"

    registry = ToolRegistry()
    registry.register("slow", _slow, "Waits until fast has run.")
    registry.register("fast", _fast, "Returns immediately.")
    return registry


@pytest.mark.asyncio
async def test_session_answers_framed_requests(dispatcher):
    stream = _request(1, "initialize") + _request(2, "tools/list")
    writer = BufferWriter()
    await Session(dispatcher, ChunkReader(stream[:10], stream[10:]), writer).run()

    responses = {m["id"]: m for m in writer.messages()}
    assert responses[1]["result"]["serverInfo"]["name"] == "mode-mcp"
    assert len(responses[2]["result"]["tools"]) == len(dispatcher.registry)


@pytest.mark.asyncio
async def test_responses_follow_completion_order_not_arrival_order():
    dispatcher = RpcDispatcher(_registry_with_gate(), server_info=server_info("mode-mcp", "test"))
    stream = _request(1, "tools/call", {"name": "slow"}) + _request(
        2, "tools/call", {"name": "fast"}
    )
    writer = BufferWriter()
    await Session(dispatcher, ChunkReader(stream), writer).run()

    messages = writer.messages()
    assert [m["id"] for m in messages] == [2, 1]
    assert json.loads(messages[1]["result"]["content"][0]["text"]) == "slow"


@pytest.mark.asyncio
async def test_garbage_and_notifications_produce_no_output(dispatcher):
    stream = (
        b"X-Garbage: yes\r\n\r\n"
        + b"Content-Length: 5\r\n\r\n{nope"
        + _request(None, "notifications/initialized")
        + _request(3, "nonexistent")
    )
    writer = BufferWriter()
    await Session(dispatcher, ChunkReader(stream), writer).run()

    messages = writer.messages()
    assert len(messages) == 1
    assert messages[0]["id"] == 3
    assert messages[0]["error"]["code"] == -32601
    assert dispatcher.metrics.snapshot()["transport"]["frames_dropped_total"] == 2


@pytest.mark.asyncio
async def test_incomplete_frame_at_eof_is_discarded(dispatcher):
    writer = BufferWriter()
    await Session(dispatcher, ChunkReader(b"Content-Length: 50\r\n\r\n{"), writer).run()
    assert writer.data == b""


@pytest.mark.asyncio
async def test_write_failure_is_raised_from_run(dispatcher):
    session = Session(dispatcher, ChunkReader(_request(1, "initialize")), BrokenWriter())
    with pytest.raises(BrokenPipeError):
        await session.run()
