"""
session.py — One JSON-RPC conversation over a framed byte stream.

A Session owns the read buffer (through its MessageFramer) and the output
sink. Each complete message is handled in its own task, so a slow tools/call
never blocks framing of later input; responses go out in completion order and
are correlated by ``id``.
"""

import asyncio
import logging
import sys
from typing import Any, BinaryIO, Protocol, runtime_checkable

from mode_mcp.mcp_server.framing import MessageFramer, encode_message
from mode_mcp.mcp_server.rpc_dispatch import RpcDispatcher

logger = logging.getLogger("mode_mcp.mcp_server.session")

READ_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


@runtime_checkable
class ByteWriter(Protocol):
    def write(self, data: bytes) -> Any: ...
    async def drain(self) -> None: ...


class StdinReader:
    """Reads the binary stdin stream from a worker thread."""

    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin.buffer

    async def read(self, n: int = -1) -> bytes:
        reader = getattr(self._stream, "read1", self._stream.read)
        return await asyncio.to_thread(reader, n)


class StdoutWriter:
    """Writes to the binary stdout stream, flushing after each frame."""

    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout.buffer

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


class Session:
    def __init__(
        self,
        dispatcher: RpcDispatcher,
        reader: ByteReader,
        writer: ByteWriter,
        *,
        read_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.dispatcher = dispatcher
        self._reader = reader
        self._writer = writer
        self._read_size = read_size
        self._framer = MessageFramer(
            on_drop=lambda _header: dispatcher.metrics.record_dropped_frame()
        )
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._failure: BaseException | None = None

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def run(self) -> None:
        """Process input until EOF, then wait for in-flight requests to finish."""
        while self._failure is None:
            chunk = await self._reader.read(self._read_size)
            if not chunk:
                break
            self.feed(chunk)
        if self._framer.pending:
            logger.warning("Discarding %d bytes of incomplete frame at EOF", self._framer.pending)
        await self.drain()
        if self._failure is not None:
            raise self._failure

    def feed(self, chunk: bytes) -> None:
        for body in self._framer.feed(chunk):
            task = asyncio.create_task(self._handle(body))
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def send(self, payload: dict[str, Any]) -> None:
        data = encode_message(payload)
        async with self._write_lock:
            self._writer.write(data)
            await self._writer.drain()

    async def _handle(self, body: bytes) -> None:
        try:
            response = await self.dispatcher.dispatch_body(body)
        except Exception:
            logger.exception("Unhandled error while dispatching message")
            return
        if response is not None:
            await self.send(response)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._failure is None:
            # Output sink is gone; stop reading and surface the error from run().
            logger.error("Failed to write response: %s", exc)
            self._failure = exc
