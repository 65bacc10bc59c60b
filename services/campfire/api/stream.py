import asyncio
import base64
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

import httpx

from runtime.version import user_agent
from services.campfire.api.events import ERROR, EventEmitter
from services.campfire.chat.chunked import (
    ChunkDecoder,
    ChunkProtocolError,
    UnexpectedEndOfStream,
    iter_lines,
    strip_eol,
)
from services.campfire.chat.dispatch import dispatch_payload
from shared.config.campfire import DEFAULT_HOST, CampfireSettings, split_rooms
from shared.logging.logger import get_logger

log = get_logger("campfire.stream")

Connector = Callable[..., Awaitable[Tuple[asyncio.StreamReader, Any]]]

# asyncio.StreamReader line limit, also the largest accepted chunk body.
DEFAULT_LINE_LIMIT = 1024 * 1024

DEFAULT_PORTS = {"http": 80, "https": 443}


class ResponseProtocolError(Exception):
    """Raised when the status line or headers cannot be parsed."""


# Raised by the socket, TLS layer, StreamReader (line limit) or the parsers.
# Anything else, listener exceptions included, propagates out of run().
TRANSPORT_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    ChunkProtocolError,
    ResponseProtocolError,
)


@dataclass
class ResponseHead:
    status_code: int
    reason_phrase: str
    headers: httpx.Headers

    @property
    def ok(self) -> bool:
        return str(self.status_code).startswith("2")

    @property
    def chunked(self) -> bool:
        return "chunked" in self.headers.get("transfer-encoding", "").lower()


async def read_response_head(reader: asyncio.StreamReader) -> ResponseHead:
    """
    Read the status line and header block of an HTTP/1.x response.

    The reader is left positioned on the first byte of the body.
    """
    raw = await reader.readline()
    if not raw:
        raise UnexpectedEndOfStream("connection closed before response status")

    status_line = strip_eol(raw).decode("latin-1")
    parts = status_line.split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        raise ResponseProtocolError(f"malformed status line: {status_line[:80]!r}")

    status_code = int(parts[1])
    reason_phrase = parts[2].strip() if len(parts) > 2 else ""

    header_items: List[Tuple[bytes, bytes]] = []
    while True:
        raw = await reader.readline()
        if not raw:
            raise UnexpectedEndOfStream("connection closed inside response headers")
        line = strip_eol(raw)
        if not line:
            break
        # Kept as bytes; header values may carry obs-text
        name, sep, value = line.partition(b":")
        if not sep or not name.strip():
            raise ResponseProtocolError(f"malformed header line: {line[:80]!r}")
        header_items.append((name.strip(), value.strip()))

    return ResponseHead(
        status_code=status_code,
        reason_phrase=reason_phrase,
        headers=httpx.Headers(header_items),
    )


class CampfireStreamClient(EventEmitter):
    """
    Streaming client for one or more Campfire rooms.

    Rules:
    - One persistent GET per room, all rooms multiplexed on one event loop
    - A room's failure (bad status, transport error, bad framing) is
      reported through the `error` event and never touches other rooms
    - No reconnects; a closed stream stays closed
    - Listeners are invoked as listener(client, *args)
    """

    STREAM_URL = "https://streaming.{host}/room/{room_id}/live.json"

    def __init__(
        self,
        token: str,
        rooms: Union[str, Iterable[str]],
        *,
        host: str = DEFAULT_HOST,
        headers: Optional[Dict[str, str]] = None,
        connector: Optional[Connector] = None,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ):
        super().__init__()

        settings = CampfireSettings(token=token or "", rooms=split_rooms(rooms), host=host)
        settings.validate()

        self.token = settings.token
        self.rooms = settings.rooms
        self.host = settings.host

        self._extra_headers = dict(headers or {})
        self._connector = connector or asyncio.open_connection
        self._line_limit = line_limit
        self._tasks: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------

    @property
    def authorization(self) -> str:
        credentials = f"{self.token}:x".encode("utf-8")
        return "Basic " + base64.b64encode(credentials).decode("ascii")

    def stream_url(self, room_id: str) -> httpx.URL:
        return httpx.URL(self.STREAM_URL.format(host=self.host, room_id=room_id))

    def build_request(self, url: httpx.URL) -> bytes:
        headers = {
            "Host": url.netloc.decode("ascii"),
            "User-Agent": user_agent(),
            "Accept": "*/*",
            "Authorization": self.authorization,
            "Connection": "keep-alive",
        }
        headers.update(self._extra_headers)

        lines = [f"GET {url.raw_path.decode('ascii')} HTTP/1.1"]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

    # ------------------------------------------------------------------

    def start(self) -> List[asyncio.Task]:
        """
        Open one streaming connection per room on the running loop.

        Listeners should be registered before calling this.
        """
        if self._tasks:
            raise RuntimeError("CampfireStreamClient already started")

        for room_id in self.rooms:
            self._tasks[room_id] = asyncio.create_task(
                self._run_room(room_id),
                name=f"campfire-room-{room_id}",
            )
        return list(self._tasks.values())

    async def run(self) -> None:
        """Start every room and wait until all of them have ended."""
        tasks = self.start()
        try:
            await asyncio.gather(*tasks)
        finally:
            # A listener failure in one room ends the whole client
            await self.aclose()

    async def aclose(self) -> None:
        """Cancel every room connection that is still open."""
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------

    async def _run_room(self, room_id: str) -> None:
        url = self.stream_url(room_id)
        writer = None

        log.info("Connecting to Campfire stream (room=%s, url=%s)", room_id, url)

        try:
            try:
                reader, writer = await self._connector(
                    url.host,
                    url.port or DEFAULT_PORTS[url.scheme],
                    ssl=url.scheme == "https",
                    limit=self._line_limit,
                )
                writer.write(self.build_request(url))
                await writer.drain()
                head = await read_response_head(reader)
            except TRANSPORT_ERRORS as e:
                self._fail(room_id, e)
                return

            if not head.ok:
                log.warning(
                    "Campfire stream refused (room=%s): HTTP %s %s",
                    room_id,
                    head.status_code,
                    head.reason_phrase,
                )
                self.emit(ERROR, head.status_code, head.reason_phrase)
                return

            if head.chunked:
                payloads = ChunkDecoder(
                    reader,
                    room_id=room_id,
                    max_chunk_size=self._line_limit,
                ).__aiter__()
            else:
                payloads = iter_lines(reader)

            log.info(
                "Campfire stream connected (room=%s, mode=%s)",
                room_id,
                "chunked" if head.chunked else "lines",
            )
            await self._pump(room_id, payloads)

        finally:
            if writer is not None:
                await self._close_writer(room_id, writer)

    async def _pump(self, room_id: str, payloads: AsyncGenerator[bytes, None]) -> None:
        try:
            while True:
                try:
                    payload = await payloads.__anext__()
                except StopAsyncIteration:
                    log.info("Campfire stream closed by remote (room=%s)", room_id)
                    return
                except TRANSPORT_ERRORS as e:
                    self._fail(room_id, e)
                    return

                dispatch_payload(self, payload, room_id=room_id)
        finally:
            await payloads.aclose()

    def _fail(self, room_id: str, error: BaseException) -> None:
        message = str(error) or error.__class__.__name__
        if isinstance(error, ChunkProtocolError):
            log.error("Campfire stream framing error (room=%s): %s", room_id, message)
        else:
            log.warning("Campfire stream error (room=%s): %s", room_id, message)
        self.emit(ERROR, message)

    async def _close_writer(self, room_id: str, writer: Any) -> None:
        try:
            writer.close()
            await writer.wait_closed()
        except Exception as e:
            log.debug("Error during stream close ignored (room=%s): %s", room_id, e)
