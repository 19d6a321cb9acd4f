"""Server-Sent Events source over httpx streaming.

``iter_sse_events`` turns the response's line stream into events: blank lines
end an event, ``data:`` lines accumulate, and ``:`` comment lines (the
server's ``: keepalive``) are surfaced as keep-alive events of their own.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterable, AsyncIterator, Protocol

import httpx

from queuesync.logging_config import get_logger
from queuesync.utils.errors import StreamConnectError
from queuesync.utils.http_client import AsyncHttpClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class SseEvent:
    """One dispatched SSE event, or a comment line when ``comment`` is set."""

    data: str = ""
    event: str = "message"
    id: str | None = None
    comment: str | None = None

    @property
    def is_keepalive(self) -> bool:
        return self.comment is not None


async def iter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[SseEvent]:
    """Parse SSE lines into events.

    An event still being accumulated when the line stream ends is dropped.
    """
    data_lines: list[str] = []
    event_name = "message"
    last_id: str | None = None

    async for line in lines:
        line = line.rstrip("\r\n")

        if not line:
            if data_lines:
                yield SseEvent(data="\n".join(data_lines), event=event_name, id=last_id)
            data_lines = []
            event_name = "message"
            continue

        if line.startswith(":"):
            yield SseEvent(comment=line[1:].strip())
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        match field:
            case "data":
                data_lines.append(value)
            case "event":
                event_name = value or "message"
            case "id":
                last_id = value
            case _:
                # retry and unknown fields
                pass


class StreamSource(Protocol):
    """Opens one push connection and yields its events."""

    url: str

    def connect(self) -> AsyncContextManager[AsyncIterator[SseEvent]]: ...


class SseStreamSource:
    """``StreamSource`` reading ``text/event-stream`` from an HTTP endpoint."""

    def __init__(self, http: AsyncHttpClient, url: str):
        self._http = http
        self.url = url

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncIterator[SseEvent]]:
        """Open the stream.

        Raises:
            StreamConnectError: The server answered with a non-200 status
            httpx.HTTPError: The connection failed or broke
        """
        async with self._http.client.stream(
            "GET",
            self.url,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=self._http.stream_timeout,
        ) as response:
            if response.status_code != httpx.codes.OK:
                raise StreamConnectError(self.url, status_code=response.status_code)
            logger.debug("stream_response_ok", url=self.url)
            yield iter_sse_events(response.aiter_lines())
