"""Server-Sent Events progress stream for batch runs."""

import asyncio
import json
from collections.abc import AsyncIterator

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def format_event(event: str, data: object) -> str:
    """Encode one SSE frame."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class StreamClosedError(RuntimeError):
    """Raised when an event is sent after the terminal event."""


class ProgressStream:
    """Single-producer event stream with one terminal event.

    Status progress never decreases: a lower value is raised to the last one
    sent. Exactly one of ``complete`` or ``error`` ends the stream.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._progress = 0
        self._closed = False

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def closed(self) -> bool:
        return self._closed

    def status(self, message: str, progress: int) -> int:
        """Queue a status event and return the progress actually sent."""
        self._ensure_open()
        self._progress = max(self._progress, min(max(progress, 0), 100))
        self._queue.put_nowait(
            format_event("status", {"message": message, "progress": self._progress})
        )
        return self._progress

    def complete(self, data: dict[str, object]) -> None:
        """Queue the completion event and close the stream."""
        if self._progress < 100:
            self.status("Batch processing complete", 100)
        self._ensure_open()
        self._queue.put_nowait(format_event("complete", data))
        self._close()

    def error(self, message: str) -> None:
        """Queue the error event and close the stream."""
        self._ensure_open()
        self._queue.put_nowait(format_event("error", {"message": message}))
        self._close()

    async def events(self) -> AsyncIterator[str]:
        """Yield encoded frames until the stream closes."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    def _ensure_open(self) -> None:
        if self._closed:
            raise StreamClosedError("Progress stream already closed")

    def _close(self) -> None:
        self._closed = True
        self._queue.put_nowait(None)
