# Progress reporting for login runs.
# Created: 2026-10-19
#
# Automators call ProgressReporter.step() at each phase boundary. Buffered
# callers pass no callback; streamed callers use ProgressStream, whose events
# are drained by the SSE response in stelloauth.server.

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

TERMINAL_EVENTS = frozenset({"success", "error"})


class ProgressReporter:
    """Forwards step phrases to an optional synchronous callback."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self.steps: list[str] = []

    def step(self, message: str) -> None:
        self.steps.append(message)
        logger.debug("Progress: %s", message)
        if self._callback is not None:
            self._callback(message)


class ProgressStream:
    """Queue of progress events ending in exactly one terminal event.

    ``progress()`` can be handed to :class:`ProgressReporter` as its callback.
    Iterating the stream yields events in the order they were emitted and
    stops after the first ``success`` or ``error`` event. Anything emitted
    after the terminal event is dropped.

    Usage::

        stream = ProgressStream()
        reporter = ProgressReporter(stream.progress)
        ...
        async for event in stream:
            yield format_sse(event)
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def reporter(self) -> ProgressReporter:
        return ProgressReporter(self.progress)

    def _put(self, event: dict[str, Any]) -> None:
        if self._closed:
            logger.debug("Dropping %s event after stream end", event["type"])
            return
        if event["type"] in TERMINAL_EVENTS:
            self._closed = True
        self._queue.put_nowait(event)

    def progress(self, message: str) -> None:
        self._put({"type": "progress", "message": message})

    def succeed(self, code: str) -> None:
        self._put({"type": "success", "code": code})

    def fail(self, message: str) -> None:
        self._put({"type": "error", "message": message})

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            event = await self._queue.get()
            yield event
            if event["type"] in TERMINAL_EVENTS:
                return


def format_sse(event: dict[str, Any]) -> str:
    """Encode one event as a Server-Sent Events frame."""
    return f"event: {event['type']}\ndata: {json.dumps(event)}\n\n"


__all__ = [
    "ProgressCallback",
    "ProgressReporter",
    "ProgressStream",
    "TERMINAL_EVENTS",
    "format_sse",
]
