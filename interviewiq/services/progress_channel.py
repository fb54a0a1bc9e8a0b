"""One-way progress channel between a research run and its consumer.

The producer side never waits: progress events go into a bounded buffer that
drops its oldest entry when full. The terminal event (result or error) is held
outside the buffer so it is always delivered last.
"""
from __future__ import annotations

import asyncio
from collections import deque
from typing import AsyncIterator

from interviewiq.models.events import SSEEvent


class ProgressChannel:
    def __init__(self, maxsize: int = 256):
        self._buffer: deque[SSEEvent] = deque(maxlen=max(maxsize, 1))
        self._terminal: SSEEvent | None = None
        self._closed = False
        self._wakeup = asyncio.Event()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: SSEEvent) -> None:
        if self._closed:
            return
        if event.is_terminal:
            self.close(event)
            return
        if len(self._buffer) == self._buffer.maxlen:
            self.dropped += 1
        self._buffer.append(event)
        self._wakeup.set()

    def close(self, terminal: SSEEvent | None = None) -> None:
        if self._closed:
            return
        self._terminal = terminal
        self._closed = True
        self._wakeup.set()

    def __aiter__(self) -> AsyncIterator[SSEEvent]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[SSEEvent]:
        while True:
            while self._buffer:
                yield self._buffer.popleft()
            if self._closed:
                if self._terminal is not None:
                    terminal, self._terminal = self._terminal, None
                    yield terminal
                return
            self._wakeup.clear()
            await self._wakeup.wait()
