"""Progress events emitted by the create and edit pipelines.

Reporting is one-way: the pipeline never waits on a consumer and a failing
consumer never fails the pipeline.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from pydantic import BaseModel, Field

from appforge.config import settings
from appforge.models.enums import ProgressStep

logger = logging.getLogger(__name__)

_TERMINAL_STEPS = frozenset({ProgressStep.COMPLETE, ProgressStep.ERROR})


class ProgressEvent(BaseModel):
    step: ProgressStep
    message: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.step in _TERMINAL_STEPS

    def to_sse(self) -> str:
        """Render as a server-sent event frame."""
        payload = {"step": str(self.step), "message": self.message, **self.data}
        return f"event: {self.step}\ndata: {json.dumps(payload, default=str)}\n\n"


ProgressSink = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Wraps an optional sink so the pipelines can emit unconditionally."""

    def __init__(self, sink: ProgressSink | None = None):
        self._sink = sink

    def emit(self, step: ProgressStep, message: str, **data: Any) -> None:
        if self._sink is None:
            return
        try:
            self._sink(ProgressEvent(step=step, message=message, data=data))
        except Exception:
            logger.exception("Progress sink failed on %s event, ignoring", step)

    def stream_counter(self, interval_chars: int | None = None) -> Callable[[str], None]:
        """Chunk callback emitting a streaming event every ``interval_chars`` received."""
        interval = interval_chars or settings.progress_interval_chars
        received = 0
        next_report = interval

        def on_chunk(chunk: str) -> None:
            nonlocal received, next_report
            received += len(chunk)
            if received >= next_report:
                next_report = received + interval
                self.emit(ProgressStep.STREAMING, f"Received {received} characters...", chars=received)

        return on_chunk


class ProgressChannel:
    """Bounded in-memory queue between a pipeline and one consumer.

    When full, the oldest queued event is dropped so ``publish`` never blocks.
    """

    def __init__(self, maxsize: int | None = None):
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize or settings.progress_queue_size)
        self.dropped = 0
        self.finished = False

    def publish(self, event: ProgressEvent) -> None:
        if event.is_terminal:
            self.finished = True
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    __call__ = publish

    async def next_event(self) -> ProgressEvent:
        return await self._queue.get()

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events until a terminal one has been yielded."""
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return
