"""
Fan-out of scrape progress events to server-sent-event listeners.
"""
import asyncio
import json
import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


class ProgressBroker:
    """Every subscriber gets its own queue; slow listeners drop events."""

    def __init__(self, maxsize: int = 100):
        self._maxsize = maxsize
        self._queues: List[asyncio.Queue] = []
        self.last: Dict = {"stage": "idle", "progress": 0, "message": "Ready to scrape"}

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._queues.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        if q in self._queues:
            self._queues.remove(q)

    @property
    def listeners(self) -> int:
        return len(self._queues)

    def emit(self, stage: str, progress: int, message: str) -> None:
        event = {"stage": stage, "progress": progress, "message": message}
        self.last = event
        logger.info(f"[{stage} {progress}%] {message}")
        for q in list(self._queues):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug("Progress listener is lagging, event dropped")


def format_sse(event: Dict) -> str:
    return f"data: {json.dumps(event)}\n\n"
