"""
Per-epoch training progress as an event stream.

Every event carries the whole loss trace so far, so a subscriber that
misses events still ends up with the complete picture. Subscriber queues
are bounded; when one is full the oldest event is dropped and training
carries on without waiting.
"""

import asyncio
import json
from dataclasses import asdict, dataclass
from typing import List, Set, Tuple


@dataclass(frozen=True)
class ProgressEvent:
    epoch: int
    loss: float
    losses: Tuple[float, ...]
    total_epochs: int

    def to_sse(self) -> str:
        return f"data: {json.dumps(asdict(self))}\n\n"


class ProgressChannel:

    def __init__(self, maxsize: int = 64):
        self.maxsize = maxsize
        self.losses: List[float] = []
        self.total_epochs = 0
        # bumped on every reset so a stream can tell a run has started
        self.runs = 0
        self._subscribers: Set[asyncio.Queue] = set()

    def reset(self, total_epochs: int):
        self.runs += 1
        self.losses = []
        self.total_epochs = total_epochs

    def record(self, epoch: int, loss: float) -> ProgressEvent:
        if epoch != len(self.losses):
            raise ValueError(f"Epoch {epoch} out of order; expected {len(self.losses)}")
        self.losses.append(float(loss))
        event = ProgressEvent(epoch=epoch, loss=float(loss), losses=tuple(self.losses),
                              total_epochs=self.total_epochs)
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(event)
        return event

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)
