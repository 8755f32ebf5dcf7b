import itertools
from collections import deque
from datetime import datetime
from typing import Iterable, Optional

from loguru import logger

from core.state import ChatMessage, LogRole, PipelineLogEntry, Sender


def _clock(fmt: str) -> str:
    return datetime.now().strftime(fmt)


class PipelineLog:
    """Bounded, append-only pipeline console.

    Keeps only the most recent `capacity` entries; the oldest entry is
    dropped first.
    """

    def __init__(self, capacity: int = 40):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[PipelineLogEntry] = deque(maxlen=capacity)
        self._ids = itertools.count(1)

    def append(self, role: LogRole, content: str) -> PipelineLogEntry:
        entry = PipelineLogEntry(
            id=f"log-{next(self._ids)}",
            role=LogRole(role),
            content=content,
            timestamp=_clock("%H:%M:%S"),
        )
        self._entries.append(entry)
        logger.debug("[{}] {}", entry.role.value, content)
        return entry

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> tuple[PipelineLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class ChatStore:
    """Team chat history. Unbounded; reset() restores the seeded messages."""

    def __init__(self, seed: Optional[Iterable[tuple[Sender, str]]] = None):
        self._seed = list(seed or [])
        self._messages: list[ChatMessage] = []
        self._ids = itertools.count(1)
        self.reset()

    def add(self, sender: Sender, text: str) -> ChatMessage:
        message = ChatMessage(
            id=f"msg-{next(self._ids)}",
            sender=Sender(sender),
            text=text,
            timestamp=_clock("%H:%M"),
        )
        self._messages.append(message)
        return message

    def reset(self) -> None:
        self._messages.clear()
        for sender, text in self._seed:
            self.add(sender, text)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
