"""Batch buffer: ordered queue of serialized entries awaiting delivery."""

from collections import deque
from typing import Union

Entry = Union[str, bytes]


class BatchBuffer:
    """FIFO of serialized log entries.

    Entries leave from the head only, in groups handed out by
    :meth:`take_batch`. Insertion order is delivery order.
    """

    def __init__(self) -> None:
        self._entries: deque[Entry] = deque()

    def append(self, entry: Entry) -> None:
        """Add one entry to the tail."""
        self._entries.append(entry)

    def take_batch(self, max_size: int) -> list[Entry]:
        """Remove and return up to *max_size* entries from the head, in order."""
        count = min(max_size, len(self._entries))
        return [self._entries.popleft() for _ in range(count)]

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
