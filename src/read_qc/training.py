"""
Training sample for the two-phase read stream.

The start of the input is buffered raw, used to calibrate the stream
(quality encoding, barcodes), processed in place, and then handed out
ahead of the live reads. Phases only move forward.
"""

from enum import Enum
from typing import Iterator, List, Optional

from .sequencing_read import ReadRecord


class StreamState(Enum):
    """Phases of a ``ReadStream``, in order."""

    BUFFERING = 1
    CALIBRATING = 2
    REPLAYING = 3
    STREAMING = 4
    CLOSED = 5

    def advance(self, target: "StreamState") -> "StreamState":
        """Return ``target`` if it comes after this state, else raise."""
        if target.value <= self.value:
            raise RuntimeError(f"Invalid stream transition {self.name} -> {target.name}")
        return target


class TrainingBuffer:
    """
    Fixed-capacity, fill-once, drain-once container of reads.

    Parameters
    ----------
    capacity : int
        Maximum number of reads held.

    Examples
    --------
    >>> buffer = TrainingBuffer(capacity=2)
    >>> buffer.append(read_a)
    >>> buffer.append(read_b)
    >>> buffer.full
    True
    >>> buffer.pop() is read_a
    True
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._reads: List[Optional[ReadRecord]] = []
        self._cursor = 0
        self._draining = False

    def __len__(self) -> int:
        """Number of reads not yet drained."""
        return len(self._reads) - self._cursor

    def __iter__(self) -> Iterator[ReadRecord]:
        """Iterate over the reads not yet drained, without draining them."""
        return iter(self._reads[self._cursor:])

    @property
    def full(self) -> bool:
        return len(self._reads) >= self.capacity

    @property
    def size(self) -> int:
        """Number of reads originally buffered."""
        return len(self._reads)

    def append(self, read: ReadRecord) -> None:
        if self._draining:
            raise RuntimeError("Cannot add reads to a buffer that is being drained")
        if self.full:
            raise RuntimeError(f"Training buffer is full ({self.capacity} reads)")
        self._reads.append(read)

    def pop(self) -> Optional[ReadRecord]:
        """Next read in input order, or None once the buffer is exhausted."""
        self._draining = True
        if self._cursor >= len(self._reads):
            self.discard()
            return None
        read = self._reads[self._cursor]
        self._reads[self._cursor] = None
        self._cursor += 1
        return read

    def discard(self) -> None:
        """Release every read."""
        self._draining = True
        self._reads = []
        self._cursor = 0
