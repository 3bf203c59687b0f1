"""
Bounded hand-off queue between the decode and load stages.

Thread-safe wrapper around queue.Queue with a fixed capacity, an
end-of-stream marker, producer failure propagation and consumer-side
cancellation. Blocking calls wake up periodically so that neither side
can wait forever on a peer that has stopped.
"""

import queue
import threading
from typing import Any, Iterator, Optional

_END = object()


class QueueClosed(Exception):
    """Raised by get once the producer has closed the stream."""
    pass


class QueueCancelled(Exception):
    """Raised when waiting on a queue the other side has abandoned."""
    pass


class BoundedQueue:
    """
    Single-producer, single-consumer bounded queue.

    The producer calls ``put`` then ``close`` (or ``fail``); the consumer
    iterates and calls ``cancel`` if it stops early.
    """

    def __init__(self, capacity: int = 1000, poll_interval: float = 0.1):
        """
        Initialize queue.

        Args:
            capacity: Maximum number of items held before ``put`` blocks
            poll_interval: Seconds between cancellation checks while blocked
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._queue = queue.Queue(maxsize=capacity)
        self._poll_interval = poll_interval
        self._cancelled = threading.Event()
        self._closed = False
        self._drained = False
        self._error: Optional[BaseException] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def put(self, item: Any) -> bool:
        """
        Add an item, blocking while the queue is full.

        Returns:
            True once enqueued, False if the consumer cancelled first
        """
        if self._closed:
            raise RuntimeError("Queue is closed")
        return self._put(item)

    def _put(self, item: Any) -> bool:
        while not self._cancelled.is_set():
            try:
                self._queue.put(item, timeout=self._poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def close(self) -> None:
        """Mark end-of-stream; the consumer finishes after the queued items."""
        if self._closed:
            return
        self._closed = True
        self._put(_END)

    def fail(self, error: BaseException) -> None:
        """Abort the stream; the consumer raises ``error`` on its next get."""
        self._error = error
        self._closed = True

    def cancel(self) -> None:
        """Stop the producer; pending and future puts return False."""
        self._cancelled.set()

    def get(self) -> Any:
        """
        Remove and return the next item.

        Raises:
            QueueClosed: At end-of-stream
            QueueCancelled: If the queue was cancelled while waiting
            Exception: The producer's error passed to ``fail``
        """
        while not self._drained:
            if self._error is not None:
                raise self._error
            if self._cancelled.is_set():
                raise QueueCancelled("Queue was cancelled")
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if item is _END:
                self._drained = True
                break
            return item
        raise QueueClosed("End of stream")

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return

    def size(self) -> int:
        """Approximate number of queued items."""
        return self._queue.qsize()
