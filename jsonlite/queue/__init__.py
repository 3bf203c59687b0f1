"""
Queue module for the ingestion pipeline.

Provides the bounded queue that connects the decode and load stages.
"""

from jsonlite.queue.bounded import BoundedQueue, QueueCancelled, QueueClosed

__all__ = [
    "BoundedQueue",
    "QueueCancelled",
    "QueueClosed",
]
