"""
In-memory FIFO backlog of maps waiting to be materialized
"""
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional

from elimination_chamber.models import MapDescriptor


class MapQueue:
    """
    Ordered queue of MapDescriptor, consumed head first

    No two queued entries share an external_id. All access goes through a
    lock because route handlers may run on different worker threads.
    """

    def __init__(self) -> None:
        self._items: Deque[MapDescriptor] = deque()
        self._lock = threading.Lock()

    def enqueue_many(self, descriptors: Iterable[MapDescriptor]) -> int:
        """
        Append descriptors to the tail, skipping ids already queued

        Returns:
            Number of descriptors actually added
        """
        added = 0
        with self._lock:
            queued_ids = {item.external_id for item in self._items}
            for descriptor in descriptors:
                if descriptor.external_id in queued_ids:
                    continue
                queued_ids.add(descriptor.external_id)
                self._items.append(descriptor)
                added += 1
        return added

    def dequeue_one(self) -> Optional[MapDescriptor]:
        """Remove and return the head, or None when the queue is empty"""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def snapshot(self) -> List[MapDescriptor]:
        """Copy of the queued descriptors in consumption order"""
        with self._lock:
            return [item.model_copy() for item in self._items]

    def clear(self) -> int:
        """Drop every entry, returns how many were dropped"""
        with self._lock:
            count = len(self._items)
            self._items.clear()
        return count
