"""trustlog.livelog.broadcast

In-process fan-out of published messages to connected subscribers.

Each subscriber owns a bounded queue. A slow subscriber loses its oldest
messages, never blocks the publisher, and never sees anything that was not
committed first.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid

from trustlog.core.models import PublishedMessage

logger = logging.getLogger(__name__)


class Broadcaster:
    def __init__(self, maxsize: int = 500) -> None:
        self.maxsize = maxsize
        self._lock = threading.Lock()
        self._subscribers: dict[str, queue.Queue[PublishedMessage]] = {}

    def subscribe(self) -> tuple[str, queue.Queue[PublishedMessage]]:
        """Register a new subscriber. Returns (subscriber_id, queue)."""
        sub_id = uuid.uuid4().hex[:8]
        q: queue.Queue[PublishedMessage] = queue.Queue(maxsize=self.maxsize)
        with self._lock:
            self._subscribers[sub_id] = q
            total = len(self._subscribers)
        logger.info("livelog_subscriber_connected", extra={"subscriber": sub_id, "total": total})
        return sub_id, q

    def unsubscribe(self, sub_id: str) -> None:
        with self._lock:
            self._subscribers.pop(sub_id, None)
            total = len(self._subscribers)
        logger.info("livelog_subscriber_disconnected", extra={"subscriber": sub_id, "total": total})

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, message: PublishedMessage) -> int:
        """Deliver to every current subscriber. Returns how many received it."""
        with self._lock:
            targets = list(self._subscribers.values())

        delivered = 0
        for q in targets:
            try:
                q.put_nowait(message)
            except queue.Full:
                # Drop oldest to make room
                try:
                    q.get_nowait()
                    q.put_nowait(message)
                except (queue.Empty, queue.Full):
                    continue
            delivered += 1
        return delivered
