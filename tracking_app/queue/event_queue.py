"""
Per-request hit queue.
"""

from typing import List
import logging

from tracking_app.models.hit import Hit

logger = logging.getLogger(__name__)


class EventQueue:
    """
    Ordered, append-only list of the hits produced by one request.

    Created empty at request start and drained exactly once at request end.
    Identical hits are kept; nothing is deduplicated. Hits enqueued after the
    drain are dropped with a warning.
    """

    def __init__(self):
        self._hits: List[Hit] = []
        self._drained = False

    @property
    def drained(self) -> bool:
        return self._drained

    def enqueue(self, hit: Hit) -> bool:
        if self._drained:
            logger.warning("Dropping %s hit queued after flush", hit.kind)
            return False
        self._hits.append(hit)
        return True

    def drain(self) -> List[Hit]:
        """Hand over all queued hits; later calls return an empty list."""
        if self._drained:
            return []
        self._drained = True
        hits, self._hits = self._hits, []
        return hits

    def has_page_view(self) -> bool:
        return any(hit.kind == "pageview" for hit in self._hits)

    def __len__(self) -> int:
        return len(self._hits)
