"""
End-of-request hit dispatcher.

Drains a request's EventQueue and hands every hit to the measurement
transport. Delivery is fire-and-forget:
- hits are sent concurrently, one independent attempt each
- a failed hit is logged and does not affect the others
- nothing is retried or kept for a later request
- flush never raises, so it can run after the response has been sent
"""

import asyncio
from dataclasses import dataclass
import logging
from typing import Dict, Set

from tracking_app.config import Settings
from tracking_app.models.hit import Hit
from tracking_app.queue.event_queue import EventQueue
from tracking_app.transport.strategies import TransportStrategy

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    attempted: int = 0
    delivered: int = 0
    failed: int = 0


class Dispatcher:
    """
    Flushes one request's queue through a transport.

    Args:
        transport: Transport strategy used for delivery
        settings: Tracking settings (``dispatch_budget_seconds`` bounds a flush)
    """

    def __init__(self, transport: TransportStrategy, settings: Settings):
        self.transport = transport
        self.settings = settings

    async def flush(self, queue: EventQueue) -> DispatchReport:
        hits = queue.drain()
        report = DispatchReport(attempted=len(hits))
        if not hits:
            return report

        tasks: Dict[asyncio.Task, Hit] = {
            asyncio.ensure_future(self.transport.send(hit)): hit for hit in hits
        }
        done, pending = await asyncio.wait(set(tasks), timeout=self.settings.dispatch_budget_seconds)

        if pending:
            logger.warning(
                "Flush exceeded %.1fs; abandoning %d of %d sends",
                self.settings.dispatch_budget_seconds,
                len(pending),
                len(hits),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        self._tally(tasks, done, report)
        logger.info("Flushed %d hits: %d delivered, %d failed", report.attempted, report.delivered, report.failed)
        return report

    def _tally(self, tasks: Dict[asyncio.Task, Hit], done: Set[asyncio.Task], report: DispatchReport) -> None:
        for task, hit in tasks.items():
            if task not in done or task.cancelled():
                report.failed += 1
                logger.warning("Gave up sending %s hit for %s", hit.kind, hit.document_path)
            elif task.exception() is not None:
                report.failed += 1
                logger.warning("Failed to send %s hit for %s: %s", hit.kind, hit.document_path, task.exception())
            else:
                report.delivered += 1
