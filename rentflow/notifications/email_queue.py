from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from rentflow.models.bill import Bill
from rentflow.models.notification import EmailStatus, NotificationType
from rentflow.notifications.links import BillLinks

logger = logging.getLogger(__name__)


class QueueState(str, Enum):
    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class EmailJob:
    bill: Bill
    type: NotificationType | None = None
    subject: str | None = None
    html: str | None = None
    links: BillLinks | None = None
    pdf_path: str | None = None

    @property
    def bill_id(self) -> str:
        return self.bill.id


@dataclass
class QueueItem:
    job: EmailJob
    future: asyncio.Future
    state: QueueState = field(default=QueueState.PENDING)


class EmailQueue:
    """In-process FIFO of outgoing bill emails.

    One worker task sends one email at a time and waits ``throttle_seconds``
    between sends. Pending items can be cancelled per bill; the item being
    sent is never interrupted. A failed send rejects only its own future.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        send: Callable[[EmailJob], Awaitable[EmailStatus | None]],
        throttle_seconds: float = 0.4,
    ) -> None:
        self._send = send
        self.throttle_seconds = throttle_seconds
        self._items: deque[QueueItem] = deque()
        self._current: QueueItem | None = None
        self._worker: asyncio.Task | None = None

    @property
    def pending_count(self) -> int:
        return len(self._items)

    @property
    def is_processing(self) -> bool:
        return self._current is not None

    def pending_bill_ids(self) -> list[str]:
        return [item.job.bill_id for item in self._items]

    def enqueue(self, job: EmailJob) -> asyncio.Future:
        """Append a job and return a future settled when it is sent, fails or is cancelled."""
        loop = asyncio.get_running_loop()
        item = QueueItem(job=job, future=loop.create_future())
        self._items.append(item)
        logger.debug("Queued email for bill %s (pending=%d)", job.bill_id, len(self._items))
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._run(), name="email-queue-worker")
        return item.future

    def cancel_pending_for_bill(self, bill_id: str) -> int:
        """Drop every pending email for a bill. Returns how many were cancelled."""
        kept: deque[QueueItem] = deque()
        cancelled = 0
        for item in self._items:
            if item.job.bill_id == bill_id:
                item.state = QueueState.CANCELLED
                if not item.future.done():
                    item.future.set_result(EmailStatus.CANCELLED)
                cancelled += 1
            else:
                kept.append(item)
        self._items = kept
        if cancelled:
            logger.info("Cancelled %d pending email(s) for bill %s", cancelled, bill_id)
        return cancelled

    async def _run(self) -> None:
        while self._items:
            item = self._items.popleft()
            item.state = QueueState.SENDING
            self._current = item
            try:
                result = await self._send(item.job)
            except Exception as exc:
                item.state = QueueState.FAILED
                logger.error("Email for bill %s failed: %s", item.job.bill_id, exc)
                if not item.future.done():
                    item.future.set_exception(exc)
            else:
                item.state = QueueState.SENT
                if not item.future.done():
                    item.future.set_result(result or EmailStatus.SENT)
            finally:
                self._current = None

            if self._items and self.throttle_seconds > 0:
                await asyncio.sleep(self.throttle_seconds)

    async def join(self) -> None:
        """Wait until the queue is drained."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def close(self) -> None:
        """Stop the worker and cancel whatever is still pending."""
        for item in self._items:
            item.state = QueueState.CANCELLED
            if not item.future.done():
                item.future.set_result(EmailStatus.CANCELLED)
        self._items.clear()
        current = self._current
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        if current is not None and not current.future.done():
            current.future.cancel()
        self._worker = None
