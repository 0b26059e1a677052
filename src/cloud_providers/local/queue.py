"""
In-memory queue provider for local development and tests.

Simulates the managed backends without any network dependency:

- priority ``high`` inserts at the head of the queue, everything else at
  the tail. This is a head insertion, not a stable priority queue: the most
  recent high-priority message is delivered first.
- delayed messages (enqueue or nack with a delay) wait in a min-heap keyed
  by the injected clock and are appended to the tail once due.
- received messages are tracked in flight by receipt handle until ack,
  nack or move_to_dlq consumes the handle.
- dead-lettered messages land in ``<queue><dlq_suffix>``, an ordinary queue.
"""

import asyncio
import copy
import heapq
import itertools
import logging
import threading
import time
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from cloud_providers.exceptions import MessageStateError
from cloud_providers.interfaces import (
    EnqueueOptions,
    Priority,
    QueueMessage,
    QueueProvider,
    ReceiveOptions,
    utcnow,
)
from cloud_providers.settings import DEFAULT_DLQ_SUFFIX

logger = logging.getLogger(__name__)


class LocalQueueProvider(QueueProvider):
    """Handles local queues held in process memory."""

    def __init__(self, dlq_suffix: str = DEFAULT_DLQ_SUFFIX,
                 clock: Callable[[], float] = time.monotonic):
        self.dlq_suffix = dlq_suffix
        self._clock = clock
        self._queues: Dict[str, List[QueueMessage]] = {}
        # receipt handle -> (queue name, message)
        self._in_flight: Dict[str, Tuple[str, QueueMessage]] = {}
        # (ready_at, sequence, queue name, message)
        self._delayed: List[Tuple[float, int, str, QueueMessage]] = []
        self._waiters: Dict[str, List[asyncio.Future]] = {}
        self._message_ids = itertools.count(1)
        self._sequence = itertools.count()
        self._lock = threading.RLock()
        self._closed = False
        logger.info("LocalQueueProvider initialized (dlq suffix %r)", dlq_suffix)

    # Internal state helpers; callers hold self._lock

    def _get_queue(self, name: str) -> List[QueueMessage]:
        return self._queues.setdefault(name, [])

    def _dlq_name(self, name: str) -> str:
        return f"{name}{self.dlq_suffix}"

    def _notify(self, name: str) -> None:
        for waiter in self._waiters.pop(name, []):
            waiter.get_loop().call_soon_threadsafe(_wake, waiter)

    def _append(self, name: str, message: QueueMessage, at_head: bool = False) -> None:
        queue = self._get_queue(name)
        if at_head:
            queue.insert(0, message)
        else:
            queue.append(message)
        self._notify(name)

    def _schedule(self, name: str, message: QueueMessage, delay_seconds: float) -> None:
        ready_at = self._clock() + delay_seconds
        heapq.heappush(self._delayed, (ready_at, next(self._sequence), name, message))

    def _promote_due(self) -> None:
        now = self._clock()
        while self._delayed and self._delayed[0][0] <= now:
            _, _, name, message = heapq.heappop(self._delayed)
            self._append(name, message)

    def _seconds_until_next_due(self) -> Optional[float]:
        if not self._delayed:
            return None
        return max(self._delayed[0][0] - self._clock(), 0.0)

    def _take(self, name: str, max_messages: int) -> List[QueueMessage]:
        queue = self._get_queue(name)
        taken = queue[:max_messages]
        del queue[:max_messages]

        deliveries = []
        for message in taken:
            delivered = replace(message, receipt_handle=uuid.uuid4().hex)
            self._in_flight[delivered.receipt_handle] = (name, delivered)
            deliveries.append(replace(delivered, body=copy.deepcopy(delivered.body),
                                      attributes=dict(delivered.attributes)))
        return deliveries

    def _release(self, queue_name: str, receipt_handle: str) -> QueueMessage:
        entry = self._in_flight.get(receipt_handle)
        if entry is None or entry[0] != queue_name:
            raise MessageStateError(queue_name, receipt_handle)
        del self._in_flight[receipt_handle]
        return entry[1]

    # Queue contract

    async def enqueue(self, queue_name: str, message: Any,
                      options: Optional[EnqueueOptions] = None) -> str:
        options = options or EnqueueOptions()
        priority = options.priority or Priority.NORMAL

        with self._lock:
            message_id = f"local-msg-{next(self._message_ids)}"
            attributes = {
                "priority": priority.value,
                "groupId": options.group_id or "",
            }
            if options.deduplication_id:
                attributes["deduplicationId"] = options.deduplication_id

            queue_message = QueueMessage(
                id=message_id,
                body=copy.deepcopy(message),
                attributes=attributes,
                enqueued_at=utcnow(),
                retry_count=0,
            )

            self._promote_due()
            if options.delay_seconds and options.delay_seconds > 0:
                self._schedule(queue_name, queue_message, options.delay_seconds)
            else:
                self._append(queue_name, queue_message, at_head=priority == Priority.HIGH)

        logger.debug("Enqueued %s on %s (priority=%s, delay=%s)",
                     message_id, queue_name, priority.value, options.delay_seconds)
        return message_id

    async def receive(self, queue_name: str,
                      options: Optional[ReceiveOptions] = None) -> List[QueueMessage]:
        options = options or ReceiveOptions()
        max_messages = options.max_messages if options.max_messages is not None else 10
        if max_messages < 1:
            raise ValueError(f"max_messages must be at least 1, got {max_messages}")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + (options.wait_time_seconds or 0)

        while True:
            with self._lock:
                self._promote_due()
                remaining = deadline - loop.time()
                if self._get_queue(queue_name) or remaining <= 0 or self._closed:
                    messages = self._take(queue_name, max_messages)
                    if messages:
                        logger.debug("Received %d message(s) from %s", len(messages), queue_name)
                    return messages

                waiter = loop.create_future()
                self._waiters.setdefault(queue_name, []).append(waiter)
                next_due = self._seconds_until_next_due()

            timeout = remaining if next_due is None else min(remaining, next_due)
            try:
                await asyncio.wait_for(waiter, timeout=timeout)
            except asyncio.TimeoutError:
                pass
            finally:
                with self._lock:
                    waiters = self._waiters.get(queue_name, [])
                    if waiter in waiters:
                        waiters.remove(waiter)

    async def ack(self, queue_name: str, receipt_handle: str) -> None:
        with self._lock:
            message = self._release(queue_name, receipt_handle)
        logger.debug("Acked %s on %s", message.id, queue_name)

    async def nack(self, queue_name: str, receipt_handle: str,
                   delay_seconds: Optional[int] = None) -> None:
        with self._lock:
            original = self._release(queue_name, receipt_handle)
            message = replace(
                original,
                receipt_handle=None,
                enqueued_at=utcnow(),
                retry_count=original.retry_count + 1,
            )

            if delay_seconds and delay_seconds > 0:
                self._schedule(queue_name, message, delay_seconds)
            else:
                self._promote_due()
                self._append(queue_name, message)

        logger.debug("Nacked %s on %s (retry %d, delay=%s)",
                     message.id, queue_name, message.retry_count, delay_seconds)

    async def move_to_dlq(self, queue_name: str, message: QueueMessage) -> None:
        dlq_name = self._dlq_name(queue_name)

        with self._lock:
            if message.receipt_handle:
                self._release(queue_name, message.receipt_handle)

            dead_letter = QueueMessage(
                id=f"local-msg-{next(self._message_ids)}",
                body=copy.deepcopy(message.body),
                attributes={
                    **(message.attributes or {}),
                    "originalQueue": queue_name,
                    "originalMessageId": message.id,
                    "failedAt": utcnow().isoformat(),
                },
                enqueued_at=utcnow(),
                retry_count=message.retry_count,
            )
            self._promote_due()
            self._append(dlq_name, dead_letter)

        logger.info("Moved message %s from %s to %s", message.id, queue_name, dlq_name)

    # Test helpers

    def get_queue_length(self, queue_name: str) -> int:
        with self._lock:
            self._promote_due()
            return len(self._get_queue(queue_name))

    def get_dlq_length(self, queue_name: str) -> int:
        return self.get_queue_length(self._dlq_name(queue_name))

    def get_in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def clear(self) -> None:
        """Drop every queue, pending delayed message and in-flight handle."""
        with self._lock:
            self._queues.clear()
            self._delayed.clear()
            self._in_flight.clear()

    def clear_queue(self, queue_name: str) -> None:
        with self._lock:
            self._queues[queue_name] = []
            self._delayed = [entry for entry in self._delayed if entry[2] != queue_name]
            heapq.heapify(self._delayed)

    def shutdown(self) -> None:
        """Cancel pending delayed deliveries and release any long-polling receivers."""
        with self._lock:
            self._closed = True
            dropped = len(self._delayed)
            self._delayed.clear()
            for name in list(self._waiters):
                self._notify(name)
        logger.info("LocalQueueProvider shut down (%d delayed message(s) dropped)", dropped)


def _wake(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(None)
