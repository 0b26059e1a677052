"""
Pub/Sub queue adapter (ack-deadline / pull model).

A logical queue is a topic plus a subscription of the same name. Pub/Sub
has no native delivery delay, so ``delay_seconds`` is published as a
``scheduledTime`` attribute (epoch milliseconds) for the consumer to honour.
Ordering keys and deduplication ids are carried as attributes as well.
Expired or unknown ack ids are ignored by Pub/Sub rather than rejected.

``retry_count`` comes from ``delivery_attempt``, which Pub/Sub only fills in
when the subscription has a dead-letter policy. Without one it is 0 and
nothing here sets a ``retryCount`` attribute on redelivery, so ``nack``
leaves ``retry_count`` at 0 on this backend.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import google.auth
from google.api_core.exceptions import DeadlineExceeded
from google.cloud import pubsub_v1

from cloud_providers.interfaces import (
    EnqueueOptions,
    QueueMessage,
    QueueProvider,
    ReceiveOptions,
    utcnow,
)
from cloud_providers.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _decode_body(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return data.decode("utf-8", errors="replace")


class PubSubQueueProvider(QueueProvider):
    """Handles Google Cloud Pub/Sub topics and pull subscriptions."""

    def __init__(self,
                 dlq_suffix: Optional[str] = None,
                 project_id: Optional[str] = None,
                 publisher: Optional[pubsub_v1.PublisherClient] = None,
                 subscriber: Optional[pubsub_v1.SubscriberClient] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.dlq_suffix = dlq_suffix if dlq_suffix is not None else settings.dlq_suffix
        self._project_id = project_id or settings.google_cloud_project
        self._publisher = publisher
        self._subscriber = subscriber
        logger.info("PubSubQueueProvider initialized (project=%s, dlq suffix %r)",
                    self._project_id or "<auto-detect>", self.dlq_suffix)

    @property
    def project_id(self) -> str:
        if not self._project_id:
            _, detected = google.auth.default()
            if not detected:
                raise RuntimeError("Could not determine GCP project id; set GOOGLE_CLOUD_PROJECT")
            self._project_id = detected
            logger.info("Auto-detected GCP project: %s", detected)
        return self._project_id

    @property
    def publisher(self) -> pubsub_v1.PublisherClient:
        if self._publisher is None:
            self._publisher = pubsub_v1.PublisherClient()
        return self._publisher

    @property
    def subscriber(self) -> pubsub_v1.SubscriberClient:
        if self._subscriber is None:
            self._subscriber = pubsub_v1.SubscriberClient()
        return self._subscriber

    def _topic_path(self, queue_name: str) -> str:
        return self.publisher.topic_path(self.project_id, queue_name)

    def _subscription_path(self, queue_name: str) -> str:
        # Subscription name convention: same as topic name
        return self.subscriber.subscription_path(self.project_id, queue_name)

    def _publish(self, queue_name: str, body: Any, attributes: Dict[str, str]) -> str:
        future = self.publisher.publish(
            self._topic_path(queue_name),
            json.dumps(body).encode("utf-8"),
            **attributes,
        )
        return future.result()

    async def enqueue(self, queue_name: str, message: Any,
                      options: Optional[EnqueueOptions] = None) -> str:
        options = options or EnqueueOptions()
        attributes: Dict[str, str] = {}

        if options.priority:
            attributes["priority"] = options.priority.value
        if options.group_id:
            attributes["orderingKey"] = options.group_id
        if options.deduplication_id:
            attributes["deduplicationId"] = options.deduplication_id
        if options.delay_seconds and options.delay_seconds > 0:
            scheduled_time = int(time.time() * 1000) + options.delay_seconds * 1000
            attributes["scheduledTime"] = str(scheduled_time)

        try:
            message_id = self._publish(queue_name, message, attributes)
        except Exception as e:
            logger.error("Error publishing message to topic %s: %s", queue_name, str(e))
            raise

        logger.info("Message published to topic %s with ID: %s", queue_name, message_id)
        return message_id

    async def receive(self, queue_name: str,
                      options: Optional[ReceiveOptions] = None) -> List[QueueMessage]:
        options = options or ReceiveOptions()
        subscription = self._subscription_path(queue_name)

        pull_kwargs: Dict[str, Any] = {}
        if options.wait_time_seconds:
            pull_kwargs["timeout"] = options.wait_time_seconds

        try:
            response = self.subscriber.pull(
                request={"subscription": subscription, "max_messages": options.max_messages or 10},
                **pull_kwargs,
            )
        except DeadlineExceeded:
            return []

        received = list(response.received_messages)
        if not received:
            return []

        if options.visibility_timeout_seconds:
            self.subscriber.modify_ack_deadline(request={
                "subscription": subscription,
                "ack_ids": [msg.ack_id for msg in received],
                "ack_deadline_seconds": options.visibility_timeout_seconds,
            })

        logger.debug("Pulled %d message(s) from subscription %s", len(received), queue_name)
        return [self._to_queue_message(msg) for msg in received]

    @staticmethod
    def _to_queue_message(received: Any) -> QueueMessage:
        message = received.message
        attributes = dict(message.attributes or {})

        delivery_attempt = getattr(received, "delivery_attempt", 0) or 0
        if delivery_attempt > 0:
            retry_count = delivery_attempt - 1
        else:
            retry_count = int(attributes.get("retryCount", 0) or 0)

        return QueueMessage(
            id=message.message_id,
            body=_decode_body(message.data),
            receipt_handle=received.ack_id,
            attributes=attributes,
            enqueued_at=message.publish_time or utcnow(),
            retry_count=retry_count,
        )

    async def ack(self, queue_name: str, receipt_handle: str) -> None:
        self.subscriber.acknowledge(request={
            "subscription": self._subscription_path(queue_name),
            "ack_ids": [receipt_handle],
        })

    async def nack(self, queue_name: str, receipt_handle: str,
                   delay_seconds: Optional[int] = None) -> None:
        # A zero deadline makes the message immediately redeliverable
        deadline = delay_seconds if delay_seconds and delay_seconds > 0 else 0
        self.subscriber.modify_ack_deadline(request={
            "subscription": self._subscription_path(queue_name),
            "ack_ids": [receipt_handle],
            "ack_deadline_seconds": deadline,
        })

    async def move_to_dlq(self, queue_name: str, message: QueueMessage) -> None:
        dlq_name = f"{queue_name}{self.dlq_suffix}"
        attributes = {
            **(message.attributes or {}),
            "originalQueue": queue_name,
            "originalMessageId": message.id,
            "failedAt": utcnow().isoformat(),
            "retryCount": str(message.retry_count or 0),
        }

        self._publish(dlq_name, message.body, attributes)
        logger.info("Moved message %s from %s to %s", message.id, queue_name, dlq_name)

        if message.receipt_handle:
            await self.ack(queue_name, message.receipt_handle)


# Alias matching the factory naming
GCPQueueProvider = PubSubQueueProvider
