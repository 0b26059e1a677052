"""
SQS queue adapter (visibility-timeout model, FIFO capable).

- priority travels as a message attribute; SQS does not reorder on it
- delay maps to the native DelaySeconds
- deduplication/group ids map to the FIFO fields and only matter on
  ``.fifo`` queues
- nack changes the visibility timeout instead of deleting, which is what
  makes SQS redeliver the message
- stale receipt handles are reported by SQS itself (ReceiptHandleIsInvalid)
  rather than as MessageStateError
"""

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from cloud_providers.aws.clients import AWSCredentials, create_aws_client
from cloud_providers.interfaces import (
    EnqueueOptions,
    QueueMessage,
    QueueProvider,
    ReceiveOptions,
    utcnow,
)
from cloud_providers.settings import Settings, get_settings

if TYPE_CHECKING:
    from mypy_boto3_sqs import SQSClient

logger = logging.getLogger(__name__)


def _string_attribute(value: str) -> Dict[str, str]:
    return {"DataType": "String", "StringValue": value}


class SqsQueueProvider(QueueProvider):
    """Handles AWS SQS queues"""

    def __init__(self,
                 region: Optional[str] = None,
                 endpoint_url: Optional[str] = None,
                 credentials: Optional[AWSCredentials] = None,
                 queue_prefix: Optional[str] = None,
                 dlq_suffix: Optional[str] = None,
                 cache_queue_urls: Optional[bool] = None,
                 sqs_client: Optional["SQSClient"] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()

        self.sqs = sqs_client or create_aws_client(
            "sqs",
            region=region,
            endpoint_url=endpoint_url or settings.sqs_endpoint,
            credentials=credentials,
            settings=settings,
        )
        self.queue_prefix = queue_prefix if queue_prefix is not None else settings.sqs_queue_prefix
        self.dlq_suffix = dlq_suffix if dlq_suffix is not None else settings.dlq_suffix
        self.cache_enabled = (
            cache_queue_urls if cache_queue_urls is not None else settings.sqs_cache_queue_urls
        )
        self._queue_url_cache: Dict[str, str] = {}

        logger.info("SqsQueueProvider initialized")
        logger.info(f"  Endpoint: {endpoint_url or settings.sqs_endpoint}")
        logger.info(f"  Region: {self.sqs.meta.region_name}")
        logger.info(f"  Queue prefix: {self.queue_prefix!r}")

    def _get_queue_url(self, queue_name: str) -> str:
        full_name = self.queue_prefix + queue_name

        if self.cache_enabled and full_name in self._queue_url_cache:
            return self._queue_url_cache[full_name]

        queue_url = self.sqs.get_queue_url(QueueName=full_name)["QueueUrl"]

        if self.cache_enabled:
            self._queue_url_cache[full_name] = queue_url
        return queue_url

    async def enqueue(self, queue_name: str, message: Any,
                      options: Optional[EnqueueOptions] = None) -> str:
        options = options or EnqueueOptions()
        queue_url = self._get_queue_url(queue_name)

        params: Dict[str, Any] = {
            "QueueUrl": queue_url,
            "MessageBody": json.dumps(message),
        }
        if options.delay_seconds is not None:
            params["DelaySeconds"] = options.delay_seconds
        if options.deduplication_id:
            params["MessageDeduplicationId"] = options.deduplication_id
        if options.group_id:
            params["MessageGroupId"] = options.group_id
        if options.priority:
            params["MessageAttributes"] = {"priority": _string_attribute(options.priority.value)}

        try:
            response = self.sqs.send_message(**params)
        except Exception as e:
            logger.error(f"Error adding message to SQS queue {queue_name}: {str(e)}")
            raise

        logger.info(f"Message added to SQS queue {queue_name} with ID: {response['MessageId']}")
        return response["MessageId"]

    async def receive(self, queue_name: str,
                      options: Optional[ReceiveOptions] = None) -> List[QueueMessage]:
        options = options or ReceiveOptions()
        queue_url = self._get_queue_url(queue_name)

        params: Dict[str, Any] = {
            "QueueUrl": queue_url,
            "MaxNumberOfMessages": options.max_messages or 10,
            "MessageAttributeNames": ["All"],
            "AttributeNames": ["All"],
        }
        if options.visibility_timeout_seconds is not None:
            params["VisibilityTimeout"] = options.visibility_timeout_seconds
        if options.wait_time_seconds is not None:
            params["WaitTimeSeconds"] = options.wait_time_seconds

        response = self.sqs.receive_message(**params)
        messages = response.get("Messages") or []
        if messages:
            logger.debug(f"Received {len(messages)} message(s) from SQS queue {queue_name}")

        return [self._to_queue_message(msg) for msg in messages]

    @staticmethod
    def _to_queue_message(msg: Dict[str, Any]) -> QueueMessage:
        attributes = {
            key: value["StringValue"]
            for key, value in (msg.get("MessageAttributes") or {}).items()
            if value.get("StringValue")
        }
        system_attributes = msg.get("Attributes") or {}

        receive_count = system_attributes.get("ApproximateReceiveCount")
        retry_count = int(receive_count) - 1 if receive_count else 0

        sent_timestamp = system_attributes.get("SentTimestamp")
        enqueued_at = (
            datetime.fromtimestamp(int(sent_timestamp) / 1000, tz=timezone.utc)
            if sent_timestamp else utcnow()
        )

        return QueueMessage(
            id=msg["MessageId"],
            body=json.loads(msg["Body"]),
            receipt_handle=msg.get("ReceiptHandle"),
            attributes=attributes,
            enqueued_at=enqueued_at,
            retry_count=max(retry_count, 0),
        )

    async def ack(self, queue_name: str, receipt_handle: str) -> None:
        queue_url = self._get_queue_url(queue_name)
        self.sqs.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)

    async def nack(self, queue_name: str, receipt_handle: str,
                   delay_seconds: Optional[int] = None) -> None:
        queue_url = self._get_queue_url(queue_name)
        self.sqs.change_message_visibility(
            QueueUrl=queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=delay_seconds or 0,
        )

    async def move_to_dlq(self, queue_name: str, message: QueueMessage) -> None:
        dlq_name = queue_name + self.dlq_suffix
        dlq_url = self._get_queue_url(dlq_name)

        message_attributes = {
            "originalQueue": _string_attribute(queue_name),
            "failedAt": _string_attribute(utcnow().isoformat()),
            "originalMessageId": _string_attribute(message.id),
        }
        for key, value in (message.attributes or {}).items():
            if value:
                message_attributes[f"original_{key}"] = _string_attribute(value)

        self.sqs.send_message(
            QueueUrl=dlq_url,
            MessageBody=json.dumps(message.body),
            MessageAttributes=message_attributes,
        )
        logger.info(f"Moved message {message.id} from {queue_name} to {dlq_name}")

        if message.receipt_handle:
            await self.ack(queue_name, message.receipt_handle)

    def clear_url_cache(self) -> None:
        """Forget resolved queue URLs."""
        self._queue_url_cache.clear()


# Alias matching the factory naming
AWSQueueProvider = SqsQueueProvider
