"""
Amazon SQS Queue Implementation.

The dispatch queue is configured (outside this code) with KMS encryption,
a 120 s visibility timeout and a redrive policy sending messages to a
dead-letter queue after two receives.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from tiered_timeseries.config import SQS_BATCH_LIMIT
from tiered_timeseries.storage.aws import AWSClientFactory
from tiered_timeseries.storage.interfaces import QueueError, translate_aws_error
from tiered_timeseries.storage.queue.interface import Message, QueueRepository

logger = logging.getLogger(__name__)


class SQSQueueRepository(QueueRepository):
    """SQS implementation of the dispatch queue. ``queue_name`` is the queue URL."""

    def __init__(self, clients: AWSClientFactory):
        self._clients = clients

    async def connect(self) -> None:
        # Clients are opened per operation
        logger.debug("SQS repository ready")

    async def close(self) -> None:
        logger.debug("SQS repository closed")

    async def publish_batch(
        self,
        queue_name: str,
        messages: List[Message],
    ) -> List[str]:
        """Publish messages in groups of 10 (SQS batch limit)."""
        message_ids: List[str] = []
        failed: List[Dict[str, Any]] = []

        try:
            async with self._clients.client("sqs") as client:
                for start in range(0, len(messages), SQS_BATCH_LIMIT):
                    group = messages[start:start + SQS_BATCH_LIMIT]
                    entries = [
                        {
                            "Id": message.message_id or str(start + offset),
                            "MessageBody": json.dumps(message.body),
                        }
                        for offset, message in enumerate(group)
                    ]

                    response = await client.send_message_batch(
                        QueueUrl=queue_name,
                        Entries=entries,
                    )

                    message_ids.extend(
                        entry["MessageId"] for entry in response.get("Successful", [])
                    )
                    failed.extend(response.get("Failed", []))
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "SQS SendMessageBatch") from e

        if failed:
            details = ", ".join(
                f"{entry.get('Id')}: {entry.get('Code')}" for entry in failed
            )
            raise QueueError(
                f"{len(failed)}/{len(messages)} messages failed to publish ({details})"
            )

        logger.info(f"Published {len(message_ids)} messages to {queue_name}")
        return message_ids

    async def receive(
        self,
        queue_name: str,
        max_messages: int = 10,
        wait_seconds: int = 20,
        visibility_timeout: Optional[int] = None,
    ) -> List[Message]:
        params: Dict[str, Any] = {
            "QueueUrl": queue_name,
            "MaxNumberOfMessages": min(max_messages, SQS_BATCH_LIMIT),
            "WaitTimeSeconds": wait_seconds,
            "AttributeNames": ["ApproximateReceiveCount"],
        }
        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout

        try:
            async with self._clients.client("sqs") as client:
                response = await client.receive_message(**params)
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "SQS ReceiveMessage") from e

        messages = []
        for raw in response.get("Messages", []):
            message = Message(body=raw.get("Body"), message_id=raw.get("MessageId"))
            message.receipt_handle = raw.get("ReceiptHandle")
            message.delivery_count = int(
                raw.get("Attributes", {}).get("ApproximateReceiveCount", 1)
            )
            messages.append(message)

        return messages

    async def acknowledge(
        self,
        queue_name: str,
        message: Message,
    ) -> None:
        if not message.receipt_handle:
            raise QueueError(f"Message {message.message_id} has no receipt handle")

        try:
            async with self._clients.client("sqs") as client:
                await client.delete_message(
                    QueueUrl=queue_name,
                    ReceiptHandle=message.receipt_handle,
                )
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "SQS DeleteMessage") from e

    async def get_queue_size(
        self,
        queue_name: str,
    ) -> int:
        try:
            async with self._clients.client("sqs") as client:
                response = await client.get_queue_attributes(
                    QueueUrl=queue_name,
                    AttributeNames=["ApproximateNumberOfMessages"],
                )
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "SQS GetQueueAttributes") from e

        return int(response.get("Attributes", {}).get("ApproximateNumberOfMessages", 0))
