"""
Message Queue Interface.

Dispatch channel contract: at-least-once delivery, redelivery after a
visibility timeout, dead-letter routing after repeated failed receives.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class Message:
    """Queue message wrapper."""

    def __init__(
        self,
        body: Any,
        message_id: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize message.

        Args:
            body: Message payload (will be JSON-serialized)
            message_id: Entry id when publishing; broker id when received
            headers: Optional message attributes
        """
        self.body = body
        self.message_id = message_id
        self.headers = headers or {}
        self.receipt_handle: Optional[str] = None
        self.delivery_count: int = 0

    def __repr__(self) -> str:
        return f"Message(id={self.message_id!r}, deliveries={self.delivery_count})"


class QueueRepository(ABC):
    """Abstract interface for dispatch queue operations."""

    @abstractmethod
    async def connect(self) -> None:
        """Connect to message queue broker."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection to message queue broker."""
        pass

    @abstractmethod
    async def publish_batch(
        self,
        queue_name: str,
        messages: List[Message],
    ) -> List[str]:
        """
        Publish multiple messages to a queue.

        Args:
            queue_name: Queue name or URL
            messages: Messages to publish; ``message_id`` is used as entry id

        Returns:
            Broker message IDs of the published messages

        Raises:
            QueueError: If any message could not be published
        """
        pass

    @abstractmethod
    async def receive(
        self,
        queue_name: str,
        max_messages: int = 10,
        wait_seconds: int = 20,
        visibility_timeout: Optional[int] = None,
    ) -> List[Message]:
        """
        Receive messages from a queue.

        Received messages stay invisible for the visibility timeout and are
        redelivered unless acknowledged.

        Args:
            queue_name: Queue name or URL
            max_messages: Maximum number of messages to retrieve
            wait_seconds: Long-poll wait time
            visibility_timeout: Override the queue's visibility timeout
        """
        pass

    @abstractmethod
    async def acknowledge(
        self,
        queue_name: str,
        message: Message,
    ) -> None:
        """
        Acknowledge successful processing of a message (removes it).

        Args:
            queue_name: Queue name or URL
            message: Message previously returned by ``receive``
        """
        pass

    @abstractmethod
    async def get_queue_size(
        self,
        queue_name: str,
    ) -> int:
        """Get approximate number of visible messages in queue."""
        pass
