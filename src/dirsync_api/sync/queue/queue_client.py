"""
Azure Storage Queue Client for Directory Sync Tasks

Wraps Azure Storage Queue for enqueuing and dequeuing sync tasks. Every
message is a JSON envelope ``{"task": <name>, "payload": {...}}``.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from azure.core.exceptions import ResourceExistsError
from azure.storage.queue import QueueClient
from loguru import logger

from dirsync_api.sync.enums import TaskName
from dirsync_api.sync.models import encode_task_message

# Azure Storage Queue rejects visibility delays longer than 7 days
MAX_VISIBILITY_DELAY_SECONDS = 7 * 24 * 60 * 60


class SyncTaskQueueClient:
    """
    Sync task queue client.

    Implements the TaskQueue protocol (enqueue / enqueue_at) and the message
    operations used by the queue consumer.
    """

    def __init__(self, connection_string: str, queue_name: str, client: Optional[QueueClient] = None):
        """
        Initialize queue client.

        Args:
            connection_string: Azure Storage Queue connection string
            queue_name: Queue name (e.g., "directory-sync")
            client: Pre-built QueueClient (skips creation from the connection string)
        """
        self.connection_string = connection_string
        self.queue_name = queue_name
        self.client = client

        if self.client is None:
            self._initialize_queue()

    def _initialize_queue(self) -> None:
        """Initialize queue client and create queue if doesn't exist."""
        self.client = QueueClient.from_connection_string(self.connection_string, self.queue_name)

        try:
            self.client.create_queue()
            logger.info(f"Queue '{self.queue_name}' ready")
        except ResourceExistsError:
            logger.debug("Queue exists")

    def enqueue(self, task_name: Union[TaskName, str], payload: Dict[str, Any]) -> None:
        """
        Enqueue a task for immediate processing.

        Args:
            task_name: Task name (reconcile-batch, sync-directory, sync-all-directories)
            payload: Task payload

        Raises:
            BatchPayloadError: If the payload does not match the task
            Exception: If queue operation fails
        """
        self._send(task_name, payload, visibility_timeout=None)

    def enqueue_at(self, task_name: Union[TaskName, str], payload: Dict[str, Any], run_at: datetime) -> None:
        """
        Enqueue a task that becomes visible at ``run_at``.

        Times in the past run immediately; delays are capped at 7 days.

        Args:
            task_name: Task name
            payload: Task payload
            run_at: When the task should run (naive datetimes are treated as UTC)
        """
        if run_at.tzinfo is None:
            run_at = run_at.replace(tzinfo=timezone.utc)

        delay = int((run_at - datetime.now(timezone.utc)).total_seconds())
        if delay > MAX_VISIBILITY_DELAY_SECONDS:
            logger.warning(
                f"Delay of {delay}s exceeds queue limit, capping to {MAX_VISIBILITY_DELAY_SECONDS}s",
                task=str(TaskName(task_name).value),
            )
            delay = MAX_VISIBILITY_DELAY_SECONDS

        self._send(task_name, payload, visibility_timeout=delay if delay > 0 else None)

    def _send(self, task_name: Union[TaskName, str], payload: Dict[str, Any], visibility_timeout: Optional[int]) -> None:
        message = encode_task_message(task_name, payload)

        try:
            if visibility_timeout:
                self.client.send_message(json.dumps(message), visibility_timeout=visibility_timeout)
            else:
                self.client.send_message(json.dumps(message))
        except Exception as e:
            logger.error(f"Failed to enqueue {message['task']} task: {e}")
            raise

        logger.info(f"Enqueued {message['task']} task", delay_seconds=visibility_timeout or 0)

    def receive_messages(self, max_messages: int = 1, visibility_timeout: int = 600) -> List:
        """
        Receive messages from queue.

        Messages become invisible for the visibility_timeout duration and are
        redelivered afterwards unless deleted.

        Args:
            max_messages: Maximum number of messages to receive
            visibility_timeout: Seconds a message stays invisible

        Returns:
            List of QueueMessage objects
        """
        try:
            messages = self.client.receive_messages(max_messages=max_messages, visibility_timeout=visibility_timeout)
            return list(messages)
        except Exception as e:
            logger.error(f"Failed to receive messages from queue: {e}")
            raise

    def delete_message(self, message) -> None:
        """
        Delete (acknowledge) a message after processing.

        Args:
            message: Message object from receive_messages()
        """
        try:
            self.client.delete_message(message)
            logger.debug("Deleted message from queue")
        except Exception as e:
            logger.error(f"Failed to delete message: {e}")
            raise

    def get_queue_length(self) -> int:
        """
        Get approximate number of messages in queue.

        Returns:
            Approximate message count (0 if the queue cannot be read)
        """
        try:
            properties = self.client.get_queue_properties()
            return properties.approximate_message_count
        except Exception as e:
            logger.error(f"Failed to get queue length: {e}")
            return 0
