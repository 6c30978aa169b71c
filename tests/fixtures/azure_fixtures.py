"""Fixtures for Azure Storage Queue mocks."""

import json
from unittest.mock import MagicMock

import pytest


def make_queue_message(content, dequeue_count: int = 1, message_id: str = "msg-1"):
    """QueueMessage stand-in carrying the given body (dicts are JSON encoded)."""
    message = MagicMock()
    message.id = message_id
    message.dequeue_count = dequeue_count
    message.content = content if isinstance(content, str) else json.dumps(content)
    return message


@pytest.fixture
def mock_azure_queue_client():
    """Mock azure.storage.queue.QueueClient."""
    client = MagicMock()
    client.send_message.return_value = None
    client.receive_messages.return_value = iter([])
    client.delete_message.return_value = None
    client.get_queue_properties.return_value = MagicMock(approximate_message_count=3)
    return client


@pytest.fixture
def sync_queue_client(mock_azure_queue_client):
    """SyncTaskQueueClient wrapping the mocked Azure client."""
    from dirsync_api.sync.queue import SyncTaskQueueClient

    return SyncTaskQueueClient("UseDevelopmentStorage=true", "directory-sync-test", client=mock_azure_queue_client)
