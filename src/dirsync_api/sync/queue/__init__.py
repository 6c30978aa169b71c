"""
Sync Queue Module

Azure Storage Queue integration for asynchronous directory sync tasks.
"""

from dirsync_api.sync.queue.queue_client import SyncTaskQueueClient
from dirsync_api.sync.queue.queue_consumer import is_retryable_error, process_message, start_queue_consumer

__all__ = [
    "SyncTaskQueueClient",
    "is_retryable_error",
    "process_message",
    "start_queue_consumer",
]
