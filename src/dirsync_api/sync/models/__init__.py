"""
Sync Models Module

All Pydantic models for the directory sync system:
- Directory models (input from identity providers)
- Employee database model
- Batch stats and integration sync state
- Queue task messages
"""

# Directory Models (from providers)
from dirsync_api.sync.models.directory import DirectoryPage, DirectoryUser

# Database Entity Models
from dirsync_api.sync.models.employee import Employee

# Integration Model
from dirsync_api.sync.models.integration import Integration

# Stats and Progress Models
from dirsync_api.sync.models.sync_state import BatchResult, BatchStats, IntegrationSyncState

# Queue Task Models
from dirsync_api.sync.models.tasks import (
    ReconcileBatchTask,
    SyncAllDirectoriesTask,
    SyncBatch,
    SyncDirectoryPayload,
    SyncAllDirectoriesPayload,
    SyncDirectoryTask,
    TaskMessage,
    decode_task_message,
    encode_task_message,
)

__all__ = [
    # Directory models
    "DirectoryUser",
    "DirectoryPage",
    # Entity models
    "Employee",
    "Integration",
    # Stats
    "BatchStats",
    "BatchResult",
    "IntegrationSyncState",
    # Tasks
    "SyncBatch",
    "SyncDirectoryPayload",
    "SyncAllDirectoriesPayload",
    "TaskMessage",
    "ReconcileBatchTask",
    "SyncDirectoryTask",
    "SyncAllDirectoriesTask",
    "decode_task_message",
    "encode_task_message",
]
