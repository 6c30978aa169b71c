"""
Batch Scheduler

Splits a full directory listing into fixed-size batches and enqueues one
``reconcile-batch`` task per batch. Batches are independent units of work:
the queue decides when and in which order they run.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Sequence

from loguru import logger

from dirsync_api.sync.enums import TaskName
from dirsync_api.sync.interfaces import IntegrationStateStore, TaskQueue
from dirsync_api.sync.models import DirectoryUser, IntegrationSyncState, SyncBatch
from dirsync_api.sync.progress import completion_message

DEFAULT_BATCH_SIZE = 100


def partition_users(users: Sequence[DirectoryUser], batch_size: int = DEFAULT_BATCH_SIZE) -> List[List[DirectoryUser]]:
    """
    Split users into contiguous, ordered, non-overlapping chunks.

    Args:
        users: Full directory listing
        batch_size: Maximum users per chunk

    Returns:
        ceil(len(users) / batch_size) lists; every one but the last is full

    Raises:
        ValueError: If batch_size < 1
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(users[start : start + batch_size]) for start in range(0, len(users), batch_size)]


class BatchScheduler:
    """Resets an integration's sync state and fans its users out as batch tasks."""

    def __init__(
        self,
        task_queue: TaskQueue,
        state_store: IntegrationStateStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        """
        Initialize scheduler.

        Args:
            task_queue: Queue receiving reconcile-batch tasks
            state_store: Store holding each integration's sync state
            batch_size: Users per batch

        Raises:
            ValueError: If batch_size < 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.task_queue = task_queue
        self.state_store = state_store
        self.batch_size = batch_size

    async def schedule(self, integration_id: str, organization_id: str, users: Sequence[DirectoryUser]) -> int:
        """
        Schedule a full sync of an integration's directory.

        The sync state is reset before the first task is enqueued, so batches
        completing early always count against the new totals. An empty
        directory is recorded as an already completed sync.

        Args:
            integration_id: Integration being synced
            organization_id: Organization owning the employees
            users: Every user returned by the directory

        Returns:
            Number of batches enqueued
        """
        chunks = partition_users(users, self.batch_size)
        total_batches = len(chunks)
        total_users = len(users)

        if total_batches == 0:
            await self.state_store.write(
                integration_id,
                IntegrationSyncState(
                    batches_completed=0,
                    total_batches=0,
                    total_users=0,
                    progress_percent=100,
                    last_sync_message=completion_message(0, 0, 0, 100),
                    updated_at=datetime.now(timezone.utc),
                ),
            )
            logger.info("Directory is empty, nothing to schedule", integration_id=integration_id)
            return 0

        await self.state_store.write(
            integration_id,
            IntegrationSyncState(
                batches_completed=0,
                total_batches=total_batches,
                total_users=total_users,
                progress_percent=0,
                last_sync_message=completion_message(0, total_batches, total_users, 0),
                updated_at=datetime.now(timezone.utc),
            ),
        )

        for batch_number, chunk in enumerate(chunks):
            batch = SyncBatch(
                integration_id=integration_id,
                organization_id=organization_id,
                users=chunk,
                batch_number=batch_number,
                total_batches=total_batches,
                total_users=total_users,
            )
            await asyncio.to_thread(
                self.task_queue.enqueue, TaskName.RECONCILE_BATCH, batch.model_dump(mode="json", by_alias=True)
            )

        logger.info(
            f"Scheduled {total_batches} batches for {total_users} users",
            integration_id=integration_id,
            organization_id=organization_id,
            batch_size=self.batch_size,
        )
        return total_batches
