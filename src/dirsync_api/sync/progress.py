"""
Progress Aggregator

Merges a completed batch into the integration's cumulative sync state.
Progress reporting is best-effort: a failed write is logged and never fails
(or retries) the batch that reported it.
"""

from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from dirsync_api.sync.interfaces import IntegrationStateStore
from dirsync_api.sync.models import BatchStats, IntegrationSyncState, SyncBatch


def completion_message(batches_completed: int, total_batches: int, total_users: int, progress_percent: int) -> str:
    """Human readable sync message shown on the integration."""
    if batches_completed >= total_batches:
        return f"Sync completed: {total_users} users processed"
    return f"Processing: {batches_completed}/{total_batches} batches ({progress_percent}%)"


def progress_percent(batches_completed: int, total_batches: int) -> int:
    """Completed share in whole percent, halves rounded up (1/8 -> 13)."""
    if total_batches <= 0:
        return 100
    return (200 * batches_completed + total_batches) // (2 * total_batches)


def merge_batch_completion(
    current: Optional[IntegrationSyncState],
    total_batches: int,
    total_users: int,
    batch_stats: BatchStats,
    now: Optional[datetime] = None,
) -> IntegrationSyncState:
    """
    Compute the state after one more batch completed.

    A missing state counts as zero completed batches. ``last_batch_stats`` is
    replaced, not accumulated. The completed count never exceeds
    ``total_batches`` (a redelivered batch after completion keeps 100%).

    Args:
        current: State read from the store (None if never written)
        total_batches: Number of batches of the running sync
        total_users: Number of directory users of the running sync
        batch_stats: Stats of the batch that just completed
        now: Timestamp recorded as updated_at

    Returns:
        New IntegrationSyncState
    """
    previous = current.batches_completed if current else 0
    batches_completed = min(previous + 1, total_batches)
    percent = progress_percent(batches_completed, total_batches)

    return IntegrationSyncState(
        batches_completed=batches_completed,
        total_batches=total_batches,
        total_users=total_users,
        progress_percent=percent,
        last_batch_stats=batch_stats.model_copy(),
        last_sync_message=completion_message(batches_completed, total_batches, total_users, percent),
        updated_at=now or datetime.now(timezone.utc),
    )


class ProgressAggregator:
    """Reports batch completions to the integration state store."""

    def __init__(self, state_store: IntegrationStateStore):
        """
        Initialize aggregator.

        Args:
            state_store: Store holding each integration's sync state
        """
        self.state_store = state_store

    async def record_batch_completion(self, batch: SyncBatch, batch_stats: BatchStats) -> Optional[IntegrationSyncState]:
        """
        Add one completed batch to the integration's sync state.

        The increment is a single atomic store operation, so batches that
        complete at the same time do not overwrite each other's progress.

        Args:
            batch: The batch that completed
            batch_stats: Its outcome counts

        Returns:
            The new state, or None if the write failed or the integration no longer exists
        """
        try:
            state = await self.state_store.apply_batch_completion(
                batch.integration_id,
                total_batches=batch.total_batches,
                total_users=batch.total_users,
                batch_stats=batch_stats,
            )
        except Exception as e:
            logger.bind(integration_id=batch.integration_id, batch_number=batch.batch_number).exception(
                f"Failed to update integration progress: {e}"
            )
            return None

        if state is None:
            logger.warning(
                "Integration not found while recording batch progress",
                integration_id=batch.integration_id,
                batch_number=batch.batch_number,
            )
            return None

        if state.is_complete:
            logger.success(state.last_sync_message, integration_id=batch.integration_id)
        else:
            logger.info(state.last_sync_message, integration_id=batch.integration_id)
        return state
