"""
Integration Repository

Reads integrations and stores their sync state (integrations.sync_stats JSONB)
and the outcome of the latest sync run.
"""

from datetime import datetime, timezone
from typing import List, Optional

import asyncpg
from loguru import logger

from dirsync_api.sync.enums import IntegrationProvider, IntegrationStatus, SyncRunStatus
from dirsync_api.sync.models import BatchStats, Integration, IntegrationSyncState
from dirsync_api.sync.progress import merge_batch_completion


def _dump_state(state: IntegrationSyncState) -> str:
    return state.model_dump_json(by_alias=True)


def _load_state(value) -> Optional[IntegrationSyncState]:
    if value is None:
        return None
    if isinstance(value, (str, bytes)):
        return IntegrationSyncState.model_validate_json(value)
    return IntegrationSyncState.model_validate(value)


class IntegrationRepository:
    """Integration repository (dirsync.integrations)."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get(self, integration_id: str) -> Optional[Integration]:
        """Get an integration by ID."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM dirsync.integrations WHERE integration_id = $1",
                integration_id,
            )
        return Integration.model_validate(dict(row)) if row else None

    async def list_active(self, provider: Optional[IntegrationProvider] = None) -> List[Integration]:
        """
        List active integrations, optionally for one provider.

        Args:
            provider: Only return integrations of this provider

        Returns:
            Integrations ordered by ID
        """
        async with self.pool.acquire() as conn:
            if provider is None:
                rows = await conn.fetch(
                    "SELECT * FROM dirsync.integrations WHERE status = $1 ORDER BY integration_id",
                    IntegrationStatus.ACTIVE.value,
                )
            else:
                rows = await conn.fetch(
                    """
                    SELECT * FROM dirsync.integrations
                    WHERE status = $1 AND provider = $2
                    ORDER BY integration_id
                    """,
                    IntegrationStatus.ACTIVE.value,
                    IntegrationProvider(provider).value,
                )
        return [Integration.model_validate(dict(row)) for row in rows]

    async def update_sync_status(self, integration_id: str, status: SyncRunStatus, message: Optional[str] = None) -> None:
        """Record the outcome of the latest sync run."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE dirsync.integrations
                SET last_sync_status = $2,
                    last_sync_message = $3,
                    last_sync_at = NOW(),
                    updated_at = NOW()
                WHERE integration_id = $1
                """,
                integration_id,
                SyncRunStatus(status).value,
                message,
            )

    # ════════════════════════════════════════════════════════════════════════
    # Sync state (IntegrationStateStore)
    # ════════════════════════════════════════════════════════════════════════

    async def read(self, integration_id: str) -> Optional[IntegrationSyncState]:
        """Get the current sync state (None if never written or integration missing)."""
        async with self.pool.acquire() as conn:
            value = await conn.fetchval(
                "SELECT sync_stats FROM dirsync.integrations WHERE integration_id = $1",
                integration_id,
            )
        return _load_state(value)

    async def write(self, integration_id: str, state: IntegrationSyncState) -> None:
        """Replace the sync state and mirror its message onto the integration."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE dirsync.integrations
                SET sync_stats = $2::jsonb,
                    last_sync_message = $3,
                    updated_at = NOW()
                WHERE integration_id = $1
                """,
                integration_id,
                _dump_state(state),
                state.last_sync_message,
            )

    async def apply_batch_completion(
        self,
        integration_id: str,
        total_batches: int,
        total_users: int,
        batch_stats: BatchStats,
    ) -> Optional[IntegrationSyncState]:
        """
        Add one completed batch to the sync state.

        The row is locked for the read-modify-write, so concurrent batch
        completions are serialized and none of them is lost. When the last
        batch completes the run is marked successful.

        Args:
            integration_id: Integration being synced
            total_batches: Number of batches of the running sync
            total_users: Number of users of the running sync
            batch_stats: Stats of the batch that completed

        Returns:
            The new state, or None if the integration does not exist
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT sync_stats FROM dirsync.integrations WHERE integration_id = $1 FOR UPDATE",
                    integration_id,
                )
                if row is None:
                    return None

                state = merge_batch_completion(
                    _load_state(row["sync_stats"]),
                    total_batches=total_batches,
                    total_users=total_users,
                    batch_stats=batch_stats,
                    now=datetime.now(timezone.utc),
                )

                if state.is_complete:
                    await conn.execute(
                        """
                        UPDATE dirsync.integrations
                        SET sync_stats = $2::jsonb,
                            last_sync_message = $3,
                            last_sync_status = $4,
                            last_sync_at = NOW(),
                            updated_at = NOW()
                        WHERE integration_id = $1
                        """,
                        integration_id,
                        _dump_state(state),
                        state.last_sync_message,
                        SyncRunStatus.SUCCESS.value,
                    )
                else:
                    await conn.execute(
                        """
                        UPDATE dirsync.integrations
                        SET sync_stats = $2::jsonb,
                            last_sync_message = $3,
                            updated_at = NOW()
                        WHERE integration_id = $1
                        """,
                        integration_id,
                        _dump_state(state),
                        state.last_sync_message,
                    )

        logger.debug(
            f"Integration progress {state.batches_completed}/{state.total_batches}",
            integration_id=integration_id,
        )
        return state
