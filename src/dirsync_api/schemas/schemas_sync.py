"""
Directory Sync API Response Schemas

Response models for sync endpoints (PascalCase fields per existing pattern).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from dirsync_api.sync.models import Integration

# ════════════════════════════════════════════════════════════════════════════
# Sync Schemas
# ════════════════════════════════════════════════════════════════════════════


class SyncTriggerResponse(BaseModel):
    """Response after a sync was requested."""

    Message: str
    IntegrationId: str
    Task: str
    ScheduledFor: Optional[datetime] = None  # None = as soon as a worker is free


class BatchStatsResponse(BaseModel):
    """Outcome counts of the most recently completed batch."""

    Created: int
    Updated: int
    Skipped: int
    Errors: int


class SyncStatusResponse(BaseModel):
    """Current sync state of an integration."""

    IntegrationId: str
    OrganizationId: str
    Provider: str
    LastSyncStatus: Optional[str] = None  # in_progress, success, error
    LastSyncMessage: Optional[str] = None
    LastSyncAt: Optional[datetime] = None
    BatchesCompleted: int = 0
    TotalBatches: int = 0
    TotalUsers: int = 0
    ProgressPercent: int = 0
    LastBatchStats: Optional[BatchStatsResponse] = None
    UpdatedAt: Optional[datetime] = None

    @classmethod
    def from_integration(cls, integration: Integration) -> "SyncStatusResponse":
        state = integration.sync_stats
        last_batch = state.last_batch_stats if state else None

        return cls(
            IntegrationId=integration.integration_id,
            OrganizationId=integration.organization_id,
            Provider=integration.provider.value,
            LastSyncStatus=integration.last_sync_status.value if integration.last_sync_status else None,
            LastSyncMessage=integration.last_sync_message,
            LastSyncAt=integration.last_sync_at,
            BatchesCompleted=state.batches_completed if state else 0,
            TotalBatches=state.total_batches if state else 0,
            TotalUsers=state.total_users if state else 0,
            ProgressPercent=state.progress_percent if state else 0,
            LastBatchStats=(
                BatchStatsResponse(
                    Created=last_batch.created,
                    Updated=last_batch.updated,
                    Skipped=last_batch.skipped,
                    Errors=last_batch.errors,
                )
                if last_batch
                else None
            ),
            UpdatedAt=state.updated_at if state else None,
        )


# ════════════════════════════════════════════════════════════════════════════
# Health Schemas
# ════════════════════════════════════════════════════════════════════════════


class ReadinessResponse(BaseModel):
    """Readiness of the service dependencies."""

    Message: str
    DatabaseConfigured: bool
    DatabaseConnected: bool
    QueueConfigured: bool
    QueueConnected: bool
    QueueMessageCount: int = 0
    WorkerRunning: bool = False
