"""
Sync State Models

Per-batch statistics and the cumulative sync state stored on an integration.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dirsync_api.sync.enums import ReconcileOutcome


class BatchStats(BaseModel):
    """Outcome counts of one reconcile-batch run."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    def record(self, outcome: ReconcileOutcome) -> None:
        """Count one outcome."""
        if outcome == ReconcileOutcome.CREATED:
            self.created += 1
        elif outcome == ReconcileOutcome.UPDATED:
            self.updated += 1
        elif outcome == ReconcileOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped + self.errors


class BatchResult(BaseModel):
    """Stats of one batch plus the retained sample of error messages."""

    stats: BatchStats = Field(default_factory=BatchStats)
    error_messages: List[str] = Field(default_factory=list)


class IntegrationSyncState(BaseModel):
    """Cumulative progress of the current full sync (integrations.sync_stats).

    Stored as JSON with camelCase keys. ``last_batch_stats`` holds the stats of
    the most recently completed batch only.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    batches_completed: int = 0
    total_batches: int = 0
    total_users: int = 0
    progress_percent: int = 0
    last_batch_stats: Optional[BatchStats] = None
    last_sync_message: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.batches_completed >= self.total_batches
