"""Collaborator protocols for the reconciliation engine.

The reconciler, aggregator and scheduler receive these through their
constructors. Production implementations live in ``sync.db`` (PostgreSQL),
``sync.queue`` (Azure Storage Queue) and ``sync.providers`` (Google
Workspace).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from dirsync_api.sync.enums import IntegrationProvider, SyncRunStatus, TaskName
from dirsync_api.sync.models import BatchStats, DirectoryPage, Employee, Integration, IntegrationSyncState


@runtime_checkable
class DirectoryFetcher(Protocol):
    """Lists directory users page by page. Pagination and rate limits are its own concern."""

    async def list_users(self, page_size: int = 500, page_token: Optional[str] = None) -> DirectoryPage: ...


@runtime_checkable
class TaskQueue(Protocol):
    """At-least-once task queue (no ordering, redelivery on failure)."""

    def enqueue(self, task_name: TaskName, payload: Dict[str, Any]) -> None: ...

    def enqueue_at(self, task_name: TaskName, payload: Dict[str, Any], run_at: datetime) -> None: ...


@runtime_checkable
class EmployeeStore(Protocol):
    """Organization-scoped employee lookups and writes."""

    async def find_by_external_id(self, organization_id: str, external_id: str) -> Optional[Employee]: ...

    async def find_by_email(self, organization_id: str, email: str) -> Optional[Employee]: ...

    async def create(self, data: Dict[str, Any]) -> Employee: ...

    async def update(self, employee_id: Any, patch: Dict[str, Any]) -> Employee: ...


@runtime_checkable
class IntegrationStateStore(Protocol):
    """Persistence of an integration's cumulative sync state."""

    async def read(self, integration_id: str) -> Optional[IntegrationSyncState]: ...

    async def write(self, integration_id: str, state: IntegrationSyncState) -> None: ...

    async def apply_batch_completion(
        self,
        integration_id: str,
        total_batches: int,
        total_users: int,
        batch_stats: BatchStats,
    ) -> Optional[IntegrationSyncState]:
        """Atomically add one completed batch and return the resulting state (None if the integration is gone)."""
        ...


@runtime_checkable
class IntegrationStore(IntegrationStateStore, Protocol):
    """Integration lookups and sync run bookkeeping used by full-sync orchestration."""

    async def get(self, integration_id: str) -> Optional[Integration]: ...

    async def list_active(self, provider: Optional[IntegrationProvider] = None) -> List[Integration]: ...

    async def update_sync_status(self, integration_id: str, status: SyncRunStatus, message: Optional[str] = None) -> None: ...
