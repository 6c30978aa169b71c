"""
Batch Reconciler

Reconciles one batch of directory users into the organization's employees.

Matching strategy, per user:
1. Find the employee by external ID (provider-stable)
2. Fall back to email (directory entries that predate external ID tracking)
3. Update when something changed, skip when nothing did, create when no match

Users are processed sequentially. A failure on one user is recorded and the
batch moves on to the next user. Losing the store connection fails the whole
batch so the queue redelivers it.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import asyncpg
from loguru import logger

from dirsync_api.sync.enums import EmployeeStatus, ReconcileOutcome
from dirsync_api.sync.error_collector import DEFAULT_SAMPLE_SIZE, ErrorCollector
from dirsync_api.sync.interfaces import EmployeeStore
from dirsync_api.sync.models import BatchResult, BatchStats, DirectoryUser, Employee, SyncBatch
from dirsync_api.sync.status_mapper import map_status

# Store failures that affect every user of the batch, not just the current one
STORE_UNAVAILABLE_ERRORS = (
    ConnectionError,
    TimeoutError,
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BatchReconciler:
    """
    Idempotent create-or-update of employees from a SyncBatch.

    Running the same batch twice against an unchanged store yields only
    ``skipped`` outcomes on the second run and performs no writes.
    """

    def __init__(
        self,
        employee_store: EmployeeStore,
        error_sample_size: int = DEFAULT_SAMPLE_SIZE,
        strict_status_mapping: bool = False,
        external_provider: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize reconciler.

        Args:
            employee_store: Store used for lookups and writes
            error_sample_size: Number of error messages retained per batch
            strict_status_mapping: Treat unknown provider statuses as record errors
            external_provider: Provider recorded on created employees (e.g. "google")
            clock: Source of the current time (offboarded_at, timestamps)
        """
        self.employee_store = employee_store
        self.error_sample_size = error_sample_size
        self.strict_status_mapping = strict_status_mapping
        self.external_provider = external_provider
        self.clock = clock

    async def reconcile(self, batch: SyncBatch) -> BatchResult:
        """
        Reconcile every user of the batch.

        Never raises for a single bad record; such failures are counted as
        errors. Store connection failures (STORE_UNAVAILABLE_ERRORS) are
        raised so the batch is retried as a whole.

        Args:
            batch: Batch of directory users for one organization

        Returns:
            BatchResult with outcome counts and the retained error messages
        """
        logger.bind(integration_id=batch.integration_id, organization_id=batch.organization_id).info(
            f"Processing batch {batch.batch_number + 1}/{batch.total_batches} "
            f"({len(batch.users)} users) for org {batch.organization_id}"
        )

        stats = BatchStats()
        errors = ErrorCollector(self.error_sample_size)

        for directory_user in batch.users:
            try:
                outcome = await self.reconcile_user(batch.organization_id, directory_user)
            except STORE_UNAVAILABLE_ERRORS as e:
                logger.bind(integration_id=batch.integration_id).error(
                    f"Store unavailable while processing batch {batch.batch_number + 1}/{batch.total_batches}: {e}"
                )
                raise
            except Exception as e:
                errors.record(directory_user.email, e)
                outcome = ReconcileOutcome.ERROR
            stats.record(outcome)

        logger.info(
            f"Batch {batch.batch_number + 1}/{batch.total_batches} completed",
            integration_id=batch.integration_id,
            stats=stats.model_dump(),
        )

        if errors:
            logger.warning(
                f"Batch {batch.batch_number + 1} had {errors.count} errors",
                integration_id=batch.integration_id,
                errors=errors.messages,
                errors_not_shown=errors.dropped,
            )

        return BatchResult(stats=stats, error_messages=errors.messages)

    async def reconcile_user(self, organization_id: str, directory_user: DirectoryUser) -> ReconcileOutcome:
        """
        Create or update the employee matching one directory user.

        Args:
            organization_id: Organization the employee belongs to
            directory_user: Incoming directory data

        Returns:
            CREATED, UPDATED or SKIPPED
        """
        employee = await self.employee_store.find_by_external_id(organization_id, directory_user.external_id)
        if employee is None:
            employee = await self.employee_store.find_by_email(organization_id, directory_user.email)

        status = map_status(directory_user.status, strict=self.strict_status_mapping)

        if employee is None:
            await self.employee_store.create(self._new_employee_data(organization_id, directory_user, status))
            logger.debug(f"Created employee {directory_user.email}")
            return ReconcileOutcome.CREATED

        if not has_changes(employee, directory_user, status):
            logger.debug(f"Skipped employee {directory_user.email} (no changes)")
            return ReconcileOutcome.SKIPPED

        await self.employee_store.update(employee.id, self._update_patch(employee, directory_user, status))
        logger.debug(f"Updated employee {directory_user.email}")
        return ReconcileOutcome.UPDATED

    def _new_employee_data(
        self, organization_id: str, directory_user: DirectoryUser, status: EmployeeStatus
    ) -> Dict[str, Any]:
        now = self.clock()
        data = {
            "organization_id": organization_id,
            "external_id": directory_user.external_id,
            "email": directory_user.email,
            "name": directory_user.full_name,
            "title": directory_user.job_title,
            "phone": directory_user.phone_number,
            "hired_at": directory_user.start_date,
            "status": status,
            "offboarded_at": now if status == EmployeeStatus.OFFBOARDED else None,
            "created_at": now,
            "updated_at": now,
        }
        if self.external_provider:
            data["external_provider"] = self.external_provider
        return data

    def _update_patch(self, employee: Employee, directory_user: DirectoryUser, status: EmployeeStatus) -> Dict[str, Any]:
        now = self.clock()
        patch = {
            "external_id": directory_user.external_id,
            "email": directory_user.email,
            "name": directory_user.full_name,
            "title": directory_user.job_title,
            "phone": directory_user.phone_number,
            "hired_at": directory_user.start_date,
            "status": status,
            "updated_at": now,
        }
        # offboarded_at is only ever set, never cleared (keeps offboarding history on reactivation)
        if status == EmployeeStatus.OFFBOARDED and employee.offboarded_at is None:
            patch["offboarded_at"] = now
        return patch


def has_changes(employee: Employee, directory_user: DirectoryUser, status: EmployeeStatus) -> bool:
    """Whether any tracked field (external ID, email, name, status) differs from the directory."""
    return (
        employee.external_id != directory_user.external_id
        or employee.email != directory_user.email
        or employee.name != directory_user.full_name
        or employee.status != status
    )
