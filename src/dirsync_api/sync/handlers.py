"""
Task Handlers

Maps each queue task name to the coroutine that executes it. Handlers receive
the payload already decoded and validated by the queue consumer.
"""

from typing import Any, Dict

from loguru import logger

from dirsync_api.errors import DirectoryFetchError, IntegrationNotFoundError, SyncFailedError
from dirsync_api.settings import Settings
from dirsync_api.sync.enums import IntegrationProvider, TaskName
from dirsync_api.sync.interfaces import EmployeeStore, IntegrationStateStore
from dirsync_api.sync.models import BatchResult, Integration, SyncBatch, SyncDirectoryPayload
from dirsync_api.sync.progress import ProgressAggregator
from dirsync_api.sync.providers import GoogleDirectoryFetcher
from dirsync_api.sync.queue.queue_consumer import TaskHandler, is_retryable_error
from dirsync_api.sync.reconciler import BatchReconciler
from dirsync_api.sync.service import DirectorySyncService, FetcherFactory


def make_fetcher_factory(settings: Settings) -> FetcherFactory:
    """Build DirectoryFetchers from integration rows using the configured API settings."""

    def build(integration: Integration) -> GoogleDirectoryFetcher:
        if integration.provider != IntegrationProvider.GOOGLE:
            raise DirectoryFetchError(f"Directory sync is not supported for provider '{integration.provider.value}'")

        access_token = integration.oauth_access_token
        if not access_token:
            raise DirectoryFetchError("OAuth access token missing from integration")

        return GoogleDirectoryFetcher(
            access_token=access_token,
            customer_id=integration.config.get("customerId") or settings.google_customer_id,
            api_url=settings.google_directory_api_url,
            timeout=settings.directory_request_timeout_seconds,
        )

    return build


def build_task_handlers(
    employee_store: EmployeeStore,
    state_store: IntegrationStateStore,
    sync_service: DirectorySyncService,
    error_sample_size: int = 5,
    strict_status_mapping: bool = False,
) -> Dict[str, TaskHandler]:
    """
    Build the task name -> handler mapping used by the queue consumer.

    Args:
        employee_store: Store used by the reconciler
        state_store: Store receiving batch progress
        sync_service: Full-sync orchestration
        error_sample_size: Error messages retained per batch
        strict_status_mapping: Treat unknown provider statuses as record errors

    Returns:
        Dict of task name to coroutine function
    """
    reconciler = BatchReconciler(
        employee_store,
        error_sample_size=error_sample_size,
        strict_status_mapping=strict_status_mapping,
        external_provider=IntegrationProvider.GOOGLE.value,
    )
    aggregator = ProgressAggregator(state_store)

    async def reconcile_batch(batch: SyncBatch) -> BatchResult:
        result = await reconciler.reconcile(batch)
        await aggregator.record_batch_completion(batch, result.stats)
        return result

    async def sync_directory(payload: SyncDirectoryPayload) -> Any:
        try:
            return await sync_service.start_full_sync(payload.integration_id)
        except IntegrationNotFoundError:
            logger.warning("Integration no longer exists, skipping sync", integration_id=payload.integration_id)
            return None
        except SyncFailedError as e:
            if is_retryable_error(e):
                raise
            # Already recorded on the integration; redelivery would fail the same way
            logger.bind(integration_id=payload.integration_id).warning(f"Sync not retried: {e.reason}")
            return None

    async def sync_all_directories(payload) -> Dict[str, int]:
        return await sync_service.sync_all_integrations()

    return {
        TaskName.RECONCILE_BATCH.value: reconcile_batch,
        TaskName.SYNC_DIRECTORY.value: sync_directory,
        TaskName.SYNC_ALL_DIRECTORIES.value: sync_all_directories,
    }
