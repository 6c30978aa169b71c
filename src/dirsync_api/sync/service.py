"""
Directory Sync Service

Full-sync orchestration: fetch the whole directory of an integration and hand
it to the BatchScheduler. Reconciliation itself happens later, one
reconcile-batch task at a time.
"""

from typing import Callable, Dict, List, Optional

from loguru import logger

from dirsync_api.errors import DirectoryFetchError, IntegrationNotFoundError, SyncFailedError
from dirsync_api.sync.enums import IntegrationProvider, SyncRunStatus
from dirsync_api.sync.interfaces import DirectoryFetcher, IntegrationStore, TaskQueue
from dirsync_api.sync.models import DirectoryUser, Integration
from dirsync_api.sync.scheduler import DEFAULT_BATCH_SIZE, BatchScheduler

FetcherFactory = Callable[[Integration], DirectoryFetcher]


async def fetch_all_users(fetcher: DirectoryFetcher, page_size: int = 500) -> List[DirectoryUser]:
    """
    Follow the fetcher's pagination until the last page.

    Args:
        fetcher: DirectoryFetcher of one integration
        page_size: Users requested per page

    Returns:
        Every user of the directory, in listing order

    Raises:
        DirectoryFetchError: If the provider returns the same page token twice
    """
    users: List[DirectoryUser] = []
    seen_tokens = set()
    page_token: Optional[str] = None

    while True:
        page = await fetcher.list_users(page_size=page_size, page_token=page_token)
        users.extend(page.items)

        if not page.next_page_token:
            return users
        if page.next_page_token in seen_tokens:
            raise DirectoryFetchError(f"Directory pagination loop on page token {page.next_page_token!r}")

        seen_tokens.add(page.next_page_token)
        page_token = page.next_page_token


class DirectorySyncService:
    """Starts full directory syncs for integrations."""

    def __init__(
        self,
        integration_store: IntegrationStore,
        task_queue: TaskQueue,
        fetcher_factory: FetcherFactory,
        batch_size: int = DEFAULT_BATCH_SIZE,
        page_size: int = 500,
    ):
        """
        Initialize service.

        Args:
            integration_store: Integration lookups and sync state
            task_queue: Queue receiving reconcile-batch tasks
            fetcher_factory: Builds the DirectoryFetcher of an integration
            batch_size: Users per reconcile-batch task
            page_size: Users requested per directory page
        """
        self.integration_store = integration_store
        self.fetcher_factory = fetcher_factory
        self.page_size = page_size
        self.scheduler = BatchScheduler(task_queue, integration_store, batch_size=batch_size)

    async def start_full_sync(self, integration_id: str) -> int:
        """
        Fetch an integration's directory and schedule its batches.

        Args:
            integration_id: Integration to sync

        Returns:
            Number of reconcile-batch tasks enqueued

        Raises:
            IntegrationNotFoundError: If the integration does not exist
            SyncFailedError: If the directory could not be fetched
        """
        integration = await self.integration_store.get(integration_id)
        if integration is None:
            raise IntegrationNotFoundError(integration_id)

        logger.info(
            "Starting full directory sync",
            integration_id=integration_id,
            organization_id=integration.organization_id,
            provider=integration.provider.value,
        )
        await self.integration_store.update_sync_status(
            integration_id, SyncRunStatus.IN_PROGRESS, "Fetching directory users"
        )

        try:
            fetcher = self.fetcher_factory(integration)
            users = await fetch_all_users(fetcher, page_size=self.page_size)
        except (DirectoryFetchError, ValueError) as e:
            logger.bind(integration_id=integration_id).error(f"Directory fetch failed: {e}")
            await self.integration_store.update_sync_status(integration_id, SyncRunStatus.ERROR, str(e))
            raise SyncFailedError(integration_id, str(e)) from e

        logger.info(f"Fetched {len(users)} directory users", integration_id=integration_id)

        total_batches = await self.scheduler.schedule(integration_id, integration.organization_id, users)
        if total_batches == 0:
            await self.integration_store.update_sync_status(
                integration_id, SyncRunStatus.SUCCESS, "Sync completed: 0 users processed"
            )
        return total_batches

    async def sync_all_integrations(
        self, provider: IntegrationProvider = IntegrationProvider.GOOGLE
    ) -> Dict[str, int]:
        """
        Start a full sync for every active integration of a provider.

        A failing integration is logged and does not stop the others.

        Args:
            provider: Provider whose integrations are synced

        Returns:
            {"scheduled": <integrations started>, "failed": <integrations that failed>}
        """
        integrations = await self.integration_store.list_active(provider)
        if not integrations:
            logger.info(f"No active {provider.value} integrations found")
            return {"scheduled": 0, "failed": 0}

        logger.info(f"Found {len(integrations)} active {provider.value} integration(s)")

        scheduled = 0
        failed = 0
        for integration in integrations:
            try:
                await self.start_full_sync(integration.integration_id)
                scheduled += 1
            except Exception as e:
                failed += 1
                logger.bind(
                    integration_id=integration.integration_id,
                    organization_id=integration.organization_id,
                ).error(f"Failed to sync integration: {e}")

        if failed:
            logger.warning(f"Directory sync started for {scheduled} integration(s), {failed} failed")
        else:
            logger.success(f"Directory sync started for {scheduled} integration(s)")
        return {"scheduled": scheduled, "failed": failed}
