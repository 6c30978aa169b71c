"""Tests for full-sync orchestration."""

from typing import Dict
from typing import Optional

import pytest

from dirsync_api.errors import DirectoryFetchError
from dirsync_api.errors import IntegrationNotFoundError
from dirsync_api.errors import SyncFailedError
from dirsync_api.sync.enums import IntegrationStatus
from dirsync_api.sync.enums import SyncRunStatus
from dirsync_api.sync.models import DirectoryPage
from dirsync_api.sync.service import DirectorySyncService
from dirsync_api.sync.service import fetch_all_users
from tests.consts import INTEGRATION_ID
from tests.fixtures.store_fixtures import make_directory_user


class PagedFetcher:
    """DirectoryFetcher serving pre-built pages keyed by page token."""

    def __init__(self, pages: Dict[Optional[str], DirectoryPage], error: Exception = None):
        self.pages = pages
        self.error = error
        self.calls = []

    async def list_users(self, page_size: int = 500, page_token: Optional[str] = None) -> DirectoryPage:
        self.calls.append((page_size, page_token))
        if self.error:
            raise self.error
        return self.pages[page_token]


def users_page(start: int, count: int, next_page_token: Optional[str] = None) -> DirectoryPage:
    return DirectoryPage(
        items=[make_directory_user(index) for index in range(start, start + count)],
        next_page_token=next_page_token,
    )


class TestFetchAllUsers:
    @pytest.mark.asyncio
    async def test_follows_page_tokens(self):
        fetcher = PagedFetcher({None: users_page(1, 3, "p2"), "p2": users_page(4, 3, "p3"), "p3": users_page(7, 1)})

        users = await fetch_all_users(fetcher, page_size=3)

        assert [user.external_id for user in users] == [f"g-{index}" for index in range(1, 8)]
        assert fetcher.calls == [(3, None), (3, "p2"), (3, "p3")]

    @pytest.mark.asyncio
    async def test_repeated_page_token_raises(self):
        fetcher = PagedFetcher({None: users_page(1, 1, "p2"), "p2": users_page(2, 1, "p2")})

        with pytest.raises(DirectoryFetchError, match="pagination loop"):
            await fetch_all_users(fetcher)


@pytest.fixture
def fetchers():
    """Fetcher per integration ID, used by the service's factory."""
    return {}


@pytest.fixture
def sync_service(integration_store, task_queue, fetchers):
    return DirectorySyncService(
        integration_store,
        task_queue,
        lambda integration: fetchers[integration.integration_id],
        batch_size=2,
        page_size=10,
    )


class TestStartFullSync:
    @pytest.mark.asyncio
    async def test_schedules_batches(self, sync_service, fetchers, integration_store, task_queue):
        fetchers[INTEGRATION_ID] = PagedFetcher({None: users_page(1, 5)})

        total_batches = await sync_service.start_full_sync(INTEGRATION_ID)

        assert total_batches == 3
        assert len(task_queue.tasks) == 3
        assert integration_store.status_updates == [
            (INTEGRATION_ID, SyncRunStatus.IN_PROGRESS, "Fetching directory users")
        ]
        assert integration_store.states[INTEGRATION_ID].total_users == 5

    @pytest.mark.asyncio
    async def test_empty_directory_marks_success(self, sync_service, fetchers, integration_store, task_queue):
        fetchers[INTEGRATION_ID] = PagedFetcher({None: DirectoryPage()})

        assert await sync_service.start_full_sync(INTEGRATION_ID) == 0

        assert task_queue.tasks == []
        assert integration_store.status_updates[-1] == (
            INTEGRATION_ID,
            SyncRunStatus.SUCCESS,
            "Sync completed: 0 users processed",
        )

    @pytest.mark.asyncio
    async def test_unknown_integration(self, sync_service):
        with pytest.raises(IntegrationNotFoundError):
            await sync_service.start_full_sync("missing")

    @pytest.mark.asyncio
    async def test_fetch_error_recorded_and_raised(self, sync_service, fetchers, integration_store, task_queue):
        fetchers[INTEGRATION_ID] = PagedFetcher({}, error=DirectoryFetchError("HTTP 401", status_code=401))

        with pytest.raises(SyncFailedError) as exc_info:
            await sync_service.start_full_sync(INTEGRATION_ID)

        assert isinstance(exc_info.value.__cause__, DirectoryFetchError)
        assert integration_store.status_updates[-1] == (INTEGRATION_ID, SyncRunStatus.ERROR, "HTTP 401")
        assert task_queue.tasks == []
        assert INTEGRATION_ID not in integration_store.states


class TestSyncAllIntegrations:
    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, sync_service, fetchers, integration_store, task_queue):
        integration_store.add("int-2")
        integration_store.add("int-3", status=IntegrationStatus.DISABLED)
        fetchers[INTEGRATION_ID] = PagedFetcher({}, error=DirectoryFetchError("HTTP 500", status_code=500))
        fetchers["int-2"] = PagedFetcher({None: users_page(1, 3)})

        result = await sync_service.sync_all_integrations()

        assert result == {"scheduled": 1, "failed": 1}
        assert len(task_queue.tasks) == 2
        assert {payload["integrationId"] for _, payload in task_queue.tasks} == {"int-2"}

    @pytest.mark.asyncio
    async def test_no_active_integrations(self, task_queue):
        from tests.fixtures.store_fixtures import InMemoryIntegrationStore

        service = DirectorySyncService(InMemoryIntegrationStore(), task_queue, lambda integration: None)

        assert await service.sync_all_integrations() == {"scheduled": 0, "failed": 0}
