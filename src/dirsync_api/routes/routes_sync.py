"""Directory sync endpoints: trigger a full sync and read its progress."""

import asyncio
from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import status
from loguru import logger

from dirsync_api.dependencies import get_integration_repository
from dirsync_api.dependencies import get_task_queue
from dirsync_api.errors import IntegrationNotFoundError
from dirsync_api.schemas.schemas_sync import SyncStatusResponse
from dirsync_api.schemas.schemas_sync import SyncTriggerResponse
from dirsync_api.sync.db import IntegrationRepository
from dirsync_api.sync.enums import TaskName
from dirsync_api.sync.models import SyncDirectoryPayload
from dirsync_api.sync.queue import SyncTaskQueueClient

ROUTER_SYNC = APIRouter(tags=["Directory Sync"])


@ROUTER_SYNC.post(
    "/integrations/{integration_id}/sync",
    response_model=SyncTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger a full directory sync",
    responses={
        202: {"description": "Sync task enqueued"},
        404: {"description": "Integration not found"},
        503: {"description": "Database or queue not configured"},
    },
)
async def trigger_sync(
    integration_id: str,
    run_at: Optional[datetime] = Query(
        default=None,
        description="<small>*ISO-8601 time at which the sync should start (default: now)*</small>",
    ),
    repo: IntegrationRepository = Depends(get_integration_repository),
    task_queue: SyncTaskQueueClient = Depends(get_task_queue),
):
    """
    Enqueue a sync-directory task for an integration.

    The sync itself runs on the queue worker; poll the GET endpoint for progress.
    """
    integration = await repo.get(integration_id)
    if integration is None:
        raise IntegrationNotFoundError(integration_id)

    payload = SyncDirectoryPayload(integration_id=integration_id).model_dump(by_alias=True)

    if run_at is None:
        await asyncio.to_thread(task_queue.enqueue, TaskName.SYNC_DIRECTORY, payload)
        message = "Directory sync enqueued"
    else:
        await asyncio.to_thread(task_queue.enqueue_at, TaskName.SYNC_DIRECTORY, payload, run_at)
        message = "Directory sync scheduled"

    logger.info(message, integration_id=integration_id, run_at=run_at.isoformat() if run_at else None)

    return SyncTriggerResponse(
        Message=message,
        IntegrationId=integration_id,
        Task=TaskName.SYNC_DIRECTORY.value,
        ScheduledFor=run_at,
    )


@ROUTER_SYNC.get(
    "/integrations/{integration_id}/sync",
    response_model=SyncStatusResponse,
    summary="Get directory sync progress",
    responses={
        200: {"description": "Integration found"},
        404: {"description": "Integration not found"},
    },
)
async def get_sync_status(
    integration_id: str,
    repo: IntegrationRepository = Depends(get_integration_repository),
):
    """Current sync state of an integration (batches completed, last batch stats, last message)."""
    integration = await repo.get(integration_id)
    if integration is None:
        raise IntegrationNotFoundError(integration_id)

    return SyncStatusResponse.from_integration(integration)
