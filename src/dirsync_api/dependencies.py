"""FastAPI dependencies for accessing app state."""

from fastapi import HTTPException
from fastapi import Request
from fastapi import status

from dirsync_api.settings import Settings
from dirsync_api.sync.db import IntegrationRepository
from dirsync_api.sync.queue import SyncTaskQueueClient


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_integration_repository(request: Request) -> IntegrationRepository:
    """
    Get an integration repository bound to the domain database pool.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    IntegrationRepository
        Repository over the app's asyncpg pool

    Raises
    ------
    HTTPException
        503 if the domain database is not configured or not initialized
    """
    db_pool = getattr(request.app.state, "domain_db_pool", None)
    if db_pool is None or db_pool.pool is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Domain database is not configured",
        )
    return IntegrationRepository(db_pool.pool)


def get_task_queue(request: Request) -> SyncTaskQueueClient:
    """
    Get the sync task queue client.

    Raises
    ------
    HTTPException
        503 if the Azure queue is not configured
    """
    queue_client = getattr(request.app.state, "queue_client", None)
    if queue_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync queue is not configured",
        )
    return queue_client
