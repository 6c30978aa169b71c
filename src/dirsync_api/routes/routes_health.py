"""Health check endpoints for monitoring application status."""

import asyncio
from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from dirsync_api.schemas.schemas_sync import ReadinessResponse

ROUTER_HEALTH = APIRouter(tags=["Health"])

SERVICE_NAME = "Directory Sync API"


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": SERVICE_NAME,
                        "version": "v1",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Lightweight: does not check the database or the queue.
    """
    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": request.app.version,
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)


@ROUTER_HEALTH.get("/health/live", summary="Liveness probe")
async def liveness():
    """The process is up and serving requests."""
    return {"status": "alive"}


@ROUTER_HEALTH.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    responses={
        200: {"description": "Configured dependencies are reachable"},
        503: {"description": "A configured dependency is unreachable"},
    },
)
async def readiness(request: Request):
    """
    Check the configured dependencies.

    Verifies:
    - Database connection (if a database is configured)
    - Queue connection (if a queue is configured)
    - Queue consumer task still running (if the worker is enabled)
    """
    db_pool = getattr(request.app.state, "domain_db_pool", None)
    queue_client = getattr(request.app.state, "queue_client", None)
    consumer_task = getattr(request.app.state, "queue_consumer_task", None)

    db_healthy = await db_pool.health_check() if db_pool is not None else False

    queue_healthy = False
    queue_message_count = 0
    if queue_client is not None:
        try:
            properties = await asyncio.to_thread(queue_client.client.get_queue_properties)
            queue_message_count = properties.approximate_message_count
            queue_healthy = True
        except Exception as e:
            logger.error(f"Queue health check failed: {e}")

    worker_running = consumer_task is not None and not consumer_task.done()

    healthy = (db_pool is None or db_healthy) and (queue_client is None or queue_healthy)

    response = ReadinessResponse(
        Message="Service ready" if healthy else "Service not ready",
        DatabaseConfigured=db_pool is not None,
        DatabaseConnected=db_healthy,
        QueueConfigured=queue_client is not None,
        QueueConnected=queue_healthy,
        QueueMessageCount=queue_message_count,
        WorkerRunning=worker_running,
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(),
    )
