import asyncio
import os
from pathlib import Path
from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from dirsync_api.errors import IntegrationNotFoundError
from dirsync_api.errors import handle_broad_exceptions
from dirsync_api.errors import handle_integration_not_found
from dirsync_api.errors import handle_pydantic_validation_errors
from dirsync_api.monitoring.logger import configure_logger
from dirsync_api.monitoring.request_context import RequestContextMiddleware
from dirsync_api.routes.routes_health import ROUTER_HEALTH
from dirsync_api.routes.routes_sync import ROUTER_SYNC
from dirsync_api.settings import Settings
from dirsync_api.sync.db import DomainDBPool
from dirsync_api.sync.db import EmployeeRepository
from dirsync_api.sync.db import IntegrationRepository
from dirsync_api.sync.handlers import build_task_handlers
from dirsync_api.sync.handlers import make_fetcher_factory
from dirsync_api.sync.queue import SyncTaskQueueClient
from dirsync_api.sync.queue import start_queue_consumer
from dirsync_api.sync.service import DirectorySyncService


def _detect_environment() -> str:
    """Detect if running in Azure Web App or locally."""
    # Azure Web App sets WEBSITE_INSTANCE_ID
    if os.getenv("WEBSITE_INSTANCE_ID"):
        return "azure-web-app"
    elif Path(".env").exists():
        return "local-env-file"
    else:
        return "local-env-vars"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings.
    - Azure Web App: Set variables as App Settings (Configuration > Application settings)
    - Local development: Use a .env file in the project root
    """
    settings = settings or Settings()

    configure_logger(level=settings.log_level)

    logger.info(
        "Configuration loaded successfully",
        environment=_detect_environment(),
        database_configured=bool(settings.domain_db_connection_string),
        queue_configured=bool(settings.azure_queue_connection_string),
        sync_worker_enabled=settings.enable_sync_worker,
        sync_batch_size=settings.sync_batch_size,
    )

    app = FastAPI(
        title="Directory Sync API",
        version="v1",
        description=dedent(
            """
        Reconciles identity-provider directories into organization employees.

        | Endpoint | Notes |
        | --- | --- |
        | `POST /api/integrations/{id}/sync` | enqueue a full sync (optionally at `run_at`) |
        | `GET /api/integrations/{id}/sync` | batches completed, last batch stats, last message |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH)
    app.include_router(ROUTER_SYNC, prefix="/api")

    if settings.domain_db_connection_string:
        app.state.domain_db_pool = DomainDBPool(
            settings.domain_db_connection_string,
            max_size=max(10, settings.worker_concurrency + 2),
        )
    else:
        logger.warning("Domain database not configured - sync endpoints will return 503")

    if settings.azure_queue_connection_string:
        app.state.queue_client = SyncTaskQueueClient(settings.azure_queue_connection_string, settings.sync_queue_name)
        logger.info("Sync queue client initialized", queue_name=settings.sync_queue_name)
    else:
        logger.warning("Azure queue not configured - syncs cannot be triggered")

    @app.on_event("startup")
    async def startup_sync():
        """Initialize the domain database and start the queue consumer."""
        db_pool = getattr(app.state, "domain_db_pool", None)
        if db_pool is None:
            return

        await db_pool.initialize()

        queue_client = getattr(app.state, "queue_client", None)
        if not settings.enable_sync_worker:
            logger.info("Sync worker disabled (enable_sync_worker=false)")
            return
        if queue_client is None:
            logger.warning("Sync worker enabled but Azure queue not configured - worker not started")
            return

        integration_repo = IntegrationRepository(db_pool.pool)
        sync_service = DirectorySyncService(
            integration_repo,
            queue_client,
            make_fetcher_factory(settings),
            batch_size=settings.sync_batch_size,
            page_size=settings.directory_page_size,
        )
        handlers = build_task_handlers(
            EmployeeRepository(db_pool.pool),
            integration_repo,
            sync_service,
            error_sample_size=settings.error_sample_size,
            strict_status_mapping=settings.strict_status_mapping,
        )

        app.state.queue_consumer_task = asyncio.create_task(
            start_queue_consumer(
                queue_client,
                handlers,
                concurrency=settings.worker_concurrency,
                poll_interval=settings.worker_poll_interval_seconds,
                visibility_timeout=settings.queue_visibility_timeout_seconds,
                max_delivery_attempts=settings.queue_max_delivery_attempts,
            )
        )
        logger.success("Directory sync queue consumer started")

    @app.on_event("shutdown")
    async def shutdown_sync():
        """Stop the queue consumer and close database connections."""
        consumer_task = getattr(app.state, "queue_consumer_task", None)
        if consumer_task is not None:
            consumer_task.cancel()
            await asyncio.gather(consumer_task, return_exceptions=True)
            logger.info("Directory sync queue consumer stopped")

        db_pool = getattr(app.state, "domain_db_pool", None)
        if db_pool is not None:
            await db_pool.close()

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=IntegrationNotFoundError,
        handler=handle_integration_not_found,
    )

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
