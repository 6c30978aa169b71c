"""Domain exceptions and FastAPI error handlers."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger

from dirsync_api.monitoring.logger import log_response_info

# Explicit exports
__all__ = [
    "DirSyncError",
    "BatchPayloadError",
    "UnrecognizedStatusError",
    "IntegrationNotFoundError",
    "DirectoryFetchError",
    "SyncFailedError",
    "handle_broad_exceptions",
    "handle_integration_not_found",
    "handle_pydantic_validation_errors",
]


class DirSyncError(Exception):
    """Base class for directory sync errors."""


class BatchPayloadError(DirSyncError, ValueError):
    """A queue message or task payload failed validation."""

    def __init__(self, task_name: str, reason: str):
        self.task_name = task_name
        self.reason = reason
        super().__init__(f"Invalid payload for task '{task_name}': {reason}")


class UnrecognizedStatusError(DirSyncError, ValueError):
    """Provider status has no known mapping (strict status mapping only)."""

    def __init__(self, provider_status: str):
        self.provider_status = provider_status
        super().__init__(f"Unrecognized directory status: {provider_status!r}")


class IntegrationNotFoundError(DirSyncError, LookupError):
    """Integration does not exist (or is deleted)."""

    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(f"Integration {integration_id} not found")


class DirectoryFetchError(DirSyncError):
    """The directory provider could not be listed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class SyncFailedError(DirSyncError):
    """A full directory sync could not be started for an integration."""

    def __init__(self, integration_id: str, reason: str):
        self.integration_id = integration_id
        self.reason = reason
        super().__init__(f"Sync failed for integration {integration_id}: {reason}")


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.bind(
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
        ).exception(f"Unhandled exception: {type(err).__name__}: {err}")

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        validation_errors=errors,
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=jsonable_encoder(error_response),
    )
    log_response_info(response)

    return response


async def handle_integration_not_found(request: Request, exc: IntegrationNotFoundError) -> JSONResponse:
    """Convert a missing integration into a 404 response."""
    error_response = {"detail": str(exc), "error_type": type(exc).__name__}

    logger.warning(
        "Integration not found",
        http_status=404,
        http_method=request.method,
        url_path=str(request.url.path),
        integration_id=exc.integration_id,
    )

    response = JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=error_response)
    log_response_info(response)
    return response

