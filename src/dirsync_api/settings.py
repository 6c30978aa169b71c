"""Settings for the directory sync API."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the directory sync API and its queue worker.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) is a popular
    framework for organizing, validating, and reading configuration values from a variety of sources
    including environment variables.

    This class automatically reads from:
    1. Environment variables (production - App Service configuration)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    log_level: str = "INFO"
    """Minimum level written to the stdout log sink."""

    # Domain database
    domain_db_connection_string: Optional[str] = None
    """PostgreSQL connection string for the employee / integration database."""

    # Azure Storage Queue
    azure_queue_connection_string: Optional[str] = None
    """Azure Storage Queue connection string for sync tasks."""

    sync_queue_name: str = "directory-sync"
    """Azure Storage Queue name carrying sync-directory and reconcile-batch tasks."""

    enable_sync_worker: bool = False
    """Run the queue consumer as a background task of the web app (disabled by default)."""

    # Reconciliation
    sync_batch_size: int = 100
    """Number of directory users per reconcile-batch task."""

    directory_page_size: int = 500
    """Page size requested from the directory provider when listing users."""

    error_sample_size: int = 5
    """Number of per-record error messages kept for a batch (the rest are only counted)."""

    strict_status_mapping: bool = False
    """Treat unrecognized provider statuses as record errors instead of mapping them to active."""

    # Worker
    worker_concurrency: int = 5
    """Maximum number of tasks processed in parallel by the queue consumer."""

    worker_poll_interval_seconds: float = 1.0
    """Seconds to sleep between queue polls."""

    queue_visibility_timeout_seconds: int = 600
    """Seconds a received message stays invisible (redelivered afterwards if not deleted)."""

    queue_max_delivery_attempts: int = 5
    """Deliveries after which a failing message is treated as poison and removed."""

    # Google Workspace directory
    google_directory_api_url: str = "https://admin.googleapis.com/admin/directory/v1"
    """Base URL of the Admin SDK Directory API."""

    google_customer_id: str = "my_customer"
    """Customer ID used when listing users ("my_customer" = the token owner's account)."""

    directory_request_timeout_seconds: float = 30.0
    """HTTP timeout for directory provider requests."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )
