"""
Sync Enums

All enum types used throughout the directory sync system.
Values must match exactly with database constraints.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Employee Enums
# ════════════════════════════════════════════════════════════════════════════


class EmployeeStatus(str, Enum):
    """Internal employee status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    OFFBOARDED = "offboarded"


class DirectoryUserStatus(str, Enum):
    """Statuses reported by directory providers."""

    ACTIVE = "active"  # Can log in
    SUSPENDED = "suspended"  # Account locked
    ARCHIVED = "archived"  # Archived but not deleted
    DELETED = "deleted"


# ════════════════════════════════════════════════════════════════════════════
# Integration Enums
# ════════════════════════════════════════════════════════════════════════════


class IntegrationProvider(str, Enum):
    """
    Identity providers an integration can be connected to.

    Mirrors the provider CHECK constraint of dirsync.integrations; only GOOGLE
    has a directory fetcher, the others are rejected when a sync starts.
    """

    GOOGLE = "google"
    MICROSOFT = "microsoft"
    OKTA = "okta"
    KEYCLOAK = "keycloak"


class IntegrationStatus(str, Enum):
    """Integration connection status."""

    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"
    DISABLED = "disabled"


class SyncRunStatus(str, Enum):
    """Outcome of the most recent sync run (integrations.last_sync_status)."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    ERROR = "error"


# ════════════════════════════════════════════════════════════════════════════
# Queue Enums
# ════════════════════════════════════════════════════════════════════════════


class TaskName(str, Enum):
    """Task names carried in queue messages."""

    RECONCILE_BATCH = "reconcile-batch"  # One batch of directory users
    SYNC_DIRECTORY = "sync-directory"  # Full sync of one integration
    SYNC_ALL_DIRECTORIES = "sync-all-directories"  # Full sync of every active integration


class ReconcileOutcome(str, Enum):
    """Outcome of reconciling one directory user."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"
