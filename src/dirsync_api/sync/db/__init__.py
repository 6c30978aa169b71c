"""
Directory Sync Database Module

asyncpg pool and repositories for the dirsync schema.
"""

from dirsync_api.sync.db.pool import DomainDBPool
from dirsync_api.sync.db.repository_employee import EmployeeRepository
from dirsync_api.sync.db.repository_integration import IntegrationRepository

__all__ = [
    "DomainDBPool",
    "EmployeeRepository",
    "IntegrationRepository",
]
