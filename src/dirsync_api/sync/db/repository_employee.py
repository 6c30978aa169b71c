"""
Employee Repository

Organization-scoped employee lookups and writes used by reconciliation.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncpg

from dirsync_api.sync.models import Employee

# Columns reconciliation is allowed to write
WRITABLE_COLUMNS = (
    "organization_id",
    "external_id",
    "external_provider",
    "email",
    "name",
    "title",
    "phone",
    "hired_at",
    "offboarded_at",
    "status",
    "created_at",
    "updated_at",
)


def _db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _writable_items(data: Dict[str, Any]) -> List[Tuple[str, Any]]:
    unknown = set(data) - set(WRITABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown employee columns: {sorted(unknown)}")
    return [(column, _db_value(data[column])) for column in WRITABLE_COLUMNS if column in data]


class EmployeeRepository:
    """Employee repository (dirsync.employees)."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_external_id(self, organization_id: str, external_id: str) -> Optional[Employee]:
        """Get the employee with this provider ID in the organization."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM dirsync.employees
                WHERE organization_id = $1 AND external_id = $2
                ORDER BY created_at
                LIMIT 1
                """,
                organization_id,
                external_id,
            )
        return Employee.model_validate(dict(row)) if row else None

    async def find_by_email(self, organization_id: str, email: str) -> Optional[Employee]:
        """Get the employee with this email in the organization."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM dirsync.employees
                WHERE organization_id = $1 AND email = $2
                ORDER BY created_at
                LIMIT 1
                """,
                organization_id,
                email,
            )
        return Employee.model_validate(dict(row)) if row else None

    async def create(self, data: Dict[str, Any]) -> Employee:
        """
        Insert a new employee.

        Args:
            data: Column values (organization_id, email and name are required)

        Returns:
            The created Employee

        Raises:
            ValueError: If data holds columns that cannot be written
        """
        items = _writable_items(data)
        columns = ", ".join(column for column, _ in items)
        placeholders = ", ".join(f"${position}" for position in range(1, len(items) + 1))

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"INSERT INTO dirsync.employees ({columns}) VALUES ({placeholders}) RETURNING *",
                *[value for _, value in items],
            )
        return Employee.model_validate(dict(row))

    async def update(self, employee_id: UUID, patch: Dict[str, Any]) -> Employee:
        """
        Update columns of one employee.

        Args:
            employee_id: Employee primary key
            patch: Column values to set

        Returns:
            The updated Employee

        Raises:
            ValueError: If patch is empty or holds columns that cannot be written
            LookupError: If the employee does not exist
        """
        items = _writable_items(patch)
        if not items:
            raise ValueError("Employee patch is empty")

        assignments = ", ".join(f"{column} = ${position}" for position, (column, _) in enumerate(items, start=2))

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"UPDATE dirsync.employees SET {assignments} WHERE id = $1 RETURNING *",
                employee_id,
                *[value for _, value in items],
            )
        if row is None:
            raise LookupError(f"Employee {employee_id} not found")
        return Employee.model_validate(dict(row))
