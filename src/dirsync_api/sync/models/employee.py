"""
Employee Models

Database models for employees (rows of dirsync.employees).
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from dirsync_api.sync.enums import EmployeeStatus


class Employee(BaseModel):
    """Employee database model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: str
    external_id: Optional[str] = None
    external_provider: Optional[str] = None
    email: str
    name: str
    title: Optional[str] = None
    phone: Optional[str] = None
    hired_at: Optional[date] = None
    offboarded_at: Optional[datetime] = None
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    created_at: datetime
    updated_at: datetime
