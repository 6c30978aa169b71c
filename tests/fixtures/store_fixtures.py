"""In-memory stores and queue used by the reconciliation engine tests."""

import asyncio
import uuid
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import pytest

from dirsync_api.sync.enums import IntegrationProvider
from dirsync_api.sync.enums import IntegrationStatus
from dirsync_api.sync.models import BatchStats
from dirsync_api.sync.models import DirectoryUser
from dirsync_api.sync.models import Employee
from dirsync_api.sync.models import Integration
from dirsync_api.sync.models import IntegrationSyncState
from dirsync_api.sync.progress import merge_batch_completion

ORG_ID = "org-1"
INTEGRATION_ID = "int-1"


class InMemoryEmployeeStore:
    """EmployeeStore over a dict, recording every write."""

    def __init__(self):
        self.employees: Dict[uuid.UUID, Employee] = {}
        self.creates: List[Dict[str, Any]] = []
        self.updates: List[tuple] = []
        self.fail_on_emails: set = set()
        self.unavailable = False

    def add(self, **fields) -> Employee:
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        data = {"id": uuid.uuid4(), "organization_id": ORG_ID, "created_at": now, "updated_at": now}
        data.update(fields)
        employee = Employee(**data)
        self.employees[employee.id] = employee
        return employee

    def _check_connection(self) -> None:
        if self.unavailable:
            raise ConnectionRefusedError("connection refused")

    def _check(self, email: str) -> None:
        self._check_connection()
        if email in self.fail_on_emails:
            raise ValueError(f"write rejected for {email}")

    async def find_by_external_id(self, organization_id: str, external_id: str) -> Optional[Employee]:
        self._check_connection()
        for employee in self.employees.values():
            if employee.organization_id == organization_id and employee.external_id == external_id:
                return employee
        return None

    async def find_by_email(self, organization_id: str, email: str) -> Optional[Employee]:
        self._check_connection()
        for employee in self.employees.values():
            if employee.organization_id == organization_id and employee.email == email:
                return employee
        return None

    async def create(self, data: Dict[str, Any]) -> Employee:
        self._check(data["email"])
        self.creates.append(data)
        employee = Employee(id=uuid.uuid4(), **data)
        self.employees[employee.id] = employee
        return employee

    async def update(self, employee_id, patch: Dict[str, Any]) -> Employee:
        self._check(patch.get("email") or self.employees[employee_id].email)
        self.updates.append((employee_id, patch))
        employee = self.employees[employee_id].model_copy(update=patch)
        self.employees[employee_id] = employee
        return employee

    @property
    def write_count(self) -> int:
        return len(self.creates) + len(self.updates)


class InMemoryIntegrationStore:
    """IntegrationStore over dicts; apply_batch_completion is serialized with a lock."""

    def __init__(self):
        self.integrations: Dict[str, Integration] = {}
        self.states: Dict[str, IntegrationSyncState] = {}
        self.status_updates: List[tuple] = []
        self.writes: List[tuple] = []
        self.fail_writes = False
        self._lock = asyncio.Lock()

    def add(self, integration_id: str = INTEGRATION_ID, **fields) -> Integration:
        data = {
            "integration_id": integration_id,
            "organization_id": ORG_ID,
            "provider": IntegrationProvider.GOOGLE,
            "status": IntegrationStatus.ACTIVE,
            "access_token": "token",
        }
        data.update(fields)
        integration = Integration(**data)
        self.integrations[integration_id] = integration
        return integration

    async def get(self, integration_id: str) -> Optional[Integration]:
        return self.integrations.get(integration_id)

    async def list_active(self, provider=None) -> List[Integration]:
        return [
            integration
            for integration in self.integrations.values()
            if integration.status == IntegrationStatus.ACTIVE and (provider is None or integration.provider == provider)
        ]

    async def update_sync_status(self, integration_id: str, status, message: Optional[str] = None) -> None:
        self.status_updates.append((integration_id, status, message))

    async def read(self, integration_id: str) -> Optional[IntegrationSyncState]:
        return self.states.get(integration_id)

    async def write(self, integration_id: str, state: IntegrationSyncState) -> None:
        if self.fail_writes:
            raise ConnectionError("database unavailable")
        self.writes.append((integration_id, state))
        self.states[integration_id] = state

    async def apply_batch_completion(
        self,
        integration_id: str,
        total_batches: int,
        total_users: int,
        batch_stats: BatchStats,
    ) -> Optional[IntegrationSyncState]:
        if self.fail_writes:
            raise ConnectionError("database unavailable")
        if integration_id not in self.integrations:
            return None
        async with self._lock:
            current = self.states.get(integration_id)
            # Yield inside the critical section so a read-then-write race would show up
            await asyncio.sleep(0)
            state = merge_batch_completion(current, total_batches, total_users, batch_stats)
            self.states[integration_id] = state
            return state


class RecordingTaskQueue:
    """TaskQueue that keeps enqueued tasks in a list."""

    def __init__(self):
        self.tasks: List[tuple] = []
        self.scheduled: List[tuple] = []

    def enqueue(self, task_name, payload: Dict[str, Any]) -> None:
        self.tasks.append((str(getattr(task_name, "value", task_name)), payload))

    def enqueue_at(self, task_name, payload: Dict[str, Any], run_at: datetime) -> None:
        self.scheduled.append((str(getattr(task_name, "value", task_name)), payload, run_at))


def make_directory_user(index: int = 1, **overrides) -> DirectoryUser:
    data = {
        "external_id": f"g-{index}",
        "email": f"user{index}@example.com",
        "full_name": f"User {index}",
        "job_title": "Engineer",
        "status": "active",
    }
    data.update(overrides)
    return DirectoryUser(**data)


@pytest.fixture
def employee_store():
    """Empty in-memory employee store."""
    return InMemoryEmployeeStore()


@pytest.fixture
def integration_store():
    """In-memory integration store holding one active Google integration."""
    store = InMemoryIntegrationStore()
    store.add()
    return store


@pytest.fixture
def task_queue():
    """Task queue recording enqueued tasks."""
    return RecordingTaskQueue()


@pytest.fixture
def directory_users():
    """Factory for lists of directory users."""

    def build(count: int) -> List[DirectoryUser]:
        return [make_directory_user(index) for index in range(1, count + 1)]

    return build
