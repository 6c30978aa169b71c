"""
Task Message Models

Queue messages are JSON envelopes ``{"task": <name>, "payload": {...}}``.
The envelope is a tagged union on ``task`` and is decoded once, when a
message is taken off the queue.
"""

import json
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from dirsync_api.errors import BatchPayloadError
from dirsync_api.sync.enums import TaskName
from dirsync_api.sync.models.directory import DirectoryUser


class SyncBatch(BaseModel):
    """One batch of directory users to reconcile for an integration."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    integration_id: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)
    users: List[DirectoryUser]
    batch_number: int = Field(ge=0)
    total_batches: int = Field(ge=1)
    total_users: int = Field(ge=0)

    @model_validator(mode="after")
    def check_position(self) -> "SyncBatch":
        if self.batch_number >= self.total_batches:
            raise ValueError(f"batch_number {self.batch_number} out of range for {self.total_batches} batches")
        if len(self.users) > self.total_users:
            raise ValueError(f"batch holds {len(self.users)} users but total_users is {self.total_users}")
        return self


class SyncDirectoryPayload(BaseModel):
    """Full sync of one integration."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    integration_id: str = Field(min_length=1)


class SyncAllDirectoriesPayload(BaseModel):
    """Full sync of every active integration (cron trigger)."""


class ReconcileBatchTask(BaseModel):
    task: Literal["reconcile-batch"]
    payload: SyncBatch


class SyncDirectoryTask(BaseModel):
    task: Literal["sync-directory"]
    payload: SyncDirectoryPayload


class SyncAllDirectoriesTask(BaseModel):
    task: Literal["sync-all-directories"]
    payload: SyncAllDirectoriesPayload = Field(default_factory=SyncAllDirectoriesPayload)


TaskMessage = Annotated[
    Union[ReconcileBatchTask, SyncDirectoryTask, SyncAllDirectoriesTask],
    Field(discriminator="task"),
]

_TASK_MESSAGE_ADAPTER = TypeAdapter(TaskMessage)


def decode_task_message(raw: Union[str, bytes, dict]):
    """
    Decode and validate a queue message.

    Args:
        raw: Message content (JSON text) or an already parsed dict

    Returns:
        ReconcileBatchTask, SyncDirectoryTask or SyncAllDirectoriesTask

    Raises:
        BatchPayloadError: If the envelope or its payload is malformed
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BatchPayloadError("unknown", f"message is not valid JSON ({e.msg})") from e

    if not isinstance(raw, dict):
        raise BatchPayloadError("unknown", f"message must be a JSON object, got {type(raw).__name__}")

    try:
        return _TASK_MESSAGE_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise BatchPayloadError(str(raw.get("task", "unknown")), _summarize(e)) from e


def encode_task_message(task_name: Union[TaskName, str], payload: dict) -> dict:
    """Build the envelope for a task (validated, so malformed payloads are never enqueued)."""
    task_name = TaskName(task_name).value
    try:
        decoded = _TASK_MESSAGE_ADAPTER.validate_python({"task": task_name, "payload": payload})
    except ValidationError as e:
        raise BatchPayloadError(task_name, _summarize(e)) from e
    return {"task": decoded.task, "payload": decoded.payload.model_dump(mode="json", by_alias=True)}


def _summarize(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc']) or '<root>'}: {item['msg']}" for item in error.errors()
    )
