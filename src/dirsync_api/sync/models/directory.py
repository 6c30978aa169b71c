"""
Directory Models

Provider-agnostic representation of users listed by an identity provider.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DirectoryUser(BaseModel):
    """One person as reported by a directory provider.

    ``status`` is kept as the provider's raw string; mapping to an employee
    status happens during reconciliation. ``external_id`` is the only key that
    is stable across syncs (emails can be renamed or reassigned).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    external_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    full_name: str
    job_title: Optional[str] = None
    phone_number: Optional[str] = None
    start_date: Optional[date] = None
    status: str = "active"


class DirectoryPage(BaseModel):
    """One page of a paginated user listing."""

    items: List[DirectoryUser] = Field(default_factory=list)
    next_page_token: Optional[str] = None
