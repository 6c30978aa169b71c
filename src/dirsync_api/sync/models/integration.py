"""
Integration Models

Database model for directory integrations (rows of dirsync.integrations).
"""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dirsync_api.sync.enums import IntegrationProvider, IntegrationStatus, SyncRunStatus
from dirsync_api.sync.models.sync_state import IntegrationSyncState


class Integration(BaseModel):
    """A connection between an organization and its identity provider.

    ``access_token`` is obtained by the OAuth flow outside this service and is
    only read here.
    """

    model_config = ConfigDict(from_attributes=True)

    integration_id: str
    organization_id: str
    provider: IntegrationProvider
    status: IntegrationStatus = IntegrationStatus.PENDING
    access_token: Optional[str] = Field(default=None, repr=False)
    config: Dict[str, Any] = Field(default_factory=dict)
    sync_stats: Optional[IntegrationSyncState] = None
    last_sync_status: Optional[SyncRunStatus] = None
    last_sync_message: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("config", "sync_stats", mode="before")
    @classmethod
    def parse_jsonb(cls, value):
        """JSONB columns come back from asyncpg as text."""
        if isinstance(value, (str, bytes)):
            return json.loads(value)
        return value

    @property
    def oauth_access_token(self) -> Optional[str]:
        """Access token column, falling back to ``config["oauthTokens"]["accessToken"]``."""
        if self.access_token:
            return self.access_token
        tokens = self.config.get("oauthTokens") or {}
        return tokens.get("accessToken")
