"""
Google Workspace Directory Fetcher

Lists users through the Admin SDK Directory API (``users.list``) and maps them
to DirectoryUser. The OAuth handshake happens elsewhere; this class only needs
a valid access token.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from dirsync_api.errors import DirectoryFetchError
from dirsync_api.sync.enums import DirectoryUserStatus
from dirsync_api.sync.models import DirectoryPage, DirectoryUser

DEFAULT_API_URL = "https://admin.googleapis.com/admin/directory/v1"

# users.list rejects larger pages
MAX_PAGE_SIZE = 500


def map_google_status(google_user: Dict[str, Any]) -> DirectoryUserStatus:
    """archived wins over suspended; everything else is active."""
    if google_user.get("archived"):
        return DirectoryUserStatus.ARCHIVED
    if google_user.get("suspended"):
        return DirectoryUserStatus.SUSPENDED
    return DirectoryUserStatus.ACTIVE


def _primary(entries: Optional[list]) -> Optional[Dict[str, Any]]:
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("primary"):
            return entry
    return None


def _parse_creation_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        logger.warning("Unparseable creationTime from directory", creation_time=value)
        return None


def map_google_user(google_user: Dict[str, Any]) -> DirectoryUser:
    """
    Convert an Admin SDK user resource to a DirectoryUser.

    Args:
        google_user: One entry of the ``users`` array

    Returns:
        DirectoryUser
    """
    email = google_user.get("primaryEmail") or ""
    name = google_user.get("name") or {}
    full_name = name.get("fullName") or " ".join(
        part for part in (name.get("givenName"), name.get("familyName")) if part
    )

    phone = _primary(google_user.get("phones"))
    organization = _primary(google_user.get("organizations"))

    return DirectoryUser(
        external_id=str(google_user.get("id") or ""),
        email=email,
        full_name=full_name or email,
        job_title=organization.get("title") if organization else None,
        phone_number=phone.get("value") if phone else None,
        start_date=_parse_creation_date(google_user.get("creationTime")),
        status=map_google_status(google_user).value,
    )


class GoogleDirectoryFetcher:
    """DirectoryFetcher for one Google Workspace tenant."""

    def __init__(
        self,
        access_token: str,
        customer_id: str = "my_customer",
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize fetcher.

        Args:
            access_token: OAuth access token with the admin.directory.user.readonly scope
            customer_id: Workspace customer ID ("my_customer" is the token owner's tenant)
            api_url: Directory API base URL
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        if not access_token:
            raise ValueError("access_token is required")
        self.access_token = access_token
        self.customer_id = customer_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def list_users(self, page_size: int = MAX_PAGE_SIZE, page_token: Optional[str] = None) -> DirectoryPage:
        """
        Fetch one page of users.

        Args:
            page_size: Users per page (capped at 500)
            page_token: Token returned with the previous page

        Returns:
            DirectoryPage with the mapped users and the next page token

        Raises:
            DirectoryFetchError: If the request fails or returns an error status
        """
        params = {
            "customer": self.customer_id,
            "maxResults": max(1, min(page_size, MAX_PAGE_SIZE)),
            "orderBy": "email",
            "projection": "full",
        }
        if page_token:
            params["pageToken"] = page_token

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    f"{self.api_url}/users",
                    params=params,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise DirectoryFetchError(
                f"Google directory request failed with HTTP {status_code}", status_code=status_code
            ) from e
        except httpx.TimeoutException as e:
            raise DirectoryFetchError("Google directory request timed out") from e
        except httpx.RequestError as e:
            raise DirectoryFetchError(f"Could not reach Google directory: {e}") from e

        body = response.json()
        users = []
        for entry in body.get("users", []):
            try:
                users.append(map_google_user(entry))
            except ValidationError as e:
                logger.warning(
                    "Skipping directory user without ID or email",
                    google_user_id=entry.get("id"),
                    errors=e.error_count(),
                )

        logger.debug(
            f"Fetched {len(users)} directory users",
            customer_id=self.customer_id,
            has_next_page=bool(body.get("nextPageToken")),
        )
        return DirectoryPage(items=users, next_page_token=body.get("nextPageToken"))
