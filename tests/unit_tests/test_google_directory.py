"""Tests for the Google Workspace directory fetcher."""

from datetime import date

import httpx
import pytest

from dirsync_api.errors import DirectoryFetchError
from dirsync_api.sync.providers import GoogleDirectoryFetcher
from dirsync_api.sync.providers import map_google_user
from dirsync_api.sync.providers.google_directory import map_google_status

GOOGLE_USER = {
    "id": "104892034",
    "primaryEmail": "jane@example.com",
    "name": {"givenName": "Jane", "familyName": "Doe", "fullName": "Jane Doe"},
    "suspended": False,
    "archived": False,
    "creationTime": "2021-03-04T09:15:00.000Z",
    "organizations": [{"title": "Intern", "primary": False}, {"title": "Engineer", "primary": True}],
    "phones": [{"value": "+1 555 0100", "type": "work", "primary": True}],
}


def make_transport(handler):
    return httpx.MockTransport(handler)


class TestMapGoogleUser:
    def test_full_mapping(self):
        user = map_google_user(GOOGLE_USER)

        assert user.external_id == "104892034"
        assert user.email == "jane@example.com"
        assert user.full_name == "Jane Doe"
        assert user.job_title == "Engineer"
        assert user.phone_number == "+1 555 0100"
        assert user.start_date == date(2021, 3, 4)
        assert user.status == "active"

    def test_name_built_from_parts(self):
        user = map_google_user({"id": "1", "primaryEmail": "a@example.com", "name": {"givenName": "Ann"}})

        assert user.full_name == "Ann"

    def test_name_falls_back_to_email(self):
        user = map_google_user({"id": "1", "primaryEmail": "a@example.com"})

        assert user.full_name == "a@example.com"
        assert user.job_title is None
        assert user.phone_number is None
        assert user.start_date is None

    @pytest.mark.parametrize(
        "flags,expected",
        [
            ({}, "active"),
            ({"suspended": True}, "suspended"),
            ({"archived": True}, "archived"),
            ({"archived": True, "suspended": True}, "archived"),
        ],
    )
    def test_status(self, flags, expected):
        assert map_google_status(flags).value == expected


class TestGoogleDirectoryFetcher:
    def test_access_token_required(self):
        with pytest.raises(ValueError):
            GoogleDirectoryFetcher("")

    @pytest.mark.asyncio
    async def test_request_parameters(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"users": [GOOGLE_USER], "nextPageToken": "page-2"})

        fetcher = GoogleDirectoryFetcher(
            "token-123", customer_id="C0abc", api_url="https://directory.test/v1/", transport=make_transport(handler)
        )

        page = await fetcher.list_users(page_size=1000, page_token="page-1")

        [request] = requests
        assert request.url.path == "/v1/users"
        assert request.url.params["customer"] == "C0abc"
        assert request.url.params["maxResults"] == "500"
        assert request.url.params["pageToken"] == "page-1"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert page.next_page_token == "page-2"
        assert [user.email for user in page.items] == ["jane@example.com"]

    @pytest.mark.asyncio
    async def test_last_page_has_no_token(self):
        fetcher = GoogleDirectoryFetcher(
            "token", transport=make_transport(lambda request: httpx.Response(200, json={"users": []}))
        )

        page = await fetcher.list_users()

        assert page.items == []
        assert page.next_page_token is None

    @pytest.mark.asyncio
    async def test_invalid_users_are_skipped(self):
        body = {"users": [GOOGLE_USER, {"id": "2"}, {"primaryEmail": "noid@example.com"}]}
        fetcher = GoogleDirectoryFetcher(
            "token", transport=make_transport(lambda request: httpx.Response(200, json=body))
        )

        page = await fetcher.list_users()

        assert [user.external_id for user in page.items] == ["104892034"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403, 429, 503])
    async def test_error_status_raises_fetch_error(self, status_code):
        fetcher = GoogleDirectoryFetcher(
            "token",
            transport=make_transport(lambda request: httpx.Response(status_code, json={"error": {"code": status_code}})),
        )

        with pytest.raises(DirectoryFetchError) as exc_info:
            await fetcher.list_users()

        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_network_error_raises_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = GoogleDirectoryFetcher("token", transport=make_transport(handler))

        with pytest.raises(DirectoryFetchError) as exc_info:
            await fetcher.list_users()

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
