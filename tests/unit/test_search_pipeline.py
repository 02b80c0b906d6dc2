"""Unit tests for the windowed search pipeline in GmailClient.search_emails."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest
from conftest import b64url, http_status_error, make_message

from gmcp.constants import EMAIL_FETCH_BATCH_SIZE, METADATA_HEADERS
from gmcp.errors import ProviderApiError
from gmcp.gmail.client import USER_BASE, GmailClient

MESSAGES_URL = f"{USER_BASE}/messages"


def _listing(ids: list[str], next_page_token: str | None = None, estimate: int = 42) -> dict[str, Any]:
    listing: dict[str, Any] = {"messages": [{"id": i, "threadId": f"thread_{i}"} for i in ids]}
    if next_page_token is not None:
        listing["nextPageToken"] = next_page_token
    listing["resultSizeEstimate"] = estimate
    return listing


def _router(listing: dict[str, Any], delays: dict[str, float] | None = None):
    """Serve the list call and per-message detail calls."""
    delays = delays or {}

    async def route(method: str, url: str, params=None, json_data=None) -> dict[str, Any]:
        if url == MESSAGES_URL:
            return listing
        message_id = url.rsplit("/", 1)[-1]
        await asyncio.sleep(delays.get(message_id, 0))
        return make_message(
            message_id,
            subject=f"Subject {message_id}",
            payload={"mimeType": "text/plain", "body": {"data": b64url(f"Body {message_id}")}},
        )

    return route


@pytest.mark.unit
class TestSearchEmails:
    """Tests for listing and expanding search results."""

    @pytest.mark.asyncio
    async def test_should_return_page_with_pagination(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.side_effect = _router(
            _listing(["m1", "m2", "m3"], next_page_token="tok1", estimate=57)
        )
        client = GmailClient(mock_transport)

        page = await client.search_emails("is:unread", max_results=3)

        assert [email.id for email in page.emails] == ["m1", "m2", "m3"]
        assert page.has_more is True
        assert page.next_page_token == "tok1"
        assert page.total_estimate == 57
        assert page.emails[0].subject == "Subject m1"
        assert page.emails[0].body is None

        list_call = mock_transport.request.call_args_list[0]
        assert list_call.args == ("GET", MESSAGES_URL)
        assert list_call.kwargs["params"] == {"q": "is:unread", "maxResults": 3, "pageToken": None}

    @pytest.mark.asyncio
    async def test_should_forward_page_token(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.side_effect = _router(_listing([]))
        client = GmailClient(mock_transport)

        await client.search_emails("label:work", page_token="tok1")

        params = mock_transport.request.call_args_list[0].kwargs["params"]
        assert params["pageToken"] == "tok1"

    @pytest.mark.asyncio
    async def test_should_request_metadata_without_body(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.side_effect = _router(_listing(["m1"]))
        client = GmailClient(mock_transport)

        await client.search_emails("x")

        detail_call = mock_transport.request.call_args_list[1]
        assert detail_call.args == ("GET", f"{MESSAGES_URL}/m1")
        assert detail_call.kwargs["params"] == {"format": "metadata", "metadataHeaders": METADATA_HEADERS}

    @pytest.mark.asyncio
    async def test_should_request_full_format_with_body(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.side_effect = _router(_listing(["m1"]))
        client = GmailClient(mock_transport)

        page = await client.search_emails("x", include_body=True)

        detail_call = mock_transport.request.call_args_list[1]
        assert detail_call.kwargs["params"] == {"format": "full"}
        assert page.emails[0].body == "Body m1"

    @pytest.mark.asyncio
    async def test_should_handle_empty_listing(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.return_value = {"resultSizeEstimate": 0}
        client = GmailClient(mock_transport)

        page = await client.search_emails("nothing matches")

        assert page.emails == []
        assert page.total_estimate == 0
        assert page.has_more is False
        assert page.next_page_token is None
        assert mock_transport.request.await_count == 1

    @pytest.mark.asyncio
    async def test_should_treat_empty_page_token_as_last_page(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.side_effect = _router(_listing(["m1"], next_page_token=""))
        client = GmailClient(mock_transport)

        page = await client.search_emails("x")

        assert page.has_more is False
        assert page.next_page_token is None

    @pytest.mark.asyncio
    async def test_should_skip_candidates_without_id(self, mock_transport: AsyncMock) -> None:
        listing = {"messages": [{"id": "m1"}, {"threadId": "orphan"}, {"id": ""}, {"id": "m2"}]}
        mock_transport.request.side_effect = _router(listing)
        client = GmailClient(mock_transport)

        page = await client.search_emails("x")

        assert [email.id for email in page.emails] == ["m1", "m2"]
        assert mock_transport.request.await_count == 3


@pytest.mark.unit
class TestSearchConcurrency:
    """Tests for the windowed detail fetches."""

    @pytest.mark.asyncio
    async def test_should_preserve_listing_order_across_windows(
        self, mock_transport: AsyncMock
    ) -> None:
        ids = [f"m{i:02d}" for i in range(25)]
        # Later ids finish first
        delays = {message_id: (25 - index) * 0.001 for index, message_id in enumerate(ids)}
        mock_transport.request.side_effect = _router(_listing(ids), delays)
        client = GmailClient(mock_transport)

        page = await client.search_emails("x", max_results=25)

        assert [email.id for email in page.emails] == ids

    @pytest.mark.asyncio
    async def test_should_bound_fetches_in_flight(self, mock_transport: AsyncMock) -> None:
        ids = [f"m{i:02d}" for i in range(23)]
        in_flight = 0
        peak = 0
        route = _router(_listing(ids))

        async def tracking(method: str, url: str, params=None, json_data=None) -> dict[str, Any]:
            nonlocal in_flight, peak
            if url == MESSAGES_URL:
                return await route(method, url, params, json_data)
            in_flight += 1
            peak = max(peak, in_flight)
            try:
                await asyncio.sleep(0.001)
                return await route(method, url, params, json_data)
            finally:
                in_flight -= 1

        mock_transport.request.side_effect = tracking
        client = GmailClient(mock_transport)

        page = await client.search_emails("x", max_results=23)

        assert len(page.emails) == 23
        assert peak == EMAIL_FETCH_BATCH_SIZE


@pytest.mark.unit
class TestSearchFailures:
    """Tests for error propagation."""

    @pytest.mark.asyncio
    async def test_should_raise_when_list_call_fails(self, mock_transport: AsyncMock) -> None:
        mock_transport.request.side_effect = http_status_error(400, MESSAGES_URL)
        client = GmailClient(mock_transport)

        with pytest.raises(ProviderApiError) as exc_info:
            await client.search_emails("bad:query")

        error = exc_info.value
        assert error.code == "GMAIL_API_ERROR"
        assert error.operation == "search_emails"
        assert error.status_code == 400
        assert "'bad:query'" in error.message

    @pytest.mark.asyncio
    async def test_should_raise_when_detail_fetch_fails(self, mock_transport: AsyncMock) -> None:
        route = _router(_listing(["m1", "m2", "m3"]))

        async def failing(method: str, url: str, params=None, json_data=None) -> dict[str, Any]:
            if url.endswith("/m2"):
                raise http_status_error(500, url)
            return await route(method, url, params, json_data)

        mock_transport.request.side_effect = failing
        client = GmailClient(mock_transport)

        with pytest.raises(ProviderApiError) as exc_info:
            await client.search_emails("from:alice")

        assert "m2" in exc_info.value.message
        assert "'from:alice'" in exc_info.value.message
        assert exc_info.value.status_code == 500
