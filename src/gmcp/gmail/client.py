"""Gmail API client.

All calls go through an AuthorizedTransport; provider failures are raised as
ProviderApiError carrying the operation name and the identifying argument.
"""

import asyncio
import logging
from typing import Any

import httpx

from gmcp.constants import EMAIL_FETCH_BATCH_SIZE, GMAIL_API_BASE, METADATA_HEADERS
from gmcp.errors import ProviderApiError
from gmcp.gmail.codec import encode_base64url
from gmcp.gmail.mapper import (
    extract_attachments,
    parse_draft_result,
    parse_label,
    parse_message,
    parse_send_result,
)
from gmcp.gmail.mime import build_mime_message
from gmcp.gmail.models import (
    AttachmentInfo,
    DraftResult,
    EmailMessage,
    GmailLabel,
    SearchPage,
    SendResult,
)
from gmcp.transport import AuthorizedTransport

logger = logging.getLogger(__name__)

USER_BASE = f"{GMAIL_API_BASE}/users/me"


def _detail_params(include_body: bool) -> dict[str, Any]:
    if include_body:
        return {"format": "full"}
    return {"format": "metadata", "metadataHeaders": METADATA_HEADERS}


def _label_body(
    name: str | None,
    message_list_visibility: str | None,
    label_list_visibility: str | None,
    background_color: str | None,
    text_color: str | None,
) -> dict[str, Any]:
    body: dict[str, Any] = {}
    if name:
        body["name"] = name
    if message_list_visibility:
        body["messageListVisibility"] = message_list_visibility
    if label_list_visibility:
        body["labelListVisibility"] = label_list_visibility
    # Gmail rejects a color with only one side set
    if background_color and text_color:
        body["color"] = {"backgroundColor": background_color, "textColor": text_color}
    return body


class GmailClient:
    """Gmail operations for the authenticated user (``users/me``).

    Attributes:
        transport: Authorized transport used for every request.
    """

    def __init__(self, transport: AuthorizedTransport) -> None:
        self.transport = transport

    async def _request(
        self,
        operation: str,
        failure: str,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request, converting HTTP failures to ProviderApiError.

        Args:
            operation: Client operation name reported on failure.
            failure: Human-readable description naming the target.
            method: HTTP method.
            url: Full request URL.
            params: Optional query parameters.
            json_data: Optional JSON body.

        Returns:
            Decoded JSON response.

        Raises:
            ProviderApiError: If the request fails.
        """
        try:
            return await self.transport.request(method, url, params=params, json_data=json_data)
        except httpx.HTTPStatusError as e:
            raise ProviderApiError(
                "gmail",
                operation,
                f"{failure}: {e}",
                cause=e,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderApiError("gmail", operation, f"{failure}: {e}", cause=e) from e

    # =========================================================================
    # Messages
    # =========================================================================

    async def search_emails(
        self,
        query: str,
        max_results: int = 10,
        include_body: bool = False,
        page_token: str | None = None,
    ) -> SearchPage:
        """Search messages with Gmail query syntax and fetch their details.

        Candidates are expanded in windows of EMAIL_FETCH_BATCH_SIZE: the
        fetches of one window run concurrently, windows run one after the
        other. Results keep the order the list call returned.

        Args:
            query: Gmail search query (e.g. ``from:alice is:unread``).
            max_results: Page size requested from the list call.
            include_body: Fetch full payloads and populate ``body``.
            page_token: Token from a previous page.

        Returns:
            One page of results with the provider's pagination token.

        Raises:
            ProviderApiError: If the list call or any detail fetch fails.
        """
        listing = await self._request(
            "search_emails",
            f"Gmail search failed for query {query!r}",
            "GET",
            f"{USER_BASE}/messages",
            params={"q": query, "maxResults": max_results, "pageToken": page_token},
        )

        candidate_ids = [m["id"] for m in listing.get("messages") or [] if m.get("id")]
        next_page_token = listing.get("nextPageToken") or None

        async def fetch(message_id: str) -> EmailMessage:
            raw = await self._request(
                "search_emails",
                f"Failed to fetch message {message_id} for query {query!r}",
                "GET",
                f"{USER_BASE}/messages/{message_id}",
                params=_detail_params(include_body),
            )
            return parse_message(raw, include_body)

        emails: list[EmailMessage] = []
        for start in range(0, len(candidate_ids), EMAIL_FETCH_BATCH_SIZE):
            window = candidate_ids[start : start + EMAIL_FETCH_BATCH_SIZE]
            emails.extend(await asyncio.gather(*(fetch(message_id) for message_id in window)))

        logger.debug(
            "Search %r returned %d messages (more: %s)",
            query,
            len(emails),
            next_page_token is not None,
        )

        return SearchPage(
            emails=emails,
            total_estimate=listing.get("resultSizeEstimate") or 0,
            has_more=next_page_token is not None,
            next_page_token=next_page_token,
        )

    async def get_message(self, message_id: str, include_body: bool = False) -> EmailMessage:
        """Fetch a single message."""
        raw = await self._request(
            "get_message",
            f"Failed to get message {message_id}",
            "GET",
            f"{USER_BASE}/messages/{message_id}",
            params=_detail_params(include_body),
        )
        return parse_message(raw, include_body)

    async def get_thread(self, thread_id: str, include_body: bool = False) -> list[EmailMessage]:
        """Fetch every message of a conversation, oldest first."""
        raw = await self._request(
            "get_thread",
            f"Failed to get thread {thread_id}",
            "GET",
            f"{USER_BASE}/threads/{thread_id}",
            params=_detail_params(include_body),
        )
        return [parse_message(message, include_body) for message in raw.get("messages") or []]

    async def list_attachments(self, message_id: str) -> list[AttachmentInfo]:
        raw = await self._request(
            "list_attachments",
            f"Failed to list attachments for {message_id}",
            "GET",
            f"{USER_BASE}/messages/{message_id}",
            params={"format": "full"},
        )
        return extract_attachments(raw.get("payload"))

    async def get_attachment(self, message_id: str, attachment_id: str) -> str:
        """Download attachment content.

        Args:
            message_id: Message holding the attachment.
            attachment_id: Attachment ID from list_attachments.

        Returns:
            The attachment's base64url data exactly as Gmail returned it.

        Raises:
            ProviderApiError: If the request fails or carries no data.
        """
        failure = f"Failed to get attachment {attachment_id} from message {message_id}"
        raw = await self._request(
            "get_attachment",
            failure,
            "GET",
            f"{USER_BASE}/messages/{message_id}/attachments/{attachment_id}",
        )
        data = raw.get("data")
        if not data:
            raise ProviderApiError("gmail", "get_attachment", f"{failure}: attachment data not found")
        return str(data)

    async def modify_labels(
        self,
        message_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> EmailMessage:
        """Add and remove labels on one message.

        Returns:
            The message as it is after the change (headers are not included
            in the modify response, so header fields carry their defaults).
        """
        raw = await self._request(
            "modify_labels",
            f"Failed to modify labels for {message_id}",
            "POST",
            f"{USER_BASE}/messages/{message_id}/modify",
            json_data={
                "addLabelIds": add_label_ids or [],
                "removeLabelIds": remove_label_ids or [],
            },
        )
        return parse_message(raw, include_body=False)

    async def batch_modify_labels(
        self,
        message_ids: list[str],
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> None:
        await self._request(
            "batch_modify_labels",
            f"Failed to batch modify labels on {len(message_ids)} messages",
            "POST",
            f"{USER_BASE}/messages/batchModify",
            json_data={
                "ids": message_ids,
                "addLabelIds": add_label_ids or [],
                "removeLabelIds": remove_label_ids or [],
            },
        )

    async def archive_email(self, message_id: str) -> EmailMessage:
        """Remove a message from the inbox; it stays in All Mail."""
        return await self.modify_labels(message_id, remove_label_ids=["INBOX"])

    async def delete_email(self, message_id: str) -> None:
        """Permanently delete a message, bypassing Trash."""
        await self._request(
            "delete_email",
            f"Failed to delete message {message_id}",
            "DELETE",
            f"{USER_BASE}/messages/{message_id}",
        )

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        content_type: str = "text/plain",
        cc: str | None = None,
        bcc: str | None = None,
    ) -> SendResult:
        """Send a new message.

        Args:
            to: Recipient address(es), comma-separated.
            subject: Subject line.
            body: Message body.
            content_type: ``text/plain`` or ``text/html``.
            cc: Optional CC recipients.
            bcc: Optional BCC recipients.

        Returns:
            IDs of the sent message and its thread.
        """
        raw_message = build_mime_message(to, subject, body, content_type, cc=cc, bcc=bcc)
        response = await self._request(
            "send_email",
            f"Failed to send email to {to}",
            "POST",
            f"{USER_BASE}/messages/send",
            json_data={"raw": encode_base64url(raw_message)},
        )
        return parse_send_result(response)

    async def reply_to_email(
        self,
        to: str,
        subject: str,
        body: str,
        thread_id: str,
        message_id: str,
        content_type: str = "text/plain",
        cc: str | None = None,
    ) -> SendResult:
        """Send a reply that Gmail threads under ``thread_id``.

        Args:
            to: Recipient, usually the original sender.
            subject: Original subject; ``Re: `` is prefixed unless present.
            body: Reply body.
            thread_id: Thread the reply belongs to.
            message_id: Message being replied to, used for In-Reply-To and
                References.
            content_type: ``text/plain`` or ``text/html``.
            cc: Optional CC recipients.

        Returns:
            IDs of the sent reply and its thread.
        """
        reply_subject = subject if subject.startswith("Re:") else f"Re: {subject}"
        raw_message = build_mime_message(
            to,
            reply_subject,
            body,
            content_type,
            cc=cc,
            in_reply_to=f"<{message_id}>",
            references=f"<{message_id}>",
        )
        response = await self._request(
            "reply_to_email",
            f"Failed to reply to message {message_id}",
            "POST",
            f"{USER_BASE}/messages/send",
            json_data={"raw": encode_base64url(raw_message), "threadId": thread_id},
        )
        return parse_send_result(response)

    async def create_draft(
        self,
        to: str,
        subject: str,
        body: str,
        content_type: str = "text/plain",
        cc: str | None = None,
        bcc: str | None = None,
    ) -> DraftResult:
        raw_message = build_mime_message(to, subject, body, content_type, cc=cc, bcc=bcc)
        response = await self._request(
            "create_draft",
            f"Failed to create draft to {to}",
            "POST",
            f"{USER_BASE}/drafts",
            json_data={"message": {"raw": encode_base64url(raw_message)}},
        )
        return parse_draft_result(response)

    # =========================================================================
    # Labels
    # =========================================================================

    async def list_labels(self) -> list[GmailLabel]:
        """List system and user labels."""
        raw = await self._request(
            "list_labels", "Failed to list labels", "GET", f"{USER_BASE}/labels"
        )
        return [parse_label(label) for label in raw.get("labels") or []]

    async def get_label(self, label_id: str) -> GmailLabel:
        """Fetch a label including its message counts."""
        raw = await self._request(
            "get_label",
            f"Failed to get label {label_id}",
            "GET",
            f"{USER_BASE}/labels/{label_id}",
        )
        return parse_label(raw)

    async def create_label(
        self,
        name: str,
        message_list_visibility: str | None = None,
        label_list_visibility: str | None = None,
        background_color: str | None = None,
        text_color: str | None = None,
    ) -> GmailLabel:
        """Create a user label.

        The color is applied only when both ``background_color`` and
        ``text_color`` are given.
        """
        raw = await self._request(
            "create_label",
            f"Failed to create label {name!r}",
            "POST",
            f"{USER_BASE}/labels",
            json_data=_label_body(
                name, message_list_visibility, label_list_visibility, background_color, text_color
            ),
        )
        return parse_label(raw)

    async def update_label(
        self,
        label_id: str,
        name: str | None = None,
        message_list_visibility: str | None = None,
        label_list_visibility: str | None = None,
        background_color: str | None = None,
        text_color: str | None = None,
    ) -> GmailLabel:
        """Change the given fields of a label, leaving the rest untouched."""
        raw = await self._request(
            "update_label",
            f"Failed to update label {label_id}",
            "PATCH",
            f"{USER_BASE}/labels/{label_id}",
            json_data=_label_body(
                name, message_list_visibility, label_list_visibility, background_color, text_color
            ),
        )
        return parse_label(raw)

    async def delete_label(self, label_id: str) -> None:
        await self._request(
            "delete_label",
            f"Failed to delete label {label_id}",
            "DELETE",
            f"{USER_BASE}/labels/{label_id}",
        )
