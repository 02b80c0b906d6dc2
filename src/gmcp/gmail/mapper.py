"""Map raw Gmail API objects to normalized records."""

from typing import Any

from gmcp.constants import MAX_MIME_DEPTH
from gmcp.gmail.mime import extract_body
from gmcp.gmail.models import (
    AttachmentInfo,
    DraftResult,
    EmailMessage,
    GmailLabel,
    LabelColor,
    SendResult,
)

NO_SUBJECT = "(no subject)"
UNKNOWN_ADDRESS = "(unknown)"
DEFAULT_ATTACHMENT_MIME_TYPE = "application/octet-stream"


def get_header(headers: list[dict[str, Any]] | None, name: str) -> str:
    """Look up a header value by name, ignoring case.

    Args:
        headers: Gmail ``payload.headers`` list.
        name: Header name.

    Returns:
        Value of the first matching header, or an empty string.
    """
    wanted = name.lower()
    for header in headers or []:
        header_name = header.get("name")
        if isinstance(header_name, str) and header_name.lower() == wanted:
            return header.get("value") or ""
    return ""


def parse_message(message: dict[str, Any], include_body: bool) -> EmailMessage:
    """Convert a Gmail message resource to an EmailMessage.

    Args:
        message: Message resource (``format=full`` or ``format=metadata``).
        include_body: Populate ``body`` from the payload.

    Returns:
        Normalized message. Missing headers get placeholder values.
    """
    payload = message.get("payload")
    headers = (payload or {}).get("headers")

    email = EmailMessage(
        id=message.get("id") or "",
        thread_id=message.get("threadId") or "",
        subject=get_header(headers, "Subject") or NO_SUBJECT,
        from_=get_header(headers, "From") or UNKNOWN_ADDRESS,
        to=get_header(headers, "To") or UNKNOWN_ADDRESS,
        date=get_header(headers, "Date"),
        snippet=message.get("snippet") or "",
        labels=message.get("labelIds") or None,
    )

    if include_body:
        email.body = extract_body(payload)

    return email


def parse_label(label: dict[str, Any]) -> GmailLabel:
    """Convert a Gmail label resource to a GmailLabel.

    Counts of zero are kept; only absent fields become None.
    """
    color = label.get("color")
    return GmailLabel(
        id=label.get("id") or "",
        name=label.get("name") or "",
        type="system" if label.get("type") == "system" else "user",
        message_list_visibility=label.get("messageListVisibility"),
        label_list_visibility=label.get("labelListVisibility"),
        messages_total=label.get("messagesTotal"),
        messages_unread=label.get("messagesUnread"),
        color=(
            LabelColor(
                text_color=color.get("textColor") or "",
                background_color=color.get("backgroundColor") or "",
            )
            if color
            else None
        ),
    )


def extract_attachments(payload: dict[str, Any] | None) -> list[AttachmentInfo]:
    """Collect every attachment in a payload tree, in document order.

    A part counts as an attachment when it has a filename and an
    ``attachmentId``; inline parts without an id are skipped.

    Args:
        payload: Message payload (``format=full``).

    Returns:
        Attachments found at any depth.
    """
    attachments: list[AttachmentInfo] = []

    def walk(part: dict[str, Any], depth: int) -> None:
        if depth > MAX_MIME_DEPTH:
            return

        body = part.get("body") or {}
        filename = part.get("filename")
        attachment_id = body.get("attachmentId")
        if filename and attachment_id:
            attachments.append(
                AttachmentInfo(
                    filename=filename,
                    mime_type=part.get("mimeType") or DEFAULT_ATTACHMENT_MIME_TYPE,
                    size=body.get("size") or 0,
                    attachment_id=attachment_id,
                )
            )

        for sub_part in part.get("parts") or []:
            walk(sub_part, depth + 1)

    if payload:
        walk(payload, 0)
    return attachments


def parse_send_result(response: dict[str, Any]) -> SendResult:
    return SendResult(
        id=response.get("id") or "",
        thread_id=response.get("threadId") or "",
        label_ids=response.get("labelIds") or None,
    )


def parse_draft_result(response: dict[str, Any]) -> DraftResult:
    message = response.get("message") or {}
    return DraftResult(
        id=response.get("id") or "",
        message_id=message.get("id") or "",
        thread_id=message.get("threadId") or "",
    )
