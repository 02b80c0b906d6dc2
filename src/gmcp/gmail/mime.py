"""MIME part tree walking and outbound MIME construction.

Gmail returns message payloads as a tree of parts::

    {"mimeType": "multipart/alternative", "parts": [
        {"mimeType": "text/plain", "body": {"data": "SGVsbG8"}},
        {"mimeType": "text/html", "body": {"data": "PGI-SGVsbG88L2I-"}},
    ]}

The tree is walked top-down with plain recursion, bounded by MAX_MIME_DEPTH.
"""

from typing import Any

from gmcp.constants import MAX_MIME_DEPTH
from gmcp.gmail.codec import decode_base64url

NO_BODY = "(no body)"

# Wire line terminator required by RFC 5322
CRLF = "\r\n"


def find_body(part: dict[str, Any], mime_type: str, depth: int = 0) -> str:
    """Find the first part of ``mime_type`` and return its decoded content.

    Depth-first, pre-order: a part is checked before its children, and a
    sibling is only visited when the previous sibling's whole subtree
    yielded nothing.

    Args:
        part: MIME part to search.
        mime_type: Exact MIME type to match (e.g. ``text/plain``).
        depth: Current nesting level.

    Returns:
        Decoded content, or an empty string if no part matches.
    """
    if depth > MAX_MIME_DEPTH:
        return ""

    data = (part.get("body") or {}).get("data")
    if part.get("mimeType") == mime_type and data:
        return decode_base64url(data)

    for sub_part in part.get("parts") or []:
        body = find_body(sub_part, mime_type, depth + 1)
        if body:
            return body

    return ""


def extract_body(payload: dict[str, Any] | None) -> str:
    """Extract a readable body from a message payload.

    Plain text is preferred over HTML; a single-part message's inline data
    is used last. When nothing is found the ``"(no body)"`` sentinel is
    returned.

    Args:
        payload: Message payload, or None for messages fetched without one.

    Returns:
        Body text, the sentinel, or an empty string when there is no payload
        at all. An empty payload dict is a payload without a body.
    """
    if payload is None:
        return ""

    body = find_body(payload, "text/plain")
    if not body:
        body = find_body(payload, "text/html")

    inline_data = (payload.get("body") or {}).get("data")
    if not body and inline_data:
        body = decode_base64url(inline_data)

    return body or NO_BODY


def build_mime_message(
    to: str,
    subject: str,
    body: str,
    content_type: str = "text/plain",
    cc: str | None = None,
    bcc: str | None = None,
    in_reply_to: str | None = None,
    references: str | None = None,
) -> str:
    """Build an RFC 5322 message as text.

    Headers are always emitted in the order To, Cc, Bcc, Subject,
    In-Reply-To, References, Content-Type; optional headers are left out
    when not given. Lines are joined with CRLF.

    Args:
        to: Recipient address(es).
        subject: Subject line.
        body: Message body.
        content_type: ``text/plain`` or ``text/html``.
        cc: Optional CC recipients.
        bcc: Optional BCC recipients.
        in_reply_to: Optional Message-ID being replied to.
        references: Optional References header for threading.

    Returns:
        The message text, ready for base64url encoding.
    """
    lines = [f"To: {to}"]
    if cc:
        lines.append(f"Cc: {cc}")
    if bcc:
        lines.append(f"Bcc: {bcc}")
    lines.append(f"Subject: {subject}")
    if in_reply_to:
        lines.append(f"In-Reply-To: {in_reply_to}")
    if references:
        lines.append(f"References: {references}")
    lines.append(f"Content-Type: {content_type}; charset=utf-8")
    lines.append("")
    lines.append(body)
    return CRLF.join(lines)
