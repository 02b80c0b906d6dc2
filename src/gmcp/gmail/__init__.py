"""Gmail access: API client, payload mapping and MIME helpers."""

from gmcp.gmail.client import GmailClient
from gmcp.gmail.models import (
    AttachmentInfo,
    DraftResult,
    EmailMessage,
    GmailLabel,
    LabelColor,
    SearchPage,
    SendResult,
)

__all__ = [
    "AttachmentInfo",
    "DraftResult",
    "EmailMessage",
    "GmailClient",
    "GmailLabel",
    "LabelColor",
    "SearchPage",
    "SendResult",
]
