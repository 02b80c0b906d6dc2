"""Tool catalogue: input models, descriptions and MCP annotations.

Each tool's pydantic input model validates incoming arguments and also
provides the JSON Schema advertised in ``list_tools``.
"""

from dataclasses import dataclass
from typing import Literal

from mcp.types import Tool, ToolAnnotations
from pydantic import BaseModel, ConfigDict, Field, model_validator

from gmcp.constants import DEFAULT_MAX_RESULTS, MAX_BATCH_SIZE, MAX_RESULTS_LIMIT

TOOL_PREFIX = "gmcp_"

ContentType = Literal["text/plain", "text/html"]
MessageListVisibility = Literal["show", "hide"]
LabelListVisibility = Literal["labelShow", "labelShowIfUnread", "labelHide"]
OutputFormat = Literal["markdown", "json"]

READ_ONLY = ToolAnnotations(
    readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True
)
MODIFY = ToolAnnotations(
    readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=True
)
SEND = ToolAnnotations(
    readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=True
)
DESTRUCTIVE = ToolAnnotations(
    readOnlyHint=False, destructiveHint=True, idempotentHint=False, openWorldHint=True
)


class ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    output_format: OutputFormat = Field(
        default="markdown",
        description="Output format: markdown (human-readable, default) or json (structured)",
    )


# =============================================================================
# Gmail inputs
# =============================================================================


class SearchEmailsInput(ToolInput):
    query: str = Field(
        min_length=1,
        description="Gmail search query (e.g. 'from:alice@example.com is:unread')",
    )
    max_results: int = Field(
        default=DEFAULT_MAX_RESULTS,
        ge=1,
        le=MAX_RESULTS_LIMIT,
        description="Maximum number of messages to return",
    )
    include_body: bool = Field(
        default=False, description="Include a preview of each message body"
    )
    page_token: str | None = Field(
        default=None, description="Token from a previous search for the next page"
    )


class GetEmailInput(ToolInput):
    message_id: str = Field(min_length=1, description="Gmail message ID")
    include_body: bool = Field(default=True, description="Include the full message body")


class GetThreadInput(ToolInput):
    thread_id: str = Field(min_length=1, description="Gmail thread ID")
    include_body: bool = Field(
        default=False, description="Include the full body of every message"
    )


class MessageInput(ToolInput):
    message_id: str = Field(min_length=1, description="Gmail message ID")


class GetAttachmentInput(ToolInput):
    message_id: str = Field(min_length=1, description="Gmail message ID")
    attachment_id: str = Field(
        min_length=1, description="Attachment ID from gmcp_gmail_list_attachments"
    )


class ModifyLabelsInput(ToolInput):
    message_id: str = Field(min_length=1, description="Gmail message ID")
    add_labels: list[str] | None = Field(
        default=None, description="Label IDs to add (e.g. ['STARRED'])"
    )
    remove_labels: list[str] | None = Field(
        default=None, description="Label IDs to remove (e.g. ['UNREAD', 'INBOX'])"
    )

    @model_validator(mode="after")
    def _require_change(self) -> "ModifyLabelsInput":
        if not self.add_labels and not self.remove_labels:
            raise ValueError("Must specify at least one of add_labels or remove_labels")
        return self


class BatchModifyInput(ToolInput):
    message_ids: list[str] = Field(
        min_length=1,
        max_length=MAX_BATCH_SIZE,
        description=f"Message IDs to modify (at most {MAX_BATCH_SIZE})",
    )
    add_labels: list[str] | None = Field(
        default=None, description="Label IDs to add to every message"
    )
    remove_labels: list[str] | None = Field(
        default=None, description="Label IDs to remove from every message"
    )

    @model_validator(mode="after")
    def _require_change(self) -> "BatchModifyInput":
        if not self.add_labels and not self.remove_labels:
            raise ValueError("Must specify at least one of add_labels or remove_labels")
        return self


class SendEmailInput(ToolInput):
    to: str = Field(min_length=1, description="Recipient address(es), comma-separated")
    subject: str = Field(min_length=1, description="Subject line")
    body: str = Field(min_length=1, description="Message body")
    content_type: ContentType = Field(default="text/plain", description="Body format")
    cc: str | None = Field(default=None, description="CC recipients")
    bcc: str | None = Field(default=None, description="BCC recipients")
    confirm: bool = Field(
        default=False,
        description="Set to true to actually send; otherwise a preview is returned",
    )


class ReplyInput(ToolInput):
    message_id: str = Field(min_length=1, description="ID of the message to reply to")
    body: str = Field(min_length=1, description="Reply body")
    content_type: ContentType = Field(default="text/plain", description="Body format")
    cc: str | None = Field(default=None, description="CC recipients")
    confirm: bool = Field(
        default=False,
        description="Set to true to actually send; otherwise a preview is returned",
    )


class CreateDraftInput(ToolInput):
    to: str = Field(min_length=1, description="Recipient address(es), comma-separated")
    subject: str = Field(min_length=1, description="Subject line")
    body: str = Field(min_length=1, description="Message body")
    content_type: ContentType = Field(default="text/plain", description="Body format")
    cc: str | None = Field(default=None, description="CC recipients")
    bcc: str | None = Field(default=None, description="BCC recipients")


class NoInput(ToolInput):
    pass


class LabelIdInput(ToolInput):
    label_id: str = Field(min_length=1, description="Label ID (e.g. 'Label_123' or 'INBOX')")


class CreateLabelInput(ToolInput):
    name: str = Field(min_length=1, description="Label name; use '/' for nesting")
    message_list_visibility: MessageListVisibility | None = None
    label_list_visibility: LabelListVisibility | None = None
    background_color: str | None = Field(
        default=None, description="Hex background color; needs text_color too"
    )
    text_color: str | None = Field(
        default=None, description="Hex text color; needs background_color too"
    )


class UpdateLabelInput(ToolInput):
    label_id: str = Field(min_length=1, description="Label ID to update")
    name: str | None = Field(default=None, description="New label name")
    message_list_visibility: MessageListVisibility | None = None
    label_list_visibility: LabelListVisibility | None = None
    background_color: str | None = Field(
        default=None, description="Hex background color; needs text_color too"
    )
    text_color: str | None = Field(
        default=None, description="Hex text color; needs background_color too"
    )

    @model_validator(mode="after")
    def _require_change(self) -> "UpdateLabelInput":
        if not any(
            (
                self.name,
                self.message_list_visibility,
                self.label_list_visibility,
                self.background_color and self.text_color,
            )
        ):
            raise ValueError(
                "At least one field to update must be provided (name, visibility, or color)"
            )
        return self


class DeleteLabelInput(LabelIdInput):
    @model_validator(mode="after")
    def _reject_system_label(self) -> "DeleteLabelInput":
        # System label ids are upper case (INBOX, CATEGORY_SOCIAL, ...)
        if self.label_id.startswith("CATEGORY_") or self.label_id == self.label_id.upper():
            raise ValueError(
                f"Cannot delete system label {self.label_id}. "
                "Only user-created labels can be deleted."
            )
        return self


# =============================================================================
# Calendar inputs
# =============================================================================


class ListCalendarsInput(ToolInput):
    show_hidden: bool = Field(default=False, description="Include hidden calendars")


class ListEventsInput(ToolInput):
    calendar_id: str = Field(default="primary", description="Calendar ID")
    time_min: str | None = Field(
        default=None, description="Lower bound (RFC3339, e.g. 2024-01-01T00:00:00Z)"
    )
    time_max: str | None = Field(
        default=None, description="Upper bound (RFC3339, e.g. 2024-12-31T23:59:59Z)"
    )
    max_results: int = Field(default=10, ge=1, le=250, description="Maximum events")
    query: str | None = Field(default=None, description="Free text search")
    single_events: bool = Field(
        default=True, description="Expand recurring events into instances"
    )
    order_by: Literal["startTime", "updated"] = "startTime"


class GetEventInput(ToolInput):
    calendar_id: str = Field(default="primary", description="Calendar ID")
    event_id: str = Field(min_length=1, description="Event ID")


class CreateEventInput(ToolInput):
    calendar_id: str = Field(default="primary", description="Calendar ID")
    summary: str = Field(min_length=1, description="Event title")
    start: str = Field(
        min_length=1,
        description="Start: RFC3339 (2024-01-15T09:00:00-08:00) or date for all-day (2024-01-15)",
    )
    end: str = Field(min_length=1, description="End, in the same form as start")
    description: str | None = None
    location: str | None = None
    attendees: list[str] | None = Field(default=None, description="Attendee emails")
    timezone: str | None = Field(default=None, description="IANA time zone")
    recurrence: list[str] | None = Field(
        default=None, description="RRULE lines (e.g. ['RRULE:FREQ=WEEKLY;COUNT=10'])"
    )
    add_meet: bool = Field(default=False, description="Attach a Google Meet link")
    confirm: bool = Field(
        default=False, description="Must be true to create the event"
    )


# =============================================================================
# Catalogue
# =============================================================================


@dataclass(frozen=True)
class ToolSpec:
    """Static description of one tool.

    Attributes:
        name: Tool name without the ``gmcp_`` prefix.
        description: Text shown to the client.
        input_model: Model validating the tool's arguments.
        annotations: MCP behaviour hints.
    """

    name: str
    description: str
    input_model: type[ToolInput]
    annotations: ToolAnnotations

    @property
    def full_name(self) -> str:
        return f"{TOOL_PREFIX}{self.name}"

    def to_tool(self) -> Tool:
        return Tool(
            name=self.full_name,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(),
            annotations=self.annotations,
        )


TOOL_SPECS: list[ToolSpec] = [
    ToolSpec(
        "gmail_search_emails",
        "Search Gmail messages using Gmail search syntax. Returns headers, "
        "snippets and optionally a body preview, with a page token for more results.",
        SearchEmailsInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_get_email",
        "Get a single Gmail message by ID, including its body by default.",
        GetEmailInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_get_thread",
        "Get every message of a Gmail conversation thread.",
        GetThreadInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_list_attachments",
        "List the attachments of a Gmail message (filename, type, size, ID).",
        MessageInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_get_attachment",
        "Download an attachment as base64url data.",
        GetAttachmentInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_modify_labels",
        "Add or remove labels on a Gmail message (e.g. remove UNREAD to mark read).",
        ModifyLabelsInput,
        MODIFY,
    ),
    ToolSpec(
        "gmail_batch_modify",
        f"Add or remove labels on up to {MAX_BATCH_SIZE} Gmail messages at once.",
        BatchModifyInput,
        MODIFY,
    ),
    ToolSpec(
        "gmail_send_email",
        "Send an email. Returns a preview unless confirm is true.",
        SendEmailInput,
        SEND,
    ),
    ToolSpec(
        "gmail_reply",
        "Reply to a Gmail message within its thread. Returns a preview unless confirm is true.",
        ReplyInput,
        SEND,
    ),
    ToolSpec(
        "gmail_create_draft",
        "Save an email as a Gmail draft without sending it.",
        CreateDraftInput,
        MODIFY,
    ),
    ToolSpec(
        "gmail_list_labels",
        "List all Gmail labels, system and user-created.",
        NoInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_get_label",
        "Get a Gmail label with its message counts.",
        LabelIdInput,
        READ_ONLY,
    ),
    ToolSpec(
        "gmail_create_label",
        "Create a Gmail label, optionally with visibility settings and colors.",
        CreateLabelInput,
        MODIFY,
    ),
    ToolSpec(
        "gmail_update_label",
        "Rename a Gmail label or change its visibility or colors.",
        UpdateLabelInput,
        MODIFY,
    ),
    ToolSpec(
        "gmail_delete_label",
        "Delete a user-created Gmail label. It is removed from all messages.",
        DeleteLabelInput,
        DESTRUCTIVE,
    ),
    ToolSpec(
        "gmail_delete_email",
        "Permanently delete a Gmail message. This bypasses Trash and cannot be undone.",
        MessageInput,
        DESTRUCTIVE,
    ),
    ToolSpec(
        "gmail_archive_email",
        "Archive a Gmail message by removing it from the inbox.",
        MessageInput,
        MODIFY,
    ),
    ToolSpec(
        "calendar_list_calendars",
        "List the user's calendars.",
        ListCalendarsInput,
        READ_ONLY,
    ),
    ToolSpec(
        "calendar_list_events",
        "List events from a calendar, optionally within a time range or matching a query.",
        ListEventsInput,
        READ_ONLY,
    ),
    ToolSpec(
        "calendar_get_event",
        "Get a calendar event by ID.",
        GetEventInput,
        READ_ONLY,
    ),
    ToolSpec(
        "calendar_create_event",
        "Create a calendar event (timed or all-day), optionally with attendees, "
        "recurrence and a Google Meet link. Requires confirm to be true.",
        CreateEventInput,
        SEND,
    ),
]

TOOLS_BY_NAME: dict[str, ToolSpec] = {spec.full_name: spec for spec in TOOL_SPECS}
