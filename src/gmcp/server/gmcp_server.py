"""Gmail and Calendar MCP server.

Registers the tool catalogue with an MCP ``Server`` and dispatches calls to
the Gmail and Calendar clients. Results are rendered as markdown or as
indented JSON, per the call's ``output_format``; failures are always JSON.
"""

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import BaseModel, ValidationError

from gmcp.auth import create_authenticated_session
from gmcp.calendar import CalendarClient
from gmcp.config import EnvConfig, get_env_config
from gmcp.constants import BODY_PREVIEW_LENGTH
from gmcp.errors import GmcpError
from gmcp.gmail import EmailMessage, GmailClient
from gmcp.logger import configure_logging
from gmcp.server.markdown import MARKDOWN_RENDERERS
from gmcp.server.tools import (
    TOOL_PREFIX,
    TOOL_SPECS,
    TOOLS_BY_NAME,
    BatchModifyInput,
    CreateDraftInput,
    CreateEventInput,
    CreateLabelInput,
    DeleteLabelInput,
    GetAttachmentInput,
    GetEmailInput,
    GetEventInput,
    GetThreadInput,
    LabelIdInput,
    ListCalendarsInput,
    ListEventsInput,
    MessageInput,
    ModifyLabelsInput,
    NoInput,
    OutputFormat,
    ReplyInput,
    SearchEmailsInput,
    SendEmailInput,
    ToolInput,
    UpdateLabelInput,
)
from gmcp.transport import AuthorizedTransport

logger = logging.getLogger(__name__)

SERVER_NAME = "gmcp-server"


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def _email_output(email: EmailMessage, preview: bool = False) -> dict[str, Any]:
    data = _dump(email)
    body = data.get("body")
    if preview and body and len(body) > BODY_PREVIEW_LENGTH:
        data["body"] = f"{body[:BODY_PREVIEW_LENGTH]}..."
    return data


def render_result(result: dict[str, Any]) -> str:
    """Render a tool result as indented JSON, omitting None fields."""
    return json.dumps({k: v for k, v in result.items() if v is not None}, indent=2)


def render_markdown(name: str, result: dict[str, Any]) -> str:
    """Render a tool result as markdown, falling back to JSON for unknown tools."""
    renderer = MARKDOWN_RENDERERS.get(name.removeprefix(TOOL_PREFIX))
    if renderer is None:
        return render_result(result)
    return renderer(result)


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "input"
        problems.append(f"{location}: {detail['msg']}")
    return "; ".join(problems)


class GmcpServer:
    """MCP server exposing Gmail and Calendar tools.

    Attributes:
        server: MCP Server instance.
        gmail: Gmail client used by the ``gmail_*`` tools.
        calendar: Calendar client used by the ``calendar_*`` tools.
    """

    def __init__(
        self,
        gmail: GmailClient,
        calendar: CalendarClient,
        transport: AuthorizedTransport | None = None,
    ) -> None:
        """Initialize the server.

        Args:
            gmail: Gmail client.
            calendar: Calendar client.
            transport: Shared transport, closed when the server stops.
        """
        self.server = Server(SERVER_NAME)
        self.gmail = gmail
        self.calendar = calendar
        self._transport = transport
        self._setup_handlers()

    async def close(self) -> None:
        """Close the shared HTTP transport."""
        if self._transport:
            await self._transport.close()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.handle_call(name, arguments)

    def list_tools(self) -> list[Tool]:
        return [spec.to_tool() for spec in TOOL_SPECS]

    async def handle_call(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Run a tool and render its outcome.

        Failures never escape: invalid input, unknown tools and API errors
        are all reported as a JSON ``{"error": ..., "code": ...}`` payload,
        whatever ``output_format`` was requested.

        Args:
            name: Tool name.
            arguments: Raw tool arguments.

        Returns:
            A single text content item, markdown or JSON.
        """
        output_format: OutputFormat = "json"
        try:
            result, output_format = await self._dispatch_tool(name, arguments or {})
        except ValidationError as e:
            logger.warning("Invalid input for tool %s: %s", name, e)
            result = {"error": f"Invalid input for {name}: {_format_validation_error(e)}"}
        except GmcpError as e:
            logger.exception(f"Error calling tool {name}")
            result = {"error": e.message, "code": e.code}
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            result = {"error": str(e)}

        if output_format == "markdown" and "error" not in result:
            text = render_markdown(name, result)
        else:
            text = render_result(result)
        return [TextContent(type="text", text=text)]

    async def _dispatch_tool(
        self, name: str, arguments: dict[str, Any]
    ) -> tuple[dict[str, Any], OutputFormat]:
        """Validate arguments and dispatch to the tool's handler.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            Tool result as dictionary, and the requested output format.

        Raises:
            ValueError: If tool name is not recognized.
            ValidationError: If the arguments do not match the tool's input.
        """
        handlers = {
            # Gmail read operations
            "gmcp_gmail_search_emails": self._search_emails,
            "gmcp_gmail_get_email": self._get_email,
            "gmcp_gmail_get_thread": self._get_thread,
            "gmcp_gmail_list_attachments": self._list_attachments,
            "gmcp_gmail_get_attachment": self._get_attachment,
            # Gmail message management
            "gmcp_gmail_modify_labels": self._modify_labels,
            "gmcp_gmail_batch_modify": self._batch_modify,
            "gmcp_gmail_archive_email": self._archive_email,
            "gmcp_gmail_delete_email": self._delete_email,
            # Gmail write operations
            "gmcp_gmail_send_email": self._send_email,
            "gmcp_gmail_reply": self._reply,
            "gmcp_gmail_create_draft": self._create_draft,
            # Gmail label management
            "gmcp_gmail_list_labels": self._list_labels,
            "gmcp_gmail_get_label": self._get_label,
            "gmcp_gmail_create_label": self._create_label,
            "gmcp_gmail_update_label": self._update_label,
            "gmcp_gmail_delete_label": self._delete_label,
            # Calendar operations
            "gmcp_calendar_list_calendars": self._list_calendars,
            "gmcp_calendar_list_events": self._list_events,
            "gmcp_calendar_get_event": self._get_event,
            "gmcp_calendar_create_event": self._create_event,
        }

        spec = TOOLS_BY_NAME.get(name)
        handler = handlers.get(name)
        if spec is None or handler is None:
            raise ValueError(f"Unknown tool: {name}")

        params: ToolInput = spec.input_model.model_validate(arguments)
        return await handler(params), params.output_format

    # =========================================================================
    # Gmail
    # =========================================================================

    async def _search_emails(self, params: SearchEmailsInput) -> dict[str, Any]:
        """Search messages; bodies are cut to a preview length."""
        page = await self.gmail.search_emails(
            params.query,
            max_results=params.max_results,
            include_body=params.include_body,
            page_token=params.page_token,
        )
        return {
            "query": params.query,
            "total_estimate": page.total_estimate,
            "count": len(page.emails),
            "has_more": page.has_more,
            "next_page_token": page.next_page_token,
            "emails": [_email_output(email, preview=True) for email in page.emails],
        }

    async def _get_email(self, params: GetEmailInput) -> dict[str, Any]:
        email = await self.gmail.get_message(params.message_id, include_body=params.include_body)
        return _email_output(email)

    async def _get_thread(self, params: GetThreadInput) -> dict[str, Any]:
        messages = await self.gmail.get_thread(params.thread_id, include_body=params.include_body)
        return {
            "thread_id": params.thread_id,
            "message_count": len(messages),
            "messages": [_email_output(message) for message in messages],
        }

    async def _list_attachments(self, params: MessageInput) -> dict[str, Any]:
        attachments = await self.gmail.list_attachments(params.message_id)
        return {
            "message_id": params.message_id,
            "count": len(attachments),
            "attachments": [_dump(attachment) for attachment in attachments],
        }

    async def _get_attachment(self, params: GetAttachmentInput) -> dict[str, Any]:
        data = await self.gmail.get_attachment(params.message_id, params.attachment_id)
        return {
            "message_id": params.message_id,
            "attachment_id": params.attachment_id,
            "encoding": "base64url",
            "data": data,
        }

    async def _modify_labels(self, params: ModifyLabelsInput) -> dict[str, Any]:
        email = await self.gmail.modify_labels(
            params.message_id,
            add_label_ids=params.add_labels,
            remove_label_ids=params.remove_labels,
        )
        return {
            "message_id": params.message_id,
            "modified": True,
            "added_labels": params.add_labels or [],
            "removed_labels": params.remove_labels or [],
            "current_labels": email.labels or [],
        }

    async def _batch_modify(self, params: BatchModifyInput) -> dict[str, Any]:
        await self.gmail.batch_modify_labels(
            params.message_ids,
            add_label_ids=params.add_labels,
            remove_label_ids=params.remove_labels,
        )
        return {
            "success": True,
            "modified_count": len(params.message_ids),
            "message_ids": params.message_ids,
            "added_labels": params.add_labels or [],
            "removed_labels": params.remove_labels or [],
        }

    async def _archive_email(self, params: MessageInput) -> dict[str, Any]:
        email = await self.gmail.archive_email(params.message_id)
        return {
            "message_id": params.message_id,
            "archived": True,
            "removed_labels": ["INBOX"],
            "current_labels": email.labels or [],
        }

    async def _delete_email(self, params: MessageInput) -> dict[str, Any]:
        await self.gmail.delete_email(params.message_id)
        return {"message_id": params.message_id, "deleted": True}

    async def _send_email(self, params: SendEmailInput) -> dict[str, Any]:
        """Send an email, or describe what would be sent.

        Nothing is sent unless ``confirm`` is true.
        """
        if not params.confirm:
            return {
                "status": "preview",
                "sent": False,
                "to": params.to,
                "cc": params.cc,
                "bcc": params.bcc,
                "subject": params.subject,
                "body": params.body,
                "content_type": params.content_type,
                "warning": "Email NOT sent. Set confirm to true to actually send this email.",
            }

        result = await self.gmail.send_email(
            params.to,
            params.subject,
            params.body,
            content_type=params.content_type,
            cc=params.cc,
            bcc=params.bcc,
        )
        logger.info("Sent email %s", result.id)
        return {
            "status": "sent",
            "sent": True,
            "message_id": result.id,
            "thread_id": result.thread_id,
            "to": params.to,
            "cc": params.cc,
            "bcc": params.bcc,
            "subject": params.subject,
            "label_ids": result.label_ids,
        }

    async def _reply(self, params: ReplyInput) -> dict[str, Any]:
        """Reply to the sender of a message, within the same thread.

        The original message is always fetched first so the preview shows
        the real recipient and subject.
        """
        original = await self.gmail.get_message(params.message_id)
        reply_subject = (
            original.subject if original.subject.startswith("Re:") else f"Re: {original.subject}"
        )

        if not params.confirm:
            return {
                "status": "preview",
                "sent": False,
                "original_message": {
                    "id": original.id,
                    "thread_id": original.thread_id,
                    "subject": original.subject,
                    "from": original.from_,
                    "date": original.date,
                },
                "reply": {
                    "to": original.from_,
                    "cc": params.cc,
                    "subject": reply_subject,
                    "body": params.body,
                    "content_type": params.content_type,
                },
                "warning": "Reply NOT sent. Set confirm to true to actually send this reply.",
            }

        result = await self.gmail.reply_to_email(
            original.from_,
            original.subject,
            params.body,
            original.thread_id,
            original.id,
            content_type=params.content_type,
            cc=params.cc,
        )
        logger.info("Sent reply %s to message %s", result.id, params.message_id)
        return {
            "status": "sent",
            "sent": True,
            "message_id": result.id,
            "thread_id": result.thread_id,
            "original_message_id": params.message_id,
            "to": original.from_,
            "cc": params.cc,
            "subject": reply_subject,
            "label_ids": result.label_ids,
        }

    async def _create_draft(self, params: CreateDraftInput) -> dict[str, Any]:
        draft = await self.gmail.create_draft(
            params.to,
            params.subject,
            params.body,
            content_type=params.content_type,
            cc=params.cc,
            bcc=params.bcc,
        )
        return {
            "status": "created",
            "draft_id": draft.id,
            "message_id": draft.message_id,
            "thread_id": draft.thread_id,
            "to": params.to,
            "subject": params.subject,
        }

    async def _list_labels(self, params: NoInput) -> dict[str, Any]:
        labels = await self.gmail.list_labels()
        return {
            "count": len(labels),
            "system_labels": [_dump(label) for label in labels if label.type == "system"],
            "user_labels": [_dump(label) for label in labels if label.type == "user"],
        }

    async def _get_label(self, params: LabelIdInput) -> dict[str, Any]:
        return _dump(await self.gmail.get_label(params.label_id))

    async def _create_label(self, params: CreateLabelInput) -> dict[str, Any]:
        label = await self.gmail.create_label(
            params.name,
            message_list_visibility=params.message_list_visibility,
            label_list_visibility=params.label_list_visibility,
            background_color=params.background_color,
            text_color=params.text_color,
        )
        return {"status": "created", **_dump(label)}

    async def _update_label(self, params: UpdateLabelInput) -> dict[str, Any]:
        label = await self.gmail.update_label(
            params.label_id,
            name=params.name,
            message_list_visibility=params.message_list_visibility,
            label_list_visibility=params.label_list_visibility,
            background_color=params.background_color,
            text_color=params.text_color,
        )
        return {"status": "updated", **_dump(label)}

    async def _delete_label(self, params: DeleteLabelInput) -> dict[str, Any]:
        await self.gmail.delete_label(params.label_id)
        return {"label_id": params.label_id, "deleted": True}

    # =========================================================================
    # Calendar
    # =========================================================================

    async def _list_calendars(self, params: ListCalendarsInput) -> dict[str, Any]:
        calendars = await self.calendar.list_calendars(show_hidden=params.show_hidden)
        return {
            "count": len(calendars),
            "calendars": [_dump(calendar) for calendar in calendars],
        }

    async def _list_events(self, params: ListEventsInput) -> dict[str, Any]:
        events = await self.calendar.list_events(
            calendar_id=params.calendar_id,
            time_min=params.time_min,
            time_max=params.time_max,
            max_results=params.max_results,
            query=params.query,
            single_events=params.single_events,
            order_by=params.order_by,
        )
        return {
            "calendar_id": params.calendar_id,
            "count": len(events),
            "events": [_dump(event) for event in events],
        }

    async def _get_event(self, params: GetEventInput) -> dict[str, Any]:
        return _dump(await self.calendar.get_event(params.calendar_id, params.event_id))

    async def _create_event(self, params: CreateEventInput) -> dict[str, Any]:
        if not params.confirm:
            return {
                "error": "Confirmation required. Set confirm to true to create the event.",
            }

        event = await self.calendar.create_event(
            params.calendar_id,
            params.summary,
            params.start,
            params.end,
            description=params.description,
            location=params.location,
            attendees=params.attendees,
            timezone=params.timezone,
            recurrence=params.recurrence,
            add_meet=params.add_meet,
        )
        return {"status": "created", **_dump(event)}

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


def create_server(config: EnvConfig) -> GmcpServer:
    """Build a server wired to an authenticated session.

    Args:
        config: Environment configuration.

    Returns:
        Server ready to run.

    Raises:
        CredentialLoadError: If the credential file cannot be loaded.
        TokenMissingError: If no token has been stored yet.
    """
    session = create_authenticated_session(config.credentials_path, config.token_path)
    transport = AuthorizedTransport(session)
    return GmcpServer(GmailClient(transport), CalendarClient(transport), transport=transport)


def main() -> None:
    """Entry point for the gmcp MCP server."""
    config = get_env_config()
    configure_logging(config.log_level)
    logger.info("Starting %s", SERVER_NAME)
    server = create_server(config)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
