"""Markdown rendering of tool results.

Every tool accepts ``output_format``; ``markdown`` (the default) is rendered
here from the same result dictionary that ``json`` output serializes, so both
formats always carry the same facts.
"""

from collections.abc import Callable
from typing import Any

Renderer = Callable[[dict[str, Any]], str]


def _bullets(items: list[str]) -> list[str]:
    return [f"- {item}" for item in items]


def _join(lines: list[str]) -> str:
    return "\n".join(lines).rstrip() + "\n"


def format_bytes(size: int) -> str:
    """Format a byte count as a human-readable size (``2 KB``, ``1.5 MB``)."""
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 2):g} {unit}"
        value /= 1024
    return f"{round(value, 2):g} GB"


def _label_summary(labels: list[str] | None) -> str:
    return ", ".join(labels) if labels else "*No labels on this message*"


# =============================================================================
# Messages
# =============================================================================


def _search_email_lines(email: dict[str, Any]) -> list[str]:
    lines = [f"## {email['subject']}"]
    lines += _bullets(
        [
            f"**From**: {email['from']}",
            f"**To**: {email['to']}",
            f"**Date**: {email['date']}",
            f"**ID**: {email['id']}",
            f"**Thread ID**: {email['thread_id']}",
        ]
    )
    if email.get("labels"):
        lines.append(f"- **Labels**: {', '.join(email['labels'])}")

    lines += ["", f"**Snippet**: {email['snippet']}"]

    if email.get("body"):
        lines += ["", "**Body**:", "```", email["body"], "```"]

    lines += ["", "---", ""]
    return lines


def render_search(result: dict[str, Any]) -> str:
    lines = [
        f'# Gmail Search Results: "{result["query"]}"',
        "",
        f"Found approximately {result['total_estimate']} emails (showing {result['count']})",
        "",
    ]

    if not result["emails"]:
        lines.append("No emails found matching the query.")
        return _join(lines)

    for email in result["emails"]:
        lines += _search_email_lines(email)

    if result["has_more"]:
        lines += [
            "",
            f'**Note**: More results available. Use page_token: "{result["next_page_token"]}" '
            "to fetch the next page.",
        ]
    return _join(lines)


def render_email(email: dict[str, Any]) -> str:
    lines = [f"# {email['subject']}", ""]
    lines += _bullets(
        [
            f"**From:** {email['from']}",
            f"**To:** {email['to']}",
            f"**Date:** {email['date']}",
            f"**Message ID:** {email['id']}",
            f"**Thread ID:** {email['thread_id']}",
        ]
    )
    if email.get("labels"):
        lines += ["", f"**Labels:** {', '.join(email['labels'])}"]

    if email.get("body"):
        lines += ["", "## Body", "", email["body"]]
    else:
        lines += ["", "## Snippet", "", email["snippet"]]
    return _join(lines)


def render_thread(result: dict[str, Any]) -> str:
    messages = result["messages"]
    title = messages[0]["subject"] if messages else "Conversation"
    lines = [
        f"# Thread: {title}",
        "",
        f"**Thread ID:** {result['thread_id']} | **Messages:** {result['message_count']}",
    ]

    for index, message in enumerate(messages, start=1):
        lines += ["", f"## Message {index}", ""]
        lines += _bullets(
            [
                f"**From:** {message['from']}",
                f"**To:** {message['to']}",
                f"**Date:** {message['date']}",
                f"**Message ID:** {message['id']}",
            ]
        )
        if message.get("labels"):
            lines += ["", f"**Labels:** {', '.join(message['labels'])}"]
        if message.get("body"):
            lines += ["", "### Body", "", message["body"]]
        else:
            lines += ["", "### Snippet", "", message["snippet"]]
        if index < len(messages):
            lines += ["", "---"]
    return _join(lines)


def render_attachments(result: dict[str, Any]) -> str:
    lines = [
        "# Email Attachments",
        "",
        f"**Message ID:** {result['message_id']} | **Total Attachments:** {result['count']}",
    ]
    if not result["attachments"]:
        lines += ["", "*No attachments found in this email.*"]
        return _join(lines)

    for index, attachment in enumerate(result["attachments"], start=1):
        lines += ["", f"## {index}. {attachment['filename']}", ""]
        lines += _bullets(
            [
                f"**Type:** {attachment['mime_type']}",
                f"**Size:** {format_bytes(attachment['size'])}",
                f"**Attachment ID:** {attachment['attachment_id']}",
            ]
        )
    return _join(lines)


def render_attachment_data(result: dict[str, Any]) -> str:
    # Raw base64url data only
    return str(result["data"])


def render_modify_labels(result: dict[str, Any]) -> str:
    lines = ["# Label Modification Successful", "", f"**Message ID:** {result['message_id']}"]
    if result["added_labels"]:
        lines += ["", "## Added Labels", ""] + _bullets(result["added_labels"])
    if result["removed_labels"]:
        lines += ["", "## Removed Labels", ""] + _bullets(result["removed_labels"])
    lines += ["", "## Current Labels", "", _label_summary(result["current_labels"])]
    return _join(lines)


def render_batch_modify(result: dict[str, Any]) -> str:
    count = result["modified_count"]
    lines = ["# Batch Label Modification Successful", "", f"**Modified Messages:** {count}"]
    if result["added_labels"]:
        lines += ["", "## Added Labels", ""] + _bullets(result["added_labels"])
    if result["removed_labels"]:
        lines += ["", "## Removed Labels", ""] + _bullets(result["removed_labels"])
    lines += ["", f"All {count} messages have been updated successfully."]
    return _join(lines)


def render_archive(result: dict[str, Any]) -> str:
    lines = [
        "# Email Archived Successfully",
        "",
        f"**Message ID:** {result['message_id']}",
        "",
        "## Current Labels",
        "",
        _label_summary(result["current_labels"]),
        "",
        "The message is no longer in the inbox but remains searchable in All Mail.",
    ]
    return _join(lines)


def render_delete_email(result: dict[str, Any]) -> str:
    lines = [
        "# Email Deleted Successfully",
        "",
        f"Message with ID **{result['message_id']}** has been permanently deleted "
        "from your Gmail account.",
        "",
        "## Important Notes",
        "",
    ]
    lines += _bullets(
        [
            "The message was not moved to Trash and cannot be recovered.",
            "Use archive or the TRASH label for reversible removal.",
        ]
    )
    return _join(lines)


# =============================================================================
# Sending
# =============================================================================


def _recipient_lines(result: dict[str, Any]) -> list[str]:
    items = [f"**To:** {result['to']}"]
    if result.get("cc"):
        items.append(f"**CC:** {result['cc']}")
    if result.get("bcc"):
        items.append(f"**BCC:** {result['bcc']}")
    return items


def render_send(result: dict[str, Any]) -> str:
    if result["status"] == "preview":
        lines = [
            "# Email Preview - NOT SENT",
            "",
            "⚠️ **This email has not been sent yet.** Set `confirm: true` to send.",
            "",
            "## Email Details",
            "",
        ]
        lines += _bullets(
            _recipient_lines(result)
            + [f"**Subject:** {result['subject']}", f"**Content Type:** {result['content_type']}"]
        )
        lines += ["", "## Body", "", result["body"]]
        return _join(lines)

    lines = ["# ✅ Email Sent Successfully", "", "## Message Details", ""]
    lines += _bullets(
        _recipient_lines(result)
        + [
            f"**Subject:** {result['subject']}",
            f"**Message ID:** {result['message_id']}",
            f"**Thread ID:** {result['thread_id']}",
        ]
    )
    lines += ["", "The email has been sent and will appear in your Sent folder."]
    return _join(lines)


def render_reply(result: dict[str, Any]) -> str:
    if result["status"] == "preview":
        original = result["original_message"]
        reply = result["reply"]
        lines = [
            "# Reply Preview - NOT SENT",
            "",
            "⚠️ **This reply has not been sent yet.** Set `confirm: true` to send.",
            "",
            "## Original Message",
            "",
        ]
        lines += _bullets(
            [
                f"**From:** {original['from']}",
                f"**Subject:** {original['subject']}",
                f"**Date:** {original['date']}",
            ]
        )
        lines += ["", "## Your Reply", ""]
        lines += _bullets(
            _recipient_lines(reply)
            + [f"**Subject:** {reply['subject']}", f"**Content Type:** {reply['content_type']}"]
        )
        lines += ["", "## Reply Body", "", reply["body"]]
        return _join(lines)

    lines = ["# ✅ Reply Sent Successfully", "", "## Reply Details", ""]
    lines += _bullets(
        _recipient_lines(result)
        + [
            f"**Subject:** {result['subject']}",
            f"**Message ID:** {result['message_id']}",
            f"**Thread ID:** {result['thread_id']}",
        ]
    )
    lines += ["", "Your reply has been sent and added to the conversation thread."]
    return _join(lines)


def render_draft(result: dict[str, Any]) -> str:
    lines = ["# ✅ Draft Created Successfully", "", "## Draft Details", ""]
    lines += _bullets(
        [
            f"**To:** {result['to']}",
            f"**Subject:** {result['subject']}",
            f"**Draft ID:** {result['draft_id']}",
            f"**Message ID:** {result['message_id']}",
        ]
    )
    lines += [
        "",
        "The draft has been saved and will appear in your Drafts folder. "
        "You can edit and send it later from Gmail.",
    ]
    return _join(lines)


# =============================================================================
# Labels
# =============================================================================


def _label_line(label: dict[str, Any]) -> str:
    return (
        f"**{label['name']}** ({label['id']}) - {label.get('messages_total', 0)} total, "
        f"{label.get('messages_unread', 0)} unread"
    )


def render_labels(result: dict[str, Any]) -> str:
    lines = ["# Gmail Labels"]
    if result["system_labels"]:
        lines += ["", "## System Labels", ""]
        lines += _bullets([_label_line(label) for label in result["system_labels"]])
    if result["user_labels"]:
        lines += ["", "## Custom Labels", ""]
        lines += _bullets([_label_line(label) for label in result["user_labels"]])
    if not result["count"]:
        lines += ["", "*No labels found*"]
    return _join(lines)


def _label_detail_lines(label: dict[str, Any]) -> list[str]:
    lines = ["## Details", ""]
    lines += _bullets(
        [
            f"**Name:** {label['name']}",
            f"**ID:** {label['id']}",
            f"**Type:** {'System Label' if label['type'] == 'system' else 'Custom Label'}",
        ]
    )
    if "messages_total" in label or "messages_unread" in label:
        lines += _bullets(
            [
                f"**Total Messages:** {label.get('messages_total', 0)}",
                f"**Unread Messages:** {label.get('messages_unread', 0)}",
            ]
        )

    visibility = []
    if label.get("message_list_visibility"):
        visibility.append(f"**Message List:** {label['message_list_visibility']}")
    if label.get("label_list_visibility"):
        visibility.append(f"**Label List:** {label['label_list_visibility']}")
    if visibility:
        lines += ["", "## Visibility Settings", ""] + _bullets(visibility)

    color = label.get("color")
    if color:
        lines += ["", "## Color", ""]
        lines += _bullets(
            [
                f"**Text Color:** {color['text_color']}",
                f"**Background Color:** {color['background_color']}",
            ]
        )
    return lines


def render_label(result: dict[str, Any]) -> str:
    titles = {"created": "Label Created Successfully", "updated": "Label Updated Successfully"}
    title = titles.get(result.get("status", ""), f"Label: {result['name']}")
    lines = [f"# {title}", ""] + _label_detail_lines(result)
    if result.get("status") == "created":
        lines += [
            "",
            f"You can now use this label ID ({result['id']}) with other tools "
            "like modify_labels or batch_modify.",
        ]
    return _join(lines)


def render_delete_label(result: dict[str, Any]) -> str:
    lines = [
        "# Label Deleted Successfully",
        "",
        f"Label with ID **{result['label_id']}** has been permanently deleted "
        "from your Gmail account.",
        "",
        "## Important Notes",
        "",
    ]
    lines += _bullets(
        [
            "The label was removed from all messages that had it.",
            "The messages themselves were not deleted.",
        ]
    )
    return _join(lines)


# =============================================================================
# Calendar
# =============================================================================


def render_calendars(result: dict[str, Any]) -> str:
    lines = ["# Calendars", "", f"**Total Calendars:** {result['count']}"]
    for calendar in result["calendars"]:
        title = calendar["summary"] + (" (primary)" if calendar.get("primary") else "")
        items = [f"**ID:** {calendar['id']}"]
        if calendar.get("time_zone"):
            items.append(f"**Time Zone:** {calendar['time_zone']}")
        if calendar.get("access_role"):
            items.append(f"**Access Role:** {calendar['access_role']}")
        if calendar.get("description"):
            items.append(f"**Description:** {calendar['description']}")
        lines += ["", f"## {title}", ""] + _bullets(items)
    return _join(lines)


def _event_time(value: dict[str, Any]) -> str:
    when = value.get("date_time") or value.get("date") or "(not set)"
    if value.get("time_zone"):
        return f"{when} ({value['time_zone']})"
    return when


def _event_lines(event: dict[str, Any], heading: str) -> list[str]:
    items = [
        f"**Start:** {_event_time(event['start'])}",
        f"**End:** {_event_time(event['end'])}",
    ]
    if event.get("location"):
        items.append(f"**Location:** {event['location']}")
    if event.get("status"):
        items.append(f"**Status:** {event['status']}")
    if event.get("organizer"):
        items.append(f"**Organizer:** {event['organizer']['email']}")
    if event.get("hangout_link"):
        items.append(f"**Meet:** {event['hangout_link']}")
    if event.get("html_link"):
        items.append(f"**Link:** {event['html_link']}")
    items.append(f"**Event ID:** {event['id']}")

    lines = [f"{heading} {event['summary']}", ""] + _bullets(items)

    if event.get("description"):
        lines += ["", event["description"]]
    if event.get("attendees"):
        lines += ["", "**Attendees:**", ""]
        lines += _bullets(
            [
                f"{attendee['email']} ({attendee.get('response_status', 'needsAction')})"
                for attendee in event["attendees"]
            ]
        )
    if event.get("recurrence"):
        lines += ["", f"**Recurrence:** {'; '.join(event['recurrence'])}"]
    return lines


def render_events(result: dict[str, Any]) -> str:
    lines = [
        f"# Events: {result['calendar_id']}",
        "",
        f"**Total Events:** {result['count']}",
    ]
    if not result["events"]:
        lines += ["", "*No events found.*"]
        return _join(lines)

    for event in result["events"]:
        lines += [""] + _event_lines(event, "##")
    return _join(lines)


def render_event(result: dict[str, Any]) -> str:
    return _join(_event_lines(result, "#"))


def render_created_event(result: dict[str, Any]) -> str:
    return _join(["✅ Event created successfully!", ""] + _event_lines(result, "#"))


MARKDOWN_RENDERERS: dict[str, Renderer] = {
    "gmail_search_emails": render_search,
    "gmail_get_email": render_email,
    "gmail_get_thread": render_thread,
    "gmail_list_attachments": render_attachments,
    "gmail_get_attachment": render_attachment_data,
    "gmail_modify_labels": render_modify_labels,
    "gmail_batch_modify": render_batch_modify,
    "gmail_archive_email": render_archive,
    "gmail_delete_email": render_delete_email,
    "gmail_send_email": render_send,
    "gmail_reply": render_reply,
    "gmail_create_draft": render_draft,
    "gmail_list_labels": render_labels,
    "gmail_get_label": render_label,
    "gmail_create_label": render_label,
    "gmail_update_label": render_label,
    "gmail_delete_label": render_delete_label,
    "calendar_list_calendars": render_calendars,
    "calendar_list_events": render_events,
    "calendar_get_event": render_event,
    "calendar_create_event": render_created_event,
}
