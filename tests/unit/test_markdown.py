"""Unit tests for markdown rendering of tool results."""

import pytest

from gmcp.server.markdown import (
    MARKDOWN_RENDERERS,
    format_bytes,
    render_attachments,
    render_created_event,
    render_event,
    render_label,
    render_labels,
    render_modify_labels,
    render_search,
    render_thread,
)
from gmcp.server.tools import TOOL_PREFIX, TOOL_SPECS


def _email(message_id: str, **fields) -> dict:
    email = {
        "id": message_id,
        "thread_id": f"thread_{message_id}",
        "subject": "Status",
        "from": "alice@example.com",
        "to": "bob@example.com",
        "date": "Mon, 10 Feb 2025 09:00:00 -0500",
        "snippet": "All good",
    }
    email.update(fields)
    return email


@pytest.mark.unit
class TestFormatBytes:
    """Tests for format_bytes()."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [(0, "0 B"), (512, "512 B"), (2048, "2 KB"), (1536, "1.5 KB"), (5 * 1024**2, "5 MB")],
    )
    def test_should_pick_unit(self, size: int, expected: str) -> None:
        assert format_bytes(size) == expected


@pytest.mark.unit
class TestRenderSearch:
    """Tests for render_search()."""

    def test_should_report_empty_result(self) -> None:
        text = render_search(
            {"query": "from:nobody", "total_estimate": 0, "count": 0, "has_more": False, "emails": []}
        )

        assert text.startswith('# Gmail Search Results: "from:nobody"\n')
        assert "No emails found matching the query." in text
        assert "page_token" not in text

    def test_should_omit_body_block_without_body(self) -> None:
        text = render_search(
            {
                "query": "x",
                "total_estimate": 1,
                "count": 1,
                "has_more": False,
                "emails": [_email("m1")],
            }
        )

        assert "**Snippet**: All good" in text
        assert "**Body**" not in text
        assert "**Labels**" not in text


@pytest.mark.unit
class TestRenderMessages:
    """Tests for thread, attachment and label-change rendering."""

    def test_should_number_thread_messages(self) -> None:
        text = render_thread(
            {
                "thread_id": "t1",
                "message_count": 2,
                "messages": [_email("m1", body="First"), _email("m2")],
            }
        )

        assert text.startswith("# Thread: Status\n")
        assert "**Thread ID:** t1 | **Messages:** 2" in text
        assert "## Message 1" in text
        assert "### Body\n\nFirst" in text
        assert "## Message 2" in text
        assert "### Snippet\n\nAll good" in text

    def test_should_list_attachments_with_sizes(self) -> None:
        text = render_attachments(
            {
                "message_id": "m1",
                "count": 1,
                "attachments": [
                    {
                        "filename": "report.pdf",
                        "mime_type": "application/pdf",
                        "size": 2048,
                        "attachment_id": "att_1",
                    }
                ],
            }
        )

        assert "## 1. report.pdf" in text
        assert "- **Size:** 2 KB" in text
        assert "- **Attachment ID:** att_1" in text

    def test_should_note_missing_attachments(self) -> None:
        text = render_attachments({"message_id": "m1", "count": 0, "attachments": []})
        assert "*No attachments found in this email.*" in text

    def test_should_note_message_without_labels(self) -> None:
        text = render_modify_labels(
            {
                "message_id": "m1",
                "modified": True,
                "added_labels": [],
                "removed_labels": ["INBOX"],
                "current_labels": [],
            }
        )

        assert "## Added Labels" not in text
        assert "## Removed Labels\n\n- INBOX" in text
        assert "*No labels on this message*" in text


@pytest.mark.unit
class TestRenderLabels:
    """Tests for label rendering."""

    def test_should_group_labels_by_type(self) -> None:
        text = render_labels(
            {
                "count": 2,
                "system_labels": [
                    {"id": "INBOX", "name": "INBOX", "type": "system", "messages_total": 10, "messages_unread": 3}
                ],
                "user_labels": [{"id": "Label_1", "name": "Work", "type": "user"}],
            }
        )

        assert "## System Labels\n\n- **INBOX** (INBOX) - 10 total, 3 unread" in text
        assert "## Custom Labels\n\n- **Work** (Label_1) - 0 total, 0 unread" in text

    def test_should_report_no_labels(self) -> None:
        text = render_labels({"count": 0, "system_labels": [], "user_labels": []})
        assert "*No labels found*" in text

    def test_should_title_created_label(self) -> None:
        text = render_label(
            {
                "status": "created",
                "id": "Label_9",
                "name": "Receipts",
                "type": "user",
                "color": {"text_color": "#000000", "background_color": "#ffffff"},
            }
        )

        assert text.startswith("# Label Created Successfully\n")
        assert "- **Type:** Custom Label" in text
        assert "## Color" in text
        assert "Total Messages" not in text


@pytest.mark.unit
class TestRenderEvent:
    """Tests for calendar event rendering."""

    def test_should_render_created_event(self) -> None:
        text = render_created_event(
            {
                "status": "confirmed",
                "id": "ev9",
                "summary": "Offsite",
                "start": {"date": "2025-03-14"},
                "end": {"date": "2025-03-15"},
                "attendees": [{"email": "carol@example.com"}],
            }
        )

        assert text.startswith("✅ Event created successfully!\n")
        assert "# Offsite" in text
        assert "- **Start:** 2025-03-14" in text
        assert "- carol@example.com (needsAction)" in text

    def test_should_render_event_with_time_zone(self) -> None:
        text = render_event(
            {
                "id": "ev1",
                "summary": "Standup",
                "start": {"date_time": "2025-03-01T09:00:00-05:00", "time_zone": "America/New_York"},
                "end": {"date_time": "2025-03-01T09:15:00-05:00"},
                "location": "Room 4",
            }
        )

        assert text.startswith("# Standup\n")
        assert "- **Start:** 2025-03-01T09:00:00-05:00 (America/New_York)" in text
        assert "- **Location:** Room 4" in text
        assert "created successfully" not in text


@pytest.mark.unit
class TestRendererCatalogue:
    """Every tool has a markdown renderer."""

    def test_should_cover_every_tool(self) -> None:
        names = {spec.full_name.removeprefix(TOOL_PREFIX) for spec in TOOL_SPECS}
        assert names == set(MARKDOWN_RENDERERS)
