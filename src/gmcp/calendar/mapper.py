"""Map raw Calendar API objects to normalized records."""

import re
from typing import Any

from gmcp.calendar.models import (
    CalendarEvent,
    CalendarInfo,
    EventAttendee,
    EventDateTime,
    EventPerson,
)

NO_TITLE = "(No title)"

ALL_DAY_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_all_day_date(value: str) -> bool:
    """Return True for a bare ``YYYY-MM-DD`` date (no time component)."""
    return bool(ALL_DAY_DATE_PATTERN.match(value))


def parse_calendar(entry: dict[str, Any]) -> CalendarInfo:
    """Convert a calendarList entry to a CalendarInfo."""
    return CalendarInfo(
        id=entry.get("id") or "",
        summary=entry.get("summary") or "",
        description=entry.get("description"),
        time_zone=entry.get("timeZone"),
        primary=entry.get("primary"),
        background_color=entry.get("backgroundColor"),
        foreground_color=entry.get("foregroundColor"),
        access_role=entry.get("accessRole"),
    )


def _parse_date_time(value: dict[str, Any] | None) -> EventDateTime:
    value = value or {}
    return EventDateTime(
        date=value.get("date"),
        date_time=value.get("dateTime"),
        time_zone=value.get("timeZone"),
    )


def _parse_attendee(attendee: dict[str, Any]) -> EventAttendee:
    return EventAttendee(
        email=attendee.get("email") or "",
        display_name=attendee.get("displayName"),
        response_status=attendee.get("responseStatus"),
        optional=attendee.get("optional"),
        organizer=attendee.get("organizer"),
        is_self=attendee.get("self"),
    )


def _parse_person(person: dict[str, Any] | None) -> EventPerson | None:
    if not person:
        return None
    return EventPerson(email=person.get("email") or "", display_name=person.get("displayName"))


def parse_event(event: dict[str, Any]) -> CalendarEvent:
    """Convert a Calendar event resource to a CalendarEvent.

    Events without a summary are titled ``"(No title)"``.
    """
    attendees = event.get("attendees")
    return CalendarEvent(
        id=event.get("id") or "",
        summary=event.get("summary") or NO_TITLE,
        description=event.get("description"),
        location=event.get("location"),
        start=_parse_date_time(event.get("start")),
        end=_parse_date_time(event.get("end")),
        attendees=[_parse_attendee(a) for a in attendees] if attendees is not None else None,
        creator=_parse_person(event.get("creator")),
        organizer=_parse_person(event.get("organizer")),
        status=event.get("status"),
        html_link=event.get("htmlLink"),
        hangout_link=event.get("hangoutLink"),
        recurrence=event.get("recurrence"),
        recurring_event_id=event.get("recurringEventId"),
        created=event.get("created"),
        updated=event.get("updated"),
    )
