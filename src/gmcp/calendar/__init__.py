"""Google Calendar access: API client and event mapping."""

from gmcp.calendar.client import CalendarClient
from gmcp.calendar.models import (
    CalendarEvent,
    CalendarInfo,
    EventAttendee,
    EventDateTime,
    EventPerson,
)

__all__ = [
    "CalendarClient",
    "CalendarEvent",
    "CalendarInfo",
    "EventAttendee",
    "EventDateTime",
    "EventPerson",
]
