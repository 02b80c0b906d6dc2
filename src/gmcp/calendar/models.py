"""Normalized Calendar records returned by CalendarClient."""

from typing import Literal

from pydantic import BaseModel


class CalendarInfo(BaseModel):
    id: str
    summary: str
    description: str | None = None
    time_zone: str | None = None
    primary: bool | None = None
    background_color: str | None = None
    foreground_color: str | None = None
    access_role: str | None = None


class EventDateTime(BaseModel):
    """Start or end of an event.

    All-day events carry ``date`` (YYYY-MM-DD); timed events carry
    ``date_time`` (RFC 3339).
    """

    date: str | None = None
    date_time: str | None = None
    time_zone: str | None = None


class EventAttendee(BaseModel):
    email: str
    display_name: str | None = None
    response_status: Literal["needsAction", "declined", "tentative", "accepted"] | None = None
    optional: bool | None = None
    organizer: bool | None = None
    is_self: bool | None = None


class EventPerson(BaseModel):
    email: str
    display_name: str | None = None


class CalendarEvent(BaseModel):
    id: str
    summary: str
    description: str | None = None
    location: str | None = None
    start: EventDateTime
    end: EventDateTime
    attendees: list[EventAttendee] | None = None
    creator: EventPerson | None = None
    organizer: EventPerson | None = None
    status: Literal["confirmed", "tentative", "cancelled"] | None = None
    html_link: str | None = None
    hangout_link: str | None = None
    recurrence: list[str] | None = None
    recurring_event_id: str | None = None
    created: str | None = None
    updated: str | None = None
