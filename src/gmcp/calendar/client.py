"""Google Calendar API client."""

import logging
import uuid
from typing import Any, Literal
from urllib.parse import quote

import httpx

from gmcp.calendar.mapper import is_all_day_date, parse_calendar, parse_event
from gmcp.calendar.models import CalendarEvent, CalendarInfo
from gmcp.constants import CALENDAR_API_BASE
from gmcp.errors import ProviderApiError
from gmcp.transport import AuthorizedTransport

logger = logging.getLogger(__name__)


def _calendar_url(calendar_id: str) -> str:
    # Group calendar ids contain '#'
    return f"{CALENDAR_API_BASE}/calendars/{quote(calendar_id, safe='@')}"


def _event_time(value: str, all_day: bool, timezone: str | None) -> dict[str, Any]:
    time: dict[str, Any] = {"date": value} if all_day else {"dateTime": value}
    if timezone:
        time["timeZone"] = timezone
    return time


class CalendarClient:
    """Calendar operations for the authenticated user.

    Attributes:
        transport: Authorized transport used for every request.
    """

    def __init__(self, transport: AuthorizedTransport) -> None:
        self.transport = transport

    async def _request(
        self,
        operation: str,
        failure: str,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            return await self.transport.request(method, url, params=params, json_data=json_data)
        except httpx.HTTPStatusError as e:
            raise ProviderApiError(
                "calendar",
                operation,
                f"{failure}: {e}",
                cause=e,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderApiError("calendar", operation, f"{failure}: {e}", cause=e) from e

    async def list_calendars(self, show_hidden: bool = False) -> list[CalendarInfo]:
        """List the calendars on the user's calendar list.

        Args:
            show_hidden: Include calendars hidden from the UI.

        Returns:
            Calendar entries in the order the API returned them.
        """
        raw = await self._request(
            "list_calendars",
            "Failed to list calendars",
            "GET",
            f"{CALENDAR_API_BASE}/users/me/calendarList",
            params={"showHidden": show_hidden},
        )
        return [parse_calendar(entry) for entry in raw.get("items") or []]

    async def list_events(
        self,
        calendar_id: str = "primary",
        time_min: str | None = None,
        time_max: str | None = None,
        max_results: int = 10,
        query: str | None = None,
        single_events: bool = True,
        order_by: Literal["startTime", "updated"] = "startTime",
    ) -> list[CalendarEvent]:
        """List events from a calendar.

        Args:
            calendar_id: Calendar ID; ``primary`` is the user's main calendar.
            time_min: Lower bound (RFC 3339) on event end time.
            time_max: Upper bound (RFC 3339) on event start time.
            max_results: Maximum number of events.
            query: Free text search.
            single_events: Expand recurring events into instances.
            order_by: Sort order. Only sent when ``single_events`` is set,
                since the API rejects ``startTime`` ordering otherwise.

        Returns:
            Events in API order.
        """
        raw = await self._request(
            "list_events",
            f"Failed to list events from calendar {calendar_id}",
            "GET",
            f"{_calendar_url(calendar_id)}/events",
            params={
                "timeMin": time_min,
                "timeMax": time_max,
                "maxResults": max_results,
                "q": query,
                "singleEvents": single_events,
                "orderBy": order_by if single_events else None,
            },
        )
        return [parse_event(event) for event in raw.get("items") or []]

    async def get_event(self, calendar_id: str, event_id: str) -> CalendarEvent:
        raw = await self._request(
            "get_event",
            f"Failed to get event {event_id} from calendar {calendar_id}",
            "GET",
            f"{_calendar_url(calendar_id)}/events/{quote(event_id, safe='')}",
        )
        return parse_event(raw)

    async def create_event(
        self,
        calendar_id: str,
        summary: str,
        start: str,
        end: str,
        description: str | None = None,
        location: str | None = None,
        attendees: list[str] | None = None,
        timezone: str | None = None,
        recurrence: list[str] | None = None,
        add_meet: bool = False,
    ) -> CalendarEvent:
        """Create an event.

        A ``start`` in ``YYYY-MM-DD`` form makes an all-day event; both ends
        are then sent as dates rather than date-times.

        Args:
            calendar_id: Target calendar.
            summary: Event title.
            start: Start (RFC 3339, or YYYY-MM-DD for all-day).
            end: End, in the same form as ``start``.
            description: Optional description.
            location: Optional location.
            attendees: Attendee email addresses.
            timezone: IANA time zone (e.g. ``Europe/Berlin``).
            recurrence: RRULE/EXRULE/RDATE lines.
            add_meet: Attach a newly created Google Meet conference.

        Returns:
            The created event.
        """
        all_day = is_all_day_date(start)

        event_body: dict[str, Any] = {
            "summary": summary,
            "start": _event_time(start, all_day, timezone),
            "end": _event_time(end, all_day, timezone),
        }
        if description:
            event_body["description"] = description
        if location:
            event_body["location"] = location
        if attendees:
            event_body["attendees"] = [{"email": email} for email in attendees]
        if recurrence:
            event_body["recurrence"] = recurrence
        if add_meet:
            event_body["conferenceData"] = {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }

        raw = await self._request(
            "create_event",
            f"Failed to create event {summary!r} in calendar {calendar_id}",
            "POST",
            f"{_calendar_url(calendar_id)}/events",
            params={"conferenceDataVersion": 1 if add_meet else None},
            json_data=event_body,
        )
        logger.info("Created event %s in calendar %s", raw.get("id"), calendar_id)
        return parse_event(raw)
