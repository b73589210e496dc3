"""
Domain subpackage for calendar events and availability.
"""

from .models import (
    AvailabilityQuery,
    BusyInterval,
    CalendarEvent,
    CalendarEventCreate,
    CalendarEventFilters,
    CalendarEventUpdate,
    EventStatus,
    TimeSlot,
)

__all__ = [
    "AvailabilityQuery",
    "BusyInterval",
    "CalendarEvent",
    "CalendarEventCreate",
    "CalendarEventFilters",
    "CalendarEventUpdate",
    "EventStatus",
    "TimeSlot",
]
