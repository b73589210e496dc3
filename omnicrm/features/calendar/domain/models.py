"""
Calendar domain models.

CalendarEvent mirrors a calendar_events row. BusyInterval and TimeSlot are
the reduced shapes used when computing availability.
"""

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime, timedelta
from enum import Enum

from omnicrm.core.errors import ValidationError


class EventStatus(str, Enum):
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def validate_time_range(start_time: datetime, end_time: datetime) -> None:
    if ensure_utc(end_time) <= ensure_utc(start_time):
        raise ValidationError("Event end time must be after start time", field="end_time")


@dataclass(slots=True)
class CalendarEvent:
    """Represents a calendar_events row."""

    id: str
    user_id: str
    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    location: str | None = None
    status: EventStatus = EventStatus.CONFIRMED
    event_type: str | None = None
    attendees: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def is_busy(self) -> bool:
        return self.status != EventStatus.CANCELLED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "description": self.description,
            "location": self.location,
            "status": self.status.value,
            "event_type": self.event_type,
            "attendees": list(self.attendees),
            "duration_minutes": self.duration_minutes(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(slots=True)
class CalendarEventCreate:
    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    location: str | None = None
    status: EventStatus = EventStatus.CONFIRMED
    event_type: str | None = None
    attendees: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CalendarEventUpdate:
    """Partial update; None means "leave unchanged"."""

    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    description: str | None = None
    location: str | None = None
    status: EventStatus | None = None
    event_type: str | None = None
    attendees: list[str] | None = None

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(slots=True)
class CalendarEventFilters:
    start_date: datetime | None = None
    end_date: datetime | None = None
    event_type: str | None = None
    status: EventStatus | None = None
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class BusyInterval:
    """Half-open [start, end) span that blocks availability."""

    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


@dataclass(frozen=True, slots=True)
class TimeSlot:
    start_time: datetime
    end_time: datetime
    duration_minutes: int

    @classmethod
    def starting_at(cls, start_time: datetime, duration_minutes: int) -> "TimeSlot":
        return cls(
            start_time=start_time,
            end_time=start_time + timedelta(minutes=duration_minutes),
            duration_minutes=duration_minutes,
        )

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_minutes": self.duration_minutes,
        }


@dataclass(slots=True)
class AvailabilityQuery:
    start_date: datetime
    end_date: datetime
    duration_minutes: int
    step_minutes: int | None = None
