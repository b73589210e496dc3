# omnicrm/models/api/calendar_request.py
"""
Calendar API request models.
Used by routes for input validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from omnicrm.features.calendar.domain import EventStatus
from omnicrm.features.calendar.domain.availability import MAX_SLOT_MINUTES


class AvailabilityRequest(BaseModel):
    """Request for finding free slots in a window."""

    start_date: datetime = Field(..., description="Window start (inclusive)")
    end_date: datetime = Field(..., description="Window end (exclusive)")
    duration_minutes: int = Field(
        ..., gt=0, le=MAX_SLOT_MINUTES, description="Length of each slot in minutes"
    )
    step_minutes: int | None = Field(
        default=None,
        gt=0,
        le=MAX_SLOT_MINUTES,
        description="Minutes between candidate slot starts (default: duration)",
    )


class CreateEventRequest(BaseModel):
    """Request for creating a calendar event."""

    title: str = Field(..., min_length=1, max_length=200, description="Event title")
    start_time: datetime = Field(..., description="Event start time")
    end_time: datetime = Field(..., description="Event end time")
    description: str | None = Field(default=None, max_length=1000, description="Event description")
    location: str | None = Field(default=None, max_length=500, description="Event location")
    status: EventStatus = Field(default=EventStatus.CONFIRMED, description="Event status")
    event_type: str | None = Field(default=None, max_length=50, description="Event type")
    attendees: list[str] = Field(default_factory=list, description="Attendee names or emails")


class UpdateEventRequest(BaseModel):
    """Request for updating a calendar event."""

    title: str | None = Field(None, min_length=1, max_length=200, description="New event title")
    start_time: datetime | None = Field(None, description="New start time")
    end_time: datetime | None = Field(None, description="New end time")
    description: str | None = Field(None, max_length=1000, description="New description")
    location: str | None = Field(None, max_length=500, description="New location")
    status: EventStatus | None = Field(None, description="New status")
    event_type: str | None = Field(None, max_length=50, description="New event type")
    attendees: list[str] | None = Field(None, description="Replacement attendee list")
