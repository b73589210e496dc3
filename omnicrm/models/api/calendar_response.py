# omnicrm/models/api/calendar_response.py
"""
Calendar API response models.
Used by routes for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class CalendarEventResponse(BaseModel):
    """Response model for calendar events."""

    id: str = Field(..., description="Event ID")
    title: str = Field(..., description="Event title")
    start_time: datetime = Field(..., description="Event start time")
    end_time: datetime = Field(..., description="Event end time")
    description: str | None = Field(None, description="Event description")
    location: str | None = Field(None, description="Event location")
    status: str = Field(..., description="Event status")
    event_type: str | None = Field(None, description="Event type")
    attendees: list[str] = Field(default_factory=list, description="Attendees")
    duration_minutes: int = Field(..., description="Event duration in minutes")
    created_at: datetime | None = Field(None, description="When event was created")
    updated_at: datetime | None = Field(None, description="When event was last updated")


class EventsListResponse(BaseModel):
    """Response for listing events."""

    events: list[CalendarEventResponse] = Field(..., description="List of events")
    total_count: int = Field(..., description="Number of events returned")
    limit: int = Field(..., description="Row limit applied to the query")


class TimeSlotResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    duration_minutes: int


class AvailabilityResponse(BaseModel):
    """Response for availability search."""

    slots: list[TimeSlotResponse] = Field(..., description="Free slots in ascending order")
    total_slots: int = Field(..., description="Number of free slots")
    start_date: datetime = Field(..., description="Window start")
    end_date: datetime = Field(..., description="Window end")
    duration_minutes: int = Field(..., description="Requested slot length")
