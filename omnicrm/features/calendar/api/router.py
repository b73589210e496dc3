"""
Calendar routes.

Event CRUD over CalendarEventRepository plus the availability search.
The tenant is the JWT subject.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from omnicrm.auth.verify import current_user_id
from omnicrm.core.errors import StoreError, ValidationError
from omnicrm.db.helpers import DatabaseError
from omnicrm.features.calendar.domain import (
    AvailabilityQuery,
    CalendarEvent,
    CalendarEventCreate,
    CalendarEventFilters,
    CalendarEventUpdate,
    EventStatus,
)
from omnicrm.features.calendar.repository.calendar_event_repository import (
    CalendarEventRepository,
    clamp_limit,
)
from omnicrm.features.calendar.services.availability_service import availability_calculator
from omnicrm.infrastructure.observability.logging import get_logger
from omnicrm.models.api.calendar_request import (
    AvailabilityRequest,
    CreateEventRequest,
    UpdateEventRequest,
)
from omnicrm.models.api.calendar_response import (
    AvailabilityResponse,
    CalendarEventResponse,
    EventsListResponse,
    TimeSlotResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _http_error(e: Exception, user_id: str, action: str) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))

    logger.error(
        "Calendar request failed",
        user_id=user_id,
        action=action,
        error=str(e),
        error_type=type(e).__name__,
    )
    if isinstance(e, (StoreError, DatabaseError)) and e.recoverable:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Calendar store temporarily unavailable",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}"
    )


def _to_response(event: CalendarEvent) -> CalendarEventResponse:
    return CalendarEventResponse(
        id=event.id,
        title=event.title,
        start_time=event.start_time,
        end_time=event.end_time,
        description=event.description,
        location=event.location,
        status=event.status.value,
        event_type=event.event_type,
        attendees=event.attendees,
        duration_minutes=event.duration_minutes(),
        created_at=event.created_at,
        updated_at=event.updated_at,
    )


@router.post("/events", response_model=CalendarEventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(payload: CreateEventRequest, user_id: str = Depends(current_user_id)):
    data = CalendarEventCreate(**payload.model_dump())
    try:
        event = await CalendarEventRepository.create_event(user_id, data)
    except (ValidationError, DatabaseError) as e:
        raise _http_error(e, user_id, "create event") from e

    return _to_response(event)


@router.get("/events", response_model=EventsListResponse)
async def list_events(
    user_id: str = Depends(current_user_id),
    start_date: datetime | None = Query(default=None, description="Events starting at or after"),
    end_date: datetime | None = Query(default=None, description="Events starting at or before"),
    event_type: str | None = Query(default=None, description="Filter by event type"),
    event_status: EventStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum events to return (1-100)"),
):
    filters = CalendarEventFilters(
        start_date=start_date,
        end_date=end_date,
        event_type=event_type,
        status=event_status,
        limit=limit,
    )
    try:
        events = await CalendarEventRepository.list_events(user_id, filters)
    except DatabaseError as e:
        raise _http_error(e, user_id, "list events") from e

    return EventsListResponse(
        events=[_to_response(event) for event in events],
        total_count=len(events),
        limit=clamp_limit(limit),
    )


@router.get("/events/{event_id}", response_model=CalendarEventResponse)
async def get_event(event_id: str, user_id: str = Depends(current_user_id)):
    try:
        event = await CalendarEventRepository.get_event(user_id, event_id)
    except DatabaseError as e:
        raise _http_error(e, user_id, "get event") from e

    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return _to_response(event)


@router.patch("/events/{event_id}", response_model=CalendarEventResponse)
async def update_event(
    event_id: str, payload: UpdateEventRequest, user_id: str = Depends(current_user_id)
):
    updates = CalendarEventUpdate(**payload.model_dump(exclude_unset=True))
    try:
        event = await CalendarEventRepository.update_event(user_id, event_id, updates)
    except (ValidationError, DatabaseError) as e:
        raise _http_error(e, user_id, "update event") from e

    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return _to_response(event)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: str, user_id: str = Depends(current_user_id)):
    try:
        deleted = await CalendarEventRepository.delete_event(user_id, event_id)
    except DatabaseError as e:
        raise _http_error(e, user_id, "delete event") from e

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/availability", response_model=AvailabilityResponse)
async def find_availability(payload: AvailabilityRequest, user_id: str = Depends(current_user_id)):
    """Free slots of the requested length inside [start_date, end_date)."""
    query = AvailabilityQuery(
        start_date=payload.start_date,
        end_date=payload.end_date,
        duration_minutes=payload.duration_minutes,
        step_minutes=payload.step_minutes,
    )
    try:
        slots = await availability_calculator.find_availability(user_id, query)
    except (ValidationError, StoreError) as e:
        raise _http_error(e, user_id, "find availability") from e

    return AvailabilityResponse(
        slots=[TimeSlotResponse(**slot.to_dict()) for slot in slots],
        total_slots=len(slots),
        start_date=payload.start_date,
        end_date=payload.end_date,
        duration_minutes=payload.duration_minutes,
    )
