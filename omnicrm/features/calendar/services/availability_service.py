"""
Availability calculation for a tenant's calendar.

Loads busy intervals for the search window from the calendar_events table
and hands them to compute_free_slots.
"""

from omnicrm.core.errors import StoreError
from omnicrm.db.helpers import DatabaseError
from omnicrm.features.calendar.domain.availability import (
    compute_free_slots,
    validate_availability_query,
)
from omnicrm.features.calendar.domain.models import AvailabilityQuery, TimeSlot, ensure_utc
from omnicrm.features.calendar.repository.calendar_event_repository import (
    CalendarEventRepository,
)
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AvailabilityCalculator:
    """Computes open slots of a fixed duration from existing calendar events."""

    def __init__(self, repository=CalendarEventRepository):
        self.repository = repository

    async def find_availability(self, user_id: str, query: AvailabilityQuery) -> list[TimeSlot]:
        """
        Find free slots of query.duration_minutes within the query window.

        Args:
            user_id: Tenant whose calendar is checked
            query: Window, slot length and optional step between candidates

        Returns:
            Free slots ordered by start time; empty when the window is empty

        Raises:
            ValidationError: duration or step out of range, or too many candidates
            StoreError: busy intervals could not be loaded
        """
        validate_availability_query(query)

        start = ensure_utc(query.start_date)
        end = ensure_utc(query.end_date)
        if start >= end:
            return []

        try:
            busy = await self.repository.get_busy_intervals(user_id, start, end)
        except DatabaseError as e:
            logger.error("Failed to load busy intervals", user_id=user_id, error=str(e))
            raise StoreError(
                str(e), operation="find_availability", recoverable=e.recoverable
            ) from e

        slots = compute_free_slots(query, busy)

        logger.debug(
            "Availability computed",
            user_id=user_id,
            busy_count=len(busy),
            slot_count=len(slots),
            duration_minutes=query.duration_minutes,
        )
        return slots


availability_calculator = AvailabilityCalculator()
