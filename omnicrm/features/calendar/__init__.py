"""
Calendar feature package.

Calendar event storage and free-slot search, co-located by layer
(domain, repository, services, api).
"""

# Re-export the primary building blocks for easy access.
from .domain.models import AvailabilityQuery, CalendarEvent, TimeSlot  # noqa: F401
from .services.availability_service import (  # noqa: F401
    AvailabilityCalculator,
    availability_calculator,
)
from .api.router import router as calendar_router  # noqa: F401
