from datetime import UTC, datetime

import pytest

from omnicrm.core.errors import StoreError, ValidationError
from omnicrm.db.helpers import DatabaseError
from omnicrm.features.calendar.domain import AvailabilityQuery, BusyInterval
from omnicrm.features.calendar.services.availability_service import AvailabilityCalculator

DAY_START = datetime(2025, 1, 20, tzinfo=UTC)
DAY_END = datetime(2025, 1, 21, tzinfo=UTC)


@pytest.mark.asyncio
async def test_full_day_scenario(make_calendar_repository):
    repository = make_calendar_repository(
        [
            BusyInterval(
                start=datetime(2025, 1, 20, 10, tzinfo=UTC),
                end=datetime(2025, 1, 20, 11, tzinfo=UTC),
            )
        ]
    )
    calculator = AvailabilityCalculator(repository=repository)

    slots = await calculator.find_availability(
        "user-123",
        AvailabilityQuery(start_date=DAY_START, end_date=DAY_END, duration_minutes=60),
    )

    assert len(slots) == 23
    assert datetime(2025, 1, 20, 10, tzinfo=UTC) not in {s.start_time for s in slots}
    assert repository.requests == [("user-123", DAY_START, DAY_END)]


@pytest.mark.asyncio
async def test_naive_window_is_queried_in_utc(make_calendar_repository):
    repository = make_calendar_repository()
    calculator = AvailabilityCalculator(repository=repository)

    await calculator.find_availability(
        "user-123",
        AvailabilityQuery(
            start_date=datetime(2025, 1, 20, 9),
            end_date=datetime(2025, 1, 20, 10),
            duration_minutes=30,
        ),
    )

    _, start, end = repository.requests[0]
    assert start.tzinfo is UTC
    assert end == datetime(2025, 1, 20, 10, tzinfo=UTC)


@pytest.mark.asyncio
async def test_empty_window_skips_store(make_calendar_repository):
    repository = make_calendar_repository()
    calculator = AvailabilityCalculator(repository=repository)

    slots = await calculator.find_availability(
        "user-123",
        AvailabilityQuery(start_date=DAY_END, end_date=DAY_START, duration_minutes=60),
    )

    assert slots == []
    assert repository.requests == []


@pytest.mark.asyncio
async def test_invalid_duration_skips_store(make_calendar_repository):
    repository = make_calendar_repository()
    calculator = AvailabilityCalculator(repository=repository)

    with pytest.raises(ValidationError):
        await calculator.find_availability(
            "user-123",
            AvailabilityQuery(start_date=DAY_START, end_date=DAY_END, duration_minutes=0),
        )

    assert repository.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("recoverable", [True, False])
async def test_store_failure_is_wrapped(make_calendar_repository, recoverable):
    repository = make_calendar_repository(
        error=DatabaseError("Query failed", operation="fetch_all", recoverable=recoverable)
    )
    calculator = AvailabilityCalculator(repository=repository)

    with pytest.raises(StoreError) as exc_info:
        await calculator.find_availability(
            "user-123",
            AvailabilityQuery(start_date=DAY_START, end_date=DAY_END, duration_minutes=60),
        )

    assert exc_info.value.operation == "find_availability"
    assert exc_info.value.recoverable is recoverable
