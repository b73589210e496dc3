"""
Free-slot computation over busy intervals.

Pure functions, no store access, so the slot rules can be exercised
directly with in-memory intervals.
"""

from collections.abc import Iterable
from datetime import timedelta

from omnicrm.core.errors import ValidationError
from omnicrm.features.calendar.domain.models import (
    AvailabilityQuery,
    BusyInterval,
    TimeSlot,
    ensure_utc,
)

# One week
MAX_SLOT_MINUTES = 7 * 24 * 60
MAX_CANDIDATE_SLOTS = 20_000


def validate_availability_query(query: AvailabilityQuery) -> None:
    """Reject queries that cannot be walked; runs before any store access."""
    for field, minutes in (
        ("duration_minutes", query.duration_minutes),
        ("step_minutes", query.step_minutes),
    ):
        if minutes is None:
            continue
        if minutes <= 0:
            raise ValidationError(f"{field} must be positive", field=field)
        if minutes > MAX_SLOT_MINUTES:
            raise ValidationError(f"{field} must be at most {MAX_SLOT_MINUTES}", field=field)

    if candidate_count(query) > MAX_CANDIDATE_SLOTS:
        raise ValidationError(
            f"Window holds more than {MAX_CANDIDATE_SLOTS} candidate slots; "
            "narrow the window or increase step_minutes",
            field="end_date",
        )


def candidate_count(query: AvailabilityQuery) -> int:
    """Number of candidate slots the walk would test; 0 for an empty window."""
    window = ensure_utc(query.end_date) - ensure_utc(query.start_date)
    duration = timedelta(minutes=query.duration_minutes)
    if window < duration:
        return 0
    step = timedelta(minutes=query.step_minutes or query.duration_minutes)
    return (window - duration) // step + 1


def merge_busy_intervals(intervals: Iterable[BusyInterval]) -> list[BusyInterval]:
    """Sort by start and coalesce overlapping or touching intervals."""
    merged: list[BusyInterval] = []

    for interval in sorted(intervals, key=lambda i: (i.start, i.end)):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = BusyInterval(start=last.start, end=interval.end)
            continue
        merged.append(interval)

    return merged


def compute_free_slots(
    query: AvailabilityQuery, busy_intervals: Iterable[BusyInterval]
) -> list[TimeSlot]:
    """
    Walk the window in fixed-length candidate slots and keep the free ones.

    Candidates start at query.start_date and advance by step_minutes
    (defaults to duration_minutes) until a slot would end past
    query.end_date. A slot that only touches a busy interval is free.

    Returns:
        Free slots in ascending start order

    Raises:
        ValidationError: bad duration or step, or too many candidates
    """
    validate_availability_query(query)

    window_start = ensure_utc(query.start_date)
    window_end = ensure_utc(query.end_date)
    if window_start >= window_end:
        return []

    duration = timedelta(minutes=query.duration_minutes)
    step = timedelta(minutes=query.step_minutes or query.duration_minutes)
    busy = merge_busy_intervals(
        BusyInterval(start=ensure_utc(i.start), end=ensure_utc(i.end)) for i in busy_intervals
    )

    slots: list[TimeSlot] = []
    busy_index = 0
    slot_start = window_start

    # Compare remaining time rather than adding past window_end, which may sit at datetime.max
    while window_end - slot_start >= duration:
        slot_end = slot_start + duration

        # Busy intervals ending at or before this slot can't block later slots either
        while busy_index < len(busy) and busy[busy_index].end <= slot_start:
            busy_index += 1

        blocked = busy_index < len(busy) and busy[busy_index].overlaps(slot_start, slot_end)
        if not blocked:
            slots.append(TimeSlot.starting_at(slot_start, query.duration_minutes))

        if window_end - slot_start < step + duration:
            break
        slot_start += step

    return slots
