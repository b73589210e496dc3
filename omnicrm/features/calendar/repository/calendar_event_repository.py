"""
Persistence layer for calendar events.

Owns the calendar_events table: CRUD scoped by user_id, filtered listing
and the busy-interval query used for availability.
"""

import json
from datetime import datetime

from omnicrm.config import settings
from omnicrm.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from omnicrm.features.calendar.domain.models import (
    BusyInterval,
    CalendarEvent,
    CalendarEventCreate,
    CalendarEventFilters,
    CalendarEventUpdate,
    EventStatus,
    validate_time_range,
)
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_UPDATABLE_COLUMNS = (
    "title",
    "start_time",
    "end_time",
    "description",
    "location",
    "status",
    "event_type",
    "attendees",
)


def clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return settings.CALENDAR_LIST_DEFAULT_LIMIT
    return min(limit, settings.CALENDAR_LIST_MAX_LIMIT)


def _column_value(column: str, value):
    if column == "status":
        return EventStatus(value).value
    if column == "attendees":
        return json.dumps(list(value))
    return value


class CalendarEventRepository:
    """Persistence helpers for calendar events."""

    SELECT_COLUMNS = """
        id, user_id, title, start_time, end_time, description, location,
        status, event_type, attendees, created_at, updated_at
    """

    @classmethod
    def _row_to_event(cls, row: dict | None) -> CalendarEvent | None:
        if not row:
            return None

        return CalendarEvent(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row["title"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            description=row.get("description"),
            location=row.get("location"),
            status=EventStatus(row.get("status") or EventStatus.CONFIRMED.value),
            event_type=row.get("event_type"),
            attendees=list(row.get("attendees") or []),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @classmethod
    async def create_event(cls, user_id: str, data: CalendarEventCreate) -> CalendarEvent:
        validate_time_range(data.start_time, data.end_time)

        query = f"""
            INSERT INTO calendar_events (
                user_id, title, start_time, end_time, description,
                location, status, event_type, attendees
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                user_id,
                data.title,
                data.start_time,
                data.end_time,
                data.description,
                data.location,
                _column_value("status", data.status),
                data.event_type,
                _column_value("attendees", data.attendees),
            ),
        )
        event = cls._row_to_event(row)

        logger.info("Calendar event created", user_id=user_id, event_id=event.id)
        return event

    @classmethod
    @with_db_retry()
    async def get_event(cls, user_id: str, event_id: str) -> CalendarEvent | None:
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM calendar_events
            WHERE user_id = %s AND id = %s
        """
        return cls._row_to_event(await fetch_one(query, (user_id, event_id)))

    @classmethod
    async def update_event(
        cls, user_id: str, event_id: str, updates: CalendarEventUpdate
    ) -> CalendarEvent | None:
        """
        Apply a partial update.

        The stored row is read first so a change to only one end of the
        time range is still validated against the other end.

        Returns:
            The updated event, or None if it does not exist for this user
        """
        existing = await cls.get_event(user_id, event_id)
        if not existing:
            return None

        changes = updates.changes()
        if not changes:
            return existing

        validate_time_range(
            changes.get("start_time", existing.start_time),
            changes.get("end_time", existing.end_time),
        )

        columns = [column for column in _UPDATABLE_COLUMNS if column in changes]
        assignments = ", ".join(f"{column} = %s" for column in columns)
        params = [_column_value(column, changes[column]) for column in columns]

        query = f"""
            UPDATE calendar_events
            SET {assignments}, updated_at = NOW()
            WHERE user_id = %s AND id = %s
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (*params, user_id, event_id))

        logger.info(
            "Calendar event updated",
            user_id=user_id,
            event_id=event_id,
            fields=sorted(changes),
        )
        return cls._row_to_event(row)

    @classmethod
    async def delete_event(cls, user_id: str, event_id: str) -> bool:
        query = """
            DELETE FROM calendar_events
            WHERE user_id = %s AND id = %s
        """
        deleted = await execute_query(query, (user_id, event_id)) > 0
        if deleted:
            logger.info("Calendar event deleted", user_id=user_id, event_id=event_id)
        return deleted

    @classmethod
    @with_db_retry()
    async def list_events(
        cls, user_id: str, filters: CalendarEventFilters | None = None
    ) -> list[CalendarEvent]:
        filters = filters or CalendarEventFilters()
        conditions = ["user_id = %s"]
        params: list = [user_id]

        if filters.start_date:
            conditions.append("start_time >= %s")
            params.append(filters.start_date)
        if filters.end_date:
            conditions.append("start_time <= %s")
            params.append(filters.end_date)
        if filters.event_type:
            conditions.append("event_type = %s")
            params.append(filters.event_type)
        if filters.status:
            conditions.append("status = %s")
            params.append(EventStatus(filters.status).value)

        params.append(clamp_limit(filters.limit))
        where_clause = " AND ".join(conditions)

        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM calendar_events
            WHERE {where_clause}
            ORDER BY start_time ASC, id ASC
            LIMIT %s
        """
        rows = await fetch_all(query, tuple(params))
        return [cls._row_to_event(row) for row in rows]

    @classmethod
    @with_db_retry()
    async def get_busy_intervals(
        cls, user_id: str, start: datetime, end: datetime
    ) -> list[BusyInterval]:
        """Non-cancelled events whose [start_time, end_time) overlaps [start, end)."""
        query = """
            SELECT start_time, end_time
            FROM calendar_events
            WHERE user_id = %s
              AND status <> %s
              AND start_time < %s
              AND end_time > %s
            ORDER BY start_time ASC
        """
        rows = await fetch_all(query, (user_id, EventStatus.CANCELLED.value, end, start))
        return [BusyInterval(start=row["start_time"], end=row["end_time"]) for row in rows]
