"""Map raw database rows to the view models used by pages and JSON responses.

Rows may come from SQLModel objects or plain mappings (e.g. a ``RowMapping``
from a raw select). Null or missing columns are defaulted, never raised on.
"""

from datetime import datetime
from typing import Any, Mapping, Optional

from yurushiri.models.event import Event
from yurushiri.models.registration import Registration
from yurushiri.models.views import EventView, RegistrationView

UNKNOWN_EVENT_TITLE = "不明なイベント"


def _get(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def map_event_row(row: Event | Mapping[str, Any]) -> EventView:
    """Build an EventView, substituting "" / 0 / False for nulls"""
    image_url = _get(row, "image_url")
    return EventView(
        id=_text(_get(row, "id")),
        title=_text(_get(row, "title")),
        description=_text(_get(row, "description")),
        date=_text(_get(row, "date")),
        time=_text(_get(row, "time")),
        location=_text(_get(row, "location")),
        category=_text(_get(row, "category")),
        max_attendees=_int(_get(row, "max_attendees")),
        current_attendees=_int(_get(row, "current_attendees")),
        is_public=bool(_get(row, "is_public") or False),
        created_at=_timestamp(_get(row, "created_at")) or "",
        image_url=image_url or None,
    )


def map_registration_row(
    row: Registration | Mapping[str, Any],
    event: Event | Mapping[str, Any] | None = None,
) -> RegistrationView:
    """Build a RegistrationView, joined with its event's title/date when given"""
    return RegistrationView(
        id=_text(_get(row, "id")),
        event_id=_text(_get(row, "event_id")),
        event_title=_text(_get(event, "title")) if event is not None else UNKNOWN_EVENT_TITLE,
        event_date=(_get(event, "date") or None) if event is not None else None,
        user_id=_text(_get(row, "user_id")),
        name=_get(row, "name"),
        age_group=_get(row, "age_group") or None,
        occupation=_get(row, "occupation") or None,
        discovery=_get(row, "discovery") or None,
        other=_get(row, "other"),
        created_at=_timestamp(_get(row, "created_at")),
    )
