"""Event Service - Handles event database operations for the organizer screens"""

import logging
import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from yurushiri.backends.storage_client import StorageClient
from yurushiri.errors import EventNotFoundError, StorageError
from yurushiri.models.event import EVENT_CATEGORIES, Event
from yurushiri.models.registration import Registration
from yurushiri.models.views import EventView

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r"^\d{2}:\d{2}$")


class EventInput(BaseModel):
    """Validated event form submission"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    title: str = Field(min_length=1)
    description: str = ""
    date: str
    time: str
    location: str = Field(min_length=1)
    category: str
    max_attendees: int = Field(default=50, ge=1)
    is_public: bool = True
    image_url: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            raise ValueError("date must be YYYY-MM-DD")
        return value

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_RE.match(value):
            raise ValueError("time must be HH:MM")
        hour, minute = (int(part) for part in value.split(":"))
        if hour > 23 or minute > 59:
            raise ValueError("time must be HH:MM")
        return value

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        if value not in EVENT_CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(EVENT_CATEGORIES)}")
        return value

    @field_validator("image_url")
    @classmethod
    def blank_image_url(cls, value: Optional[str]) -> Optional[str]:
        return value or None


def _parse_uuid(event_id) -> Optional[uuid.UUID]:
    if isinstance(event_id, uuid.UUID):
        return event_id
    try:
        return uuid.UUID(str(event_id))
    except ValueError:
        return None


def _start_of(event: EventView) -> Optional[datetime]:
    if not event.date:
        return None
    try:
        return datetime.fromisoformat(f"{event.date}T{event.time or '00:00'}")
    except ValueError:
        return None


def sort_events_by_start_desc(events: list[EventView]) -> list[EventView]:
    """Latest start first, then newest created; undated events go last"""

    def sort_key(event: EventView):
        start = _start_of(event)
        return (start is not None, start or datetime.min, event.created_at or "")

    return sorted(events, key=sort_key, reverse=True)


class EventService:
    """Service for handling event operations"""

    def __init__(self, db_session: Session, storage: Optional[StorageClient] = None):
        self.db = db_session
        self.storage = storage

    def list_events(self, public_only: bool = False) -> list[Event]:
        """
        List events, most recent first.

        Args:
            public_only: Only return events flagged public

        Returns:
            Events ordered by date, time and creation time (all descending),
            or an empty list when the database cannot be read
        """
        try:
            statement = select(Event)
            if public_only:
                statement = statement.where(Event.is_public == True)  # noqa: E712
            statement = statement.order_by(
                col(Event.date).desc(),
                col(Event.time).desc().nulls_last(),
                col(Event.created_at).desc(),
            )
            return list(self.db.exec(statement).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error listing events: {e}")
            return []

    def get_event(self, event_id) -> Optional[Event]:
        """
        Get an event by id for display.

        Returns:
            The event, or None for malformed ids, missing events and
            database read failures
        """
        try:
            return self._load_event(event_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error loading event {event_id}: {e}")
            return None

    def _load_event(self, event_id) -> Optional[Event]:
        parsed = _parse_uuid(event_id)
        if parsed is None:
            return None
        return self.db.get(Event, parsed)

    def create_event(self, data: EventInput, image_url: Optional[str] = None) -> Event:
        """Insert a new event with no attendees"""
        event = Event(
            title=data.title,
            description=data.description,
            date=data.date,
            time=data.time,
            location=data.location,
            category=data.category,
            max_attendees=data.max_attendees,
            current_attendees=0,
            is_public=data.is_public,
            image_url=image_url or data.image_url,
        )
        try:
            self.db.add(event)
            self.db.commit()
            self.db.refresh(event)
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Event created successfully: {event.id}")
        return event

    def update_event(self, event_id, data: EventInput) -> Event:
        """
        Overwrite the editable fields of an event.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        event = self._load_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)

        event.title = data.title
        event.description = data.description
        event.date = data.date
        event.time = data.time
        event.location = data.location
        event.category = data.category
        event.max_attendees = data.max_attendees
        event.is_public = data.is_public
        event.image_url = data.image_url

        try:
            self.db.add(event)
            self.db.commit()
            self.db.refresh(event)
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Event updated successfully: {event.id}")
        return event

    async def delete_event(self, event_id, access_token: Optional[str] = None) -> None:
        """
        Delete an event, its registrations and its stored cover image.

        Image removal is best effort: a storage failure is logged only.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        event = self._load_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)

        image_url = event.image_url
        try:
            self.db.execute(
                delete(Registration).where(col(Registration.event_id) == event.id)
            )
            self.db.delete(event)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Event deleted: {event_id}")

        if self.storage is None:
            return
        path = self.storage.path_from_public_url(image_url)
        if not path:
            return
        try:
            await self.storage.remove([path], access_token=access_token)
        except StorageError as e:
            logger.warning(f"Failed to remove cover image {path} for event {event_id}: {e}")
