"""Registration service for handling event applications"""

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from yurushiri.errors import EventFullError, EventNotFoundError, RegistrationValidationError
from yurushiri.models.event import Event
from yurushiri.models.labels import AgeGroup, DiscoverySource, OccupationCategory
from yurushiri.models.registration import Registration

logger = logging.getLogger(__name__)


class RegistrationInput(BaseModel):
    """Survey answers submitted with an application"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    name: str = Field(min_length=1)
    age_group: AgeGroup
    occupation: OccupationCategory
    discovery: DiscoverySource
    other: Optional[str] = None

    @field_validator("other")
    @classmethod
    def blank_other(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @classmethod
    def parse(cls, payload: Any) -> "RegistrationInput":
        """
        Validate a raw request body.

        Raises:
            RegistrationValidationError: If a required answer is missing or invalid
        """
        if not isinstance(payload, dict):
            raise RegistrationValidationError()
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            logger.info(f"Rejected registration payload: {e.error_count()} errors")
            raise RegistrationValidationError() from e


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class RegistrationService:
    """Service for managing event registrations"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_registration(self, event_id, user_id: str) -> Optional[Registration]:
        """Get the registration of a user for an event"""
        parsed = _parse_uuid(event_id)
        if parsed is None:
            return None
        stmt = select(Registration).where(
            col(Registration.event_id) == parsed,
            Registration.user_id == user_id,
        )
        return self.db.exec(stmt).first()

    def list_registrations(self, event_id=None) -> list[Registration]:
        """
        Get registrations, newest first, optionally for one event.

        Returns an empty list when the database cannot be read.
        """
        stmt = select(Registration)
        if event_id is not None:
            parsed = _parse_uuid(event_id)
            if parsed is None:
                return []
            stmt = stmt.where(col(Registration.event_id) == parsed)
        stmt = stmt.order_by(col(Registration.created_at).desc())
        try:
            return list(self.db.exec(stmt).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error listing registrations: {e}")
            return []

    def count_registrations(self, event_id) -> int:
        """Get the total number of registrations for an event"""
        parsed = _parse_uuid(event_id)
        if parsed is None:
            return 0
        stmt = select(func.count()).select_from(Registration).where(
            col(Registration.event_id) == parsed
        )
        return int(self.db.exec(stmt).one())

    def submit_registration(
        self, event_id, user_id: str, data: RegistrationInput
    ) -> Event:
        """
        Create or update a user's registration and resync the attendee count.

        Args:
            event_id: UUID of the event
            user_id: Auth service user id of the applicant
            data: Validated survey answers

        Returns:
            Event: The event with its refreshed attendee count

        Raises:
            EventNotFoundError: If the event does not exist
            EventFullError: If the event is full and the user holds no registration
        """
        parsed = _parse_uuid(event_id)
        event = self.db.get(Event, parsed) if parsed else None
        if event is None:
            raise EventNotFoundError(event_id)

        existing = self.get_registration(event.id, user_id)
        current = event.current_attendees or 0
        if existing is None and current >= event.max_attendees:
            raise EventFullError()

        try:
            if existing is None:
                self._insert(event.id, user_id, data)
            else:
                self._update(existing, data)
        except IntegrityError:
            # Another request inserted the same (event, user) first
            self.db.rollback()
            existing = self.get_registration(event.id, user_id)
            if existing is None:
                raise
            self._update(existing, data)
        except SQLAlchemyError:
            self.db.rollback()
            raise

        return self.sync_event_attendance(event.id)

    def _insert(self, event_id: uuid.UUID, user_id: str, data: RegistrationInput) -> None:
        registration = Registration(
            event_id=event_id,
            user_id=user_id,
            name=data.name,
            age_group=data.age_group.value,
            occupation=data.occupation.value,
            discovery=data.discovery.value,
            other=data.other,
        )
        self.db.add(registration)
        self.db.commit()
        logger.info(f"Created registration {registration.id} for event {event_id}")

    def _update(self, registration: Registration, data: RegistrationInput) -> None:
        registration.name = data.name
        registration.age_group = data.age_group.value
        registration.occupation = data.occupation.value
        registration.discovery = data.discovery.value
        registration.other = data.other
        self.db.add(registration)
        self.db.commit()
        logger.info(
            f"Updated registration {registration.id} for event {registration.event_id}"
        )

    def sync_event_attendance(self, event_id) -> Event:
        """
        Write the registration count into events.current_attendees.

        This is an unguarded read-modify-write; concurrent submissions may
        leave a stale count until the next write.
        """
        event = self.db.get(Event, _parse_uuid(event_id))
        if event is None:
            raise EventNotFoundError(event_id)

        event.current_attendees = self.count_registrations(event.id)
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event
