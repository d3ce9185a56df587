"""Participant service - who else is coming that the viewer has met before"""

import logging
import uuid
from collections import defaultdict

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from yurushiri.models.event import Event
from yurushiri.models.registration import Registration
from yurushiri.models.views import ParticipantView

logger = logging.getLogger(__name__)


class ParticipantService:
    """Read-only participant projections for the event detail page"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def shared_participants(self, event_id, viewer_id: str) -> list[ParticipantView]:
        """
        Other registrants of an event who also attended another event with the viewer.

        Args:
            event_id: UUID of the event being viewed
            viewer_id: Auth service user id of the viewer

        Returns:
            ParticipantView list, each with the titles of the shared events.
            Empty when the viewer has not registered for the event, or when
            the database cannot be read.
        """
        try:
            event_uuid = event_id if isinstance(event_id, uuid.UUID) else uuid.UUID(str(event_id))
        except ValueError:
            return []

        try:
            return self._shared_participants(event_uuid, viewer_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error loading shared participants for event {event_id}: {e}")
            return []

    def _shared_participants(
        self, event_id: uuid.UUID, viewer_id: str
    ) -> list[ParticipantView]:
        viewer_event_ids = set(
            self.db.exec(
                select(Registration.event_id).where(Registration.user_id == viewer_id)
            ).all()
        )
        if event_id not in viewer_event_ids:
            return []

        other_event_ids = viewer_event_ids - {event_id}
        if not other_event_ids:
            return []

        attendees = list(
            self.db.exec(
                select(Registration).where(
                    col(Registration.event_id) == event_id,
                    Registration.user_id != viewer_id,
                )
            ).all()
        )
        if not attendees:
            return []

        attendee_ids = {registration.user_id for registration in attendees}
        shared_rows = self.db.exec(
            select(Registration.user_id, Event.title)
            .join(Event, col(Event.id) == col(Registration.event_id))
            .where(
                col(Registration.user_id).in_(attendee_ids),
                col(Registration.event_id).in_(other_event_ids),
            )
            .order_by(col(Event.date).desc())
        ).all()

        shared_titles: dict[str, list[str]] = defaultdict(list)
        for user_id, title in shared_rows:
            shared_titles[user_id].append(title)

        return [
            ParticipantView(
                id=str(registration.id),
                name=registration.name,
                age_group=registration.age_group,
                occupation=registration.occupation,
                discovery=registration.discovery,
                other=registration.other,
                shared_event_titles=shared_titles[registration.user_id],
            )
            for registration in attendees
            if shared_titles.get(registration.user_id)
        ]
