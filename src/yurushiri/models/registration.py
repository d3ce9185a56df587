"""SQLModel Registration model"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, ForeignKey, UniqueConstraint
from sqlalchemy import Uuid as SAUuid
from sqlmodel import Field, SQLModel


class Registration(SQLModel, table=True):
    """A user's application to attend an event"""

    __tablename__ = "event_registrations"
    __table_args__ = (
        # Upsert key: one registration per (event, user)
        UniqueConstraint("event_id", "user_id", name="uq_event_registrations_event_user"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    event_id: uuid.UUID = Field(
        sa_column=Column(
            SAUuid(),
            ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    user_id: str = Field(index=True)  # auth service user id
    name: Optional[str] = None
    age_group: Optional[str] = None
    occupation: Optional[str] = None
    discovery: Optional[str] = None
    other: Optional[str] = None
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
