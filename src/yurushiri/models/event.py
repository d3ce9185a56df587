"""SQLModel Event model"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

# Fixed category vocabulary offered by the event form
EVENT_CATEGORIES = [
    "テクノロジー",
    "デザイン",
    "ビジネス",
    "教育",
    "エンターテイメント",
    "スポーツ",
    "アート",
    "その他",
]

CATCH_ALL_CATEGORY = "その他"


class Event(SQLModel, table=True):
    """Community event"""

    __tablename__ = "events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    description: Optional[str] = None
    date: str = Field(index=True)  # ISO date, "YYYY-MM-DD"
    time: Optional[str] = None  # "HH:MM", 24h
    location: Optional[str] = None
    category: Optional[str] = None
    max_attendees: int = Field(default=50)
    # Recomputed from event_registrations after each registration write
    current_attendees: Optional[int] = Field(default=0)
    is_public: bool = Field(default=True)
    image_url: Optional[str] = None
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
