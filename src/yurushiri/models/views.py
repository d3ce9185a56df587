"""Read-only view models handed to templates and JSON responses"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ViewModel(BaseModel):
    """Base for view models: camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class EventView(ViewModel):
    id: str
    title: str
    description: str = ""
    date: str = ""
    time: str = ""
    location: str = ""
    category: str = ""
    max_attendees: int = 0
    current_attendees: int = 0
    is_public: bool = False
    created_at: str = ""
    image_url: Optional[str] = None

    @property
    def remaining_seats(self) -> int:
        return max(self.max_attendees - self.current_attendees, 0)

    @property
    def is_full(self) -> bool:
        return self.remaining_seats <= 0

    @property
    def attendance_percentage(self) -> float:
        if self.max_attendees <= 0:
            return 0.0
        return min(self.current_attendees / self.max_attendees * 100, 100.0)


class RegistrationView(ViewModel):
    id: str
    event_id: str
    event_title: str = "不明なイベント"
    event_date: Optional[str] = None
    user_id: str = ""
    name: Optional[str] = None
    age_group: Optional[str] = None
    occupation: Optional[str] = None
    discovery: Optional[str] = None
    other: Optional[str] = None
    created_at: Optional[str] = None


class EventSummary(ViewModel):
    event_id: str
    event_title: str
    event_date: Optional[str] = None
    total: int = 0
    age_counts: dict[str, int] = Field(default_factory=dict)
    occupation_counts: dict[str, int] = Field(default_factory=dict)
    discovery_counts: dict[str, int] = Field(default_factory=dict)
    last_registered_at: Optional[str] = None


class ParticipantView(ViewModel):
    """Another registrant of an event who shares past events with the viewer"""

    id: str
    name: Optional[str] = None
    age_group: Optional[str] = None
    occupation: Optional[str] = None
    discovery: Optional[str] = None
    other: Optional[str] = None
    shared_event_titles: list[str] = Field(default_factory=list)


class AiFormFieldMapping(ViewModel):
    """Partial event draft extracted from an AI answer; never persisted"""

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    max_attendees: Optional[int] = None
    is_public: Optional[bool] = None
    image_url: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def merge(self, other: "AiFormFieldMapping") -> "AiFormFieldMapping":
        """Return a copy where fields set on `other` win"""
        return self.model_copy(update=other.model_dump(exclude_none=True))

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
