"""Database models for Yurushiri"""

from yurushiri.models.event import Event
from yurushiri.models.registration import Registration

__all__ = [
    "Event",
    "Registration",
]
