"""Participant analytics for the organizer dashboard, recomputed on every load"""

import functools
from typing import Iterable, Mapping, Optional

from yurushiri.models.event import Event
from yurushiri.models.registration import Registration
from yurushiri.models.views import EventSummary, RegistrationView
from yurushiri.services.event_mapping import map_registration_row

UNANSWERED = "未回答"

# A registration joined with its event's title and date
ParticipantRow = RegistrationView


def build_participant_rows(
    events: Iterable[Event], registrations: Iterable[Registration]
) -> list[ParticipantRow]:
    """Join registrations with their events; orphans show as an unknown event"""
    events_by_id = {str(event.id): event for event in events}
    return [
        map_registration_row(registration, events_by_id.get(str(registration.event_id)))
        for registration in registrations
    ]


def _increment(counts: dict[str, int], key: Optional[str]) -> None:
    if key:
        counts[key] = counts.get(key, 0) + 1


def _compare_summaries(a: EventSummary, b: EventSummary) -> int:
    if a.event_date and b.event_date:
        if a.event_date == b.event_date:
            return 0
        return -1 if a.event_date > b.event_date else 1
    return b.total - a.total


def summarize_registrations(rows: Iterable[ParticipantRow]) -> list[EventSummary]:
    """
    Aggregate participant rows per event.

    Summaries are ordered by event date (newest first) when both events have
    a date, otherwise by total registrations (largest first).
    """
    summaries: dict[str, EventSummary] = {}

    for row in rows:
        summary = summaries.get(row.event_id)
        if summary is None:
            summary = EventSummary(
                event_id=row.event_id,
                event_title=row.event_title,
                event_date=row.event_date,
            )
            summaries[row.event_id] = summary

        summary.total += 1
        _increment(summary.age_counts, row.age_group)
        _increment(summary.occupation_counts, row.occupation)
        _increment(summary.discovery_counts, row.discovery)

        if row.created_at and (
            not summary.last_registered_at or row.created_at > summary.last_registered_at
        ):
            summary.last_registered_at = row.created_at

    return sorted(summaries.values(), key=functools.cmp_to_key(_compare_summaries))


def top_counts(counts: Mapping[str, int], limit: int = 3) -> list[tuple[str, int]]:
    """The `limit` largest non-zero counts, largest first"""
    entries = [(key, count) for key, count in counts.items() if count > 0]
    entries.sort(key=lambda entry: entry[1], reverse=True)
    return entries[:limit]


def format_distribution(
    counts: Mapping[str, int], labels: Mapping[str, str], limit: int = 3
) -> str:
    """Render e.g. "20代 2人 / 30代 1人", or 未回答 when nothing was counted"""
    entries = top_counts(counts, limit)
    if not entries:
        return UNANSWERED
    return " / ".join(f"{labels.get(key, key)} {count}人" for key, count in entries)
