"""Tests for participant analytics"""

import uuid

from yurushiri.models.event import Event
from yurushiri.models.labels import AGE_GROUP_LABELS
from yurushiri.models.registration import Registration
from yurushiri.models.views import RegistrationView
from yurushiri.services.analytics_service import (
    UNANSWERED,
    build_participant_rows,
    format_distribution,
    summarize_registrations,
    top_counts,
)


def _row(event_id, event_date=None, title="イベント", created_at=None, **answers):
    return RegistrationView(
        id=str(uuid.uuid4()),
        event_id=event_id,
        event_title=title,
        event_date=event_date,
        created_at=created_at,
        **answers,
    )


def test_counts_per_event():
    rows = [
        _row("a", "2025-03-01", age_group="twenties", occupation="engineer", created_at="2025-02-01T10:00:00"),
        _row("a", "2025-03-01", age_group="twenties", discovery="sns", created_at="2025-02-03T10:00:00"),
        _row("a", "2025-03-01", age_group="thirties", created_at="2025-02-02T10:00:00"),
    ]

    [summary] = summarize_registrations(rows)

    assert summary.total == 3
    assert summary.age_counts == {"twenties": 2, "thirties": 1}
    assert summary.occupation_counts == {"engineer": 1}
    assert summary.discovery_counts == {"sns": 1}
    assert summary.last_registered_at == "2025-02-03T10:00:00"


def test_dated_events_newest_first():
    rows = [_row("old", "2025-01-01"), _row("new", "2025-06-01")]

    summaries = summarize_registrations(rows)

    assert [s.event_id for s in summaries] == ["new", "old"]


def test_undated_events_by_total():
    rows = [_row("small"), _row("big"), _row("big")]

    summaries = summarize_registrations(rows)

    assert [s.event_id for s in summaries] == ["big", "small"]


def test_top_counts_skips_zero_and_limits():
    counts = {"a": 1, "b": 0, "c": 5, "d": 3, "e": 2}

    assert top_counts(counts) == [("c", 5), ("d", 3), ("e", 2)]
    assert top_counts(counts, limit=1) == [("c", 5)]


def test_format_distribution():
    counts = {"twenties": 2, "thirties": 1}

    assert format_distribution(counts, AGE_GROUP_LABELS) == "20代 2人 / 30代 1人"
    assert format_distribution({}, AGE_GROUP_LABELS) == UNANSWERED


def test_build_participant_rows_marks_orphans():
    event = Event(title="交流会", date="2025-05-01")
    rows = build_participant_rows(
        [event],
        [
            Registration(event_id=event.id, user_id="u1"),
            Registration(event_id=uuid.uuid4(), user_id="u2"),
        ],
    )

    assert rows[0].event_title == "交流会"
    assert rows[0].event_date == "2025-05-01"
    assert rows[1].event_title == "不明なイベント"
