"""Tests for registration service functionality"""

import uuid

import pytest

from yurushiri.errors import EventFullError, EventNotFoundError, RegistrationValidationError
from yurushiri.services.registration_service import RegistrationInput


def test_parse_valid_payload():
    data = RegistrationInput.parse(
        {
            "name": " 山田 ",
            "ageGroup": "sixtiesPlus",
            "occupation": "designer",
            "discovery": "eventSite",
            "other": "",
        }
    )

    assert data.name == "山田"
    assert data.age_group.value == "sixtiesPlus"
    assert data.other is None


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {"name": "", "ageGroup": "twenties", "occupation": "engineer", "discovery": "sns"},
        {"name": "a", "occupation": "engineer", "discovery": "sns"},
        {"name": "a", "ageGroup": "seventies", "occupation": "engineer", "discovery": "sns"},
    ],
)
def test_parse_invalid_payload(payload):
    with pytest.raises(RegistrationValidationError):
        RegistrationInput.parse(payload)


def test_submit_creates_registration(
    make_event, registration_service, registration_input
):
    event = make_event()

    updated = registration_service.submit_registration(
        str(event.id), "user-1", registration_input(other="よろしくお願いします")
    )

    registration = registration_service.get_registration(event.id, "user-1")
    assert registration.name == "山田太郎"
    assert registration.age_group == "twenties"
    assert registration.other == "よろしくお願いします"
    assert updated.current_attendees == 1


def test_resubmission_updates_in_place(
    make_event, registration_service, registration_input
):
    event = make_event()
    registration_service.submit_registration(event.id, "user-1", registration_input())

    updated = registration_service.submit_registration(
        event.id, "user-1", registration_input(name="山田花子", ageGroup="thirties")
    )

    registrations = registration_service.list_registrations(event.id)
    assert len(registrations) == 1
    assert registrations[0].name == "山田花子"
    assert registrations[0].age_group == "thirties"
    assert updated.current_attendees == 1


def test_full_event_rejects_new_applicants(
    make_event, registration_service, registration_input
):
    event = make_event(max_attendees=1)
    registration_service.submit_registration(event.id, "user-1", registration_input())

    with pytest.raises(EventFullError):
        registration_service.submit_registration(event.id, "user-2", registration_input())

    # The existing applicant can still edit their answers
    updated = registration_service.submit_registration(
        event.id, "user-1", registration_input(name="変更後")
    )
    assert updated.current_attendees == 1
    assert registration_service.count_registrations(event.id) == 1


def test_unknown_event(registration_service, registration_input):
    with pytest.raises(EventNotFoundError):
        registration_service.submit_registration(
            uuid.uuid4(), "user-1", registration_input()
        )
    with pytest.raises(EventNotFoundError):
        registration_service.submit_registration("bad-id", "user-1", registration_input())


def test_count_and_list(make_event, registration_service, registration_input):
    first = make_event(title="first")
    second = make_event(title="second")
    registration_service.submit_registration(first.id, "user-1", registration_input())
    registration_service.submit_registration(first.id, "user-2", registration_input())
    registration_service.submit_registration(second.id, "user-1", registration_input())

    assert registration_service.count_registrations(first.id) == 2
    assert registration_service.count_registrations("bad-id") == 0
    assert len(registration_service.list_registrations()) == 3
    assert len(registration_service.list_registrations(second.id)) == 1


def test_sync_event_attendance_repairs_stale_count(
    _db_session, make_event, registration_service, registration_input
):
    event = make_event()
    registration_service.submit_registration(event.id, "user-1", registration_input())
    event.current_attendees = 7
    _db_session.add(event)
    _db_session.commit()

    synced = registration_service.sync_event_attendance(event.id)

    assert synced.current_attendees == 1


def test_list_registrations_read_failure(
    make_event, registration_service, registration_input, fail_db_reads
):
    event = make_event()
    registration_service.submit_registration(event.id, "user-1", registration_input())
    fail_db_reads()

    assert registration_service.list_registrations() == []
    assert registration_service.list_registrations(event.id) == []


def test_concurrent_insert_falls_back_to_update(
    make_event, registration_service, registration_input, monkeypatch
):
    event = make_event()
    registration_service.submit_registration(event.id, "user-1", registration_input())

    # The lookup misses as if the other request's insert had not landed yet
    real_lookup = registration_service.get_registration
    lookups = []

    def stale_lookup(event_id, user_id):
        lookups.append(user_id)
        if len(lookups) == 1:
            return None
        return real_lookup(event_id, user_id)

    monkeypatch.setattr(registration_service, "get_registration", stale_lookup)

    updated = registration_service.submit_registration(
        event.id, "user-1", registration_input(name="後から送信")
    )

    assert len(lookups) == 2
    assert updated.current_attendees == 1
    registrations = registration_service.list_registrations(event.id)
    assert [r.name for r in registrations] == ["後から送信"]


def test_attendance_matches_registrations_after_stale_writes(
    _db_session, make_event, registration_service, registration_input
):
    event = make_event(max_attendees=10)
    user_ids = [f"user-{i}" for i in range(6)]

    for index, user_id in enumerate(user_ids):
        registration_service.submit_registration(event.id, user_id, registration_input())
        # A slower request lands its older count after this one
        event.current_attendees = max(0, index - 1)
        _db_session.add(event)
        _db_session.commit()
        # Resubmissions must not add to the count
        registration_service.submit_registration(
            event.id, user_ids[0], registration_input(name="再送信")
        )

    refreshed = registration_service.sync_event_attendance(event.id)

    assert refreshed.current_attendees == len(user_ids)
    assert registration_service.count_registrations(event.id) == len(user_ids)
