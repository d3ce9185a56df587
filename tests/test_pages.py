"""Tests for the public event pages and the registration flow"""

import uuid

import httpx


REGISTRATION = {
    "name": "鈴木一郎",
    "ageGroup": "thirties",
    "occupation": "planner",
    "discovery": "friend",
    "other": "",
}


def test_lists_public_events_only(client, make_event):
    make_event(title="公開勉強会", is_public=True)
    make_event(title="社内限定ミートアップ", is_public=False)

    response = client.get("/")

    assert response.status_code == 200
    assert "公開勉強会" in response.text
    assert "社内限定ミートアップ" not in response.text


def test_index_empty(client):
    response = client.get("/")

    assert "公開中のイベントはまだありません。" in response.text


def test_detail_anonymous_view(client, make_event):
    event = make_event(title="デザイン談義", location="東京都渋谷区1-2-3")

    response = client.get(f"/events/{event.id}")

    assert response.status_code == 200
    assert "デザイン談義" in response.text
    assert "2025年3月15日（土）" in response.text
    assert "https://www.google.com/maps/search/" in response.text
    assert "このイベントに申し込むと" in response.text
    assert "AIによるイベント紹介" not in response.text


def test_online_event_has_no_map_link(client, make_event):
    event = make_event(location="オンライン（Zoom）")

    response = client.get(f"/events/{event.id}")

    assert "google.com/maps" not in response.text


def test_detail_not_found(client):
    for event_id in (uuid.uuid4(), "not-a-uuid"):
        response = client.get(f"/events/{event_id}")

        assert response.status_code == 404
        assert "イベントが見つかりません" in response.text


def test_detail_database_failure_shows_not_found(client, make_event, fail_db_reads):
    event = make_event()
    fail_db_reads()

    response = client.get(f"/events/{event.id}")

    assert response.status_code == 404
    assert "イベントが見つかりません" in response.text


def test_index_database_failure_shows_empty_list(client, make_event, fail_db_reads):
    make_event(title="公開勉強会")
    fail_db_reads()

    response = client.get("/")

    assert response.status_code == 200
    assert "公開中のイベントはまだありません。" in response.text


def test_ai_insight(client, make_event, use_dify_handler):
    use_dify_handler(
        lambda request: httpx.Response(200, json={"answer": "手を動かす少人数ワークショップ"})
    )
    event = make_event()

    response = client.get(f"/events/{event.id}")

    assert "AIによるイベント紹介" in response.text
    assert "手を動かす少人数ワークショップ" in response.text


def test_ai_failure_hides_insight(client, make_event, use_dify_handler):
    use_dify_handler(lambda request: httpx.Response(503, text="unavailable"))
    event = make_event()

    response = client.get(f"/events/{event.id}")

    assert response.status_code == 200
    assert "AIによるイベント紹介" not in response.text


def test_applied_user_sees_shared_participants(
    authenticated_client, make_event, registration_service, registration_input
):
    client, user = authenticated_client
    current = make_event(title="今回の会")
    previous = make_event(title="前回の会", date="2025-01-10")
    for event in (current, previous):
        registration_service.submit_registration(event.id, user.id, registration_input())
        registration_service.submit_registration(
            event.id, "friend", registration_input(occupation="manager")
        )

    response = client.get(f"/events/{current.id}")

    assert "申し込み内容を編集" in response.text
    assert "共通の参加履歴があるユーザー: 1 名" in response.text
    assert "マネジメント" in response.text
    assert "前回の会" in response.text


def test_detail_full_event(authenticated_client, make_event, registration_service, registration_input):
    client, _ = authenticated_client
    event = make_event(max_attendees=1)
    registration_service.submit_registration(event.id, "someone", registration_input())

    response = client.get(f"/events/{event.id}")

    assert "満席" in response.text


def test_form_requires_sign_in(client, make_event):
    event = make_event()

    response = client.get(f"/events/{event.id}/register", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == f"/signin?next=/events/{event.id}/register"


def test_new_registration_form(authenticated_client, make_event):
    client, _ = authenticated_client
    event = make_event()

    response = client.get(f"/events/{event.id}/register")

    assert response.status_code == 200
    assert "申し込む" in response.text
    assert "企画・マーケティング" in response.text


def test_prefilled_form(
    authenticated_client, make_event, registration_service, registration_input
):
    client, user = authenticated_client
    event = make_event()
    registration_service.submit_registration(
        event.id, user.id, registration_input(name="登録済み花子")
    )

    response = client.get(f"/events/{event.id}/register")

    assert "申し込み内容を更新" in response.text
    assert 'value="登録済み花子"' in response.text


def test_form_unknown_event(authenticated_client):
    client, _ = authenticated_client

    response = client.get(f"/events/{uuid.uuid4()}/register")

    assert response.status_code == 404


def test_submit_registration_success(authenticated_client, make_event, registration_service):
    client, user = authenticated_client
    event = make_event()

    response = client.post(f"/events/{event.id}/register", json=REGISTRATION)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["event"]["id"] == str(event.id)
    assert body["event"]["currentAttendees"] == 1
    registration = registration_service.get_registration(event.id, user.id)
    assert registration.occupation == "planner"
    assert registration.other is None


def test_resubmission_keeps_one_registration(authenticated_client, make_event):
    client, _ = authenticated_client
    event = make_event()

    client.post(f"/events/{event.id}/register", json=REGISTRATION)
    response = client.post(
        f"/events/{event.id}/register", json={**REGISTRATION, "name": "鈴木次郎"}
    )

    assert response.json()["event"]["currentAttendees"] == 1


def test_submit_missing_answers(authenticated_client, make_event):
    client, _ = authenticated_client
    event = make_event()

    response = client.post(
        f"/events/{event.id}/register", json={**REGISTRATION, "discovery": ""}
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "必須項目を入力してください"}


def test_submit_invalid_json(authenticated_client, make_event):
    client, _ = authenticated_client
    event = make_event()

    response = client.post(
        f"/events/{event.id}/register",
        content=b"not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400


def test_submit_unknown_event(authenticated_client):
    client, _ = authenticated_client

    response = client.post(f"/events/{uuid.uuid4()}/register", json=REGISTRATION)

    assert response.status_code == 404
    assert response.json()["error"] == "イベントが見つかりません"


def test_submit_full_event(
    authenticated_client, make_event, registration_service, registration_input
):
    client, _ = authenticated_client
    event = make_event(max_attendees=1)
    registration_service.submit_registration(event.id, "someone", registration_input())

    response = client.post(f"/events/{event.id}/register", json=REGISTRATION)

    assert response.status_code == 409
    assert response.json()["error"] == "満席のため申し込みできません"


def test_submit_requires_sign_in(client, make_event):
    event = make_event()

    response = client.post(
        f"/events/{event.id}/register", json=REGISTRATION, follow_redirects=False
    )

    assert response.status_code == 303
