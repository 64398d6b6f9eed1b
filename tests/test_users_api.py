"""End-to-end tests for the user HTTP API."""

from __future__ import annotations

import sqlite3

import pytest
from fastapi.testclient import TestClient

from user_service_api.app.repositories.user_repository import UserRepository
from user_service_api.app.services.user_service import UserService

USERS = "/api/v1/users"

ALICE = {
    "id": "u1",
    "username": "alice",
    "email": "alice@example.com",
    "phone": "+1 555-0100",
    "date_of_birth": "1990-04-12",
}


@pytest.fixture()
def created(client: TestClient) -> dict:
    response = client.post(f"{USERS}/", json=ALICE)
    assert response.status_code == 201, response.text
    return response.json()


def test_load_unknown_user_is_404(client: TestClient) -> None:
    response = client.get(f"{USERS}/missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_create_then_load_round_trip(client: TestClient, created: dict) -> None:
    assert created == ALICE

    response = client.get(f"{USERS}/u1")
    assert response.status_code == 200
    assert response.json() == ALICE


def test_create_duplicate_is_409(client: TestClient, created: dict) -> None:
    response = client.post(f"{USERS}/", json=ALICE)
    assert response.status_code == 409


@pytest.mark.parametrize(
    "payload",
    [
        {"username": "noid"},
        {"id": "u9"},
        {"id": "u9", "username": "bad name!"},
        {"id": "u9", "username": "ok", "email": "not-an-email"},
        {"id": "u9", "username": "ok", "phone": "call me"},
        {"id": "x" * 41, "username": "ok"},
        {"id": "u9", "username": "ok", "date_of_birth": "yesterday"},
    ],
)
def test_create_rejects_invalid_payload(client: TestClient, payload: dict) -> None:
    response = client.post(f"{USERS}/", json=payload)
    assert response.status_code == 422
    assert response.json()["detail"]
    assert client.get(f"{USERS}/u9").status_code == 404


def test_update_replaces_record_and_keeps_id(client: TestClient, created: dict) -> None:
    body = {"username": "alice2", "email": None, "phone": "123", "date_of_birth": None}
    response = client.put(f"{USERS}/u1", json=body)
    assert response.status_code == 200, response.text
    assert response.json() == {"id": "u1", **body}

    assert client.get(f"{USERS}/u1").json() == {"id": "u1", **body}


def test_update_with_mismatched_id_is_400(client: TestClient, created: dict) -> None:
    response = client.put(f"{USERS}/u1", json={**ALICE, "id": "u2"})
    assert response.status_code == 400
    assert client.get(f"{USERS}/u1").json() == ALICE


def test_update_unknown_user_is_404(client: TestClient) -> None:
    response = client.put(f"{USERS}/ghost", json={"username": "ghost"})
    assert response.status_code == 404


def test_update_validates_body(client: TestClient, created: dict) -> None:
    response = client.put(f"{USERS}/u1", json={"username": ""})
    assert response.status_code == 422
    assert client.get(f"{USERS}/u1").json() == ALICE


def test_patch_email_only(client: TestClient, created: dict) -> None:
    response = client.patch(f"{USERS}/u1", json={"email": "new@example.com"})
    assert response.status_code == 200, response.text
    assert response.json() == {**ALICE, "email": "new@example.com"}


def test_patch_accepts_matching_id(client: TestClient, created: dict) -> None:
    response = client.patch(f"{USERS}/u1", json={"id": "u1", "phone": "999"})
    assert response.status_code == 200
    assert response.json()["phone"] == "999"


def test_patch_with_mismatched_id_is_400(client: TestClient, created: dict) -> None:
    response = client.patch(f"{USERS}/u1", json={"id": "u2", "phone": "999"})
    assert response.status_code == 400


def test_patch_without_fields_is_400(client: TestClient, created: dict) -> None:
    response = client.patch(f"{USERS}/u1", json={})
    assert response.status_code == 400


def test_patch_rejects_unknown_and_invalid_fields(client: TestClient, created: dict) -> None:
    assert client.patch(f"{USERS}/u1", json={"nickname": "al"}).status_code == 422
    assert client.patch(f"{USERS}/u1", json={"email": "nope"}).status_code == 422
    assert client.patch(f"{USERS}/u1", json={"username": None}).status_code == 422
    assert client.get(f"{USERS}/u1").json() == ALICE


def test_patch_unknown_user_is_404(client: TestClient) -> None:
    response = client.patch(f"{USERS}/ghost", json={"phone": "1"})
    assert response.status_code == 404


def test_delete_then_load_is_404(client: TestClient, created: dict) -> None:
    response = client.delete(f"{USERS}/u1")
    assert response.status_code == 204
    assert client.get(f"{USERS}/u1").status_code == 404
    assert client.delete(f"{USERS}/u1").status_code == 404


def test_search_by_query_and_body(client: TestClient) -> None:
    for user_id, name in (("a1", "alice"), ("a2", "albert"), ("b1", "bob")):
        client.post(f"{USERS}/", json={"id": user_id, "username": name})

    response = client.get(f"{USERS}/search", params={"username": "al", "limit": 1})
    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["total"] == 2
    assert [u["id"] for u in payload["list"]] == ["a1"]

    response = client.post(f"{USERS}/search", json={"sort": "-username"})
    assert response.status_code == 200
    assert [u["username"] for u in response.json()["list"]] == ["bob", "alice", "albert"]


def test_search_rejects_unknown_sort_column(client: TestClient) -> None:
    response = client.get(f"{USERS}/search", params={"sort": "password"})
    assert response.status_code == 422


class _BrokenRepository(UserRepository):
    def patch(self, user_id, fields) -> int:
        super().patch(user_id, fields)
        raise sqlite3.OperationalError("database is locked")


def test_database_failure_is_500_and_rolled_back(
    client: TestClient, created: dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(UserService, "repository_class", _BrokenRepository)

    response = client.patch(f"{USERS}/u1", json={"email": "lost@example.com"})
    assert response.status_code == 500
    assert response.json() == {"detail": "Database error"}
    assert client.get(f"{USERS}/u1").json() == ALICE


def test_create_without_trailing_slash(client: TestClient) -> None:
    response = client.post(USERS, json=ALICE, follow_redirects=False)
    assert response.status_code == 201, response.text
    assert response.json() == ALICE


def test_stored_row_breaking_input_rules_is_still_readable(client: TestClient, conn) -> None:
    conn.execute(
        "INSERT INTO users (id, username, email, phone, date_of_birth) VALUES (?, ?, ?, ?, ?)",
        ("z", "has space", "x', username='owned", "call me", "x"),
    )
    conn.commit()
    expected = {
        "id": "z",
        "username": "has space",
        "email": "x', username='owned",
        "phone": "call me",
        "date_of_birth": None,
    }

    response = client.get(f"{USERS}/z")
    assert response.status_code == 200, response.text
    assert response.json() == expected

    response = client.get(f"{USERS}/search")
    assert response.status_code == 200, response.text
    assert response.json() == {"list": [expected], "total": 1}

    response = client.patch(f"{USERS}/z", json={"phone": "123"})
    assert response.status_code == 200, response.text
    assert response.json() == {**expected, "phone": "123"}


def test_put_and_post_report_the_same_error_location(client: TestClient, created: dict) -> None:
    bad = {**ALICE, "id": "u2", "email": "not-an-email"}
    post = client.post(USERS, json=bad)
    put = client.put(f"{USERS}/u1", json={**ALICE, "email": "not-an-email"})

    assert post.status_code == put.status_code == 422
    assert [e["loc"] for e in post.json()["detail"]] == [["body", "email"]]
    assert [e["loc"] for e in put.json()["detail"]] == [["body", "email"]]


@pytest.mark.parametrize("sort", ["--username", "---id", "-", "username-"])
def test_search_rejects_malformed_sort(client: TestClient, sort: str) -> None:
    response = client.get(f"{USERS}/search", params={"sort": sort})
    assert response.status_code == 422
