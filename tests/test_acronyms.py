"""Integration tests for the acronym endpoints.

These tests drive the REST API through the Flask test client: creation and
editing by authenticated users, public lookups, search and ordering, and the
owner relation.
"""

import logging

import jwt as pyjwt
from sqlalchemy.exc import SQLAlchemyError

from acronym_backend.app import db

from .conftest import auth_headers, create_acronym, create_user


def test_list_acronyms_empty(client):
    resp = client.get("/api/acronyms")
    assert resp.status_code == 200
    assert resp.get_json() == []


def test_create_requires_token(client):
    resp = client.post("/api/acronyms", json={"short": "OMG", "long": "Oh My God"})
    assert resp.status_code == 401


def test_create_rejects_unknown_token(client):
    headers = {"Authorization": "Bearer not-a-token"}
    resp = client.post("/api/acronyms", json={"short": "OMG", "long": "Oh My God"}, headers=headers)
    assert resp.status_code == 401


def test_create_rejects_token_signed_with_other_key(client):
    """A well-formed JWT under a foreign secret is a 401, not a 422."""
    create_user()
    forged = pyjwt.encode(
        {"sub": "1", "jti": "forged", "type": "access", "fresh": False},
        "other-secret",
        algorithm="HS256",
    )
    resp = client.post(
        "/api/acronyms",
        json={"short": "OMG", "long": "Oh My God"},
        headers={"Authorization": f"Bearer {forged}"},
    )
    assert resp.status_code == 401
    assert client.get("/api/acronyms").get_json() == []


def test_create_rejects_non_string_fields(client):
    create_user()
    headers = auth_headers(client)
    resp = client.post(
        "/api/acronyms", json={"short": ["A"], "long": {"x": 1}}, headers=headers
    )
    assert resp.status_code == 400
    resp = client.post("/api/acronyms", json={"short": 5, "long": "Five"}, headers=headers)
    assert resp.status_code == 400
    assert client.get("/api/acronyms").get_json() == []


def test_create_rejects_form_encoded_body(client):
    create_user()
    headers = auth_headers(client)
    resp = client.post(
        "/api/acronyms", data={"short": "OMG", "long": "Oh My God"}, headers=headers
    )
    assert resp.status_code == 400
    assert client.get("/api/acronyms").get_json() == []


def test_create_store_failure_rolls_back(client, monkeypatch, caplog):
    """A failing commit answers 500, is logged and leaves no row behind."""
    create_user()
    headers = auth_headers(client)

    def boom():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db.session, "commit", boom)
    with caplog.at_level(logging.ERROR, logger="acronym_backend.services"):
        resp = client.post(
            "/api/acronyms", json={"short": "OMG", "long": "Oh My God"}, headers=headers
        )
    monkeypatch.undo()

    assert resp.status_code == 500
    assert "Failed to create acronym" in resp.get_json()["message"]
    assert any(
        r.name == "acronym_backend.services" and r.levelno == logging.ERROR
        for r in caplog.records
    )
    assert client.get("/api/acronyms").get_json() == []


def test_create_missing_field(client):
    create_user()
    headers = auth_headers(client)
    resp = client.post("/api/acronyms", json={"short": "OMG"}, headers=headers)
    assert resp.status_code == 400


def test_create_and_get_sets_owner(client):
    """The creating user owns the new acronym."""
    user_id = create_user()
    headers = auth_headers(client)

    created = create_acronym(client, headers)
    assert created["short"] == "OMG"
    assert created["long"] == "Oh My God"
    assert created["user"]["id"] == user_id

    resp = client.get(f"/api/acronyms/{created['id']}")
    assert resp.status_code == 200
    assert resp.get_json() == created

    resp = client.get("/api/acronyms")
    assert [a["id"] for a in resp.get_json()] == [created["id"]]


def test_get_missing_acronym(client):
    assert client.get("/api/acronyms/999").status_code == 404


def test_update_reassigns_owner_to_editor(client):
    """Editing overwrites both forms and makes the editor the owner."""
    alice = create_user("alice")
    bob = create_user("bob")
    created = create_acronym(client, auth_headers(client, "alice"))
    assert created["user"]["id"] == alice

    resp = client.put(
        f"/api/acronyms/{created['id']}",
        json={"short": "IKR", "long": "I Know Right"},
        headers=auth_headers(client, "bob"),
    )
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == bob

    data = client.get(f"/api/acronyms/{created['id']}").get_json()
    assert data["short"] == "IKR"
    assert data["long"] == "I Know Right"
    assert data["user"]["id"] == bob

    assert client.get(f"/api/users/{alice}/acronyms").get_json() == []


def test_update_missing_acronym(client):
    create_user()
    resp = client.put(
        "/api/acronyms/42", json={"short": "A", "long": "B"}, headers=auth_headers(client)
    )
    assert resp.status_code == 404


def test_update_requires_token(client):
    create_user()
    created = create_acronym(client, auth_headers(client))
    resp = client.put(f"/api/acronyms/{created['id']}", json={"short": "A", "long": "B"})
    assert resp.status_code == 401


def test_delete_then_get_is_not_found(client):
    create_user()
    headers = auth_headers(client)
    created = create_acronym(client, headers)

    resp = client.delete(f"/api/acronyms/{created['id']}", headers=headers)
    assert resp.status_code == 204
    assert client.get(f"/api/acronyms/{created['id']}").status_code == 404
    assert client.delete(f"/api/acronyms/{created['id']}", headers=headers).status_code == 404


def test_delete_requires_token(client):
    create_user()
    created = create_acronym(client, auth_headers(client))
    assert client.delete(f"/api/acronyms/{created['id']}").status_code == 401


def test_search_exact_match_on_either_form(client):
    create_user()
    headers = auth_headers(client)
    lol = create_acronym(client, headers, "LOL", "Laugh Out Loud")
    reverse = create_acronym(client, headers, "XYZ", "LOL")
    create_acronym(client, headers, "LOLZ", "Laughs")
    create_acronym(client, headers, "OMG", "Oh My God")

    resp = client.get("/api/acronyms/search?term=LOL")
    assert resp.status_code == 200
    ids = sorted(a["id"] for a in resp.get_json())
    assert ids == sorted([lol["id"], reverse["id"]])

    resp = client.get("/api/acronyms/search", query_string={"term": "Laugh Out Loud"})
    assert [a["id"] for a in resp.get_json()] == [lol["id"]]

    # Substrings do not match
    assert client.get("/api/acronyms/search?term=LO").get_json() == []


def test_search_requires_term(client):
    assert client.get("/api/acronyms/search").status_code == 400
    assert client.get("/api/acronyms/search?term=").status_code == 400


def test_first(client):
    assert client.get("/api/acronyms/first").status_code == 404

    create_user()
    headers = auth_headers(client)
    first = create_acronym(client, headers, "BRB", "Be Right Back")
    create_acronym(client, headers, "AFK", "Away From Keyboard")

    resp = client.get("/api/acronyms/first")
    assert resp.status_code == 200
    assert resp.get_json()["id"] == first["id"]


def test_sorted_by_short_form(client):
    create_user()
    headers = auth_headers(client)
    for short in ("TIL", "AFK", "OMG", "BRB", "AFK"):
        create_acronym(client, headers, short, f"{short} long")

    resp = client.get("/api/acronyms/sorted")
    assert resp.status_code == 200
    shorts = [a["short"] for a in resp.get_json()]
    assert shorts == sorted(shorts)
    assert len(shorts) == 5


def test_acronym_owner_is_redacted(client):
    user_id = create_user("alice", name="Alice")
    created = create_acronym(client, auth_headers(client, "alice"))

    resp = client.get(f"/api/acronyms/{created['id']}/user")
    assert resp.status_code == 200
    assert resp.get_json() == {"id": user_id, "name": "Alice", "username": "alice"}

    assert client.get("/api/acronyms/999/user").status_code == 404
