"""Tests for the HTTP API."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ideaboard.board.models import IDEA_COLUMNS
from ideaboard.web.app import create_app
from ideaboard.web.auth import create_token
from ideaboard.web.config import WebConfig


@pytest.fixture
def config(tmp_path) -> WebConfig:
    return WebConfig(db_path=str(tmp_path / "board.db"), jwt_secret="test-secret")


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as c:
        yield c


def _auth(owner_id: str = "u1") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(owner_id)}"}


def _create(client, title: str, column: str = "todo", owner_id: str = "u1", **fields) -> dict:
    resp = client.post(
        "/api/cards", json={"column": column, "title": title, **fields}, headers=_auth(owner_id)
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def abc(client) -> list[dict]:
    return [_create(client, title) for title in ("A", "B", "C")]


def _titles(client, column: str = "todo", owner_id: str = "u1") -> list[str]:
    resp = client.get("/api/cards", params={"column": column}, headers=_auth(owner_id))
    return [c["title"] for c in resp.json()["cards"]]


class TestAuth:
    def test_health_is_public(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_missing_token(self, client):
        assert client.get("/api/cards").status_code == 401

    def test_bad_token(self, client):
        resp = client.get("/api/cards", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_event_stream_requires_token(self, client):
        assert client.get("/api/events/stream").status_code == 401


class TestCards:
    def test_create_and_get(self, client):
        card = _create(client, "Idea", labels=["ux"], priority="high", due_date="2025-05-01")

        resp = client.get(f"/api/cards/{card['id']}", headers=_auth())
        assert resp.status_code == 200
        body = resp.json()
        assert body["position"] == 1000
        assert body["labels"] == ["ux"]
        assert body["due_date"] == "2025-05-01"

    def test_invalid_priority(self, client):
        resp = client.post(
            "/api/cards", json={"column": "todo", "title": "X", "priority": "urgent"},
            headers=_auth(),
        )
        assert resp.status_code == 422

    def test_other_owner_cannot_see_card(self, client, abc):
        resp = client.get(f"/api/cards/{abc[0]['id']}", headers=_auth("u2"))
        assert resp.status_code == 404
        assert _titles(client, owner_id="u2") == []

    def test_delete(self, client, abc):
        resp = client.delete(f"/api/cards/{abc[0]['id']}", headers=_auth())
        assert resp.status_code == 204
        assert _titles(client) == ["B", "C"]
        assert client.delete(f"/api/cards/{abc[0]['id']}", headers=_auth()).status_code == 404

    def test_unknown_column_rejected_when_columns_configured(self, tmp_path):
        config = WebConfig(
            db_path=str(tmp_path / "ideas.db"), jwt_secret="s", columns=list(IDEA_COLUMNS)
        )
        with TestClient(create_app(config)) as client:
            resp = client.post(
                "/api/cards", json={"column": "todo", "title": "X"}, headers=_auth()
            )
            assert resp.status_code == 400

            resp = client.post(
                "/api/cards", json={"column": "evaluating", "title": "X"}, headers=_auth()
            )
            assert resp.status_code == 201


class TestPositions:
    def test_patch_reports_rows(self, client, abc):
        other = _create(client, "Other", owner_id="u2")
        writes = [
            {"card_id": abc[2]["id"], "column": "todo", "position": 1500},
            {"card_id": other["id"], "column": "todo", "position": 9000},
            {"card_id": abc[1]["id"], "column": "todo", "position": 1000},
        ]

        resp = client.patch("/api/cards/positions", json={"writes": writes}, headers=_auth())

        assert resp.status_code == 200
        body = resp.json()
        assert body["succeeded"] == [abc[2]["id"]]
        assert body["failed"] == [
            {"id": other["id"], "reason": "forbidden"},
            {"id": abc[1]["id"], "reason": "conflict"},
        ]

    def test_non_positive_position_rejected(self, client, abc):
        writes = [{"card_id": abc[0]["id"], "column": "todo", "position": 0}]
        resp = client.patch("/api/cards/positions", json={"writes": writes}, headers=_auth())
        assert resp.status_code == 422


class TestMove:
    def test_move_between_neighbours(self, client, abc):
        resp = client.post(
            f"/api/cards/{abc[2]['id']}/move", json={"column": "todo", "index": 1}, headers=_auth()
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert not body["renumbered"]
        assert [(w["card_id"], w["position"]) for w in body["writes"]] == [(abc[2]["id"], 1500)]
        assert _titles(client) == ["A", "C", "B"]

    def test_drop_in_place_is_noop(self, client, abc):
        resp = client.post(
            f"/api/cards/{abc[0]['id']}/move", json={"column": "todo", "index": 0}, headers=_auth()
        )
        assert resp.json()["status"] == "noop"
        assert resp.json()["writes"] == []

    def test_index_out_of_range(self, client, abc):
        resp = client.post(
            f"/api/cards/{abc[0]['id']}/move", json={"column": "todo", "index": 5}, headers=_auth()
        )
        assert resp.status_code == 400

    def test_move_other_owners_card(self, client, abc):
        resp = client.post(
            f"/api/cards/{abc[0]['id']}/move", json={"column": "todo", "index": 0},
            headers=_auth("u2"),
        )
        assert resp.status_code == 404

    def test_move_to_other_column(self, client, abc):
        resp = client.post(
            f"/api/cards/{abc[0]['id']}/move", json={"column": "done", "index": 0}, headers=_auth()
        )
        assert resp.status_code == 200
        assert _titles(client, "done") == ["A"]
        assert _titles(client) == ["B", "C"]

    def test_batch_move(self, client, abc):
        d = _create(client, "D", column="done")
        e = _create(client, "E", column="done")

        resp = client.post(
            "/api/cards/move",
            json={"card_ids": [e["id"], d["id"]], "column": "todo", "index": 1},
            headers=_auth(),
        )

        assert resp.status_code == 200
        assert _titles(client) == ["A", "E", "D", "B", "C"]

    def test_batch_with_foreign_card_is_forbidden(self, client, abc):
        other = _create(client, "Other", owner_id="u2")

        resp = client.post(
            "/api/cards/move",
            json={"card_ids": [other["id"]], "column": "todo", "index": 0},
            headers=_auth(),
        )

        assert resp.status_code == 403
        assert resp.json()["card_ids"] == [other["id"]]
        assert _titles(client, owner_id="u2") == ["Other"]


class TestQuery:
    def test_chips_filter_and_group(self, client):
        _create(client, "Login bug", labels=["bug"], priority="high")
        _create(client, "Theme", labels=["ui"])
        _create(client, "Crash", column="done", labels=["bug", "ui"])

        resp = client.post(
            "/api/cards/query",
            json={"chips": [{"field": "label", "value": ["bug"]}]},
            headers=_auth(),
        )

        assert resp.status_code == 200
        columns = resp.json()["columns"]
        assert {k: [c["title"] for c in v] for k, v in columns.items()} == {
            "done": ["Crash"],
            "todo": ["Login bug"],
        }

    def test_two_label_chips_and_together(self, client):
        _create(client, "Login bug", labels=["bug"])
        _create(client, "Crash", labels=["bug", "ui"])

        resp = client.post(
            "/api/cards/query",
            json={
                "chips": [
                    {"field": "label", "value": ["bug"]},
                    {"field": "label", "value": ["ui"]},
                ],
                "column": "todo",
            },
            headers=_auth(),
        )

        assert [c["title"] for c in resp.json()["columns"]["todo"]] == ["Crash"]

    def test_date_preset_uses_reference_day(self, client):
        _create(client, "Late", due_date="2025-03-01")
        _create(client, "Later", due_date="2025-04-01")

        resp = client.post(
            "/api/cards/query",
            json={"chips": [{"field": "date", "operator": "overdue"}], "today": "2025-03-15"},
            headers=_auth(),
        )

        assert [c["title"] for c in resp.json()["columns"]["todo"]] == ["Late"]

    def test_invalid_chip(self, client):
        resp = client.post(
            "/api/cards/query",
            json={"chips": [{"field": "label", "value": []}]},
            headers=_auth(),
        )
        assert resp.status_code == 422
