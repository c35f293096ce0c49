"""Tests for HttpCardStore HTTP communication."""

from __future__ import annotations

import json

import httpx
import pytest

from ideaboard.board.client import HttpCardStore
from ideaboard.board.errors import (
    AuthorizationError,
    ConflictError,
    TransportError,
    ValidationError,
)
from ideaboard.board.models import CardWrite, FailureReason


def _card_json(card_id: str, position: int, column: str = "todo") -> dict:
    return {
        "id": card_id,
        "owner_id": "u1",
        "column": column,
        "position": position,
        "title": card_id.upper(),
        "description": "",
        "labels": ["bug"],
        "idea_id": None,
        "priority": None,
        "due_date": "2025-03-01",
        "completed": False,
        "created_at": "2025-02-01T10:00:00+00:00",
        "updated_at": None,
    }


@pytest.fixture
def mock_transport():
    """Create a mock transport that records requests and returns canned responses."""

    class MockTransport(httpx.AsyncBaseTransport):
        def __init__(self):
            self.requests: list[httpx.Request] = []
            self.responses: dict[str, tuple[int, dict]] = {}
            self.error: Exception | None = None

        def set_response(self, method: str, path: str, status: int, body: dict):
            self.responses[f"{method.upper()} {path}"] = (status, body)

        async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if self.error is not None:
                raise self.error
            key = f"{request.method} {request.url.path}"
            if key in self.responses:
                status, body = self.responses[key]
                return httpx.Response(status_code=status, json=body, request=request)
            return httpx.Response(
                status_code=404, json={"detail": f"No mock for {key}"}, request=request
            )

    return MockTransport()


@pytest.fixture
def store_with_transport(mock_transport):
    """Create an HttpCardStore backed by the mock transport."""

    async def _create(token: str = "test-token"):
        store = HttpCardStore("http://test-server:8000", token=token)
        await store._client.aclose()
        store._client = httpx.AsyncClient(
            base_url="http://test-server:8000",
            headers={"Content-Type": "application/json", "Authorization": f"Bearer {token}"},
            transport=mock_transport,
        )
        return store

    return _create


class TestListCards:
    @pytest.mark.asyncio
    async def test_parses_cards(self, mock_transport, store_with_transport):
        mock_transport.set_response(
            "GET", "/api/cards", 200, {"cards": [_card_json("a", 1000), _card_json("b", 2000)]}
        )

        store = await store_with_transport()
        cards = await store.list_cards("u1")
        await store.close()

        assert [c.id for c in cards] == ["a", "b"]
        assert cards[0].column == "todo"
        assert cards[0].labels == frozenset({"bug"})
        assert cards[0].due_date.isoformat() == "2025-03-01"
        assert mock_transport.requests[0].headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_column_is_sent_as_query_param(self, mock_transport, store_with_transport):
        mock_transport.set_response("GET", "/api/cards", 200, {"cards": []})

        store = await store_with_transport()
        await store.list_cards("u1", column="done")
        await store.close()

        assert mock_transport.requests[0].url.params["column"] == "done"


class TestUpdateCards:
    @pytest.mark.asyncio
    async def test_sends_writes_and_parses_result(self, mock_transport, store_with_transport):
        mock_transport.set_response(
            "PATCH",
            "/api/cards/positions",
            200,
            {"succeeded": ["a"], "failed": [{"id": "b", "reason": "forbidden"}]},
        )

        store = await store_with_transport()
        result = await store.update_cards(
            "u1", [CardWrite("a", "todo", 1500), CardWrite("b", "todo", 1750)]
        )
        await store.close()

        sent = json.loads(mock_transport.requests[0].content)
        assert [w["card_id"] for w in sent["writes"]] == ["a", "b"]
        assert sent["writes"][0]["position"] == 1500
        assert result.succeeded == ["a"]
        assert result.failed_with(FailureReason.FORBIDDEN)[0].card_id == "b"


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error"),
        [
            (401, AuthorizationError),
            (403, AuthorizationError),
            (409, ConflictError),
            (400, ValidationError),
            (502, TransportError),
        ],
    )
    async def test_status_codes(self, mock_transport, store_with_transport, status, error):
        mock_transport.set_response("GET", "/api/cards", status, {"detail": "nope"})

        store = await store_with_transport()
        with pytest.raises(error):
            await store.list_cards("u1")
        await store.close()

    @pytest.mark.asyncio
    async def test_server_error_keeps_detail(self, mock_transport, store_with_transport):
        mock_transport.set_response("GET", "/api/cards", 503, {"detail": "db locked"})

        store = await store_with_transport()
        with pytest.raises(TransportError) as exc_info:
            await store.list_cards("u1")
        await store.close()

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == "db locked"

    @pytest.mark.asyncio
    async def test_connection_error(self, mock_transport, store_with_transport):
        mock_transport.error = httpx.ConnectError("refused")

        store = await store_with_transport()
        with pytest.raises(TransportError):
            await store.list_cards("u1")
        await store.close()

    @pytest.mark.asyncio
    async def test_timeout(self, mock_transport, store_with_transport):
        mock_transport.error = httpx.ReadTimeout("slow")

        store = await store_with_transport()
        with pytest.raises(TransportError, match="timed out"):
            await store.list_cards("u1")
        await store.close()


class TestQuery:
    @pytest.mark.asyncio
    async def test_groups_by_column(self, mock_transport, store_with_transport):
        mock_transport.set_response(
            "POST",
            "/api/cards/query",
            200,
            {"columns": {"todo": [_card_json("a", 1000)], "done": []}},
        )

        store = await store_with_transport()
        grouped = await store.query([{"field": "label", "value": ["bug"]}])
        await store.close()

        assert [c.id for c in grouped["todo"]] == ["a"]
        assert grouped["done"] == []
        assert json.loads(mock_transport.requests[0].content)["chips"][0]["field"] == "label"
