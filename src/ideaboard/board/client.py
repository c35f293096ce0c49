"""HTTP card store for talking to an ideaboard server.

Implements the ``CardStore`` protocol over the server's JSON API so a
``BoardViewModel`` can run in a separate process from the database.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from .errors import AuthorizationError, ConflictError, TransportError, ValidationError
from .models import Card, CardWrite, UpdateResult

logger = logging.getLogger(__name__)


class HttpCardStore:
    """Card store backed by the ideaboard HTTP API.

    The owner is taken from the bearer token; the ``owner_id`` arguments of
    the protocol methods are only used for logging.
    """

    def __init__(self, base_url: str, token: str = "", timeout: float = 30.0):
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    async def close(self) -> None:
        await self._client.aclose()

    # --- CardStore ---

    async def list_cards(self, owner_id: str, column: str | None = None) -> list[Card]:
        """GET /api/cards"""
        params = {"column": column} if column else None
        body = await self._request("GET", "/api/cards", params=params)
        return [Card.from_row(c) for c in body.get("cards", [])]

    async def update_cards(self, owner_id: str, writes: Sequence[CardWrite]) -> UpdateResult:
        """PATCH /api/cards/positions"""
        body = await self._request(
            "PATCH",
            "/api/cards/positions",
            json={"writes": [w.to_dict() for w in writes]},
        )
        result = UpdateResult.from_dict(body)
        if result.failed:
            logger.debug("Owner %s: %d rows rejected", owner_id, len(result.failed))
        return result

    # --- Extras ---

    async def create_card(self, column: str, title: str, **fields: Any) -> Card:
        """POST /api/cards"""
        body = await self._request(
            "POST", "/api/cards", json={"column": column, "title": title, **fields}
        )
        return Card.from_row(body)

    async def query(
        self, chips: list[dict[str, Any]], column: str | None = None
    ) -> dict[str, list[Card]]:
        """POST /api/cards/query - server-side filtering, grouped by column."""
        body = await self._request(
            "POST", "/api/cards/query", json={"chips": chips, "column": column}
        )
        return {
            col: [Card.from_row(c) for c in cards] for col, cards in body.get("columns", {}).items()
        }

    async def _request(
        self,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request.

        Raises:
            AuthorizationError: On 401/403.
            ConflictError: On 409.
            ValidationError: On other 4xx responses.
            TransportError: On 5xx responses or connection failures.
        """
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {method} {url}", detail=str(e)) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Cannot reach server: {e}", detail=str(e)) from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            message = f"{method} {url} returned {response.status_code}: {detail}"
            if response.status_code in (401, 403):
                raise AuthorizationError(message)
            if response.status_code == 409:
                raise ConflictError([], message)
            if response.status_code < 500:
                raise ValidationError(message)
            raise TransportError(message, status_code=response.status_code, detail=detail)

        if not response.content:
            return {}
        return response.json()


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("detail", body))
    return str(body)
