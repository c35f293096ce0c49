"""FastAPI dependency injection."""

from __future__ import annotations

from typing import Annotated

import aiosqlite
import jwt
from fastapi import Depends, HTTPException, Request

from .db.database import get_db


async def _get_db() -> aiosqlite.Connection:
    return await get_db()


Db = Annotated[aiosqlite.Connection, Depends(_get_db)]


async def _get_owner_id(request: Request) -> str:
    """Extract and validate the bearer token; return the owner id."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    token = auth_header.removeprefix("Bearer ").strip()
    try:
        from .auth import decode_token

        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired") from None
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token") from None

    owner_id = payload.get("sub")
    if not owner_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return owner_id


OwnerId = Annotated[str, Depends(_get_owner_id)]


def get_columns(request: Request) -> list[str] | None:
    """Allowed column ids for this server, or None for any."""
    return request.app.state.config.columns
