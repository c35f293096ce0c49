"""Bearer token handling.

Sign-in lives outside this service; it only verifies tokens and reads the
owner id from the ``sub`` claim.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

import jwt

from .config import WebConfig

_config: WebConfig | None = None


def init_auth(config: WebConfig) -> None:
    global _config
    _config = config


def _get_config() -> WebConfig:
    global _config
    if _config is None:
        _config = WebConfig.load()
    return _config


def create_token(owner_id: str, expire_hours: int = 24) -> str:
    """Create a signed token for ``owner_id`` (dev tooling and tests)."""
    config = _get_config()
    payload = {
        "sub": owner_id,
        "exp": datetime.now(UTC) + timedelta(hours=expire_hours),
        "iat": datetime.now(UTC),
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a token. Raises jwt.InvalidTokenError on failure."""
    config = _get_config()
    return jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
