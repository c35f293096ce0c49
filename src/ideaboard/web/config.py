"""Web server configuration."""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# Sentinel value used to detect when no JWT secret was explicitly configured.
_INSECURE_DEFAULT_SECRET = "ideaboard-dev-secret-not-for-production-use"

DEFAULT_CONFIG_FILE = Path.home() / ".ideaboard" / "server.yaml"


@dataclass
class WebConfig:
    """Configuration for the web server."""

    host: str = "0.0.0.0"
    port: int = 8000
    db_path: str = ".ideaboard/board.db"
    jwt_secret: str = _INSECURE_DEFAULT_SECRET
    jwt_algorithm: str = "HS256"
    cors_origins: list[str] | None = None
    columns: list[str] | None = None  # None accepts any column id (task boards)
    debug: bool = False
    dev_mode: bool = True

    @classmethod
    def load(cls, config_path: Path | None = None) -> WebConfig:
        """Load config from an optional YAML file, then environment variables.

        Priority (highest wins):
          1. Environment variables (IDEABOARD_*)
          2. Config file (IDEABOARD_CONFIG or ~/.ideaboard/server.yaml)
          3. Defaults
        """
        config = cls()
        config.jwt_secret = ""
        file_path = config_path or Path(os.environ.get("IDEABOARD_CONFIG", DEFAULT_CONFIG_FILE))

        if file_path.exists():
            try:
                with open(file_path) as f:
                    data = yaml.safe_load(f) or {}
                config.host = data.get("host", config.host)
                config.port = int(data.get("port", config.port))
                config.db_path = data.get("db_path", config.db_path)
                config.jwt_secret = data.get("jwt_secret", config.jwt_secret)
                config.cors_origins = data.get("cors_origins", config.cors_origins)
                config.columns = data.get("columns", config.columns)
                config.debug = bool(data.get("debug", config.debug))
                config.dev_mode = bool(data.get("dev_mode", config.dev_mode))
            except (yaml.YAMLError, OSError, ValueError):
                logger.warning("Ignoring unreadable config file %s", file_path)

        config.host = os.environ.get("IDEABOARD_HOST", config.host)
        config.port = int(os.environ.get("IDEABOARD_PORT", config.port))
        config.db_path = os.environ.get("IDEABOARD_DB_PATH", config.db_path)
        config.jwt_secret = os.environ.get("IDEABOARD_JWT_SECRET", config.jwt_secret)
        if debug := os.environ.get("IDEABOARD_DEBUG"):
            config.debug = debug.lower() in ("1", "true")
        if dev := os.environ.get("IDEABOARD_DEV_MODE"):
            config.dev_mode = dev.lower() not in ("0", "false", "no")
        if origins := os.environ.get("IDEABOARD_CORS_ORIGINS"):
            config.cors_origins = [o.strip() for o in origins.split(",")]
        if columns := os.environ.get("IDEABOARD_COLUMNS"):
            config.columns = [c.strip() for c in columns.split(",") if c.strip()]

        # Fail-closed: refuse to start without a real JWT secret outside dev mode.
        if not config.jwt_secret or config.jwt_secret == _INSECURE_DEFAULT_SECRET:
            if not config.dev_mode:
                raise RuntimeError(
                    "IDEABOARD_JWT_SECRET must be set to a strong random value when "
                    "dev mode is off. Generate one with: "
                    "python -c \"import secrets; print(secrets.token_hex(32))\""
                )
            config.jwt_secret = secrets.token_hex(32)
            logger.warning(
                "IDEABOARD_JWT_SECRET not set -- using random ephemeral secret. "
                "Set IDEABOARD_JWT_SECRET for tokens that survive restarts."
            )

        return config
