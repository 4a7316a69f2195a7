"""HTTP server settings for the orchestration API.

Values come from ``configs/api_config.json`` and can be overridden with
``ORCHESTRATOR_HOST``, ``ORCHESTRATOR_PORT`` and ``ORCHESTRATOR_LOG_LEVEL``
(typically set through a ``.env`` file).
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "ORCHESTRATOR_HOST": ("host", str),
    "ORCHESTRATOR_PORT": ("port", int),
    "ORCHESTRATOR_LOG_LEVEL": ("log_level", str),
}


@dataclass
class ServerConfig:
    """Bind address, CORS and uvicorn settings."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    debug: bool = False
    log_level: str = "INFO"

    def apply_env(self) -> "ServerConfig":
        """Override fields from environment variables that are set."""
        for var, (name, cast) in ENV_OVERRIDES.items():
            raw = os.environ.get(var)
            if raw is None:
                continue
            try:
                setattr(self, name, cast(raw))
            except ValueError:
                logger.warning(f"Ignoring invalid {var}={raw!r}")
        return self


@dataclass
class APIConfig:
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "APIConfig":
        """Read the ``server`` section of a JSON config file.

        A missing or unreadable file yields the defaults. Unknown keys are
        ignored.
        """
        data: Optional[dict] = None
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.warning(f"Could not read API config {config_path}, using defaults")

        section = data.get("server") if isinstance(data, dict) else None
        if not isinstance(section, dict):
            return cls()

        known = {f.name for f in fields(ServerConfig)}
        return cls(server=ServerConfig(**{k: v for k, v in section.items() if k in known}))

    @staticmethod
    def default_config_path() -> Path:
        return Path(__file__).resolve().parents[2] / "configs" / "api_config.json"


def load_config() -> APIConfig:
    """Load the API configuration and apply environment overrides."""
    config = APIConfig.from_file(APIConfig.default_config_path())
    config.server.apply_env()
    return config
