"""Process configuration from environment variables (.env is loaded by main.py)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ValidationError

# Relative to the working directory, like the launcher's data paths.
DEFAULT_DATA_FILE = Path("channel-config.json")


class ConfigError(RuntimeError):
    """A required setting is missing or invalid. Fatal at startup."""


class Settings(BaseModel):
    discord_token: str
    openai_api_key: str
    data_file: Path = DEFAULT_DATA_FILE
    openai_model: str = "gpt-4.1-mini"
    openai_base_url: str = "https://api.openai.com"
    post_every_hours: float = 24.0
    first_post_delay: float = 29.0  # seconds
    llm_timeout: float | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        missing = [key for key in ("DISCORD_TOKEN", "OPENAI_API_KEY") if not env.get(key)]
        if missing:
            raise ConfigError(f"Missing {', '.join(missing)} in environment or .env")

        fields: dict[str, object] = {
            "discord_token": env["DISCORD_TOKEN"],
            "openai_api_key": env["OPENAI_API_KEY"],
        }
        optional = {
            "DATA_FILE_PATH": "data_file",
            "OPENAI_MODEL": "openai_model",
            "OPENAI_BASE_URL": "openai_base_url",
            "AMBIENT_POST_EVERY_HOURS": "post_every_hours",
            "AMBIENT_FIRST_POST_DELAY": "first_post_delay",
            "OPENAI_TIMEOUT": "llm_timeout",
            "LOG_LEVEL": "log_level",
        }
        for key, field in optional.items():
            if env.get(key):
                fields[field] = env[key]

        try:
            settings = cls.model_validate(fields)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        if settings.post_every_hours <= 0:
            raise ConfigError("AMBIENT_POST_EVERY_HOURS must be positive")
        return settings
