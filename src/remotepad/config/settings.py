"""Configuration management for remotepad.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (the pairing key). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/remotepad.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0", description="Interface the event stream binds to")
    base_port: int = Field(default=3000, ge=1, le=65535, description="First port tried")
    max_port_attempts: int = Field(default=100, gt=0)
    advertise_address: str | None = Field(
        default=None, description="Address put in pairing codes (None = detect LAN IPv4)"
    )
    admin_hosts: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "::1", "localhost"],
        description="Client hosts allowed to read or regenerate the pairing code",
    )


class PairingConfig(BaseModel):
    key: SecretStr = Field(
        default=SecretStr(""),
        description="urlsafe-base64 AES-256 key shared with clients (empty = ephemeral)",
    )
    secret_bytes: int = Field(default=16, ge=8, le=64)


class InputConfig(BaseModel):
    move_gain: float = Field(default=1.5, gt=0)
    move_epsilon: float = Field(default=0.5, ge=0, description="Pixels before a tap becomes a drag")
    tap_time_ms: float = Field(default=250.0, gt=0)
    right_click_lockout_ms: float = Field(default=200.0, ge=0)
    hot_zone_fraction: float = Field(default=0.3, gt=0, le=1)
    modifier_lock_s: float = Field(default=0.5, gt=0, description="Hold time that locks a modifier")


class ActuatorConfig(BaseModel):
    backend: Literal["xdotool", "log"] = Field(default="xdotool")
    timeout: float = Field(default=2.0, gt=0)
    scroll_step: float = Field(default=10.0, gt=0, description="Scroll delta (pixels) per wheel click")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the remotepad host and client.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "REMOTEPAD_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    pairing: PairingConfig = Field(default_factory=PairingConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    actuator: ActuatorConfig = Field(default_factory=ActuatorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if not os.environ.get(key):
                os.environ[key] = value.strip()


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    pair_key = os.environ.get("PAIRING_KEY", "")
    if pair_key:
        yaml_data.setdefault("pairing", {})
        if not yaml_data["pairing"].get("key"):
            yaml_data["pairing"]["key"] = pair_key
