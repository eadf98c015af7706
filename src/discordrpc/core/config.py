"""
Client configuration.

Handles configuration models, YAML loading and config file discovery.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from discordrpc.ipc.correlator import DEFAULT_REQUEST_TIMEOUT
from discordrpc.ipc.discovery import DEFAULT_CONNECTION_TIMEOUT
from discordrpc.ipc.protocol import HEARTBEAT_INTERVAL, MAX_PIPE_INDEX

CONFIG_FILE_NAME = "discordrpc.yaml"


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""

    pass


class ClientConfig(BaseModel):
    """RPC client configuration (durations in seconds)."""

    client_id: str | None = None
    pipe_index: int | None = Field(default=None, ge=0, le=MAX_PIPE_INDEX)
    connection_timeout: float = Field(default=DEFAULT_CONNECTION_TIMEOUT, gt=0)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    heartbeat_interval: float = Field(default=HEARTBEAT_INTERVAL, gt=0)
    log_level: str = "info"


def load_config(path: str | Path) -> ClientConfig:
    """
    Load configuration from a YAML file.

    The file holds the ClientConfig fields either at the top level or under
    a ``client:`` key.

    Raises:
        ConfigurationError: If the file is missing, empty or invalid
    """
    config_path = Path(path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax: {e}") from e

    if raw_config is None:
        raise ConfigurationError("Configuration file is empty")

    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    if isinstance(raw_config.get("client"), dict):
        raw_config = raw_config["client"]

    try:
        return ClientConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


def find_config_file(explicit_path: Path | None = None) -> Path | None:
    """
    Locate the configuration file.

    Search order:
    1. Explicit path from --config (must exist)
    2. discordrpc.yaml in current directory
    3. $XDG_CONFIG_HOME/discordrpc/discordrpc.yaml

    Returns:
        Path of the first file found, or None when no file exists

    Raises:
        ConfigurationError: If an explicit path does not exist
    """
    if explicit_path is not None:
        if explicit_path.exists():
            return explicit_path
        raise ConfigurationError(f"Configuration file not found: {explicit_path}")

    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    candidates = [
        Path(CONFIG_FILE_NAME),
        Path(config_home) / "discordrpc" / CONFIG_FILE_NAME,
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None
