"""
Configuration management for vlmclient.

This module loads connection settings for the VLC telnet interface from TOML
files. The packaged ``defaults.toml`` is used unless another file is given.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4212
DEFAULT_READ_CHUNK_SIZE = 1024
DEFAULT_ENCODING = "utf-8"


@dataclass
class ClientConfig:
    """Connection settings for a VLM session."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    read_timeout: float | None = None
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE
    encoding: str = DEFAULT_ENCODING

    def session_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``VlmSession`` (everything except the endpoint)."""
        return {
            "read_timeout": self.read_timeout,
            "read_chunk_size": self.read_chunk_size,
            "encoding": self.encoding,
        }


def _parse_int(data: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        logger.warning("Invalid %s in config: %r, using %d", key, value, default)
        return default
    return value


def _parse_timeout(data: dict[str, Any]) -> float | None:
    value = data.get("read_timeout")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        logger.warning("Invalid read_timeout in config: %r, reading without timeout", value)
        return None
    # 0 means "block until data arrives"
    return float(value) if value > 0 else None


def load_client_config(config_path: Path | None = None) -> ClientConfig:
    """
    Load connection settings from a TOML file.

    Args:
        config_path: Path to a TOML file with a ``[connection]`` table.
            If None, uses the packaged defaults.

    Returns:
        Loaded ClientConfig instance.
    """
    if config_path is None:
        config_path = CONFIG_DIR / "defaults.toml"

    logger.debug("Loading client config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    connection = data.get("connection", {})

    return ClientConfig(
        host=str(connection.get("host", DEFAULT_HOST)),
        port=_parse_int(connection, "port", DEFAULT_PORT, minimum=1),
        read_timeout=_parse_timeout(connection),
        read_chunk_size=_parse_int(connection, "read_chunk_size", DEFAULT_READ_CHUNK_SIZE, minimum=1),
        encoding=str(connection.get("encoding", DEFAULT_ENCODING)),
    )


# Global singleton instance (lazy loaded)
_client_config: ClientConfig | None = None


def get_client_config() -> ClientConfig:
    """
    Get the global client configuration (lazy loaded singleton).

    Returns:
        The ClientConfig instance.
    """
    global _client_config

    if _client_config is None:
        _client_config = load_client_config()

    return _client_config


def reload_client_config(config_path: Path | None = None) -> ClientConfig:
    """
    Force reload of the client configuration.

    Returns:
        The newly loaded ClientConfig instance.
    """
    global _client_config
    _client_config = load_client_config(config_path)
    return _client_config
