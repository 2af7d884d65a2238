"""
Configuration loading and merge utilities.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""


@dataclass
class Config:
    api_server_name: Optional[str] = None
    api_server_port: Optional[int] = None
    api_username: Optional[str] = None
    api_timeout: int = 60
    api_timeout_open: int = 60
    api_verify_cert: bool = True
    api_ssl_cert_path: Optional[str] = None
    config_path: Optional[Path] = None
    cache_enabled: bool = True
    cache_ttl: Optional[int] = None  # None = keep until refreshed or flushed
    rate_limit: float = 0  # Requests per second (0 = no limit)


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no", "n", "off")


def load_config(config_file: Optional[str] = None) -> Config:
    """
    Load connection defaults from the environment and an optional YAML file.

    Precedence: environment > config file > defaults. Explicit arguments given
    to ``Connection.connect`` override all of these.
    """
    env_config = os.environ.get("JAMF_API_KIT_CONFIG")
    config_path = Path(config_file or env_config or Path.home() / ".jamf_api_kit.yml").expanduser()

    file_data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with config_path.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
                if not isinstance(loaded, dict):
                    raise ConfigError("Configuration file must contain a mapping.")
                file_data = loaded
        except OSError as exc:
            raise ConfigError(f"Failed to read config file {config_path}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {config_path}") from exc

    # Cache configuration
    cache_config = file_data.get("cache", {})
    cache_enabled = cache_config.get("enabled", True) if isinstance(cache_config, dict) else True
    cache_ttl = cache_config.get("ttl") if isinstance(cache_config, dict) else None

    port = file_data.get("api_server_port")
    try:
        port = int(port) if port is not None else None
        timeout = int(file_data.get("api_timeout", 60))
        timeout_open = int(file_data.get("api_timeout_open", 60))
        rate_limit = float(file_data.get("rate_limit", 0) or 0)
        cache_ttl = int(cache_ttl) if cache_ttl is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Port, timeouts, rate_limit and cache ttl must be numbers in {config_path}") from exc

    verify_cert = _as_bool(file_data.get("api_verify_cert"), True)
    env_verify = os.environ.get("JAMF_VERIFY_SSL")
    if env_verify is not None:
        verify_cert = _as_bool(env_verify, True)

    return Config(
        api_server_name=file_data.get("api_server_name"),
        api_server_port=port,
        api_username=os.environ.get("JAMF_USER") or file_data.get("api_username"),
        api_timeout=timeout,
        api_timeout_open=timeout_open,
        api_verify_cert=verify_cert,
        api_ssl_cert_path=os.environ.get("JAMF_SSL_CERT_PATH") or file_data.get("api_ssl_cert_path"),
        config_path=config_path if config_path.exists() else None,
        cache_enabled=bool(cache_enabled),
        cache_ttl=cache_ttl,
        rate_limit=rate_limit,
    )
