"""Configuration management for the users client and its development backend."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_TIMEOUT = 5.0


def _parse_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid request timeout: {value!r}") from exc
    if timeout <= 0:
        raise ValueError("Request timeout must be greater than zero")
    return timeout


def _parse_base_url(value: object) -> str:
    cleaned = str(value or "").strip().rstrip("/")
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    if not cleaned.startswith(("http://", "https://")):
        raise ValueError(f"API base URL must use http or https: {cleaned}")
    return cleaned


def _resolve_path(raw: object, base_path: Path | None) -> Path:
    candidate = Path(str(raw)).expanduser()
    if not candidate.is_absolute() and base_path is not None:
        candidate = base_path / candidate
    return candidate.resolve(strict=False)


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the users REST API."""

    base_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "ClientConfig":
        """Create a :class:`ClientConfig` from raw dictionary data."""
        return ClientConfig(
            base_url=_parse_base_url(data.get("base_url", DEFAULT_API_URL)),
            timeout=_parse_timeout(data.get("timeout", DEFAULT_TIMEOUT)),
        )


@dataclass(frozen=True)
class ServerConfig:
    """Bind settings for the development backend."""

    host: str = "127.0.0.1"
    port: int = 5000
    data_file: Optional[Path] = None

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "ServerConfig":
        """Create a :class:`ServerConfig` from raw dictionary data."""
        try:
            port = int(data.get("port", 5000))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid server port: {data.get('port')!r}") from exc
        if not 1 <= port <= 65535:
            raise ValueError(f"Server port out of range: {port}")

        raw_data_file = data.get("data_file")
        return ServerConfig(
            host=str(data.get("host", "127.0.0.1")),
            port=port,
            data_file=_resolve_path(raw_data_file, base_path) if raw_data_file else None,
        )


@dataclass(frozen=True)
class Settings:
    """Combined configuration loaded from YAML and the environment."""

    api: ClientConfig = ClientConfig()
    server: ServerConfig = ServerConfig()


def load_config(config_path: Path) -> Settings:
    """Load client and server settings from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    sections: Dict[str, Mapping[str, object]] = {}
    for name in ("api", "server"):
        section = raw.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Configuration section '{name}' must be a mapping")
        sections[name] = section

    return Settings(
        api=ClientConfig.from_dict(sections["api"]),
        server=ServerConfig.from_dict(sections["server"], base_path=config_path.parent),
    )


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "userdesk.yaml").resolve(strict=False)
    return candidate


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings, applying ``USERDESK_*`` environment overrides.

    An explicitly requested file must exist; the default location is optional.
    """

    explicit = config_path or os.getenv("USERDESK_CONFIG")
    path = resolve_config_path(explicit)
    if path.exists():
        settings = load_config(path)
    elif explicit:
        raise ValueError(f"Configuration file not found: {path}")
    else:
        settings = Settings()

    api = settings.api
    api_url = os.getenv("USERDESK_API_URL")
    if api_url:
        api = replace(api, base_url=_parse_base_url(api_url))
    api_timeout = os.getenv("USERDESK_API_TIMEOUT")
    if api_timeout:
        api = replace(api, timeout=_parse_timeout(api_timeout))

    server = settings.server
    data_file = os.getenv("USERDESK_DATA_FILE")
    if data_file:
        server = replace(server, data_file=_resolve_path(data_file, None))

    return Settings(api=api, server=server)


__all__ = [
    "ClientConfig",
    "DEFAULT_API_URL",
    "DEFAULT_TIMEOUT",
    "ServerConfig",
    "Settings",
    "load_config",
    "load_settings",
    "resolve_config_path",
]
