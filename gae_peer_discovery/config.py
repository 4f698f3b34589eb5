"""Frozen dataclasses for configuration, YAML loader with env-var interpolation, and env-only loader."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

DEFAULT_API_BASE_URL = "https://appengine.googleapis.com/v1"
DEFAULT_TOKEN_URL = (
    "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/token"
)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class DiscoveryConfig:
    project_id: str = ""
    service_id: str = "default"
    version_id: str = ""  # only used when cluster_across_versions is false
    process_name_prefix: str = ""
    polling_interval: float = 10.0
    cluster_across_versions: bool = True
    jitter_seconds: float = 0.0
    backoff_base_seconds: float = 0.0  # 0 disables backoff after aborted cycles
    max_backoff_seconds: float = 300.0


@dataclass(frozen=True)
class AppEngineConfig:
    api_base_url: str = DEFAULT_API_BASE_URL
    metadata_token_url: str = DEFAULT_TOKEN_URL
    timeout: float = 10.0
    metadata_timeout: float = 5.0
    page_size: int = 100
    verify_ssl: bool = True


@dataclass(frozen=True)
class MembershipConfig:
    mode: str = "log"  # "log" or "webhook"
    webhook_url: str = ""
    timeout: float = 10.0
    verify_ssl: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    topology: str = "default"
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    appengine: AppEngineConfig = field(default_factory=AppEngineConfig)
    membership: MembershipConfig = field(default_factory=MembershipConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__") and isinstance(value, dict):
            kwargs[key] = _build_nested(ft, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def config_from_env(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build configuration from the App Engine runtime environment variables.

    GOOGLE_CLOUD_PROJECT, GAE_SERVICE and GAE_VERSION are set by the runtime;
    REL_NAME names the release and becomes the node name prefix.
    """
    env = os.environ if environ is None else environ

    discovery: dict[str, Any] = {
        "project_id": env.get("GOOGLE_CLOUD_PROJECT", ""),
        "service_id": env.get("GAE_SERVICE", "default"),
        "version_id": env.get("GAE_VERSION", ""),
        "process_name_prefix": env.get("REL_NAME", ""),
    }
    interval = env.get("PEER_DISCOVERY_POLLING_INTERVAL")
    if interval:
        try:
            discovery["polling_interval"] = float(interval)
        except ValueError:
            raise ConfigError(f"PEER_DISCOVERY_POLLING_INTERVAL is not a number: {interval!r}") from None
    across = env.get("PEER_DISCOVERY_CLUSTER_ACROSS_VERSIONS")
    if across:
        discovery["cluster_across_versions"] = _parse_bool("PEER_DISCOVERY_CLUSTER_ACROSS_VERSIONS", across)

    raw: dict[str, Any] = {
        "topology": env.get("PEER_DISCOVERY_TOPOLOGY", "default"),
        "discovery": discovery,
    }
    webhook_url = env.get("PEER_DISCOVERY_WEBHOOK_URL")
    if webhook_url:
        raw["membership"] = {"mode": "webhook", "webhook_url": webhook_url}
    log_level = env.get("PEER_DISCOVERY_LOG_LEVEL")
    if log_level:
        raw["logging"] = {"level": log_level}

    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    discovery = config.discovery

    if not config.topology:
        raise ConfigError("topology must not be empty")

    if not discovery.project_id:
        raise ConfigError("discovery.project_id is required")

    if not discovery.service_id:
        raise ConfigError("discovery.service_id is required")

    if not discovery.process_name_prefix:
        raise ConfigError("discovery.process_name_prefix is required")

    if not isinstance(discovery.cluster_across_versions, bool):
        raise ConfigError("discovery.cluster_across_versions must be true or false")

    if not discovery.cluster_across_versions and not discovery.version_id:
        raise ConfigError("discovery.version_id is required when cluster_across_versions is false")

    if discovery.polling_interval <= 0:
        raise ConfigError("discovery.polling_interval must be > 0")

    if discovery.jitter_seconds < 0 or discovery.backoff_base_seconds < 0:
        raise ConfigError("discovery.jitter_seconds and discovery.backoff_base_seconds must be >= 0")

    if discovery.max_backoff_seconds < discovery.backoff_base_seconds:
        raise ConfigError("discovery.max_backoff_seconds must be >= discovery.backoff_base_seconds")

    if config.appengine.timeout <= 0 or config.appengine.metadata_timeout <= 0:
        raise ConfigError("appengine.timeout and appengine.metadata_timeout must be > 0")

    if config.appengine.page_size < 1:
        raise ConfigError("appengine.page_size must be >= 1")

    if config.membership.mode not in ("log", "webhook"):
        raise ConfigError("membership.mode must be 'log' or 'webhook'")

    if config.membership.mode == "webhook" and not config.membership.webhook_url:
        raise ConfigError("membership.webhook_url is required when membership.mode is 'webhook'")

    if config.membership.timeout <= 0:
        raise ConfigError("membership.timeout must be > 0")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
