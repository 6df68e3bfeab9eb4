# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.settings",
#   "purpose": "Define configuration models, YAML loading, and environment overrides",
#   "sections": [
#     {"id": "httpsettings", "name": "HttpSettings", "anchor": "class-httpsettings", "kind": "class"},
#     {"id": "loggingsettings", "name": "LoggingSettings", "anchor": "class-loggingsettings", "kind": "class"},
#     {"id": "gettersettings", "name": "GetterSettings", "anchor": "class-gettersettings", "kind": "class"},
#     {"id": "environmentoverrides", "name": "EnvironmentOverrides", "anchor": "class-environmentoverrides", "kind": "class"},
#     {"id": "load-raw-yaml", "name": "load_raw_yaml", "anchor": "function-load-raw-yaml", "kind": "function"},
#     {"id": "load-settings", "name": "load_settings", "anchor": "function-load-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration models for the artifact getter.

Settings are layered: model defaults, then an optional YAML file, then
``ARTIFACTGET_*`` environment variables read through ``pydantic-settings``.
All models are frozen so a resolved configuration can be shared between
getters without defensive copies.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

__all__ = [
    "DEFAULT_USER_AGENT",
    "HttpSettings",
    "LoggingSettings",
    "GetterSettings",
    "EnvironmentOverrides",
    "get_env_overrides",
    "load_raw_yaml",
    "build_settings",
    "load_settings",
]

LOGGER = logging.getLogger("ArtifactGet.settings")

DEFAULT_USER_AGENT = "artifact-get/0.1 (+https://github.com/artifact-get/artifact-get)"

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class HttpSettings(BaseModel):
    """HTTP client settings consumed by :func:`ArtifactGet.net.build_http_client`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_connect: float = Field(default=5.0, gt=0.0, le=120.0, description="Connect timeout in seconds")
    timeout_read: float = Field(default=30.0, gt=0.0, le=3600.0, description="Read timeout in seconds")
    timeout_write: float = Field(default=30.0, gt=0.0, le=3600.0, description="Write timeout in seconds")
    timeout_pool: float = Field(default=5.0, gt=0.0, le=120.0, description="Acquire-from-pool timeout")
    max_connections: int = Field(default=20, ge=1, le=1024)
    max_keepalive_connections: int = Field(default=10, ge=0, le=1024)
    keepalive_expiry: float = Field(default=30.0, ge=0.0, le=600.0)
    follow_redirects: bool = Field(default=True, description="Follow 3xx responses transparently")
    max_redirects: int = Field(default=10, ge=0, le=50)
    verify_tls: bool = Field(default=True, description="Verify server certificates against certifi")
    trust_env: bool = Field(
        default=True,
        description="Honor HTTP(S)_PROXY and NO_PROXY environment variables",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    emit_json_logs: bool = Field(
        default=False,
        description="Write JSON lines to log_dir (legacy configs may use 'json')",
        validation_alias=AliasChoices("emit_json_logs", "json"),
    )
    log_dir: Optional[Path] = Field(default=None, description="Directory for rotated log files")
    max_log_size_mb: int = Field(default=50, gt=0)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        """Normalize and validate logging level."""
        upper = str(value).upper()
        if upper not in _VALID_LEVELS:
            raise ValueError(f"level must be one of {list(_VALID_LEVELS)}, got '{value}'")
        return upper

    def level_int(self) -> int:
        """Convert the level string to the ``logging`` module integer."""
        return getattr(logging, self.level)


class GetterSettings(BaseModel):
    """Top-level configuration for getters and the dispatcher."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    http: HttpSettings = Field(default_factory=HttpSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    netrc: bool = Field(default=False, description="Augment locators with netrc credentials")
    staging_dir: Optional[Path] = Field(
        default=None,
        description="Parent directory for staging areas; defaults to the OS temp dir",
    )

    @field_validator("staging_dir", mode="before")
    @classmethod
    def expand_staging_dir(cls, value: Any) -> Optional[Path]:
        """Expand ``~`` in the staging directory."""
        if value is None or value == "":
            return None
        return Path(value).expanduser()


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    netrc: Optional[bool] = Field(default=None, alias="ARTIFACTGET_NETRC")
    staging_dir: Optional[Path] = Field(default=None, alias="ARTIFACTGET_STAGING_DIR")
    log_level: Optional[str] = Field(default=None, alias="ARTIFACTGET_LOG_LEVEL")
    timeout_read: Optional[float] = Field(default=None, alias="ARTIFACTGET_TIMEOUT_READ")
    timeout_connect: Optional[float] = Field(default=None, alias="ARTIFACTGET_TIMEOUT_CONNECT")
    user_agent: Optional[str] = Field(default=None, alias="ARTIFACTGET_USER_AGENT")

    model_config = SettingsConfigDict(
        env_prefix="ARTIFACTGET_", case_sensitive=False, extra="ignore"
    )


def get_env_overrides() -> Dict[str, str]:
    """Return environment-derived overrides as stringified key/value pairs."""

    env = EnvironmentOverrides()
    return {
        key: str(value) for key, value in env.model_dump(by_alias=False, exclude_none=True).items()
    }


def _apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``raw`` with environment overrides merged in."""

    env = EnvironmentOverrides()
    merged: Dict[str, Any] = dict(raw)
    http = dict(merged.get("http") or {})
    logging_section = dict(merged.get("logging") or {})

    if env.netrc is not None:
        merged["netrc"] = env.netrc
    if env.staging_dir is not None:
        merged["staging_dir"] = env.staging_dir
    if env.log_level is not None:
        logging_section["level"] = env.log_level
    if env.timeout_read is not None:
        http["timeout_read"] = env.timeout_read
    if env.timeout_connect is not None:
        http["timeout_connect"] = env.timeout_connect
    if env.user_agent is not None:
        http["user_agent"] = env.user_agent

    for key, value in env.model_dump(exclude_none=True).items():
        LOGGER.info("Config overridden: %s=%s", key, value, extra={"stage": "config"})

    if http:
        merged["http"] = http
    if logging_section:
        merged["logging"] = logging_section
    return merged


def load_raw_yaml(config_path: Path) -> Mapping[str, object]:
    """Read a YAML configuration file and return its top-level mapping."""

    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file '{path}' contains invalid YAML") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration file must contain a mapping at the root")
    return data


def build_settings(
    raw: Optional[Mapping[str, object]] = None, *, apply_env: bool = True
) -> GetterSettings:
    """Materialise :class:`GetterSettings` from a raw mapping.

    Args:
        raw: Mapping loaded from YAML (or built by hand); ``None`` means defaults.
        apply_env: When ``True``, ``ARTIFACTGET_*`` environment variables win
            over values in ``raw``.

    Returns:
        Validated, frozen settings.

    Raises:
        ConfigurationError: If the merged mapping fails model validation.
    """

    data: Dict[str, Any] = dict(raw or {})
    try:
        if apply_env:
            data = _apply_env_overrides(data)
        return GetterSettings.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_settings(config_path: Optional[Path] = None, *, apply_env: bool = True) -> GetterSettings:
    """Load settings from ``config_path`` (optional) plus environment overrides."""

    raw: Mapping[str, object] = {}
    if config_path is not None:
        raw = load_raw_yaml(config_path)
    return build_settings(raw, apply_env=apply_env)
