"""
TELELINK Configuration

Loads client configuration from YAML files with environment variable
overrides. Settings are validated with pydantic models.

Search order when no path is given (first existing file wins):
    ./telelink.yaml
    ~/.telelink/config.yaml
    /etc/telelink/config.yaml

Environment overrides use the form TELELINK_<SECTION>_<KEY>, for example
TELELINK_TELESCOPE_DRIVER_ID=alpaca://10.0.0.5:11111/0. Top-level keys use
TELELINK_<KEY> (TELELINK_LOG_LEVEL=DEBUG).

Usage:
    from telelink.config import load_config

    config = load_config()
    print(config.telescope.driver_id)
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from telelink.exceptions import ConfigurationError

ENV_PREFIX = "TELELINK_"


class TelescopeConfig(BaseModel):
    """Telescope driver and polling settings."""

    name: str = "Telescope"
    driver_id: str = "alpaca://localhost:11111/0"
    equinox: Literal["j2000", "jnow", "auto"] = "j2000"
    refresh_interval: float = Field(default=1.0, gt=0.0)
    position_delay: Optional[float] = Field(default=None, ge=0.0)
    call_timeout: float = Field(default=10.0, gt=0.0)
    slew_timeout: float = Field(default=600.0, gt=0.0)
    tick_interval: float = Field(default=0.1, gt=0.0)

    @property
    def effective_position_delay(self) -> float:
        """Delay applied to position queries; defaults to the refresh interval."""
        if self.position_delay is None:
            return self.refresh_interval
        return self.position_delay


class TelelinkConfig(BaseModel):
    """Root configuration."""

    telescope: TelescopeConfig = Field(default_factory=TelescopeConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None

    @model_validator(mode="after")
    def _check_slew_timeout(self) -> "TelelinkConfig":
        telescope = self.telescope
        if telescope.slew_timeout < telescope.call_timeout:
            raise ValueError("slew_timeout must not be shorter than call_timeout")
        return self


def get_config_paths() -> list[Path]:
    """Get configuration file search paths in priority order."""
    return [
        Path("./telelink.yaml"),
        Path.home() / ".telelink" / "config.yaml",
        Path("/etc/telelink/config.yaml"),
    ]


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay TELELINK_* environment variables onto raw config data.

    Values stay strings; pydantic converts them to the field types.
    """
    sections = {
        name for name, field in TelelinkConfig.model_fields.items()
        if isinstance(field.default_factory, type)
        and issubclass(field.default_factory, BaseModel)
    }

    for env_key, env_value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        key = env_key[len(ENV_PREFIX):].lower()

        for section in sections:
            prefix = f"{section}_"
            if key.startswith(prefix):
                section_data = data.setdefault(section, {})
                if not isinstance(section_data, dict):
                    raise ConfigurationError(
                        f"Section '{section}' must be a mapping",
                        config_key=section,
                    )
                section_data[key[len(prefix):]] = env_value
                break
        else:
            if key in TelelinkConfig.model_fields:
                data[key] = env_value

    return data


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", config_file=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Invalid YAML: top level must be a mapping",
            config_file=str(path),
        )
    return data


def load_config(path: Optional[str | Path] = None) -> TelelinkConfig:
    """Load configuration from file and environment.

    Args:
        path: Explicit configuration file. When omitted, the first existing
              file from get_config_paths() is used, or defaults if none exist.

    Returns:
        Validated TelelinkConfig

    Raises:
        ConfigurationError: File not found, invalid YAML, or failed validation
    """
    data: dict[str, Any] = {}
    source: Optional[Path] = None

    if path is not None:
        source = Path(path)
        if not source.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {source}",
                config_file=str(source),
            )
    else:
        for candidate in get_config_paths():
            if candidate.is_file():
                source = candidate
                break

    if source is not None:
        data = _read_yaml(source)

    data = _apply_env_overrides(data)

    try:
        return TelelinkConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e}",
            config_file=str(source) if source else None,
        ) from e
