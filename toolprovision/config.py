"""YAML configuration for toolprovision.

Settings are resolved in three layers, later layers winning:
defaults -> toolprovision.yaml -> TOOLPROVISION_* environment variables.
CLI flags are applied on top by the CLI itself.

Example toolprovision.yaml:

    download_timeout: 120000
    max_retries: 3
    retry_delay: 2000
    cache_dir: /opt/toolcache
    names:
      compiler: haxe
      runtime: neko
    distribution:
      platform_names:
        windows: win
        macos: osx
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from toolprovision.assets import (
    DEFAULT_NIGHTLY_HOST,
    DEFAULT_RELEASE_HOST,
    AssetKind,
    Distribution,
)
from toolprovision.core.download import (
    DEFAULT_BACKOFF_CAP_MS,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_TIMEOUT_MS,
    RetryPolicy,
)
from toolprovision.core.exceptions import ConfigError
from toolprovision.core.platform import SUPPORTED_PLATFORMS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "toolprovision.yaml"

ENV_PREFIX = "TOOLPROVISION_"

# setting name -> environment variable suffix
_ENV_INT_SETTINGS = {
    "download_timeout": "DOWNLOAD_TIMEOUT",
    "max_retries": "MAX_RETRIES",
    "retry_delay": "RETRY_DELAY",
    "backoff_cap": "BACKOFF_CAP",
}


@dataclass
class ProvisionSettings:
    """Complete toolprovision configuration."""

    download_timeout: int = DEFAULT_TIMEOUT_MS  # ms, per attempt
    max_retries: int = DEFAULT_MAX_ATTEMPTS  # total attempts
    retry_delay: int = DEFAULT_INITIAL_DELAY_MS  # ms, first backoff delay
    backoff_cap: int = DEFAULT_BACKOFF_CAP_MS  # ms
    cache_dir: Optional[Path] = None  # None: global cache dir
    compiler_name: str = AssetKind.COMPILER.value
    runtime_name: str = AssetKind.RUNTIME.value
    release_host: str = DEFAULT_RELEASE_HOST
    nightly_host: str = DEFAULT_NIGHTLY_HOST
    platform_names: Dict[str, str] = field(default_factory=dict)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_retries,
            initial_delay_ms=self.retry_delay,
            backoff_cap_ms=self.backoff_cap,
        )

    def distribution(self) -> Distribution:
        return Distribution(
            release_host=self.release_host,
            nightly_host=self.nightly_host,
            platform_names=dict(self.platform_names),
        )

    def with_overrides(self, **overrides: Any) -> "ProvisionSettings":
        """Copy with the non-None overrides applied and validated."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        settings = replace(self, **changes)
        validate_settings(settings)
        return settings


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProvisionSettings:
    """
    Load settings from an optional YAML file and the environment.

    Args:
        config_path: Explicit config file; must exist when given. When None,
            ./toolprovision.yaml is used if present.
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated settings

    Raises:
        ConfigError: If the file or any value is invalid
    """
    if environ is None:
        environ = os.environ

    settings = ProvisionSettings()

    if config_path is not None:
        settings = _apply_file(settings, Path(config_path), required=True)
    else:
        default_path = Path.cwd() / DEFAULT_CONFIG_FILE
        if default_path.exists():
            settings = _apply_file(settings, default_path, required=False)

    settings = _apply_environment(settings, environ)
    validate_settings(settings)
    return settings


def _apply_file(
    settings: ProvisionSettings, config_path: Path, required: bool
) -> ProvisionSettings:
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    if data is None:
        if required:
            raise ConfigError(f"Configuration file is empty: {config_path}")
        return settings

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")

    logger.debug(f"Loaded configuration from {config_path}")
    return replace(settings, **_parse_mapping(data))


def _parse_mapping(data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate the YAML document into ProvisionSettings fields."""
    known = {
        "download_timeout",
        "max_retries",
        "retry_delay",
        "backoff_cap",
        "cache_dir",
        "names",
        "distribution",
    }
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    fields: Dict[str, Any] = {}

    for key in _ENV_INT_SETTINGS:
        if key in data:
            fields[key] = _as_int(key, data[key])

    if data.get("cache_dir") is not None:
        fields["cache_dir"] = Path(str(data["cache_dir"])).expanduser()

    names = data.get("names") or {}
    if not isinstance(names, dict):
        raise ConfigError("'names' must be a mapping")
    for kind in AssetKind:
        if kind.value in names:
            fields[f"{kind.value}_name"] = _as_name(f"names.{kind.value}", names[kind.value])

    distribution = data.get("distribution") or {}
    if not isinstance(distribution, dict):
        raise ConfigError("'distribution' must be a mapping")
    for key in ("release_host", "nightly_host"):
        if key in distribution:
            fields[key] = _as_name(f"distribution.{key}", distribution[key])
    if "platform_names" in distribution:
        fields["platform_names"] = _as_platform_names(distribution["platform_names"])

    return fields


def _apply_environment(
    settings: ProvisionSettings, environ: Mapping[str, str]
) -> ProvisionSettings:
    fields: Dict[str, Any] = {}

    for key, suffix in _ENV_INT_SETTINGS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw:
            fields[key] = _as_int(ENV_PREFIX + suffix, raw)

    cache_dir = environ.get(ENV_PREFIX + "CACHE_DIR")
    if cache_dir:
        fields["cache_dir"] = Path(cache_dir).expanduser()

    return replace(settings, **fields) if fields else settings


def validate_settings(settings: ProvisionSettings) -> None:
    """
    Check value ranges.

    Raises:
        ConfigError: If a value is out of range
    """
    if settings.download_timeout <= 0:
        raise ConfigError(f"download_timeout must be positive: {settings.download_timeout}")
    if settings.max_retries < 1:
        raise ConfigError(f"max_retries must be at least 1: {settings.max_retries}")
    if settings.retry_delay < 0:
        raise ConfigError(f"retry_delay cannot be negative: {settings.retry_delay}")
    if settings.backoff_cap < 0:
        raise ConfigError(f"backoff_cap cannot be negative: {settings.backoff_cap}")


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None


def _as_name(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string")
    return value.strip()


def _as_platform_names(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigError("distribution.platform_names must be a mapping")

    names = {}
    for platform_token, spelled in value.items():
        if platform_token not in SUPPORTED_PLATFORMS:
            raise ConfigError(
                f"Unknown platform in distribution.platform_names: {platform_token} "
                f"(expected one of {', '.join(SUPPORTED_PLATFORMS)})"
            )
        names[platform_token] = _as_name(
            f"distribution.platform_names.{platform_token}", spelled
        )
    return names


__all__ = [
    "ProvisionSettings",
    "load_settings",
    "validate_settings",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
]
