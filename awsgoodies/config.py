"""
Configuration management for AWS Goodies.

Loads:
- ~/.aws-goodies/config.yml: optional settings file
- environment overrides (AWS_TIMEOUT, CACHE_TTL, AWS_PROFILE_DEBUG,
  AWS_GOODIES_QUIET, AWS_GOODIES_CACHE_DIR, AWS_GOODIES_HOME)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yml"
STATE_FILENAME = "state.json"
LOG_FILENAME = "aws-goodies.log"

SAMPLE_CONFIG = """\
# AWS Goodies configuration
# Environment variables override these values.

timeout: 30            # Seconds before an AWS CLI call is abandoned (AWS_TIMEOUT)
debug: false           # Verbose logging to stderr (AWS_PROFILE_DEBUG=true)
quiet: false           # Hide the startup banner (AWS_GOODIES_QUIET=true)

cache:
  ttl: 300             # Seconds a cached response stays fresh (CACHE_TTL)
  dir: ~/.aws-goodies-cache
  clear_on_switch: true  # Drop the old profile's cache when switching profiles

browse:
  max_pull_requests: 25  # Open pull requests shown per repository
  max_executions: 10     # Recent executions shown per pipeline
"""


@dataclass
class CacheConfig:
    """Response cache settings."""
    ttl: int = 300  # 5 minutes
    dir: str = "~/.aws-goodies-cache"
    clear_on_switch: bool = True

    @property
    def path(self) -> Path:
        return Path(self.dir).expanduser()


@dataclass
class BrowseConfig:
    """Limits for the interactive views."""
    max_pull_requests: int = 25
    max_executions: int = 10


@dataclass
class GoodiesConfig:
    """Complete AWS Goodies configuration."""
    home: Path = field(default_factory=lambda: get_goodies_dir())
    timeout: int = 30
    debug: bool = False
    quiet: bool = False
    cache: CacheConfig = field(default_factory=CacheConfig)
    browse: BrowseConfig = field(default_factory=BrowseConfig)

    @property
    def state_path(self) -> Path:
        return self.home / STATE_FILENAME

    @property
    def log_path(self) -> Path:
        return self.home / LOG_FILENAME

    @property
    def config_path(self) -> Path:
        return self.home / CONFIG_FILENAME

    @classmethod
    def load(
        cls,
        home: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "GoodiesConfig":
        """Load config.yml from ``home`` and apply environment overrides."""
        environ = os.environ if environ is None else environ
        home = home or get_goodies_dir(environ)

        data: dict[str, Any] = {}
        config_path = home / CONFIG_FILENAME
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    loaded = yaml.safe_load(f) or {}
                if isinstance(loaded, dict):
                    data = loaded
                else:
                    logger.warning("Ignoring %s: expected a mapping", config_path)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Ignoring unreadable config %s: %s", config_path, e)

        config = cls._parse(data, home)
        config._apply_environment(environ)
        return config

    @classmethod
    def _parse(cls, data: dict[str, Any], home: Path) -> "GoodiesConfig":
        config = cls(home=home)
        config.timeout = _as_int(data.get("timeout"), 30, "timeout")
        config.debug = _as_bool(data.get("debug"), False)
        config.quiet = _as_bool(data.get("quiet"), False)

        cache_data = data.get("cache") or {}
        if isinstance(cache_data, dict):
            config.cache = CacheConfig(
                ttl=_as_int(cache_data.get("ttl"), 300, "cache.ttl"),
                dir=str(cache_data.get("dir") or "~/.aws-goodies-cache"),
                clear_on_switch=_as_bool(cache_data.get("clear_on_switch"), True),
            )

        browse_data = data.get("browse") or {}
        if isinstance(browse_data, dict):
            config.browse = BrowseConfig(
                max_pull_requests=_as_int(
                    browse_data.get("max_pull_requests"), 25, "browse.max_pull_requests"
                ),
                max_executions=_as_int(
                    browse_data.get("max_executions"), 10, "browse.max_executions"
                ),
            )

        return config

    def _apply_environment(self, environ: Mapping[str, str]) -> None:
        if "AWS_TIMEOUT" in environ:
            self.timeout = _as_int(environ["AWS_TIMEOUT"], self.timeout, "AWS_TIMEOUT")
        if "CACHE_TTL" in environ:
            self.cache.ttl = _as_int(environ["CACHE_TTL"], self.cache.ttl, "CACHE_TTL")
        if environ.get("AWS_GOODIES_CACHE_DIR"):
            self.cache.dir = environ["AWS_GOODIES_CACHE_DIR"]
        if "AWS_PROFILE_DEBUG" in environ:
            self.debug = _as_bool(environ["AWS_PROFILE_DEBUG"], self.debug)
        if "AWS_GOODIES_QUIET" in environ:
            self.quiet = _as_bool(environ["AWS_GOODIES_QUIET"], self.quiet)


def _as_int(value: Any, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s: %r (using %s)", name, value, default)
        return default
    if number < 0:
        logger.warning("Negative value for %s: %r (using %s)", name, value, default)
        return default
    return number


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def get_goodies_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Get the ~/.aws-goodies directory path (AWS_GOODIES_HOME overrides it)."""
    environ = os.environ if environ is None else environ
    override = environ.get("AWS_GOODIES_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".aws-goodies"


def ensure_goodies_dir(home: Path | None = None) -> Path:
    """Ensure the settings directory exists and return its path."""
    goodies_dir = home or get_goodies_dir()
    goodies_dir.mkdir(parents=True, exist_ok=True)
    return goodies_dir
