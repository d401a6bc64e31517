#!/usr/bin/env python3
"""
Configuration and logging setup.

Configuration is read from a YAML file (``$TOOLCACHE_CONFIG`` or
``~/.config/toolcache/config.yaml``) and merged onto the defaults below.
``$TOOLCACHE_CACHE_DIR`` overrides the cache directory.
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

# Local imports
from .build import BuildRunner
from .errors import ConfigurationError
from .fetch import Fetcher
from .installer import InstallContext
from .layout import CacheLayout
from .registry import ToolRegistry

CONFIG_ENV = "TOOLCACHE_CONFIG"
CACHE_DIR_ENV = "TOOLCACHE_CACHE_DIR"
DEFAULT_CONFIG_PATH = "~/.config/toolcache/config.yaml"

DEFAULTS: Dict[str, Any] = {
    "cache_dir": "~/.cache/toolcache",
    "logging": {
        "level": "INFO",
        "format": "text",
    },
    "download": {
        "timeout": 300,
        "chunk_size": 8192,
    },
    "build": {
        "timeout": 600,
    },
}


@dataclass
class ToolcacheConfig:
    """Resolved configuration values."""
    cache_dir: Path
    log_level: str = "INFO"
    log_format: str = "text"
    download_timeout: float = 300
    chunk_size: int = 8192
    build_timeout: float = 600


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Optional[Union[str, Path]] = None) -> ToolcacheConfig:
    """
    Load and validate configuration.

    Args:
        path: Configuration file, defaults to $TOOLCACHE_CONFIG or the user
            config file. Only an explicitly named file has to exist.

    Returns:
        Resolved configuration

    Raises:
        ConfigurationError: If the file is missing, not valid YAML or has
            invalid values
    """
    explicit = path is not None or CONFIG_ENV in os.environ
    config_path = Path(os.path.expanduser(str(path or os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH))))

    data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration {config_path} must be a mapping")
    elif explicit:
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    merged = _merge(DEFAULTS, data)
    if os.environ.get(CACHE_DIR_ENV):
        merged["cache_dir"] = os.environ[CACHE_DIR_ENV]

    try:
        return ToolcacheConfig(
            cache_dir=Path(os.path.expanduser(str(merged["cache_dir"]))),
            log_level=str(merged["logging"]["level"]).upper(),
            log_format=str(merged["logging"]["format"]),
            download_timeout=float(merged["download"]["timeout"]),
            chunk_size=int(merged["download"]["chunk_size"]),
            build_timeout=float(merged["build"]["timeout"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e


def setup_logging(level: str = "INFO", fmt: str = "text") -> logging.Logger:
    """Set up logging for the toolcache package."""
    logger = logging.getLogger("toolcache")

    log_level = getattr(logging, level.upper(), None)
    if not isinstance(log_level, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    logger.setLevel(log_level)

    # Create handler if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler()

        if fmt == "json":
            formatter = logging.Formatter(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"component": "%(name)s", "message": "%(message)s"}'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            )

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def build_context(config: ToolcacheConfig, registry: ToolRegistry) -> InstallContext:
    """Wire the install context from configuration."""
    return InstallContext(
        registry=registry,
        layout=CacheLayout(config.cache_dir),
        fetcher=Fetcher(timeout=config.download_timeout, chunk_size=config.chunk_size),
        builder=BuildRunner(timeout=config.build_timeout),
    )
