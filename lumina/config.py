"""YAML configuration loading with Pydantic validation.

Lookup order: explicit path, ``$LUMINA_CONFIG``, ``./config.yaml``,
``./config.yml``, then the same two names under ``~/.lumina``. Missing
files mean built-in defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LUMINA_CONFIG"


def _default_data_dir() -> Path:
    """Return the default data directory: ~/.lumina"""
    return Path.home() / ".lumina"


class DatabaseConfig(BaseModel):
    # ":memory:" keeps all state in-process
    path: str = str(_default_data_dir() / "lumina_state.db")


class LogConfig(BaseModel):
    dir: str = str(_default_data_dir() / "logs")


class AuthConfig(BaseModel):
    # The only identifier allowed to run a full system reset
    distinguished_principal: str = "MWTINC"


class LatencyConfig(BaseModel):
    """Artificial delays in seconds, kept so callers always see an async call."""
    login_seconds: float = Field(default=0.8, ge=0)
    search_seconds: float = Field(default=1.2, ge=0)
    reset_seconds: float = Field(default=1.5, ge=0)


class AppConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    latency: LatencyConfig = Field(default_factory=LatencyConfig)


_config: AppConfig | None = None


def config_search_paths(config_path: str | Path | None = None) -> List[Path]:
    paths: List[Path] = []
    if config_path:
        paths.append(Path(config_path).expanduser())
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        paths.append(Path(env_path).expanduser())
    for base in (Path("."), _default_data_dir()):
        paths.extend([base / "config.yaml", base / "config.yml"])
    return paths


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load config from the first YAML file found. Cached after the first call."""
    global _config
    if _config is not None:
        return _config

    for p in config_search_paths(config_path):
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}
            _config = AppConfig(**data)
            logger.debug("Loaded config from %s", p)
            return _config

    _config = AppConfig()
    return _config


def get_config() -> AppConfig:
    """Get the current config, loading defaults if needed."""
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Reset config (for testing)."""
    global _config
    _config = None
