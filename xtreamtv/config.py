"""
Configuration management for XtreamTV.

Handles loading, validation, and access to application configuration.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, Field

# Global configuration instance
_config: Optional["XtreamTVConfig"] = None

_SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
}


class CacheConfig(BaseModel):
    """On-disk and in-memory cache configuration."""
    directory: str = "~/.cache/xtreamtv"
    content_expiration_days: int = 30
    image_expiration_days: int = 7
    content_size_budget: int = 100_000_000  # bytes
    memory_count_limit: int = 100
    memory_cost_limit: int = 50_000_000  # bytes
    maintenance_interval: int = 3600  # seconds, 0 = no periodic maintenance

    @property
    def root(self) -> Path:
        """Expanded cache root directory."""
        return Path(self.directory).expanduser()

    @property
    def content_expiration_seconds(self) -> float:
        return self.content_expiration_days * 24 * 60 * 60

    @property
    def image_expiration_seconds(self) -> float:
        return self.image_expiration_days * 24 * 60 * 60


class NetworkConfig(BaseModel):
    """HTTP settings for image downloads."""
    timeout: float = 30.0
    user_agent: str = "XtreamTV/0.1"
    follow_redirects: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: str = "logs/xtreamtv.log"
    max_size: str = "10MB"
    backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def max_bytes(self) -> int:
        return parse_size(self.max_size)


class XtreamTVConfig(BaseModel):
    """Main XtreamTV configuration."""
    cache: CacheConfig = Field(default_factory=CacheConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def parse_size(value: str) -> int:
    """
    Convert a size string such as ``"10MB"`` into bytes.

    Bare numbers are taken as bytes.
    """
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([KMG]?B)?\s*", value.upper())
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit or "B"])


CONFIG_FILE_NAME = "config.yaml"
CONFIG_PATH_ENV = "XTREAMTV_CONFIG"

# Environment variable -> (section, field)
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "XTREAMTV_CACHE_DIR": ("cache", "directory"),
    "XTREAMTV_CACHE_SIZE_BUDGET": ("cache", "content_size_budget"),
    "XTREAMTV_MAINTENANCE_INTERVAL": ("cache", "maintenance_interval"),
    "XTREAMTV_HTTP_TIMEOUT": ("network", "timeout"),
    "XTREAMTV_LOG_LEVEL": ("logging", "level"),
}


def _find_config_file() -> Optional[Path]:
    explicit = os.environ.get(CONFIG_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    for directory in (Path.cwd(), Path(__file__).parent.parent):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Optional[str] = None) -> XtreamTVConfig:
    """
    Read the YAML config, apply ``XTREAMTV_*`` overrides and cache the result.

    Without ``config_path`` the file named by ``XTREAMTV_CONFIG`` is used,
    then ``config.yaml`` in the working directory or project root. A missing
    file means defaults.
    """
    global _config

    path = Path(config_path) if config_path else _find_config_file()
    data: Dict[str, Any] = {}
    if path is not None and path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    for env_var, (section, field) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        section_data = data.get(section) or {}
        section_data[field] = _coerce_env_value(value)
        data[section] = section_data

    _config = XtreamTVConfig(**data)
    return _config


def get_config() -> XtreamTVConfig:
    """Current configuration, loaded on first use."""
    if _config is None:
        return load_config()
    return _config


def reload_config() -> XtreamTVConfig:
    global _config
    _config = None
    return load_config()


def _coerce_env_value(value: str) -> Any:
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            continue
    return value
