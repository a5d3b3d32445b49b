#!/usr/bin/env python3
"""
Configuration for the File Archiver service

Settings are read once at startup from a JSON file, overridden by
environment variables (a local .env file is honoured), and validated.
"""

import json
import os
from pathlib import Path
from typing import Optional, List, Dict, Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

# File paths
BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_FILE = BASE_DIR / 'config' / 'config.json'

# Environment variable -> settings field
ENV_OVERRIDES = {
    'ARCHIVER_HOST': 'host',
    'PORT': 'port',
    'ARCHIVER_PORT': 'port',
    'ARCHIVER_MAX_FILES_PER_TASK': 'max_files_per_task',
    'ARCHIVER_MAX_CONCURRENT_TASKS': 'max_concurrent_tasks',
    'ARCHIVER_ARCHIVE_DIR': 'archive_dir',
    'ARCHIVER_LOG_LEVEL': 'log_level',
    'ARCHIVER_LOG_FILE': 'log_file',
}


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded"""


class ArchiverSettings(BaseModel):
    """Static service options, immutable after startup"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra='forbid',
        frozen=True
    )

    host: str = Field(default='0.0.0.0')
    port: int = Field(default=8080, ge=1, le=65535)
    allowed_extensions: List[str] = Field(default_factory=lambda: ['.pdf', '.jpeg', '.jpg'])
    max_files_per_task: int = Field(default=3, ge=1, le=1000)
    max_concurrent_tasks: int = Field(default=3, ge=1, le=1000)
    archive_dir: str = Field(default='archives', min_length=1)

    # Cleanup sweep
    cleanup_interval_seconds: int = Field(default=60, ge=1)
    archive_max_age_seconds: int = Field(default=600, ge=1)

    # Server / downloads
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)
    download_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    download_chunk_size: int = Field(default=64 * 1024, ge=1)
    reject_new_tasks_when_busy: bool = Field(default=True)

    # Logging
    log_level: str = Field(default='INFO')
    log_file: Optional[str] = Field(default=None)

    @field_validator('allowed_extensions')
    @classmethod
    def normalize_extensions(cls, v):
        """Lowercase, leading dot, no empties"""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                raise ValueError('Empty extension in allowed_extensions')
            if not ext.startswith('.'):
                ext = '.' + ext
            normalized.append(ext)
        return normalized

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Invalid log level: {v}')
        return level

    @property
    def archive_path(self) -> Path:
        return Path(self.archive_dir).resolve()


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a JSON object")
    return data


def _env_overrides() -> Dict[str, Any]:
    overrides = {}
    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            overrides[field_name] = value
    return overrides


def load_settings(config_file: Optional[str] = None, use_env: bool = True) -> ArchiverSettings:
    """
    Load service settings

    Args:
        config_file: JSON config path. Defaults to $ARCHIVER_CONFIG, then
            config/config.json. A missing file means built-in defaults.
        use_env: Apply environment variable overrides

    Returns:
        Validated ArchiverSettings

    Raises:
        ConfigError: If the file is unreadable or a value is invalid
    """
    if use_env:
        load_dotenv()

    path = Path(config_file or os.getenv('ARCHIVER_CONFIG') or DEFAULT_CONFIG_FILE)
    data = _read_config_file(path)
    if use_env:
        data.update(_env_overrides())

    try:
        return ArchiverSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e
