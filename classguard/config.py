"""
Configuration management for classguard.
Handles loading settings from environment variables and YAML config files.
"""
import os
import tempfile
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

ENV_PREFIX = 'CLASSGUARD_'

DEFAULT_EXCLUDE_PATTERNS = [
    '**/.git/**',
    '**/node_modules/**',
    '**/*.classification',
]


class Config:
    """Configuration loaded from environment variables and an optional YAML file."""

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """Initialize configuration.

        Args:
            config_path: Optional path to a YAML config file.
            load_env_file: Whether to load variables from a ``.env`` file first.
        """
        if load_env_file:
            load_dotenv()
        self._config: Dict[str, Any] = {}
        self._config_path = config_path or os.getenv(f'{ENV_PREFIX}CONFIG')
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from environment variables and the YAML file."""
        self._config = {
            'cache': {
                'ttl_seconds': float(self._env('CACHE_TTL', '60')),
            },
            'storage': {
                'backend': self._env('STORAGE_BACKEND', 'auto'),
                'attribute_dir': self._env('ATTRIBUTE_DIR',
                                           os.path.join('~', '.file-classifications', 'attributes')),
                'backup_dir': self._env('BACKUP_DIR', os.path.join('~', '.file-classifications')),
                'temp_dir': self._env('TEMP_DIR', tempfile.gettempdir()),
                'io_timeout': float(self._env('IO_TIMEOUT', '3.0')),
            },
            'clipboard': {
                'interval': float(self._env('CLIPBOARD_INTERVAL', '1.0')),
                'max_fragments': 50,
                'min_length': 10,
            },
            'duplication': {
                'watch_paths': self._split_paths(self._env('WATCH_PATHS', '')) or [os.getcwd()],
                'deletion_delay': float(self._env('DELETION_DELAY', '0.5')),
                'recursive': True,
            },
            'classification': {
                'enforce': self._str_to_bool(self._env('ENFORCE', 'True')),
                'exclude_patterns': list(DEFAULT_EXCLUDE_PATTERNS),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
                'format': os.getenv('LOG_FORMAT',
                                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            },
        }

        if self._config_path and os.path.exists(self._config_path):
            with open(self._config_path, 'r') as f:
                yaml_config = yaml.safe_load(f) or {}
                self._deep_update(self._config, yaml_config)

    @staticmethod
    def _env(name: str, default: str) -> str:
        return os.getenv(f'{ENV_PREFIX}{name}', default)

    @staticmethod
    def _split_paths(value: str) -> List[str]:
        return [p for p in value.split(os.pathsep) if p]

    def _deep_update(self, original: Dict, update: Dict) -> None:
        """Recursively update a dictionary."""
        for key, value in update.items():
            if key in original and isinstance(original[key], dict) and isinstance(value, dict):
                self._deep_update(original[key], value)
            else:
                original[key] = value

    @staticmethod
    def _str_to_bool(value: str) -> bool:
        """Convert a string to a boolean."""
        return value.lower() in ('true', '1', 't', 'y', 'yes')

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot notation."""
        value = self._config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot notation."""
        keys = key.split('.')
        target = self._config
        for k in keys[:-1]:
            target = target.setdefault(k, {})
        target[keys[-1]] = value

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def to_dict(self) -> Dict[str, Any]:
        return self._config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from the environment and an optional YAML file."""
    return Config(config_path=config_path)
