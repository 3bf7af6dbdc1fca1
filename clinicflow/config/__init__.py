"""Simple YAML configuration loader for ClinicFlow."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "api": {
        "base_url": "http://localhost:4000",
        "timeout_seconds": 60.0,
    },
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
    },
    "recording": {
        "tick_interval_seconds": 1.0,
    },
    "billing": {
        "default_base_fee": 500,
        "currency_symbol": "₹",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/clinicflow.log",
        "console_output": True,
    },
}

API_BASE_ENV = "CLINICFLOW_API_BASE"


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ClinicFlowConfig:
    """ClinicFlow configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = _merge(DEFAULT_CONFIG, self._load_config())

        self._apply_env_overrides(self.config)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve log file path
        if 'logging' in config and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> None:
        api_base = os.environ.get(API_BASE_ENV)
        if api_base:
            logger.info(f"API base URL overridden from {API_BASE_ENV}")
            config['api']['base_url'] = api_base

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a nested value, e.g. get('billing.currency_symbol')."""
        node: Any = self.config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """Assign a nested value, creating intermediate sections as needed."""
        *sections, leaf = key_path.split('.')
        node = self.config
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value
        logger.debug(f"Config {key_path} = {value!r}")

    def get_api_base_url(self) -> str:
        """Get API base URL without a trailing slash."""
        return str(self.get('api.base_url')).rstrip('/')

    def get_log_file_path(self) -> str:
        """Get log file path."""
        log_path = self.get('logging.file_path', 'data/logs/clinicflow.log')
        return str(Path(log_path).absolute())
