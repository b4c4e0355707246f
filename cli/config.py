#!/usr/bin/env python3
"""
Configuration Management Module for the PixelChads CLI

Settings come from three layers, later layers winning:

1. ``DEFAULT_CONFIG``
2. the first config file found (``--config-file`` or ``CONFIG_SEARCH_PATHS``)
3. ``PIXELCHADS_<SECTION>__<KEY>`` environment variables
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.pixelchads.yml',
    Path.cwd() / '.pixelchads.json',
    Path.home() / '.pixelchads' / 'config.yml',
    Path.home() / '.pixelchads' / 'config.json',
]

ENV_PREFIX = 'PIXELCHADS_'
ENV_NESTING = '__'

DEFAULT_CONFIG = {
    'registry': {
        'data_dir': '~/.pixelchads',
        'max_supply': 500,
        'royalty_basis_points': 100,
        'contract_uri': 'https://pixelchads.com/',
        'base_uri': 'https://pixelchads.com/tokens/',
        'backup_count': 5,
        'lock_timeout': 30.0,
    },
    'cli': {
        'output_format': 'table',
        'verbose': 0,
    },
}

OUTPUT_FORMATS = ['table', 'json', 'yaml']


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be used."""
    pass


def merge_layers(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated recursively with ``override``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_layers(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigurationManager:
    """Layered CLI configuration."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Args:
            config_file: Explicit configuration file; replaces the search paths
        """
        self.logger = logging.getLogger('pixelchads-cli.config')
        self.config_file = config_file
        self._resolved: Optional[Dict[str, Any]] = None
        self._sources: List[str] = []

    def load(self) -> Dict[str, Any]:
        """Resolve and cache the effective configuration."""
        if self._resolved is not None:
            return self._resolved

        resolved = copy.deepcopy(DEFAULT_CONFIG)
        self._sources = ["defaults"]

        config_path = self._find_config_file()
        if config_path is not None:
            resolved = merge_layers(resolved, self._read_file(config_path))
            self._sources.append(f"file:{config_path}")
            self.logger.debug(f"Loaded config from {config_path}")

        overrides = self._environment_overrides()
        if overrides:
            resolved = merge_layers(resolved, overrides)
            self._sources.append("environment")

        self._resolved = self._expand_dirs(resolved)
        return self._resolved

    def _find_config_file(self) -> Optional[Path]:
        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise ConfigurationError(f"Config file not found: {path}")
            return path

        return next((path for path in CONFIG_SEARCH_PATHS if path.exists()), None)

    def _read_file(self, path: Path) -> Dict[str, Any]:
        """Parse a YAML or JSON config file into a mapping."""
        loaders = {'.yml': yaml.safe_load, '.yaml': yaml.safe_load, '.json': json.load}
        loader = loaders.get(path.suffix)
        if loader is None:
            raise ConfigurationError(f"Unknown config file format: {path}")

        try:
            with open(path, 'r') as f:
                data = loader(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def _environment_overrides(self) -> Dict[str, Any]:
        """Build a nested mapping from PIXELCHADS_* variables."""
        overrides: Dict[str, Any] = {}

        for name, raw in os.environ.items():
            if not name.startswith(ENV_PREFIX):
                continue

            *sections, leaf = name[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            target = overrides
            for section in sections:
                target = target.setdefault(section, {})
            target[leaf] = self._parse_env_value(raw)

        return overrides

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        lowered = value.lower()
        if lowered in ('true', 'yes'):
            return True
        if lowered in ('false', 'no'):
            return False

        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                continue
        return value

    def _expand_dirs(self, config: Dict[str, Any]) -> Dict[str, Any]:
        # Only *_dir keys are paths
        for key, value in config.items():
            if isinstance(value, dict):
                self._expand_dirs(value)
            elif key.endswith('_dir') and isinstance(value, str):
                config[key] = os.path.expanduser(os.path.expandvars(value))
        return config

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dotted path, e.g. ``registry.data_dir``.

        Returns:
            The value, or ``default`` when any segment is missing
        """
        node: Any = self.load()
        for segment in key_path.split('.'):
            if not isinstance(node, dict) or segment not in node:
                return default
            node = node[segment]
        return node

    def validate(self) -> List[str]:
        """Return a list of problems with the effective configuration."""
        registry = self.load().get('registry', {})
        problems = []

        max_supply = registry.get('max_supply')
        if not isinstance(max_supply, int) or max_supply <= 0:
            problems.append(f"registry.max_supply must be a positive integer: {max_supply}")

        bps = registry.get('royalty_basis_points')
        if not isinstance(bps, int) or not 0 <= bps <= 10000:
            problems.append(f"registry.royalty_basis_points must be between 0 and 10000: {bps}")

        if not registry.get('data_dir'):
            problems.append("registry.data_dir is required")

        output_format = self.get('cli.output_format')
        if output_format not in OUTPUT_FORMATS:
            problems.append(f"Invalid output format: {output_format}")

        return problems

    def get_sources(self) -> List[str]:
        """Names of the layers that contributed, in merge order."""
        self.load()
        return list(self._sources)
