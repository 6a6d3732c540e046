# ==============================================================================
# DATCHECK - CONFIGURATION MODULE
# ==============================================================================
# Persistent defaults for the command line tool.
#
# This module handles:
#   - Loading/saving configuration from a JSON file
#   - Default values for all settings
#   - Validation of the values the audit engine depends on
#
# Configuration is stored in: <user data dir>/config.json (see paths.py)
# Command line flags always win over configured values.
#
# Usage:
#   from datcheck.core.config import get_config
#   config = get_config()
#   print(config.hash_method)
#   config.default_datfile = "/dats/snes.dat"
#   config.save()
# ==============================================================================

import json
import logging
import os
from typing import Any, Dict, List, Optional

from .hasher import ALGORITHMS
from .paths import Paths

logger = logging.getLogger(__name__)


# ==============================================================================
# DEFAULT CONFIGURATION VALUES
# ==============================================================================
# These are used when no config file exists or when values are missing.

DEFAULT_CONFIG = {
    # -------------------------------------------------------------------------
    # CATALOG
    # -------------------------------------------------------------------------
    # Datfile used when -d/--datfile is not given
    "default_datfile": "",

    # -------------------------------------------------------------------------
    # AUDIT SETTINGS
    # -------------------------------------------------------------------------
    # Hash used to match files (sha1, md5, crc)
    "hash_method": "sha1",

    # Number of parallel hashing workers
    "worker_count": 10,

    # Extensions (without dot) never audited
    "exclude_extensions": [],

    # Sort the set summary by game name instead of datfile order
    "sort_sets": False,

    # Report sections to print (roms, sets, all)
    "show": "all",

    # -------------------------------------------------------------------------
    # HASH CACHE
    # -------------------------------------------------------------------------
    # Reuse digests of unchanged files between runs
    "hash_cache_enabled": False,

    # Cache database location ("" = user data dir)
    "hash_cache_path": "",

    # -------------------------------------------------------------------------
    # OUTPUT
    # -------------------------------------------------------------------------
    # Colored status messages on terminals
    "use_colors": True,

    # Enable debug logging
    "debug_mode": False,
}

# Which sections a report prints
SHOW_CHOICES = ('roms', 'sets', 'all')

# Upper bound for worker_count
MAX_WORKERS = 64


# ==============================================================================
# CONFIGURATION CLASS
# ==============================================================================
class Config:
    """
    Configuration manager for DatCheck.

    Attributes:
        config_path: Path to the configuration file
        data: Dictionary containing all settings

    Example:
        >>> config = Config("/tmp/config.json")
        >>> config.load()
        >>> config.worker_count = 4
        >>> config.save()
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to config file. If None, uses the user data dir.
        """
        self.config_path = config_path or Paths.get_config_path()
        self.data: Dict[str, Any] = dict(DEFAULT_CONFIG)
        self.data['exclude_extensions'] = []
        self._modified = False

    # -------------------------------------------------------------------------
    # LOADING AND SAVING
    # -------------------------------------------------------------------------

    def load(self) -> bool:
        """
        Load configuration from file.

        Unknown keys are ignored and missing keys keep their defaults.

        Returns:
            True if file was loaded, False if using defaults
        """
        if not os.path.isfile(self.config_path):
            logger.debug("Config file %s not found, using defaults", self.config_path)
            return False

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Invalid config file %s: %s", self.config_path, e)
            return False
        except OSError as e:
            logger.error("Failed to load config %s: %s", self.config_path, e)
            return False

        if not isinstance(loaded, dict):
            logger.error("Invalid config file %s: expected a JSON object", self.config_path)
            return False

        for key, value in loaded.items():
            if key in self.data:
                self.data[key] = value
            else:
                logger.warning("Ignoring unknown config key '%s'", key)

        logger.info("Loaded config from %s", self.config_path)
        self._modified = False
        return True

    def save(self) -> bool:
        """
        Save configuration to file.

        Returns:
            True if saved successfully
        """
        try:
            directory = os.path.dirname(self.config_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=4, sort_keys=True)
        except OSError as e:
            logger.error("Failed to save config %s: %s", self.config_path, e)
            return False

        logger.info("Saved config to %s", self.config_path)
        self._modified = False
        return True

    def reset_to_defaults(self):
        """Reset all settings to their default values."""
        self.data = dict(DEFAULT_CONFIG)
        self.data['exclude_extensions'] = []
        self._modified = True

    # -------------------------------------------------------------------------
    # PROPERTY ACCESS
    # -------------------------------------------------------------------------

    @property
    def default_datfile(self) -> str:
        return self.data.get('default_datfile') or ''

    @default_datfile.setter
    def default_datfile(self, value: str):
        self.data['default_datfile'] = value
        self._modified = True

    @property
    def hash_method(self) -> str:
        """Get the hash method (sha1, md5, crc)."""
        value = self.data.get('hash_method', 'sha1')
        if value not in ALGORITHMS:
            logger.warning("Unknown hash_method '%s' in config, using sha1", value)
            return 'sha1'
        return value

    @hash_method.setter
    def hash_method(self, value: str):
        if value not in ALGORITHMS:
            raise ValueError(f"hash_method must be one of: {', '.join(sorted(ALGORITHMS))}")
        self.data['hash_method'] = value
        self._modified = True

    @property
    def worker_count(self) -> int:
        """Get the number of hashing workers, clamped to 1..64."""
        try:
            value = int(self.data.get('worker_count', 10))
        except (TypeError, ValueError):
            return DEFAULT_CONFIG['worker_count']
        return max(1, min(MAX_WORKERS, value))

    @worker_count.setter
    def worker_count(self, value: int):
        self.data['worker_count'] = max(1, min(MAX_WORKERS, int(value)))
        self._modified = True

    @property
    def exclude_extensions(self) -> List[str]:
        """Get excluded extensions, lowercase and without dots."""
        return [str(ext).lower().lstrip('.') for ext in self.data.get('exclude_extensions') or []]

    @exclude_extensions.setter
    def exclude_extensions(self, value: List[str]):
        self.data['exclude_extensions'] = list(value)
        self._modified = True

    @property
    def sort_sets(self) -> bool:
        return bool(self.data.get('sort_sets', False))

    @sort_sets.setter
    def sort_sets(self, value: bool):
        self.data['sort_sets'] = bool(value)
        self._modified = True

    @property
    def show(self) -> str:
        """Get which report sections are printed (roms, sets, all)."""
        value = self.data.get('show', 'all')
        return value if value in SHOW_CHOICES else 'all'

    @show.setter
    def show(self, value: str):
        if value not in SHOW_CHOICES:
            raise ValueError(f"show must be one of: {', '.join(SHOW_CHOICES)}")
        self.data['show'] = value
        self._modified = True

    @property
    def hash_cache_enabled(self) -> bool:
        return bool(self.data.get('hash_cache_enabled', False))

    @hash_cache_enabled.setter
    def hash_cache_enabled(self, value: bool):
        self.data['hash_cache_enabled'] = bool(value)
        self._modified = True

    @property
    def hash_cache_path(self) -> str:
        """Get the hash cache database path (user data dir if unset)."""
        return self.data.get('hash_cache_path') or Paths.get_hash_cache_path()

    @hash_cache_path.setter
    def hash_cache_path(self, value: str):
        self.data['hash_cache_path'] = value
        self._modified = True

    @property
    def use_colors(self) -> bool:
        return bool(self.data.get('use_colors', True))

    @use_colors.setter
    def use_colors(self, value: bool):
        self.data['use_colors'] = bool(value)
        self._modified = True

    @property
    def debug_mode(self) -> bool:
        """Check if debug mode is enabled."""
        return bool(self.data.get('debug_mode', False))

    @debug_mode.setter
    def debug_mode(self, value: bool):
        self.data['debug_mode'] = bool(value)
        self._modified = True

    # -------------------------------------------------------------------------
    # GENERIC ACCESS
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access: config['key']"""
        return self.data[key]

    def __setitem__(self, key: str, value: Any):
        self.data[key] = value
        self._modified = True


# ==============================================================================
# GLOBAL CONFIG INSTANCE
# ==============================================================================

_global_config: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Creates and loads config on first call. Passing a path replaces the
    global instance with one loaded from that file.

    Returns:
        The global Config instance
    """
    global _global_config

    if _global_config is None or config_path is not None:
        _global_config = Config(config_path)
        _global_config.load()

    return _global_config
