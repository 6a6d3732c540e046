# ==============================================================================
# DATCHECK - PATH UTILITIES
# ==============================================================================
# Locations of per-user files (configuration, hash cache).
#
# User data is stored in:
#   - Windows: %APPDATA%/DatCheck/
#   - macOS:   ~/Library/Application Support/DatCheck/
#   - Linux:   $XDG_CONFIG_HOME/DatCheck/ (default ~/.config/DatCheck/)
#
# Usage:
#   from datcheck.core.paths import Paths
#   config_path = Paths.get_config_path()
#   cache_path = Paths.get_hash_cache_path()
# ==============================================================================

import os
import sys
from typing import Optional


class Paths:
    """
    Centralized path management for DatCheck.

    The user data directory is computed once and cached; call reset() to
    recompute it (for example after changing XDG_CONFIG_HOME).
    """

    # Application name for folder creation
    APP_NAME = "DatCheck"

    # Cache for computed paths
    _user_data_dir: Optional[str] = None

    @classmethod
    def reset(cls):
        """Forget the cached user data directory."""
        cls._user_data_dir = None

    @classmethod
    def get_user_data_dir(cls) -> str:
        """
        Get the user data directory, creating it if needed.

        Returns:
            Absolute path to user data directory
        """
        if cls._user_data_dir is None:
            if sys.platform == 'win32':
                base = os.environ.get('APPDATA', os.path.expanduser('~'))
                cls._user_data_dir = os.path.join(base, cls.APP_NAME)
            elif sys.platform == 'darwin':
                cls._user_data_dir = os.path.join(
                    os.path.expanduser('~'),
                    'Library', 'Application Support', cls.APP_NAME
                )
            else:
                base = os.environ.get('XDG_CONFIG_HOME',
                                      os.path.join(os.path.expanduser('~'), '.config'))
                cls._user_data_dir = os.path.join(base, cls.APP_NAME)

            os.makedirs(cls._user_data_dir, exist_ok=True)

        return cls._user_data_dir

    @classmethod
    def get_config_path(cls) -> str:
        """Get the path to config.json."""
        return os.path.join(cls.get_user_data_dir(), 'config.json')

    @classmethod
    def get_hash_cache_path(cls) -> str:
        """Get the default path of the hash cache database."""
        return os.path.join(cls.get_user_data_dir(), 'hashcache.db')
