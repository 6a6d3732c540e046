# ==============================================================================
# CORE MODULE INIT
# ==============================================================================
# Audit engine for DatCheck.
#
# This package contains the fundamental building blocks:
#   - Catalog: Read-only datfile model and lookups
#   - Hasher: Streaming SHA-1 / MD5 / CRC-32 hashing
#   - Classifier: Maps (name, digest) onto catalog entries
#   - Ledger: Per-game missing entries for one run
#   - Pipeline: Concurrent hashing with a single reconciling coordinator
#   - Reporter: Text output for files, sets and lookups
#   - Packager: Zips complete sets from loose files
#   - HashCache: SQLite digest cache with SQLAlchemy ORM
#   - Config: Application configuration management
#
# Usage:
#   from datcheck.core import load_datfile, AuditPipeline, GameLedger, Reporter
#   from datcheck.core.config import get_config
# ==============================================================================

from .catalog import CatalogEntry, CatalogStore, Game, load_datfile
from .classifier import Classification, MatchType, SizeMismatch, classify, size_mismatch
from .config import Config, get_config
from .database import HashCache
from .exceptions import CatalogError, DatCheckError, HashCacheError, OutputError
from .hasher import FileHasher
from .ledger import GameLedger, GameStatus, LedgerEntry
from .packager import PackagedSet, SetPackager
from .paths import Paths
from .pipeline import AuditPipeline, FileResult, MemberResult, PathStatus
from .renamer import rename_file
from .reporter import Reporter, iec_prefix

__all__ = [
    # Catalog
    'CatalogEntry',
    'CatalogStore',
    'Game',
    'load_datfile',

    # Matching
    'FileHasher',
    'Classification',
    'MatchType',
    'SizeMismatch',
    'classify',
    'size_mismatch',

    # Audit
    'GameLedger',
    'GameStatus',
    'LedgerEntry',
    'AuditPipeline',
    'FileResult',
    'MemberResult',
    'PathStatus',
    'rename_file',
    'Reporter',
    'iec_prefix',
    'SetPackager',
    'PackagedSet',

    # Storage and configuration
    'HashCache',
    'Config',
    'get_config',
    'Paths',

    # Errors
    'DatCheckError',
    'CatalogError',
    'OutputError',
    'HashCacheError',
]
