# ==============================================================================
# DATCHECK - SOURCE PACKAGE
# ==============================================================================
# Audits rom collections against datfiles.
#
# Subpackages:
#   - core: Catalog, hashing, classification, ledger, pipeline, reporting
#   - extractors: Archive containers audited member by member
#
# Entry points:
#   - main.py: Launcher
#   - datcheck/cli.py: Command-line interface
# ==============================================================================

__version__ = "1.0.0"
__description__ = "Check rom files and sets against datfiles"

# Convenience imports
from .core import AuditPipeline, CatalogStore, GameLedger, load_datfile
from .extractors import ExtractorRegistry

__all__ = [
    '__version__',
    '__description__',

    # Core
    'AuditPipeline',
    'CatalogStore',
    'GameLedger',
    'load_datfile',

    # Extractors
    'ExtractorRegistry',
]
