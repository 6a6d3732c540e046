# ==============================================================================
# EXTRACTORS MODULE INIT
# ==============================================================================
# Archive containers whose members are audited individually.
#
#   - BaseExtractor: Abstract base class defining the interface
#   - ExtractorRegistry: Picks an extractor by file extension
#   - ZipExtractor: Standard .zip sets
#
# Usage:
#   from datcheck.extractors import ExtractorRegistry
#   with ExtractorRegistry.open_archive("set.zip") as archive:
#       members = archive.list_files()
# ==============================================================================

from .base_extractor import BaseExtractor, ExtractorRegistry, FileEntry, file_extension

# Each extractor registers itself on import
from .zip_extractor import ZipExtractor

__all__ = [
    'BaseExtractor',
    'ExtractorRegistry',
    'FileEntry',
    'file_extension',
    'ZipExtractor',
]
