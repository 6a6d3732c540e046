# ==============================================================================
# BASE EXTRACTOR MODULE
# ==============================================================================
# Abstract base class for archive containers whose members are audited one
# by one, plus the ExtractorRegistry that picks an extractor by extension.
#
# To support a new container format:
#   1. Subclass BaseExtractor and implement the abstract methods
#   2. Call ExtractorRegistry.register(MyExtractor) at module level
#   3. Import the module in extractors/__init__.py
#
# Example:
#   with ExtractorRegistry.open_archive("set.zip") as archive:
#       for member in archive.iter_files():
#           with archive.open_member(member) as stream:
#               digest = hasher.hash_stream(stream)
# ==============================================================================

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterator, List, Optional


# ==============================================================================
# FILE ENTRY DATA CLASS
# ==============================================================================
@dataclass
class FileEntry:
    """
    A member within an archive.

    Attributes:
        path (str):            Path of the member inside the archive
        size (int):            Uncompressed size
        compressed_size (int): Stored size (equals size if not compressed)
        is_regular (bool):     False for directories and other special members
        index (int):           Position in the archive's member list
    """
    path: str
    size: int
    compressed_size: int = 0
    is_regular: bool = True
    index: int = 0

    def __post_init__(self):
        if self.compressed_size == 0:
            self.compressed_size = self.size

    @property
    def name(self) -> str:
        """Base name of the member (no directory part)."""
        return os.path.basename(self.path.rstrip('/'))

    @property
    def extension(self) -> str:
        return file_extension(self.path)


def file_extension(path: str) -> str:
    """Lowercase extension without the leading dot ('' if none)."""
    return os.path.splitext(path)[1].lstrip('.').lower()


# ==============================================================================
# BASE EXTRACTOR ABSTRACT CLASS
# ==============================================================================
class BaseExtractor(ABC):
    """
    Abstract base class for archive readers.

    The typical workflow is:
        1. Create extractor instance with a path (opens immediately)
        2. Iterate members with iter_files()
        3. Stream each member with open_member()
        4. Close with close(), or use as a context manager
    """

    def __init__(self, archive_path: str = None):
        """
        Initialize the extractor.

        Args:
            archive_path: Optional path to archive to open immediately

        Raises:
            OSError: If the archive cannot be opened
        """
        self.archive_path = archive_path
        self._is_open = False
        self._file_list: List[FileEntry] = []

        if archive_path:
            self.open(archive_path)

    # ==========================================================================
    # ABSTRACT PROPERTIES
    # ==========================================================================

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Human-readable name of the container format (e.g. "ZIP")."""

    @property
    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """Extensions this extractor handles, without the dot (e.g. ['zip'])."""

    # ==========================================================================
    # ABSTRACT METHODS
    # ==========================================================================

    @abstractmethod
    def open(self, archive_path: str):
        """
        Open an archive for reading and populate self._file_list.

        Raises:
            OSError: If the archive is unreadable or not a valid container
        """

    @abstractmethod
    def close(self):
        """Close the archive and release resources."""

    @abstractmethod
    def open_member(self, entry: FileEntry) -> BinaryIO:
        """
        Open a member for streaming reads.

        Args:
            entry: Member from list_files(); opened by position, so
                   members sharing a path are read separately

        Returns:
            A readable binary stream (close it when done)
        """

    # ==========================================================================
    # COMMON METHODS
    # ==========================================================================

    def list_files(self) -> List[FileEntry]:
        """Get all members of the archive."""
        if not self._is_open:
            raise RuntimeError("Archive is not open")
        return list(self._file_list)

    def iter_files(self) -> Iterator[FileEntry]:
        """Iterate over all members of the archive."""
        for entry in self.list_files():
            yield entry

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


# ==============================================================================
# EXTRACTOR REGISTRY
# ==============================================================================
class ExtractorRegistry:
    """
    Registry of archive extractors keyed by file extension.

    Usage:
        ExtractorRegistry.register(ZipExtractor)
        if ExtractorRegistry.is_archive("set.zip"):
            archive = ExtractorRegistry.open_archive("set.zip")
    """

    _extractors: Dict[str, type] = {}

    @classmethod
    def register(cls, extractor_class: type):
        """
        Register an extractor class for every extension it supports.

        Args:
            extractor_class: Class that inherits from BaseExtractor
        """
        instance = extractor_class()
        for ext in instance.supported_extensions:
            cls._extractors[ext.lower()] = extractor_class

    @classmethod
    def get_extractor_class(cls, file_path: str) -> Optional[type]:
        """Get the extractor class for a path, or None if it is not an archive."""
        return cls._extractors.get(file_extension(file_path))

    @classmethod
    def is_archive(cls, file_path: str) -> bool:
        return cls.get_extractor_class(file_path) is not None

    @classmethod
    def open_archive(cls, file_path: str) -> BaseExtractor:
        """
        Open an archive with the matching extractor.

        Raises:
            ValueError: If no extractor handles the extension
            OSError: If the archive cannot be opened
        """
        extractor_class = cls.get_extractor_class(file_path)
        if extractor_class is None:
            raise ValueError(f"No extractor for {file_path}")
        return extractor_class(file_path)

    @classmethod
    def list_supported_extensions(cls) -> List[str]:
        return sorted(cls._extractors)
