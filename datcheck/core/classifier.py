# ==============================================================================
# CLASSIFIER MODULE
# ==============================================================================
# Maps a candidate file's (name, digest) pair onto catalog entries.
#
# Match types:
#   - EXACT:     digest and name both match an entry
#   - HASH_ONLY: digest matches, name does not (file is misnamed)
#   - NAME_ONLY: no digest match, but an entry with this name exists
#                (content is wrong: bad dump, overdump, underdump...)
#   - NONE:      nothing in the catalog matches
#
# classify() is a pure function of its arguments and the catalog, so workers
# call it concurrently without any locking.
#
# Usage:
#   result = classify(catalog, "x.bin", digest, "sha1")
#   if result.match_type is MatchType.HASH_ONLY and not result.is_ambiguous:
#       rename_file(path, result.entries[0].name)
# ==============================================================================

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .catalog import CatalogEntry, CatalogStore


class MatchType(Enum):
    """Outcome of comparing a candidate file against the catalog."""
    NONE = 'none'
    NAME_ONLY = 'name'
    HASH_ONLY = 'hash'
    EXACT = 'exact'


class SizeMismatch(Enum):
    """Size diagnostic for files whose name matches but content does not."""
    OVERDUMP = 'overdump'
    UNDERDUMP = 'underdump'


@dataclass(frozen=True)
class Classification:
    """
    Result of classifying one candidate.

    Attributes:
        match_type (MatchType): How the candidate matched
        entries (tuple):        Catalog entries that produced the match
    """
    match_type: MatchType
    entries: Tuple[CatalogEntry, ...] = ()

    @property
    def is_ambiguous(self) -> bool:
        """True when more than one catalog entry matched."""
        return len(self.entries) > 1

    @property
    def satisfies_entries(self) -> bool:
        """True when the file's content actually satisfies its entries."""
        return self.match_type in (MatchType.EXACT, MatchType.HASH_ONLY)

    @property
    def rename_target(self) -> Optional[CatalogEntry]:
        """The single entry a misnamed file could be renamed to, if any."""
        if self.match_type is MatchType.HASH_ONLY and len(self.entries) == 1:
            return self.entries[0]
        return None


def classify(catalog: CatalogStore, name: str, digest: str,
             algorithm: str) -> Classification:
    """
    Classify a candidate file against the catalog.

    Args:
        catalog:   The catalog to query
        name:      Candidate file name (base name, no directory)
        digest:    Candidate digest computed with `algorithm`
        algorithm: The run-wide hash algorithm tag

    Returns:
        Classification with the match type and candidate entries
    """
    by_hash = catalog.find_by_hash(algorithm, digest)

    if not by_hash:
        by_name = catalog.find_by_name(name, exact=True)
        if not by_name:
            return Classification(MatchType.NONE)
        return Classification(MatchType.NAME_ONLY, tuple(by_name))

    named = tuple(entry for entry in by_hash if entry.name == name)
    if named:
        return Classification(MatchType.EXACT, named)
    return Classification(MatchType.HASH_ONLY, tuple(by_hash))


def size_mismatch(file_size: Optional[int], entry: CatalogEntry) -> Optional[SizeMismatch]:
    """
    Compare a file's size to an entry's recorded size.

    Only meaningful for NAME_ONLY matches; it never changes the match type.

    Returns:
        OVERDUMP if the file is larger, UNDERDUMP if smaller, None if equal
        or if either size is unknown
    """
    if file_size is None or entry.size is None or file_size == entry.size:
        return None
    if file_size > entry.size:
        return SizeMismatch.OVERDUMP
    return SizeMismatch.UNDERDUMP
