# ==============================================================================
# EXCEPTIONS MODULE
# ==============================================================================
# Exception hierarchy for DatCheck.
#
# All errors raised on purpose by DatCheck derive from DatCheckError so the
# CLI can catch them broadly. Only CatalogError and OutputError are fatal;
# per-file problems are reported as results, never raised out of a run.
# ==============================================================================


class DatCheckError(Exception):
    """Base class for all DatCheck exceptions."""


class CatalogError(DatCheckError):
    """Raised when the datfile cannot be opened or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load datfile '{path}': {reason}")


class OutputError(DatCheckError):
    """Raised when a requested output file or directory cannot be created."""


class HashCacheError(DatCheckError):
    """Raised when the hash cache database cannot be opened."""
