# ==============================================================================
# AUDIT PIPELINE MODULE
# ==============================================================================
# Hashes and classifies many files in parallel, then reconciles the matches
# into a GameLedger from a single coordinating thread.
#
# Per path, a worker:
#   1. stats the path (failure -> STAT_ERROR)
#   2. skips excluded extensions (EXCLUDED) and non-regular files (NOT_REGULAR)
#   3. hashes the file, or every regular member of an archive
#   4. classifies each hash against the catalog
#   5. optionally renames a misnamed loose file, or an archive whose matches
#      all belong to one game
#
# Workers never touch the ledger. The thread that calls run() drains exactly
# one FileResult per submitted path, hands it to the reporter callback and
# performs every ledger reconciliation itself.
#
# Usage:
#   pipeline = AuditPipeline(catalog, algorithm='sha1', workers=10)
#   ledger = GameLedger(catalog)
#   results = pipeline.run(paths, ledger, on_result=reporter.file_result)
# ==============================================================================

import logging
import os
import stat
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Callable, Dict, Iterable, List, Optional

from ..extractors import ExtractorRegistry, file_extension
from .catalog import CatalogEntry, CatalogStore, Game
from .classifier import Classification, MatchType, classify
from .database import HashCache
from .hasher import FileHasher
from .ledger import GameLedger
from .renamer import rename_file

logger = logging.getLogger(__name__)

# Errors raised while streaming a file or archive member
READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error)

# zipfile raises RuntimeError for encrypted members and NotImplementedError
# for compression methods it cannot decode
MEMBER_READ_ERRORS = READ_ERRORS + (RuntimeError, NotImplementedError)

DEFAULT_WORKERS = 10


class PathStatus(Enum):
    """What happened to a submitted path."""
    PROCESSED = 'processed'
    EXCLUDED = 'excluded'
    NOT_REGULAR = 'not_regular'
    STAT_ERROR = 'stat_error'
    READ_ERROR = 'read_error'


# ==============================================================================
# RESULT DATA CLASSES
# ==============================================================================
@dataclass
class MemberResult:
    """
    Outcome for one hashed item: a loose file or a single archive member.

    Attributes:
        name (str):            Base name used for classification (the new
                               name after a successful rename)
        container (str):       Archive file name, '' for loose files
        digest (str):          Hex digest, None if the item could not be read
        size (int):            Uncompressed size in bytes
        classification:        Classification result, None on read errors
        renamed_from (str):    Previous name if the file was renamed
        error (str):           Read error text, None on success
    """
    name: str
    container: str = ''
    digest: Optional[str] = None
    size: Optional[int] = None
    classification: Optional[Classification] = None
    renamed_from: Optional[str] = None
    error: Optional[str] = None

    @property
    def match_type(self) -> Optional[MatchType]:
        if self.classification is None:
            return None
        return self.classification.match_type


@dataclass
class FileResult:
    """
    Outcome for one submitted path.

    Attributes:
        path (str):            Path as submitted
        status (PathStatus):   What happened to the path
        members (list):        One MemberResult per hashed item
        is_archive (bool):     True if the path was read as an archive
        error (str):           Error text for STAT_ERROR / READ_ERROR
        renamed_to (str):      New archive name after an archive rename
        cache_records (list):  Digests to write to the hash cache
    """
    path: str
    status: PathStatus
    members: List[MemberResult] = field(default_factory=list)
    is_archive: bool = False
    error: Optional[str] = None
    renamed_to: Optional[str] = None
    cache_records: List[Dict] = field(default_factory=list)

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    def matched_entries(self) -> List[CatalogEntry]:
        """Catalog entries whose content this path satisfies."""
        matched = []
        for member in self.members:
            if member.classification is not None and member.classification.satisfies_entries:
                matched.extend(member.classification.entries)
        return matched


# ==============================================================================
# AUDIT PIPELINE CLASS
# ==============================================================================
class AuditPipeline:
    """
    Concurrent audit of files and archives against a catalog.

    Attributes:
        catalog (CatalogStore): Read-only catalog shared by all workers
        hasher (FileHasher):    Hasher for the run-wide algorithm
        workers (int):          Thread pool size
        exclude (set):          Lowercase extensions (no dot) to skip
        rename (bool):          Rename misnamed loose files and archives
        sort_files (bool):      Report files sorted by path instead of
                                in completion order
        hash_cache (HashCache): Optional persistent digest cache
    """

    def __init__(self, catalog: CatalogStore, algorithm: str = 'sha1',
                 workers: int = DEFAULT_WORKERS, exclude: Iterable[str] = (),
                 rename: bool = False, sort_files: bool = False,
                 hash_cache: Optional[HashCache] = None):
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers}")

        self.catalog = catalog
        self.algorithm = algorithm
        self.hasher = FileHasher(algorithm)
        self.workers = workers
        self.exclude = {ext.lower().lstrip('.') for ext in exclude}
        self.rename = rename
        self.sort_files = sort_files
        self.hash_cache = hash_cache

    # ==========================================================================
    # COORDINATOR
    # ==========================================================================

    def run(self, paths: List[str], ledger: GameLedger,
            on_result: Optional[Callable[[FileResult], None]] = None) -> List[FileResult]:
        """
        Audit every path and reconcile matches into the ledger.

        Must be called from the thread that owns the ledger.

        Args:
            paths:     Files and archives to audit
            ledger:    Ledger to reconcile matches into
            on_result: Optional callback invoked once per FileResult

        Returns:
            One FileResult per submitted path (sorted by path when
            sort_files is set, completion order otherwise)
        """
        results: List[FileResult] = []
        cache_records: List[Dict] = []

        logger.info("Auditing %d paths with %d workers", len(paths), self.workers)

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            future_to_path = {
                executor.submit(self.process_path, path): path
                for path in paths
            }

            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.exception("Unexpected error while processing %s", path)
                    result = FileResult(path, PathStatus.READ_ERROR, error=str(e))

                for entry in result.matched_entries():
                    ledger.reconcile(entry)
                cache_records.extend(result.cache_records)
                results.append(result)

                if on_result is not None and not self.sort_files:
                    on_result(result)

        if self.sort_files:
            results.sort(key=lambda r: r.path)
            if on_result is not None:
                for result in results:
                    on_result(result)

        if self.hash_cache is not None and cache_records:
            self.hash_cache.store_many(cache_records)

        return results

    # ==========================================================================
    # WORKER STEP
    # ==========================================================================

    def process_path(self, path: str) -> FileResult:
        """
        Stat, filter, hash and classify a single path.

        Safe to call from any thread; touches no shared mutable state.
        """
        logger.debug("Processing %s", path)
        try:
            st = os.stat(path)
        except OSError as e:
            logger.warning("Cannot check %s, skipping: %s", path, e)
            return FileResult(path, PathStatus.STAT_ERROR, error=str(e))

        if file_extension(path) in self.exclude:
            logger.debug("%s has excluded extension, skipping", path)
            return FileResult(path, PathStatus.EXCLUDED)

        if not stat.S_ISREG(st.st_mode):
            logger.debug("%s is not a regular file, skipping", path)
            return FileResult(path, PathStatus.NOT_REGULAR)

        if ExtractorRegistry.is_archive(path):
            return self._check_archive(path, st)
        return self._check_file(path, st)

    def _digest(self, path: str, member: str, st: os.stat_result,
                open_stream: Callable[[], BinaryIO], result: FileResult) -> str:
        """Get a digest from the hash cache or by streaming the content."""
        abs_path = os.path.abspath(path)
        if self.hash_cache is not None:
            cached = self.hash_cache.lookup(abs_path, member, self.algorithm,
                                            st.st_size, st.st_mtime_ns)
            if cached is not None:
                logger.debug("Hash cache hit for %s %s", path, member)
                return cached

        with open_stream() as stream:
            digest = self.hasher.hash_stream(stream)

        if self.hash_cache is not None:
            result.cache_records.append({
                'path': abs_path,
                'member': member,
                'algorithm': self.algorithm,
                'size': st.st_size,
                'mtime_ns': st.st_mtime_ns,
                'digest': digest
            })
        return digest

    def _check_file(self, path: str, st: os.stat_result) -> FileResult:
        result = FileResult(path, PathStatus.PROCESSED)
        name = os.path.basename(path)

        try:
            digest = self._digest(path, '', st, lambda: open(path, 'rb'), result)
        except READ_ERRORS as e:
            logger.error("%s could not be read: %s", path, e)
            result.status = PathStatus.READ_ERROR
            result.error = str(e)
            result.members.append(MemberResult(name, error=str(e)))
            return result

        logger.debug("%s (%s)", name, digest)
        member = MemberResult(name, digest=digest, size=st.st_size,
                              classification=classify(self.catalog, name, digest, self.algorithm))
        result.members.append(member)

        target = member.classification.rename_target
        if self.rename and target is not None:
            new_path = rename_file(path, target.name)
            if new_path is not None:
                member.renamed_from = name
                member.name = target.name
                # The content already matched; only the name was wrong
                member.classification = Classification(MatchType.EXACT, (target,))
                for record in result.cache_records:
                    record['path'] = os.path.abspath(new_path)

        return result

    def _check_archive(self, path: str, st: os.stat_result) -> FileResult:
        result = FileResult(path, PathStatus.PROCESSED, is_archive=True)
        container = os.path.basename(path)

        try:
            archive = ExtractorRegistry.open_archive(path)
        except READ_ERRORS as e:
            logger.error("%s could not be opened: %s", path, e)
            result.status = PathStatus.READ_ERROR
            result.error = str(e)
            return result

        with archive:
            for entry in archive.iter_files():
                if not entry.is_regular:
                    logger.debug("%s in %s is not a regular file, skipping", entry.path, container)
                    continue
                if entry.extension in self.exclude:
                    logger.debug("%s in %s has excluded extension, skipping", entry.path, container)
                    continue

                # Member names may repeat within one archive
                cache_member = f"{entry.index}:{entry.path}"
                try:
                    digest = self._digest(path, cache_member, st,
                                          lambda: archive.open_member(entry), result)
                except MEMBER_READ_ERRORS as e:
                    logger.error("%s in %s could not be read: %s", entry.path, container, e)
                    result.members.append(MemberResult(entry.name, container, error=str(e)))
                    continue

                logger.debug("%s in %s (%s)", entry.name, container, digest)
                result.members.append(MemberResult(
                    entry.name, container, digest=digest, size=entry.size,
                    classification=classify(self.catalog, entry.name, digest, self.algorithm)
                ))

        if self.rename:
            self._rename_archive(result)
        return result

    def _archive_game(self, result: FileResult) -> Optional[Game]:
        """The single game all matched members agree on, or None."""
        game_ids = {entry.game_id for entry in result.matched_entries()}
        if len(game_ids) != 1:
            return None
        return self.catalog.game_of(result.matched_entries()[0])

    def _rename_archive(self, result: FileResult):
        game = self._archive_game(result)
        if game is None:
            logger.debug("%s matches no single set, not renaming", result.path)
            return

        new_name = f"{game.name}.zip"
        if result.name == new_name:
            return

        new_path = rename_file(result.path, new_name)
        if new_path is not None:
            result.renamed_to = new_name
            for record in result.cache_records:
                record['path'] = os.path.abspath(new_path)
