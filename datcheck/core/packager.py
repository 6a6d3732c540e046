# ==============================================================================
# SET PACKAGER MODULE
# ==============================================================================
# Zips loose rom files into one archive per complete game ("set").
#
# Packaging process:
#   1. Audit the given files with the pipeline (SHA-1, no renames)
#   2. Keep loose files whose name AND hash match an entry exactly
#   3. Reconcile them into a packager-owned ledger, one file per entry
#   4. Write <outdir>/<game>.zip for every game that is now complete
#   5. Optionally delete the packaged loose files
#
# Archives given as input are audited but never repackaged.
#
# Usage:
#   packager = SetPackager(catalog, output_dir="sets", remove=True)
#   for packaged in packager.run(paths):
#       print(packaged.zip_path)
# ==============================================================================

import logging
import os
import shutil
import subprocess
import zipfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .catalog import CatalogEntry, CatalogStore, Game
from .classifier import MatchType
from .exceptions import OutputError
from .ledger import GameLedger, GameStatus
from .pipeline import DEFAULT_WORKERS, AuditPipeline, FileResult, PathStatus

logger = logging.getLogger(__name__)


# ==============================================================================
# PACKAGED SET DATA CLASS
# ==============================================================================
@dataclass
class PackagedSet:
    """
    One written archive.

    Attributes:
        game (Game):       Game the archive holds
        zip_path (str):    Path of the written archive
        files (list):      Loose files that went into it
        removed (list):    Loose files deleted afterwards
    """
    game: Game
    zip_path: str
    files: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


# ==============================================================================
# SET PACKAGER CLASS
# ==============================================================================
class SetPackager:
    """
    Builds zipped sets from verified loose files.

    Attributes:
        catalog (CatalogStore): Catalog to verify against
        output_dir (str):       Directory receiving the archives
        remove (bool):          Delete loose files after packaging
        use_infozip (bool):     Use the external `zip` tool
    """

    def __init__(self, catalog: CatalogStore, output_dir: str = '.',
                 remove: bool = False, use_infozip: bool = False,
                 workers: int = DEFAULT_WORKERS, exclude: Iterable[str] = ()):
        self.catalog = catalog
        self.output_dir = output_dir
        self.remove = remove
        self.use_infozip = use_infozip
        self.pipeline = AuditPipeline(catalog, algorithm='sha1', workers=workers,
                                      exclude=exclude)

    # ==========================================================================
    # COLLECTION
    # ==========================================================================

    def collect(self, results: List[FileResult]) -> Dict[int, Dict[CatalogEntry, str]]:
        """
        Pick the loose files that can go into complete sets.

        Args:
            results: Pipeline results for the candidate files

        Returns:
            Dict of game_id -> {entry: file path} for every complete game
        """
        ledger = GameLedger(self.catalog)
        chosen: Dict[CatalogEntry, str] = {}

        for result in sorted(results, key=lambda r: r.path):
            if result.status is not PathStatus.PROCESSED or result.is_archive:
                continue
            for member in result.members:
                if member.match_type is not MatchType.EXACT:
                    continue
                for entry in member.classification.entries:
                    if entry in chosen:
                        logger.warning("%s duplicates %s, only one copy is packaged",
                                       result.path, chosen[entry])
                        continue
                    chosen[entry] = result.path
                    ledger.reconcile(entry)

        sets: Dict[int, Dict[CatalogEntry, str]] = {}
        for item in ledger.entries():
            found = len(item.all_entries) - len(item.missing_entries)
            logger.info("Game %s needs %d file(s), found %d",
                        item.game.name, len(item.all_entries), found)
            if item.status is GameStatus.COMPLETE:
                sets[item.game.game_id] = {
                    entry: chosen[entry] for entry in item.all_entries
                }
        return sets

    # ==========================================================================
    # PACKAGING
    # ==========================================================================

    def run(self, paths: List[str], on_result=None) -> List[PackagedSet]:
        """
        Verify the files and package every complete game.

        Args:
            paths:     Candidate loose files
            on_result: Optional callback receiving each pipeline result

        Returns:
            List of PackagedSet objects, one per archive written

        Raises:
            OutputError: If the output directory cannot be created
        """
        results = self.pipeline.run(paths, GameLedger(self.catalog), on_result=on_result)
        sets = self.collect(results)
        if not sets:
            logger.info("No complete sets found")
            return []

        try:
            os.makedirs(self.output_dir, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Cannot create output directory '{self.output_dir}': {e}") from e

        games = self.catalog.list_games()
        packaged = []
        for game_id in sorted(sets):
            result = self.package(games[game_id], sets[game_id])
            if result is not None:
                packaged.append(result)
        return packaged

    def package(self, game: Game, files: Dict[CatalogEntry, str]) -> Optional[PackagedSet]:
        """
        Write one game's archive.

        Args:
            game:  The complete game
            files: Entry -> loose file path for every entry of the game

        Returns:
            PackagedSet, or None if the archive could not be written
        """
        zip_path = os.path.join(self.output_dir, f"{game.name}.zip")
        if os.path.exists(zip_path):
            logger.error("%s already exists, not packaging %s", zip_path, game.name)
            return None

        ordered = sorted(files.items(), key=lambda item: item[0].name)
        logger.info("Creating %s with %d file(s)", zip_path, len(ordered))

        if self.use_infozip:
            ok = self._external_zip(zip_path, [path for _, path in ordered])
        else:
            ok = self._internal_zip(zip_path, ordered)
        if not ok:
            return None

        packaged = PackagedSet(game, zip_path, files=[path for _, path in ordered])
        if self.remove:
            packaged.removed = self._remove_files(packaged.files)
        logger.info("Finished writing %s", zip_path)
        return packaged

    def _internal_zip(self, zip_path: str, ordered) -> bool:
        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED,
                                 strict_timestamps=False) as zf:
                for entry, path in ordered:
                    # Keeps the loose file's mtime and mode
                    info = zipfile.ZipInfo.from_file(path, arcname=entry.name,
                                                     strict_timestamps=False)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    with open(path, 'rb') as src, zf.open(info, 'w') as dst:
                        shutil.copyfileobj(src, dst, 1024 * 1024)
                    logger.debug("Wrote %s to %s", entry.name, zip_path)
        except OSError as e:
            logger.error("Failed to write %s: %s", zip_path, e)
            self._discard(zip_path)
            return False
        return True

    def _external_zip(self, zip_path: str, paths: List[str]) -> bool:
        cmd = ['zip', '-j', zip_path] + paths
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            logger.error("Cannot run zip: %s", e)
            return False

        if result.returncode != 0:
            logger.error("zip failed for %s: %s", zip_path, result.stderr.strip())
            self._discard(zip_path)
            return False
        return True

    def _discard(self, zip_path: str):
        try:
            os.remove(zip_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove partial archive %s: %s", zip_path, e)

    def _remove_files(self, paths: List[str]) -> List[str]:
        removed = []
        for path in paths:
            try:
                os.remove(path)
                removed.append(path)
                logger.debug("Removed %s", path)
            except OSError as e:
                logger.error("Unable to remove %s: %s", path, e)
        return removed
