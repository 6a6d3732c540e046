# ==============================================================================
# GAME LEDGER MODULE
# ==============================================================================
# Run-scoped record of which catalog entries are still missing, per game.
#
# Each game referenced during a run gets a LedgerEntry holding a frozen set of
# all its entries and a separate, shrinking set of the ones not yet found.
# Reconciling an entry removes it from its game's missing set.
#
# Game statuses (computed at report time):
#   - COMPLETE: nothing missing
#   - MISSING:  nothing found
#   - PARTIAL:  everything else
#
# The ledger has exactly one writer: the pipeline's coordinating thread.
# It is not locked; mutating it from a second thread raises RuntimeError.
#
# Usage:
#   ledger = GameLedger(catalog)
#   ledger.seed_all()            # optional: report every game in the datfile
#   ledger.reconcile(entry)
#   for item in ledger.entries(sort_by_name=True):
#       print(item.game.name, item.status)
# ==============================================================================

import logging
import threading
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from .catalog import CatalogEntry, CatalogStore, Game

logger = logging.getLogger(__name__)


class GameStatus(Enum):
    """Completeness of a game at report time."""
    COMPLETE = 'complete'
    PARTIAL = 'partial'
    MISSING = 'missing'


class LedgerEntry:
    """
    Missing-entry bookkeeping for one game.

    Attributes:
        game (Game):                Game this entry tracks
        all_entries (frozenset):    Every entry of the game, fixed at creation
        missing_entries (set):      Entries not yet satisfied by any file
    """

    def __init__(self, game: Game, all_entries: FrozenSet[CatalogEntry]):
        self.game = game
        self.all_entries = all_entries
        # Separate copy: removals must never touch all_entries
        self.missing_entries: Set[CatalogEntry] = set(all_entries)

    @property
    def status(self) -> GameStatus:
        if not self.missing_entries:
            return GameStatus.COMPLETE
        if len(self.missing_entries) == len(self.all_entries):
            return GameStatus.MISSING
        return GameStatus.PARTIAL

    def missing_sorted(self) -> List[CatalogEntry]:
        """Missing entries sorted by name, for stable output."""
        return sorted(self.missing_entries, key=lambda e: (e.name, e.entry_id))

    def __repr__(self):
        return (f"<LedgerEntry(game='{self.game.name}', "
                f"missing={len(self.missing_entries)}/{len(self.all_entries)})>")


class GameLedger:
    """
    Per-game ledger of missing entries for one run.

    Attributes:
        catalog (CatalogStore): Catalog the games come from
    """

    def __init__(self, catalog: CatalogStore):
        self.catalog = catalog
        self._entries: Dict[int, LedgerEntry] = {}
        self._owner: Optional[int] = None
        self.duplicates = 0

    def _check_writer(self):
        current = threading.get_ident()
        if self._owner is None:
            self._owner = current
        elif self._owner != current:
            raise RuntimeError("GameLedger must only be mutated from one thread")

    # ==========================================================================
    # MUTATION (coordinator only)
    # ==========================================================================

    def touch(self, game: Game) -> LedgerEntry:
        """
        Get the ledger entry for a game, creating it on first reference.

        Args:
            game: The game to track

        Returns:
            The game's LedgerEntry
        """
        self._check_writer()
        entry = self._entries.get(game.game_id)
        if entry is None:
            entry = LedgerEntry(game, self.catalog.child_entries(game))
            self._entries[game.game_id] = entry
            logger.debug("Adding game %s with %d roms", game.name, len(entry.all_entries))
        return entry

    def seed_all(self) -> int:
        """
        Touch every game in the catalog up front.

        Games that no file matches then show up as MISSING in the summary.

        Returns:
            Number of games in the ledger
        """
        for game in self.catalog.list_games():
            self.touch(game)
        return len(self._entries)

    def reconcile(self, catalog_entry: CatalogEntry) -> bool:
        """
        Mark a catalog entry as satisfied.

        Args:
            catalog_entry: Entry whose content was found

        Returns:
            True if the entry was removed from its game's missing set, False
            if it had already been satisfied (duplicate file)
        """
        game = self.catalog.game_of(catalog_entry)
        item = self.touch(game)

        if catalog_entry in item.missing_entries:
            item.missing_entries.remove(catalog_entry)
            logger.debug("Removing rom %s from %s, %d still missing",
                         catalog_entry.name, game.name, len(item.missing_entries))
            return True

        self.duplicates += 1
        logger.warning("Rom %s in %s already found, possible duplicate file",
                       catalog_entry.name, game.name)
        return False

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    def get(self, game: Game) -> Optional[LedgerEntry]:
        """Get a game's ledger entry without creating it."""
        return self._entries.get(game.game_id)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, game: Game):
        return game.game_id in self._entries

    def entries(self, sort_by_name: bool = False) -> List[LedgerEntry]:
        """
        Get all ledger entries.

        Args:
            sort_by_name: Sort by game name instead of datfile order

        Returns:
            List of LedgerEntry objects
        """
        if sort_by_name:
            return sorted(self._entries.values(), key=lambda e: (e.game.name, e.game.game_id))
        return [self._entries[game_id] for game_id in sorted(self._entries)]

    def statistics(self) -> Dict[str, int]:
        """Count games per status."""
        stats = {status.value: 0 for status in GameStatus}
        for item in self._entries.values():
            stats[item.status.value] += 1
        stats['total'] = len(self._entries)
        return stats
