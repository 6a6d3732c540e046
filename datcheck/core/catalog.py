# ==============================================================================
# CATALOG MODULE
# ==============================================================================
# In-memory, read-only view of a datfile (the reference catalog).
#
# A datfile is a Logiqx-style XML tree:
#
#   <datafile>
#     <header><name>...</name><description>...</description></header>
#     <game name="Some Game">
#       <rom name="a.bin" size="10" crc="..." md5="..." sha1="..."/>
#     </game>
#   </datafile>
#
# The whole tree is loaded once into an arena of CatalogEntry objects. Every
# entry and game is identified by its index in the arena, so two entries with
# the same name and hash under different games stay distinct.
#
# Hashes are normalised to lowercase at load time so lookups never have to
# compare both cases.
#
# Usage:
#   catalog = load_datfile("nointro.dat")
#   entries = catalog.find_by_hash("sha1", "AA...")
#   game = catalog.game_of(entries[0])
# ==============================================================================

import logging
import os
import xml.etree.ElementTree as ET
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from .exceptions import CatalogError

logger = logging.getLogger(__name__)

# Hash attributes recognised on <rom> elements
HASH_ATTRIBUTES = ('sha1', 'md5', 'crc')

# Element names that describe a game (MAME datfiles use <machine>)
GAME_ELEMENTS = ('game', 'machine')


# ==============================================================================
# DATA CLASSES
# ==============================================================================
@dataclass(frozen=True)
class CatalogEntry:
    """
    One expected file ("rom") within a game.

    Equality and hashing use entry_id only.

    Attributes:
        entry_id (int):  Index of the entry in the catalog arena
        name (str):      Expected file name
        hashes (dict):   Algorithm tag -> lowercase hex digest
        size (int):      Expected size in bytes (None if not recorded)
        game_id (int):   Index of the parent game
    """
    entry_id: int
    name: str = field(compare=False)
    hashes: Dict[str, str] = field(compare=False, default_factory=dict)
    size: Optional[int] = field(compare=False, default=None)
    game_id: int = field(compare=False, default=-1)

    def hash_for(self, algorithm: str) -> str:
        """Get the stored digest for an algorithm ('' if absent)."""
        return self.hashes.get(algorithm, '')


@dataclass(frozen=True)
class Game:
    """
    A named set of expected entries.

    Attributes:
        game_id (int):      Index of the game in datfile order
        name (str):         Game name (also the name of its zipped set)
        description (str):  Optional description from the datfile
        entries (tuple):    Child CatalogEntry objects in datfile order
    """
    game_id: int
    name: str = field(compare=False)
    description: str = field(compare=False, default='')
    entries: Tuple[CatalogEntry, ...] = field(compare=False, default=())


# ==============================================================================
# CATALOG STORE
# ==============================================================================
class CatalogStore:
    """
    Immutable, queryable catalog.

    Built once, then only read. All lookups are safe to call from any number
    of worker threads at the same time.

    Attributes:
        header (dict): Header fields from the datfile (name, description, ...)
        source (str):  Path the catalog was loaded from, if any
    """

    def __init__(self, games: List[Game], header: Optional[Dict[str, str]] = None,
                 source: str = ''):
        self.header = dict(header or {})
        self.source = source
        self._games: Tuple[Game, ...] = tuple(games)

        self._entries: List[CatalogEntry] = []
        self._by_name: Dict[str, List[CatalogEntry]] = defaultdict(list)
        self._by_hash: Dict[str, Dict[str, List[CatalogEntry]]] = {
            algorithm: defaultdict(list) for algorithm in HASH_ATTRIBUTES
        }
        self._games_by_name: Dict[str, List[Game]] = defaultdict(list)

        for game in self._games:
            self._games_by_name[game.name].append(game)
            for entry in game.entries:
                self._entries.append(entry)
                self._by_name[entry.name].append(entry)
                for algorithm, digest in entry.hashes.items():
                    self._by_hash.setdefault(algorithm, defaultdict(list))[digest].append(entry)

    # --------------------------------------------------------------------------
    # SIZE
    # --------------------------------------------------------------------------

    @property
    def game_count(self) -> int:
        return len(self._games)

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    # --------------------------------------------------------------------------
    # ENTRY LOOKUPS
    # --------------------------------------------------------------------------

    def find_by_hash(self, algorithm: str, digest: str) -> List[CatalogEntry]:
        """
        Find every entry, across every game, whose digest matches.

        Args:
            algorithm: Hash algorithm tag ('sha1', 'md5' or 'crc')
            digest:    Hex digest in either case

        Returns:
            List of matching entries (empty if none)
        """
        if not digest:
            return []
        index = self._by_hash.get(algorithm)
        if index is None:
            return []
        return list(index.get(normalise_digest(algorithm, digest), ()))

    def find_by_name(self, name: str, exact: bool = True) -> List[CatalogEntry]:
        """
        Find entries by name.

        Args:
            name:  Name to look for
            exact: True for equality, False for substring containment

        Returns:
            List of matching entries in datfile order
        """
        if exact:
            return list(self._by_name.get(name, ()))
        return [entry for entry in self._entries if name in entry.name]

    # --------------------------------------------------------------------------
    # GAME LOOKUPS
    # --------------------------------------------------------------------------

    def find_games_by_name(self, name: str, exact: bool = True) -> List[Game]:
        """Find games by exact name or substring."""
        if exact:
            return list(self._games_by_name.get(name, ()))
        return [game for game in self._games if name in game.name]

    def list_games(self) -> List[Game]:
        """Get all games in datfile order."""
        return list(self._games)

    def child_entries(self, game: Game) -> FrozenSet[CatalogEntry]:
        """Get the direct child entries of a game."""
        return frozenset(game.entries)

    def game_of(self, entry: CatalogEntry) -> Game:
        """Get the game an entry belongs to."""
        return self._games[entry.game_id]

    def get_entry(self, entry_id: int) -> CatalogEntry:
        return self._entries[entry_id]


# ==============================================================================
# DATFILE LOADING
# ==============================================================================

def normalise_digest(algorithm: str, digest: str) -> str:
    """
    Normalise a hex digest for storage or lookup.

    Digests are lowercased; CRC-32 values are left-padded to 8 digits since
    some datfiles drop leading zeros.
    """
    digest = digest.strip().lower()
    if algorithm == 'crc' and digest:
        digest = digest.zfill(8)
    return digest


def _parse_size(value: Optional[str], game_name: str, rom_name: str) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value, 0) if value.lower().startswith('0x') else int(value)
    except ValueError:
        logger.debug("Ignoring bad size %r for %s in %s", value, rom_name, game_name)
        return None


def parse_datfile(root: ET.Element, source: str = '') -> CatalogStore:
    """
    Build a CatalogStore from a parsed datfile tree.

    Args:
        root:   The <datafile> element
        source: Path the tree came from (for messages)

    Returns:
        The populated CatalogStore
    """
    header: Dict[str, str] = {}
    header_el = root.find('header')
    if header_el is not None:
        for child in header_el:
            if child.text and child.text.strip():
                header[child.tag] = child.text.strip()

    games: List[Game] = []
    entry_id = 0

    for game_el in root:
        if game_el.tag not in GAME_ELEMENTS:
            continue

        game_id = len(games)
        game_name = game_el.get('name', '')
        description = (game_el.findtext('description') or '').strip()

        entries = []
        for rom_el in game_el.findall('rom'):
            rom_name = rom_el.get('name', '')
            hashes = {}
            for algorithm in HASH_ATTRIBUTES:
                value = rom_el.get(algorithm)
                if value:
                    hashes[algorithm] = normalise_digest(algorithm, value)

            entries.append(CatalogEntry(
                entry_id=entry_id,
                name=rom_name,
                hashes=hashes,
                size=_parse_size(rom_el.get('size'), game_name, rom_name),
                game_id=game_id
            ))
            entry_id += 1

        games.append(Game(
            game_id=game_id,
            name=game_name,
            description=description,
            entries=tuple(entries)
        ))

    return CatalogStore(games, header=header, source=source)


def load_datfile(path: str) -> CatalogStore:
    """
    Load a datfile from disk.

    Args:
        path: Path to the XML datfile

    Returns:
        The loaded CatalogStore

    Raises:
        CatalogError: If the file cannot be read or is not a valid datfile

    Example:
        >>> catalog = load_datfile("snes.dat")
        >>> catalog.game_count
        3512
    """
    if not os.path.isfile(path):
        raise CatalogError(path, "file not found")

    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        raise CatalogError(path, f"malformed XML ({e})") from e
    except OSError as e:
        raise CatalogError(path, str(e)) from e

    root = tree.getroot()
    if root.tag != 'datafile':
        raise CatalogError(path, f"unexpected root element <{root.tag}>")

    catalog = parse_datfile(root, source=path)
    logger.info("Loaded %d games (%d roms) from %s",
                catalog.game_count, catalog.entry_count, path)
    return catalog
