# ==============================================================================
# REPORTER MODULE
# ==============================================================================
# Formats audit results as plain text lines.
#
# Per file (the container is left out for loose files):
#   [ OK ] <hash> <name> <container>
#   [WARN] <hash> <name> <container> - misnamed, should be <rom>
#   [BAD ] <hash> <name> <container> - incorrect, expected <romhash>
#   [UNK ] <hash> <name> <container> - unknown
#   [MISS] <name> <container> - could not be read: <error>
#
# Per game:
#   [ OK ]  <game>
#   [MISS]  <game>
#   [WARN]  <game> is missing:
#           <hash> <rom>
#
# The reporter is only ever called from the pipeline's coordinating thread,
# so lines from different files never interleave.
#
# Usage:
#   reporter = Reporter(sys.stdout, algorithm='sha1', show='all')
#   reporter.section('--FILES--')
#   pipeline.run(paths, ledger, on_result=reporter.file_result)
#   reporter.game_summary(ledger)
# ==============================================================================

import sys
from typing import List, Optional, Sequence, TextIO

from .catalog import CatalogEntry, CatalogStore, Game
from .classifier import MatchType, SizeMismatch, size_mismatch
from .config import SHOW_CHOICES
from .ledger import GameLedger, GameStatus, LedgerEntry
from .pipeline import FileResult, MemberResult, PathStatus

IEC_UNITS = ('B', 'KiB', 'MiB', 'GiB', 'TiB', 'PiB', 'EiB', 'ZiB')


# ==============================================================================
# SIZE FORMATTING
# ==============================================================================

def binary_prefix(value: int, units: Sequence[str], max_unit: str, divisor: float) -> str:
    """
    Format a byte count with the largest unit that keeps it under `divisor`.

    Args:
        value:    Number of bytes
        units:    Unit suffixes, smallest first
        max_unit: Suffix used once every unit in `units` is exhausted
        divisor:  Step between consecutive units

    Returns:
        Formatted string, e.g. '1.50KiB'
    """
    num = float(value)
    for unit in units:
        if num < divisor:
            return f"{num:3.2f}{unit}"
        num = num / divisor
    return f"{num:.2f}{max_unit}"


def iec_prefix(value: int) -> str:
    """Format a byte count in IEC units (B, KiB, MiB, ...)."""
    return binary_prefix(value, IEC_UNITS, 'YiB', 1024.0)


def _join(*parts: str) -> str:
    return ' '.join(part for part in parts if part)


# ==============================================================================
# REPORTER CLASS
# ==============================================================================
class Reporter:
    """
    Writes audit and lookup output to a text stream.

    Attributes:
        stream (TextIO):  Destination (stdout or an audit file)
        algorithm (str):  Hash algorithm whose digests are printed
        show (str):       'roms', 'sets' or 'all'
    """

    def __init__(self, stream: Optional[TextIO] = None, algorithm: str = 'sha1',
                 show: str = 'all'):
        if show not in SHOW_CHOICES:
            raise ValueError(f"show must be one of {', '.join(SHOW_CHOICES)}")
        self.stream = stream if stream is not None else sys.stdout
        self.algorithm = algorithm
        self.show = show

    @property
    def show_files(self) -> bool:
        return self.show in ('roms', 'all')

    @property
    def show_sets(self) -> bool:
        return self.show in ('sets', 'all')

    def write(self, line: str = ''):
        print(line, file=self.stream)

    def section(self, title: str):
        """Print a section header if that section is shown."""
        if title == '--FILES--' and not self.show_files:
            return
        if title == '--SETS--' and not self.show_sets:
            return
        self.write(title)

    # ==========================================================================
    # PER-FILE LINES
    # ==========================================================================

    def file_result(self, result: FileResult):
        """Print every line for one pipeline result."""
        if not self.show_files:
            return
        for line in self.file_lines(result):
            self.write(line)

    def file_lines(self, result: FileResult) -> List[str]:
        """Format one pipeline result; excluded and skipped paths yield nothing."""
        if result.status in (PathStatus.EXCLUDED, PathStatus.NOT_REGULAR):
            return []

        if result.status is PathStatus.STAT_ERROR or (
                result.status is PathStatus.READ_ERROR and not result.members):
            return [f"[MISS] {result.name} - could not be read: {result.error}"]

        lines = []
        for member in result.members:
            lines.extend(self.member_lines(member))

        if result.renamed_to:
            lines.append(f"[ OK ] {result.name} - renamed to {result.renamed_to}")
        return lines

    def member_lines(self, member: MemberResult) -> List[str]:
        """Format the lines for one file or archive member."""
        if member.error is not None:
            return [f"{_join('[MISS]', member.name, member.container)} - could not be read: {member.error}"]

        prefix = _join(member.digest, member.name, member.container)
        match_type = member.match_type
        candidates = member.classification.entries

        if match_type is MatchType.NONE:
            return [f"[UNK ] {prefix} - unknown"]

        if match_type is MatchType.EXACT:
            line = f"[ OK ] {prefix}"
            if member.renamed_from:
                line += f" - renamed from {member.renamed_from}"
            return [line]

        lines: List[str] = []
        if match_type is MatchType.HASH_ONLY:
            suffix = ' (ambiguous)' if member.classification.is_ambiguous else ''
            for entry in candidates:
                line = f"[WARN] {prefix} - misnamed, should be {entry.name}{suffix}"
                if line not in lines:
                    lines.append(line)
            return lines

        for entry in candidates:
            line = f"[BAD ] {prefix} - incorrect, expected {entry.hash_for(self.algorithm)}"
            mismatch = size_mismatch(member.size, entry)
            if mismatch is not None:
                kind = 'overdump' if mismatch is SizeMismatch.OVERDUMP else 'underdump'
                line += (f" (Possible {kind}; size {iec_prefix(member.size)}, "
                         f"expected {iec_prefix(entry.size)})")
            if line not in lines:
                lines.append(line)
        return lines

    # ==========================================================================
    # PER-GAME SUMMARY
    # ==========================================================================

    def game_summary(self, ledger: GameLedger, sort_by_name: bool = False):
        """Print the completeness of every game in the ledger."""
        if not self.show_sets:
            return
        for item in ledger.entries(sort_by_name=sort_by_name):
            for line in self.game_lines(item):
                self.write(line)

    def game_lines(self, item: LedgerEntry) -> List[str]:
        status = item.status
        if status is GameStatus.COMPLETE:
            return [f"[ OK ]  {item.game.name}"]
        if status is GameStatus.MISSING:
            return [f"[MISS]  {item.game.name}"]

        lines = [f"[WARN]  {item.game.name} is missing:"]
        for entry in item.missing_sorted():
            lines.append(f"        {entry.hash_for(self.algorithm)} {entry.name}")
        return lines

    def statistics(self, ledger: GameLedger):
        stats = ledger.statistics()
        self.write(f"{stats['complete']} complete, {stats['partial']} partial, "
                   f"{stats['missing']} missing")

    # ==========================================================================
    # LOOKUP OUTPUT
    # ==========================================================================

    def _indent(self, indent: int, text: str):
        self.write('\t' * indent + text)

    def _entry_attributes(self, entry: CatalogEntry, indent: int):
        self._indent(indent, f"name: {entry.name}")
        if entry.size is not None:
            self._indent(indent, f"size: {iec_prefix(entry.size)}")
        for algorithm in ('crc', 'md5', 'sha1'):
            digest = entry.hash_for(algorithm)
            if digest:
                self._indent(indent, f"{algorithm}: {digest}")

    def print_game(self, game: Game, indent: int = 0):
        """Print a game and each of its roms."""
        self._indent(indent, f"name: {game.name}")
        if game.description:
            self._indent(indent, f"description: {game.description}")
        for entry in game.entries:
            self._indent(indent, "rom:")
            self._entry_attributes(entry, indent + 1)

    def print_entry(self, catalog: CatalogStore, entry: CatalogEntry, indent: int = 0):
        """Print a rom followed by the game that contains it."""
        self._entry_attributes(entry, indent)
        self._indent(indent, "Contained in game:")
        self.print_game(catalog.game_of(entry), indent + 1)

    def print_lookup(self, catalog: CatalogStore, results: List[list], mode: str = 'rom'):
        """
        Print lookup results, one block per key separated by '----'.

        Args:
            catalog: Catalog the results came from
            results: One list of matches (entries or games) per key
            mode:    'rom' or 'game'
        """
        for i, matches in enumerate(results):
            if i > 0:
                self.write('----')
            for match in matches:
                if mode == 'game':
                    self.print_game(match)
                else:
                    self.print_entry(catalog, match)
