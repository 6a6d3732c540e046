# ==============================================================================
# DATCHECK - COMMAND LINE INTERFACE
# ==============================================================================
# Command-line front end for the audit engine.
#
# Commands:
#   - check:  Check files against a datfile and summarise each set
#   - audit:  Check every file in the current directory into an audit file
#   - lookup: Search the datfile for roms or games
#   - zip:    Zip complete sets from verified loose files
#   - cache:  Inspect or clear the hash cache
#
# Report lines go to stdout (or the requested output file). Status messages
# and log records go to stderr.
#
# Usage:
#   datcheck -d snes.dat check *.sfc
#   datcheck -d snes.dat check -r -s --show sets roms/*
#   datcheck -d snes.dat audit
#   datcheck -d snes.dat lookup -k crc 8587d865
#   datcheck -d snes.dat zip -o sets/ -m
#   datcheck cache stats
# ==============================================================================

import argparse
import logging
import os
import sys
from datetime import datetime
from typing import List, Optional, TextIO

from . import __version__
from .core.catalog import CatalogStore, load_datfile
from .core.config import SHOW_CHOICES, Config, get_config
from .core.database import HashCache
from .core.exceptions import CatalogError, HashCacheError, OutputError
from .core.hasher import supported_algorithms
from .core.ledger import GameLedger
from .core.packager import SetPackager
from .core.pipeline import AuditPipeline
from .core.reporter import Reporter

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(message)s"


# ==============================================================================
# COLOR HELPERS FOR TERMINAL OUTPUT
# ==============================================================================
class Colors:
    """ANSI color codes for terminal output."""
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

    @classmethod
    def disable(cls):
        """Disable colors (for redirected output or --no-color)."""
        cls.BLUE = ''
        cls.CYAN = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.RED = ''
        cls.BOLD = ''
        cls.END = ''


def print_header(text: str):
    """Print a header."""
    print(f"{Colors.BOLD}{Colors.CYAN}{text}{Colors.END}", file=sys.stderr)


def print_success(text: str):
    """Print a success message."""
    print(f"{Colors.GREEN}✓ {text}{Colors.END}", file=sys.stderr)


def print_error(text: str):
    """Print an error message."""
    print(f"{Colors.RED}✗ {text}{Colors.END}", file=sys.stderr)


def print_info(text: str):
    """Print an info message."""
    print(f"{Colors.BLUE}ℹ {text}{Colors.END}", file=sys.stderr)


def print_warning(text: str):
    """Print a warning message."""
    print(f"{Colors.YELLOW}⚠ {text}{Colors.END}", file=sys.stderr)


# ==============================================================================
# LOGGING
# ==============================================================================
def setup_logging(verbosity: int = 0, debug: bool = False):
    """
    Configure the root logger for a CLI run.

    Args:
        verbosity: Number of -v flags (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug:     Force DEBUG regardless of verbosity
    """
    if debug or verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


# ==============================================================================
# SHARED HELPERS
# ==============================================================================
def files_in_directory(directory: str) -> List[str]:
    """
    List the regular, non-hidden files of a directory.

    Args:
        directory: Directory to list

    Returns:
        Sorted list of file paths
    """
    paths = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.name.startswith('.'):
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            paths.append(os.path.join(directory, entry.name))
    return sorted(paths)


def load_catalog(args, config: Config) -> CatalogStore:
    """
    Load the datfile named by -d/--datfile or the configured default.

    Raises:
        CatalogError: If no datfile is given or it cannot be loaded
    """
    datfile = args.datfile or config.default_datfile
    if not datfile:
        raise CatalogError('', "no datfile given (use -d/--datfile or set default_datfile)")
    return load_datfile(datfile)


def open_hash_cache(config: Config, enabled: bool) -> Optional[HashCache]:
    """Open the hash cache, or return None if disabled or unusable."""
    if not enabled:
        return None
    try:
        return HashCache(config.hash_cache_path)
    except HashCacheError as e:
        logger.warning("%s, continuing without the hash cache", e)
        return None


def open_output(path: Optional[str]) -> TextIO:
    """
    Open a report destination.

    Raises:
        OutputError: If the file cannot be created
    """
    if not path:
        return sys.stdout
    try:
        return open(path, 'w', encoding='utf-8')
    except OSError as e:
        raise OutputError(f"Cannot create output file '{path}': {e}") from e


def run_check(catalog: CatalogStore, paths: List[str], stream: TextIO, *,
              algorithm: str, workers: int, exclude, rename: bool = False,
              sort_files: bool = False, sort_sets: bool = False,
              all_sets: bool = False, show: str = 'all',
              hash_cache: Optional[HashCache] = None) -> GameLedger:
    """
    Audit files and write the full report to a stream.

    Returns:
        The reconciled GameLedger
    """
    reporter = Reporter(stream, algorithm=algorithm, show=show)
    pipeline = AuditPipeline(catalog, algorithm=algorithm, workers=workers,
                             exclude=exclude, rename=rename, sort_files=sort_files,
                             hash_cache=hash_cache)

    ledger = GameLedger(catalog)
    if all_sets:
        ledger.seed_all()

    reporter.section('--FILES--')
    pipeline.run(paths, ledger, on_result=reporter.file_result)

    reporter.section('--SETS--')
    reporter.game_summary(ledger, sort_by_name=sort_sets)
    if reporter.show_sets:
        reporter.statistics(ledger)
    return ledger


# ==============================================================================
# CHECK COMMAND
# ==============================================================================
def cmd_check(args, config: Config) -> int:
    """Check files against the datfile."""
    catalog = load_catalog(args, config)

    paths = args.files or files_in_directory(os.getcwd())
    exclude = set(config.exclude_extensions) | set(args.exclude or [])
    cache_enabled = config.hash_cache_enabled if args.cache is None else args.cache
    hash_cache = open_hash_cache(config, cache_enabled)

    stream = open_output(args.output)
    try:
        ledger = run_check(
            catalog, paths, stream,
            algorithm=args.method or config.hash_method,
            workers=args.workers or config.worker_count,
            exclude=exclude,
            rename=args.rename,
            sort_sets=args.sort or config.sort_sets,
            all_sets=args.allsets,
            show=args.show or config.show,
            hash_cache=hash_cache
        )
    finally:
        if stream is not sys.stdout:
            stream.close()
        if hash_cache is not None:
            hash_cache.close()

    if args.output:
        stats = ledger.statistics()
        print_success(f"Report written to {args.output} "
                      f"({stats['complete']} complete, {stats['partial']} partial, "
                      f"{stats['missing']} missing)")
    return 0


# ==============================================================================
# AUDIT COMMAND
# ==============================================================================
def default_audit_name(now: Optional[datetime] = None) -> str:
    """Get the default audit file name for a timestamp."""
    now = now or datetime.now()
    return f"audit_{now.strftime('%Y-%m-%d_%H-%M-%S')}.txt"


def cmd_audit(args, config: Config) -> int:
    """Audit every file in the current directory into an audit file."""
    catalog = load_catalog(args, config)

    output = args.output or default_audit_name()
    exclude = set(config.exclude_extensions) | set(args.exclude or []) | {'txt'}
    paths = files_in_directory(os.getcwd())
    hash_cache = open_hash_cache(config, config.hash_cache_enabled)

    print_header(f"Auditing {len(paths)} files against {catalog.header.get('name', catalog.source)}")

    stream = open_output(output)
    try:
        ledger = run_check(
            catalog, paths, stream,
            algorithm=args.method or config.hash_method,
            workers=args.workers or config.worker_count,
            exclude=exclude,
            rename=args.rename,
            sort_files=True,
            sort_sets=True,
            all_sets=True,
            show='all',
            hash_cache=hash_cache
        )
    finally:
        stream.close()
        if hash_cache is not None:
            hash_cache.close()

    stats = ledger.statistics()
    print_success(f"Audit written to {output}")
    print_info(f"{stats['complete']} complete, {stats['partial']} partial, "
               f"{stats['missing']} missing")
    return 0


# ==============================================================================
# LOOKUP COMMAND
# ==============================================================================
def cmd_lookup(args, config: Config) -> int:
    """Look up roms or games in the datfile."""
    catalog = load_catalog(args, config)

    results = []
    for key in args.keys:
        if args.mode == 'game':
            results.append(catalog.find_games_by_name(key, exact=args.exact))
        elif args.key == 'name':
            results.append(catalog.find_by_name(key, exact=args.exact))
        else:
            results.append(catalog.find_by_hash(args.key, key))

    Reporter(sys.stdout).print_lookup(catalog, results, mode=args.mode)

    if not any(results):
        print_warning("No matches found")
    return 0


# ==============================================================================
# ZIP COMMAND
# ==============================================================================
def cmd_zip(args, config: Config) -> int:
    """Zip complete sets from verified loose files."""
    catalog = load_catalog(args, config)

    paths = args.files or files_in_directory(os.getcwd())
    exclude = set(config.exclude_extensions) | set(args.exclude or [])

    packager = SetPackager(catalog, output_dir=args.outdir, remove=args.remove,
                           use_infozip=args.infozip, workers=config.worker_count,
                           exclude=exclude)
    packaged = packager.run(paths)

    if not packaged:
        print_info("No complete sets found")
        return 0

    for item in packaged:
        print_success(f"Wrote {item.zip_path} with {len(item.files)} file(s)")
        if args.remove and len(item.removed) != len(item.files):
            print_warning(f"Only {len(item.removed)} of {len(item.files)} files removed for {item.game.name}")
    return 0


# ==============================================================================
# CACHE COMMANDS
# ==============================================================================
def cmd_cache_stats(args, config: Config) -> int:
    """Show hash cache statistics."""
    try:
        cache = HashCache(config.hash_cache_path)
    except HashCacheError as e:
        print_error(str(e))
        return 1

    try:
        stats = cache.stats()
    finally:
        cache.close()

    print_header("Hash Cache")
    print(f"Location:        {stats['path']}")
    print(f"Cached digests:  {stats['total']}")
    for algorithm, count in sorted(stats['by_algorithm'].items()):
        print(f"  {algorithm}: {count}")
    if not config.hash_cache_enabled:
        print_info("The hash cache is disabled; use --cache or set hash_cache_enabled")
    return 0


def cmd_cache_clear(args, config: Config) -> int:
    """Delete every cached digest."""
    try:
        cache = HashCache(config.hash_cache_path)
    except HashCacheError as e:
        print_error(str(e))
        return 1

    try:
        deleted = cache.clear()
    finally:
        cache.close()

    print_success(f"Removed {deleted} cached digests")
    return 0


# ==============================================================================
# MAIN ARGUMENT PARSER
# ==============================================================================
def positive_int(value: str) -> int:
    """argparse type for worker counts."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    methods = supported_algorithms()

    parser = argparse.ArgumentParser(
        prog='datcheck',
        description="DatCheck - check rom files and sets against datfiles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -d snes.dat check *.sfc          Check files
  %(prog)s -d snes.dat check -r roms/*      Check and fix misnamed files
  %(prog)s -d snes.dat audit                Audit the current directory
  %(prog)s -d snes.dat lookup -x "a.bin"    Find a rom by exact name
  %(prog)s -d snes.dat zip -o sets -m       Zip complete sets
        """
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('-d', '--datfile', help='Datfile to use (default: config default_datfile)')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Verbose logging (repeat for debug output)')
    parser.add_argument('--config', help='Path to an alternative config.json')
    parser.add_argument('--no-color', action='store_true', help='Disable colored messages')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # -------------------------------------------------------------------------
    # CHECK command
    # -------------------------------------------------------------------------
    check_parser = subparsers.add_parser('check', help='Check files against datfile')
    check_parser.add_argument('files', nargs='*',
                              help='Files to check (default: files in current directory)')
    check_parser.add_argument('-a', '--allsets', action='store_true',
                              help='Report every set in the datfile, not just matched ones')
    check_parser.add_argument('-e', '--exclude', action='append', metavar='EXT',
                              help='Extension to exclude (can be repeated)')
    check_parser.add_argument('-m', '--method', choices=methods, help='Hash used to match roms')
    check_parser.add_argument('-r', '--rename', action='store_true',
                              help='Rename unambiguous misnamed files and zipped sets')
    check_parser.add_argument('-s', '--sort', action='store_true', help='Sort sets by name')
    check_parser.add_argument('-w', '--workers', type=positive_int,
                              help='Number of concurrent workers')
    check_parser.add_argument('--show', choices=SHOW_CHOICES, help='Sections to print')
    check_parser.add_argument('-o', '--output', help='Write the report to a file')
    check_parser.add_argument('--cache', dest='cache', action='store_true', default=None,
                              help='Use the hash cache')
    check_parser.add_argument('--no-cache', dest='cache', action='store_false',
                              help='Do not use the hash cache')
    check_parser.set_defaults(func=cmd_check)

    # -------------------------------------------------------------------------
    # AUDIT command
    # -------------------------------------------------------------------------
    audit_parser = subparsers.add_parser('audit', help='Audit current directory into a file')
    audit_parser.add_argument('output', nargs='?',
                              help='Audit file (default: audit_<timestamp>.txt)')
    audit_parser.add_argument('-e', '--exclude', action='append', metavar='EXT',
                              help='Extension to exclude (can be repeated)')
    audit_parser.add_argument('-m', '--method', choices=methods, help='Hash used to match roms')
    audit_parser.add_argument('-r', '--rename', action='store_true',
                              help='Rename unambiguous misnamed files and zipped sets')
    audit_parser.add_argument('-w', '--workers', type=positive_int,
                              help='Number of concurrent workers')
    audit_parser.set_defaults(func=cmd_audit)

    # -------------------------------------------------------------------------
    # LOOKUP command
    # -------------------------------------------------------------------------
    lookup_parser = subparsers.add_parser('lookup', help='Look up datfile entries')
    lookup_parser.add_argument('keys', nargs='+', help='Keys to look up')
    lookup_parser.add_argument('-k', '--key', choices=['name'] + methods, default='name',
                               help='Key type for rom lookups (default: name)')
    lookup_parser.add_argument('-m', '--mode', choices=['rom', 'game'], default='rom',
                               help='Element to look up (default: rom)')
    lookup_parser.add_argument('-x', '--exact', action='store_true',
                               help='Exact name match instead of substring')
    lookup_parser.set_defaults(func=cmd_lookup)

    # -------------------------------------------------------------------------
    # ZIP command
    # -------------------------------------------------------------------------
    zip_parser = subparsers.add_parser('zip', help='Zip complete roms into sets')
    zip_parser.add_argument('files', nargs='*',
                            help='Files to zip (default: files in current directory)')
    zip_parser.add_argument('-e', '--exclude', action='append', metavar='EXT',
                            help='Extension to exclude (can be repeated)')
    zip_parser.add_argument('-o', '--outdir', default='.', help='Output directory')
    zip_parser.add_argument('-m', '--remove', action='store_true',
                            help='Remove loose files after zipping')
    zip_parser.add_argument('-i', '--infozip', action='store_true',
                            help='Use the external zip tool')
    zip_parser.set_defaults(func=cmd_zip)

    # -------------------------------------------------------------------------
    # CACHE commands
    # -------------------------------------------------------------------------
    cache_parser = subparsers.add_parser('cache', help='Manage the hash cache')
    cache_sub = cache_parser.add_subparsers(dest='cache_command', required=True)

    cache_stats = cache_sub.add_parser('stats', help='Show cache statistics')
    cache_stats.set_defaults(func=cmd_cache_stats)

    cache_clear = cache_sub.add_parser('clear', help='Delete all cached digests')
    cache_clear.set_defaults(func=cmd_cache_clear)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Arguments (default: sys.argv[1:])

    Returns:
        Process exit code (0 success, 1 fatal error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config(args.config)
    setup_logging(args.verbose, config.debug_mode)

    if args.no_color or not config.use_colors or not sys.stderr.isatty():
        Colors.disable()

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args, config)
    except (CatalogError, OutputError) as e:
        print_error(str(e))
        return 1
    except KeyboardInterrupt:
        print_warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
