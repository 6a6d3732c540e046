# ==============================================================================
# DATCHECK - MAIN ENTRY POINT
# ==============================================================================
# Launcher for running DatCheck from a source checkout.
#
# Usage:
#   python main.py --version          # Show version information
#   python main.py --paths            # Show data paths and exit
#   python main.py --check            # Check dependencies and exit
#   python main.py -d snes.dat check  # Anything else goes to the CLI
# ==============================================================================

import sys


# ==============================================================================
# DEPENDENCY CHECKS
# ==============================================================================

def check_dependencies():
    """
    Check if required dependencies are installed.

    Returns:
        Tuple of (all_ok, missing_packages)
    """
    missing = []

    for dep in ['sqlalchemy']:
        try:
            __import__(dep)
        except ImportError:
            missing.append(dep)

    return (len(missing) == 0, missing)


# ==============================================================================
# MAIN FUNCTION
# ==============================================================================

def main(argv=None):
    """
    Handle launcher-only options, otherwise forward to the CLI.

    Returns:
        Process exit code
    """
    argv = list(sys.argv[1:] if argv is None else argv)

    if argv == ['--version']:
        from datcheck import __version__, __description__
        print(f"DatCheck v{__version__}")
        print(__description__)
        return 0

    if argv == ['--check']:
        print("Checking dependencies...")
        print(f"  Python: {sys.version}")

        all_ok, missing = check_dependencies()
        if all_ok:
            import sqlalchemy
            print(f"[OK] SQLAlchemy {sqlalchemy.__version__}")
        else:
            print(f"[MISSING] {', '.join(missing)}")
            print("Install with: pip install -e .")
        return 0 if all_ok else 1

    all_ok, missing = check_dependencies()
    if not all_ok:
        print(f"[ERROR] Missing required packages: {', '.join(missing)}", file=sys.stderr)
        return 1

    if argv == ['--paths']:
        from datcheck.core.config import get_config
        from datcheck.core.paths import Paths
        print("DatCheck Paths:")
        print(f"  User Data:      {Paths.get_user_data_dir()}")
        print(f"  Config:         {Paths.get_config_path()}")
        print(f"  Hash Cache:     {get_config().hash_cache_path}")
        return 0

    from datcheck.cli import main as cli_main
    return cli_main(argv)


# ==============================================================================
# SCRIPT ENTRY POINT
# ==============================================================================
if __name__ == "__main__":
    sys.exit(main())
