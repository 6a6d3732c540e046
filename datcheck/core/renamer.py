# ==============================================================================
# RENAMER MODULE
# ==============================================================================
# Best-effort renaming of misnamed files and archives.
#
# Renames stay inside the file's own directory and never overwrite an
# existing file. A failed rename is logged and reported; it never stops the
# rest of the batch.
# ==============================================================================

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


def rename_file(file_path: str, new_name: str) -> Optional[str]:
    """
    Rename a file within its directory.

    Args:
        file_path: Current path of the file
        new_name:  New base name (must not contain a directory part)

    Returns:
        The new path, or None if the rename failed
    """
    if not new_name or '/' in new_name or '\\' in new_name or new_name in ('.', '..'):
        logger.error("Unable to rename %s: '%s' is not a plain file name", file_path, new_name)
        return None

    new_path = os.path.join(os.path.dirname(file_path), new_name)
    if os.path.exists(new_path):
        logger.error("Unable to rename %s: %s already exists", file_path, new_path)
        return None

    try:
        os.rename(file_path, new_path)
    except OSError as e:
        logger.error("Unable to rename %s: %s", file_path, e)
        return None

    logger.info("Renamed %s to %s", file_path, new_name)
    return new_path
