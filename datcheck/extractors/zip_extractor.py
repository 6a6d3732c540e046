# ==============================================================================
# ZIP EXTRACTOR
# ==============================================================================
# Reads zipped sets (one game per .zip, one rom per member).
# Members are streamed through zipfile, so CRC checking on read is the only
# integrity check performed on the archive itself.
# ==============================================================================

import stat
import zipfile
from typing import BinaryIO, List

from .base_extractor import BaseExtractor, ExtractorRegistry, FileEntry


def _is_regular_member(info: zipfile.ZipInfo) -> bool:
    """Directories and symlinks (unix mode bits) are not regular members."""
    if info.is_dir():
        return False
    mode = info.external_attr >> 16
    # Many writers store permission bits only, with no file type
    return stat.S_IFMT(mode) == 0 or stat.S_ISREG(mode)


class ZipExtractor(BaseExtractor):
    """Extractor for standard .zip archives."""

    def __init__(self, archive_path: str = None):
        self._zip = None
        self._infos: List[zipfile.ZipInfo] = []
        super().__init__(archive_path)

    @property
    def format_name(self) -> str:
        return "ZIP"

    @property
    def supported_extensions(self) -> List[str]:
        return ['zip']

    def open(self, archive_path: str):
        """
        Open a zip archive.

        Raises:
            OSError: If the file cannot be read or is not a zip archive
        """
        try:
            self._zip = zipfile.ZipFile(archive_path, 'r')
        except zipfile.BadZipFile as e:
            raise OSError(f"not a valid zip archive ({e})") from e

        self.archive_path = archive_path
        self._infos = self._zip.infolist()
        self._file_list = [
            FileEntry(
                path=info.filename,
                size=info.file_size,
                compressed_size=info.compress_size,
                is_regular=_is_regular_member(info),
                index=index
            )
            for index, info in enumerate(self._infos)
        ]
        self._is_open = True

    def close(self):
        if self._zip is not None:
            self._zip.close()
            self._zip = None
        self._infos = []
        self._is_open = False

    def open_member(self, entry: FileEntry) -> BinaryIO:
        if not self._is_open:
            raise RuntimeError("Archive is not open")
        return self._zip.open(self._infos[entry.index], 'r')


ExtractorRegistry.register(ZipExtractor)
