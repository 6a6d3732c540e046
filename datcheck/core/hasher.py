# ==============================================================================
# FILE HASHER MODULE
# ==============================================================================
# Streams file contents through the run-wide digest algorithm.
# Supports SHA-1 (default), MD5 and CRC-32, the three hashes a datfile
# records for each rom.
#
# Usage:
#   hasher = FileHasher('sha1')
#   digest = hasher.hash_file("path/to/game.bin")
#   digest = hasher.hash_stream(zip_member_handle)
#
# Files are always read in fixed-size chunks: candidate files can be whole
# disk images, so nothing is ever read into memory in one piece.
# ==============================================================================

import hashlib
import zlib
from typing import BinaryIO, Dict, Callable


# ==============================================================================
# CRC-32 ADAPTER
# ==============================================================================
class _Crc32:
    """Gives zlib.crc32 the same update()/hexdigest() shape as hashlib."""

    def __init__(self):
        self._value = 0

    def update(self, data) -> None:
        self._value = zlib.crc32(data, self._value)

    def hexdigest(self) -> str:
        return f"{self._value & 0xFFFFFFFF:08x}"


# Algorithm tag -> factory returning a fresh hash object
ALGORITHMS: Dict[str, Callable] = {
    'sha1': hashlib.sha1,
    'md5': hashlib.md5,
    'crc': _Crc32,
}


class FileHasher:
    """
    Streaming file hasher for one algorithm.

    A single instance is shared by all pipeline workers; it holds no
    per-file state, so concurrent calls are safe.

    Attributes:
        algorithm (str):  Algorithm tag ('sha1', 'md5' or 'crc')
        chunk_size (int): Size of chunks read from each stream
    """

    # 256KB
    DEFAULT_CHUNK_SIZE = 262144

    def __init__(self, algorithm: str = 'sha1', chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the file hasher.

        Args:
            algorithm: Algorithm tag, one of ALGORITHMS
            chunk_size: Bytes to read per chunk

        Raises:
            ValueError: If the algorithm is not supported
        """
        if algorithm not in ALGORITHMS:
            raise ValueError(
                f"Unsupported hash algorithm '{algorithm}' "
                f"(expected one of: {', '.join(sorted(ALGORITHMS))})"
            )
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    def new(self):
        """Create a fresh hash object for this algorithm."""
        return ALGORITHMS[self.algorithm]()

    def hash_stream(self, stream: BinaryIO) -> str:
        """
        Compute the digest of a file-like stream.

        Works for regular files and for archive member handles alike.

        Args:
            stream: A binary file-like object supporting read()

        Returns:
            Lowercase hex digest

        Raises:
            OSError: If reading fails part way through
        """
        hash_obj = self.new()
        for chunk in iter(lambda: stream.read(self.chunk_size), b''):
            hash_obj.update(chunk)
        return hash_obj.hexdigest()

    def hash_file(self, file_path: str) -> str:
        """
        Compute the digest of a file on disk.

        Args:
            file_path: Path to the file to hash

        Returns:
            Lowercase hex digest

        Raises:
            OSError: If the file cannot be opened or read

        Example:
            >>> FileHasher('crc').hash_file("a.bin")
            '8587d865'
        """
        hash_obj = self.new()
        with open(file_path, 'rb') as f:
            buffer = bytearray(self.chunk_size)
            mv = memoryview(buffer)
            while True:
                n = f.readinto(mv)
                if not n:
                    break
                hash_obj.update(mv[:n])
        return hash_obj.hexdigest()

    def hash_bytes(self, data: bytes) -> str:
        """Compute the digest of raw bytes."""
        hash_obj = self.new()
        hash_obj.update(data)
        return hash_obj.hexdigest()


def supported_algorithms():
    """Get the list of supported algorithm tags."""
    return sorted(ALGORITHMS)
