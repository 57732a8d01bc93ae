"""
Compression Utilities

Provides gzip compression and decompression of archive text with a
configurable compression level.
"""

import gzip
import logging
import zlib
from typing import Optional

from ..exceptions import BackupCorruptedError

logger = logging.getLogger(__name__)

ARCHIVE_ENCODING = "utf-8"

# gzip streams start with these two bytes
GZIP_MAGIC = b"\x1f\x8b"


class CompressionHandler:
    """
    Handle compression and decompression of backup data.

    Example:
        ```python
        handler = CompressionHandler(compression_level=6)

        compressed = handler.compress_text(archive_text)
        archive_text = handler.decompress_text(compressed, backup_name="backup_x.json.gz")
        ```
    """

    def __init__(self, compression_level: int = 6):
        """
        Initialize compression handler.

        Args:
            compression_level: Compression level from 1 (fastest) to 9 (best)
        """
        if not 1 <= compression_level <= 9:
            raise ValueError("compression_level must be between 1 and 9")

        self.compression_level = compression_level
        logger.debug(f"Using gzip compression at level {compression_level}")

    def compress_data(self, data: bytes) -> bytes:
        """
        Compress in-memory data.

        Args:
            data: Bytes to compress

        Returns:
            Compressed bytes
        """
        compressed = gzip.compress(data, compresslevel=self.compression_level)

        ratio = self.compression_ratio(len(data), len(compressed))
        logger.debug(
            f"Compressed {len(data)} bytes to {len(compressed)} bytes ({ratio:.1f}% reduction)"
        )
        return compressed

    def decompress_data(self, data: bytes, backup_name: Optional[str] = None) -> bytes:
        """
        Decompress in-memory data.

        Args:
            data: Compressed bytes
            backup_name: Archive name used in error messages

        Returns:
            Decompressed bytes

        Raises:
            BackupCorruptedError: If the bytes are not a complete gzip stream
        """
        if not self.is_compressed_data(data):
            raise BackupCorruptedError(
                "Archive is not gzip compressed",
                backup_name=backup_name
            )
        try:
            decompressed = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            logger.error(f"Failed to decompress {backup_name or 'data'}: {e}")
            raise BackupCorruptedError(
                f"Archive decompression failed: {e}",
                backup_name=backup_name
            ) from e

        logger.debug(f"Decompressed {len(data)} bytes to {len(decompressed)} bytes")
        return decompressed

    def compress_text(self, text: str) -> bytes:
        """Encode text as UTF-8 and compress it."""
        return self.compress_data(text.encode(ARCHIVE_ENCODING))

    def decompress_text(self, data: bytes, backup_name: Optional[str] = None) -> str:
        """
        Decompress bytes and decode them as UTF-8 text.

        Raises:
            BackupCorruptedError: If decompression or decoding fails
        """
        raw = self.decompress_data(data, backup_name)
        try:
            return raw.decode(ARCHIVE_ENCODING)
        except UnicodeDecodeError as e:
            raise BackupCorruptedError(
                f"Archive is not valid UTF-8: {e}",
                backup_name=backup_name
            ) from e

    @staticmethod
    def compression_ratio(original_size: int, compressed_size: int) -> float:
        """Size reduction in percent, 0 for empty input."""
        if original_size <= 0:
            return 0.0
        return (1 - compressed_size / original_size) * 100

    @staticmethod
    def is_compressed_data(data: bytes) -> bool:
        """Check the gzip magic number."""
        return data[:2] == GZIP_MAGIC
