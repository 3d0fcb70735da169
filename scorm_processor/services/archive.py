"""
Archive Reader

Opens an uploaded SCORM package (zip container) fully in memory and exposes
named-entry lookup. Nothing is written to disk.
"""

import os
import zlib
import zipfile
import logging
from io import BytesIO
from typing import List, Optional

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "imsmanifest.xml"

# Zip bomb guards: declared uncompressed total, and per-entry compression ratio
MAX_UNCOMPRESSED_SIZE = int(os.getenv("MAX_UNCOMPRESSED_SIZE_MB", "500")) * 1024 * 1024
MAX_COMPRESSION_RATIO = 100
# Entries at or below this size are never ratio-checked
RATIO_CHECK_THRESHOLD = 1024 * 1024


def _normalize_name(name: str) -> str:
    name = name.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return name.lstrip("/")


def _suspicious_ratio(info: zipfile.ZipInfo) -> bool:
    if info.file_size <= RATIO_CHECK_THRESHOLD or info.compress_size <= 0:
        return False
    return info.file_size / info.compress_size > MAX_COMPRESSION_RATIO


class ArchiveReader:
    """Read-only view over a zip archive held in memory"""

    def __init__(self, data: bytes, max_uncompressed_size: Optional[int] = None):
        if not data:
            raise ArchiveError("Package is empty")
        try:
            self._zip = zipfile.ZipFile(BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
            raise ArchiveError(f"Package is not a valid zip archive: {e}") from e

        # Directory entries carry no content and are never referenced by files
        self._entries = {
            _normalize_name(info.filename): info
            for info in self._zip.infolist()
            if not info.is_dir()
        }

        limit = MAX_UNCOMPRESSED_SIZE if max_uncompressed_size is None else max_uncompressed_size
        total_size = sum(info.file_size for info in self._entries.values())
        if total_size > limit:
            self._zip.close()
            raise ArchiveError(
                f"Package expands to {total_size} bytes, exceeding the limit of {limit} bytes"
            )
        logger.debug("Opened archive with %d entries (%d bytes)", len(self._entries), total_size)

    def names(self) -> List[str]:
        return list(self._entries)

    def has_entry(self, name: str) -> bool:
        return _normalize_name(name) in self._entries

    def entry(self, name: str) -> Optional[bytes]:
        """
        Return the bytes of an entry, or None when it is absent or unreadable.

        Never raises: a missing asset is not fatal to extraction. Corrupt
        entries and entries with a suspicious compression ratio count as
        unreadable.
        """
        info = self._entries.get(_normalize_name(name))
        if info is None:
            return None
        if _suspicious_ratio(info):
            logger.warning(
                "Skipping archive entry %s: suspicious compression (%d -> %d bytes)",
                name, info.compress_size, info.file_size,
            )
            return None
        try:
            return self._zip.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError, OSError) as e:
            logger.warning("Could not read archive entry %s: %s", name, e)
            return None

    def read_text(self, name: str = MANIFEST_NAME) -> bytes:
        """
        Return the bytes of a required entry.

        Raises:
            ArchiveError: If the entry is not present in the archive or
                cannot be read
        """
        content = self.entry(name)
        if content is None:
            if self.has_entry(name):
                raise ArchiveError(f"{name} could not be read from package")
            raise ArchiveError(f"{name} not found in package")
        return content

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
