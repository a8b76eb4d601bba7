"""
Cache errors, statistics and key helpers.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Longest sanitized key used verbatim as a file name
MAX_FILE_NAME_LENGTH = 50

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._~-]")


class CacheError(Exception):
    """Base error for cache storage operations."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.key = key
        self.original_error = original_error


class WriteFailedError(CacheError):
    """A payload or its metadata could not be written."""


class ReadFailedError(CacheError):
    """An entry exists on disk but could not be read."""


class EncodingFailedError(CacheError):
    """A value could not be serialized for storage."""


class DecodingFailedError(CacheError):
    """Stored bytes could not be deserialized into a value."""


class ImageDecodeError(CacheError):
    """Downloaded or cached bytes are not a decodable image."""


@dataclass
class CacheStats:
    """Cache statistics."""
    memory_hits: int = 0
    disk_hits: int = 0
    misses: int = 0
    downloads: int = 0
    download_failures: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        hits = self.memory_hits + self.disk_hits
        total = hits + self.misses
        return (hits / total * 100) if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "memory_hits": self.memory_hits,
            "disk_hits": self.disk_hits,
            "misses": self.misses,
            "downloads": self.downloads,
            "download_failures": self.download_failures,
            "hit_rate": round(self.hit_rate, 2),
        }


def hash_key(key: str) -> str:
    """Fixed-length digest of a cache key."""
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def normalize_key(key: str) -> str:
    """
    Turn an arbitrary cache key into a file-system safe name.

    Characters outside ``[A-Za-z0-9._~-]`` are dropped. Keys that end up
    longer than 50 characters, empty, or a bare dot name are replaced by
    the MD5 digest of the original key. The original key cannot be
    recovered from the result.
    """
    sanitized = _UNSAFE_CHARS.sub("", key)

    if len(sanitized) > MAX_FILE_NAME_LENGTH or sanitized.strip(".") == "":
        return hash_key(key)

    return sanitized
