"""
Disk-backed key/value cache with per-entry expiration.

Each entry is stored as two files inside the namespace directory:
``<name>.data`` with the raw payload and ``<name>.metadata`` with a small
JSON document holding the creation timestamp. The metadata file is written
last and acts as the commit marker for the entry.
"""

import json
import logging
import os
import shutil
import threading
import time
import uuid
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from xtreamtv.cache.base import ReadFailedError, WriteFailedError, normalize_key
from xtreamtv.config import get_config

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION = 7 * 24 * 60 * 60  # 7 days

DATA_SUFFIX = ".data"
METADATA_SUFFIX = ".metadata"


class DiskCache:
    """
    Expiring byte store rooted at one namespace directory.

    Features:
    - Uniform expiration interval per namespace
    - Expired entries dropped lazily on load and eagerly on sweep
    - Atomic per-file writes (temp file + rename)
    - Size and item accounting
    """

    def __init__(
        self,
        cache_name: str,
        expiration_interval: float = DEFAULT_EXPIRATION,
        root: Optional[Union[str, Path]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the disk cache.

        Args:
            cache_name: Namespace; becomes a subdirectory of ``root``.
            expiration_interval: Seconds after which entries expire.
            root: Parent directory. Defaults to the configured cache directory.
            clock: Returns the current POSIX time in seconds.
        """
        if root is None:
            root = get_config().cache.root

        self.cache_name = cache_name
        self.directory = Path(root) / cache_name
        self.expiration_interval = float(expiration_interval)
        self._clock = clock
        self._lock = threading.RLock()

        self._ensure_directory()

    def __repr__(self) -> str:
        return f"<DiskCache {self.cache_name!r} at {self.directory}>"

    # Paths and metadata

    def _data_path(self, name: str) -> Path:
        return self.directory / f"{name}{DATA_SUFFIX}"

    def _metadata_path(self, name: str) -> Path:
        return self.directory / f"{name}{METADATA_SUFFIX}"

    def _ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create cache directory {self.directory}: {e}")

    def _write_atomic(self, path: Path, data: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def _encode_metadata(self, created_at: float) -> bytes:
        return json.dumps({"created_at": created_at}).encode("utf-8")

    def _read_created_at(self, name: str) -> Optional[float]:
        """Creation time of an entry, or None if its metadata is missing or unreadable."""
        try:
            metadata = json.loads(self._metadata_path(name).read_bytes())
            return float(metadata["created_at"])
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def _is_expired(self, created_at: float) -> bool:
        return created_at + self.expiration_interval < self._clock()

    def _remove_name(self, name: str) -> None:
        # Metadata first so a half-removed entry reads as absent
        for path in (self._metadata_path(name), self._data_path(name)):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove cache file {path}: {e}")

    def _list(self, suffix: str) -> List[Path]:
        try:
            return [p for p in self.directory.iterdir() if p.name.endswith(suffix)]
        except OSError:
            return []

    def _names(self, paths: Iterable[Path], suffix: str) -> set:
        return {p.name[: -len(suffix)] for p in paths}

    # Public API

    def save(self, key: str, data: bytes) -> None:
        """
        Store ``data`` under ``key``, replacing any existing entry.

        Raises:
            WriteFailedError: If the payload or its metadata cannot be written.
        """
        name = normalize_key(key)
        with self._lock:
            try:
                self._ensure_directory()
                self._metadata_path(name).unlink(missing_ok=True)
                self._write_atomic(self._data_path(name), bytes(data))
                self._write_atomic(
                    self._metadata_path(name), self._encode_metadata(self._clock())
                )
            except OSError as e:
                raise WriteFailedError(
                    f"Failed to write cache entry {key!r}", key=key, original_error=e
                ) from e

    def load(self, key: str) -> Optional[bytes]:
        """
        Load the payload stored under ``key``.

        Returns None when there is no entry or the entry has expired; expired
        entries are deleted.

        Raises:
            ReadFailedError: If the entry exists but its payload cannot be read.
        """
        name = normalize_key(key)
        with self._lock:
            data_path = self._data_path(name)
            if not data_path.exists() or not self._metadata_path(name).exists():
                return None

            created_at = self._read_created_at(name)
            if created_at is None or self._is_expired(created_at):
                logger.debug(f"Dropping expired cache entry {key!r} from {self.cache_name}")
                self._remove_name(name)
                return None

            try:
                return data_path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                raise ReadFailedError(
                    f"Failed to read cache entry {key!r}", key=key, original_error=e
                ) from e

    def contains(self, key: str) -> bool:
        """Check whether a non-expired entry exists for ``key``."""
        name = normalize_key(key)
        with self._lock:
            if not self._data_path(name).exists():
                return False
            created_at = self._read_created_at(name)
            return created_at is not None and not self._is_expired(created_at)

    def remove(self, key: str) -> None:
        """Remove the entry for ``key``. Missing entries are ignored."""
        with self._lock:
            self._remove_name(normalize_key(key))

    def remove_all(self) -> None:
        """Delete every entry in this namespace."""
        trash: Optional[Path] = None
        with self._lock:
            if self.directory.exists():
                trash = self.directory.with_name(
                    f".{self.directory.name}.{uuid.uuid4().hex}.trash"
                )
                try:
                    os.replace(self.directory, trash)
                except OSError as e:
                    logger.warning(f"Could not move {self.directory} aside, deleting in place: {e}")
                    shutil.rmtree(self.directory, ignore_errors=True)
                    trash = None
            self._ensure_directory()

        if trash is not None:
            shutil.rmtree(trash, ignore_errors=True)
        logger.info(f"Cleared cache namespace {self.cache_name}")

    def sweep_expired(self) -> int:
        """
        Remove all expired entries.

        Entries whose metadata cannot be read are left untouched, and payload
        files without metadata are not visited; see ``sweep_orphans``.

        Returns:
            Number of entries removed.
        """
        removed = 0
        with self._lock:
            for metadata_path in self._list(METADATA_SUFFIX):
                name = metadata_path.name[: -len(METADATA_SUFFIX)]
                created_at = self._read_created_at(name)
                if created_at is None:
                    continue
                if self._is_expired(created_at):
                    self._remove_name(name)
                    removed += 1

        if removed:
            logger.info(f"Removed {removed} expired entries from {self.cache_name}")
        return removed

    def sweep_orphans(self) -> int:
        """
        Remove payload files without metadata and metadata without payload.

        Returns:
            Number of files removed.
        """
        removed = 0
        with self._lock:
            data_paths = self._list(DATA_SUFFIX)
            metadata_paths = self._list(METADATA_SUFFIX)
            data_names = self._names(data_paths, DATA_SUFFIX)
            metadata_names = self._names(metadata_paths, METADATA_SUFFIX)

            orphans = [
                p for p in data_paths if p.name[: -len(DATA_SUFFIX)] not in metadata_names
            ] + [
                p for p in metadata_paths if p.name[: -len(METADATA_SUFFIX)] not in data_names
            ]
            for path in orphans:
                try:
                    path.unlink(missing_ok=True)
                    removed += 1
                except OSError as e:
                    logger.warning(f"Failed to remove orphaned cache file {path}: {e}")

        if removed:
            logger.info(f"Removed {removed} orphaned files from {self.cache_name}")
        return removed

    def total_size_bytes(self) -> int:
        """Sum of the sizes of all files in the namespace."""
        total = 0
        with self._lock:
            try:
                paths = list(self.directory.iterdir())
            except OSError:
                return 0
            for path in paths:
                try:
                    if path.is_file():
                        total += path.stat().st_size
                except OSError:
                    continue
        return total

    def item_count(self) -> int:
        """Number of stored payloads."""
        with self._lock:
            return len(self._list(DATA_SUFFIX))
