"""
Catalog content cache.

Keeps catalog payloads (stream lists, metadata maps) in one disk namespace,
enforces a soft size budget and maintains the stream id to container
extension index used to build VOD playback URLs.
"""

import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, TypeVar, Union

from xtreamtv.cache.base import CacheError, DecodingFailedError
from xtreamtv.cache.disk import DiskCache
from xtreamtv.cache.typed import PydanticSerializer, Serializer, TypedCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTENT_CACHE_NAME = "ContentCache"
CONTENT_EXPIRATION = 30 * 24 * 60 * 60  # 30 days
DEFAULT_SIZE_BUDGET = 100_000_000  # 100 MB

EXTENSIONS_KEY = "container_extensions"
DEFAULT_EXTENSION = "mp4"

_EXTENSION_INDEX = PydanticSerializer(Dict[str, str])


@dataclass
class MaintenanceReport:
    """Outcome of one maintenance pass."""
    expired_removed: int
    size_before: int
    size_after: int
    cleared: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expired_removed": self.expired_removed,
            "size_before": self.size_before,
            "size_after": self.size_after,
            "cleared": self.cleared,
        }


def format_size(size: int) -> str:
    """
    Human readable size using decimal KB, MB and GB.

    Kilobytes are whole numbers, megabytes keep one decimal and gigabytes
    two; trailing zeros are dropped. A value that rounds up to the next
    unit is shown in that unit (999,999 bytes is "1 MB").
    """
    if size <= 0:
        return "Zero KB"
    kilobytes = math.ceil(size / 1000)
    if kilobytes < 1000:
        return f"{kilobytes} KB"
    megabytes = round(size / 1e6, 1)
    if megabytes < 1000:
        return f"{_trim(f'{megabytes:.1f}')} MB"
    return f"{_trim(f'{size / 1e9:.2f}')} GB"


def _trim(number: str) -> str:
    return number.rstrip("0").rstrip(".") if "." in number else number


class ContentCache:
    """
    Disk cache for catalog content with a size budget.

    Maintenance runs once on construction; after that the owner is
    expected to call ``run_maintenance`` (see ``CacheManager``).
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        expiration_interval: float = CONTENT_EXPIRATION,
        size_budget: int = DEFAULT_SIZE_BUDGET,
        clock: Callable[[], float] = time.time,
        store: Optional[DiskCache] = None,
    ):
        self.store = store or DiskCache(
            CONTENT_CACHE_NAME,
            expiration_interval=expiration_interval,
            root=root,
            clock=clock,
        )
        self.size_budget = size_budget
        self._extensions: Dict[str, str] = {}
        self._index = TypedCache(self.store, _EXTENSION_INDEX)

        self._load_extension_index()
        self.run_maintenance()

    # Container extensions

    def _load_extension_index(self) -> None:
        try:
            index = self._index.load_value(EXTENSIONS_KEY)
        except CacheError as e:
            logger.warning(f"Ignoring unreadable container extension index: {e}")
            return
        if index:
            self._extensions = index
            logger.debug(f"Loaded {len(index)} container extensions")

    def save_catalog_extensions(self, items: Iterable[Tuple[str, str]]) -> None:
        """
        Rebuild the stream id to container extension index.

        Args:
            items: ``(stream_id, container_extension)`` pairs; later pairs
                win for duplicate stream ids.
        """
        index = {str(stream_id): extension for stream_id, extension in items}
        self._extensions = index

        try:
            self._index.save_value(index, EXTENSIONS_KEY)
        except CacheError as e:
            logger.warning(f"Failed to persist container extension index: {e}")

    def lookup_extension(self, stream_id: str) -> str:
        """Container extension for a VOD stream, ``"mp4"`` when unknown."""
        return self._extensions.get(str(stream_id), DEFAULT_EXTENSION)

    # Catalog payloads

    def typed(self, serializer: Serializer[T]) -> TypedCache[T]:
        """Typed view over this cache's namespace."""
        return TypedCache(self.store, serializer)

    def save_catalog(self, key: str, value: T, serializer: Serializer[T]) -> bool:
        """
        Store a catalog value, logging instead of raising on failure.

        Returns:
            True if the value was written.
        """
        try:
            self.typed(serializer).save_value(value, key)
            return True
        except CacheError as e:
            logger.warning(f"Failed to cache catalog {key!r}: {e}")
            return False

    def load_catalog(self, key: str, serializer: Serializer[T]) -> Optional[T]:
        """Load a catalog value; corrupt entries are dropped and read as None."""
        try:
            return self.typed(serializer).load_value(key)
        except DecodingFailedError as e:
            logger.warning(f"Dropping corrupt catalog entry {key!r}: {e}")
            self.store.remove(key)
            return None
        except CacheError as e:
            logger.warning(f"Failed to read catalog {key!r}: {e}")
            return None

    # Maintenance

    def run_maintenance(self) -> MaintenanceReport:
        """
        Drop expired entries, then clear the whole namespace if it is still
        over the size budget.
        """
        expired = self.store.sweep_expired()
        size_before = self.store.total_size_bytes()
        cleared = False

        if size_before > self.size_budget:
            # TODO: shrink towards size_budget / 2 by creation time instead of clearing everything
            logger.info(
                f"Content cache is {format_size(size_before)}, over budget of "
                f"{format_size(self.size_budget)}; clearing"
            )
            self.store.remove_all()
            cleared = True

        return MaintenanceReport(
            expired_removed=expired,
            size_before=size_before,
            size_after=self.store.total_size_bytes() if cleared else size_before,
            cleared=cleared,
        )

    # Statistics

    def cache_size_bytes(self) -> int:
        return self.store.total_size_bytes()

    def item_count(self) -> int:
        return self.store.item_count()

    @staticmethod
    def format_size(size: int) -> str:
        return format_size(size)
