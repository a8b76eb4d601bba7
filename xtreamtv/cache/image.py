"""
Two-tier image cache.

Decoded images are kept in a bounded in-memory LRU; the encoded bytes are
persisted in a ``DiskCache`` namespace. Concurrent requests for the same
uncached URL share a single download.
"""

import asyncio
import io
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple, Union

from PIL import Image

from xtreamtv.cache.base import CacheError, CacheStats, ImageDecodeError
from xtreamtv.cache.disk import DEFAULT_EXPIRATION, DiskCache
from xtreamtv.cache.memory import MemoryCache
from xtreamtv.cache.signals import MemoryPressureSignal

logger = logging.getLogger(__name__)

IMAGE_CACHE_NAME = "ImageCache"

FetchBytes = Callable[[str], Awaitable[bytes]]
DecodeImage = Callable[[bytes], Any]


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes with Pillow.

    Raises:
        ImageDecodeError: If the bytes are not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError("Could not decode image data", original_error=e) from e
    return image


class ImageCache:
    """
    Memory + disk cache for remote images.

    Lookups go memory -> disk -> network. A URL has at most one download in
    flight, shared by callers on any thread or event loop. Cancelling one
    caller does not cancel the shared download, which always runs to
    completion. Disk writes happen on a single background writer thread.
    """

    def __init__(
        self,
        fetch: FetchBytes,
        decode: DecodeImage = decode_image,
        disk_cache: Optional[DiskCache] = None,
        memory_cache: Optional[MemoryCache] = None,
        memory_pressure: Optional[MemoryPressureSignal] = None,
        count_limit: int = 100,
        total_cost_limit: int = 50_000_000,
        root: Optional[Union[str, Path]] = None,
        expiration_interval: float = DEFAULT_EXPIRATION,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the image cache.

        Args:
            fetch: Coroutine function returning the raw bytes at a URL.
            decode: Turns bytes into an image object.
            disk_cache: Disk tier; a new ``ImageCache`` namespace by default.
            memory_cache: Memory tier; built from the limits by default.
            memory_pressure: Signal that clears the memory tier when fired.
            count_limit: Memory tier entry limit.
            total_cost_limit: Memory tier byte limit (encoded size).
            root: Parent directory for the default disk tier.
            expiration_interval: Expiration for the default disk tier.
            clock: Time source for the default disk tier.
        """
        self._fetch = fetch
        self._decode = decode
        if disk_cache is None:
            disk_cache = DiskCache(
                IMAGE_CACHE_NAME,
                expiration_interval=expiration_interval,
                root=root,
                clock=clock,
            )
        if memory_cache is None:
            memory_cache = MemoryCache(count_limit, total_cost_limit)
        self.disk_cache = disk_cache
        self.memory_cache = memory_cache
        self.stats = CacheStats()

        self._lock = Lock()
        self._downloads: Dict[str, Future] = {}
        self._download_tasks: Set[asyncio.Task] = set()

        # Bumped by removals so queued writes of cleared images are dropped
        self._write_lock = Lock()
        self._generation = 0
        self._key_generations: Dict[str, int] = {}
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ImageCacheWriter")
        self._pending_writes: Set[Future] = set()

        self._memory_pressure = memory_pressure
        if memory_pressure is not None:
            memory_pressure.subscribe(self.clear_memory_cache)

    @staticmethod
    def cache_key(url: str) -> str:
        return str(url)

    def _count(self, field: str) -> None:
        with self._lock:
            setattr(self.stats, field, getattr(self.stats, field) + 1)

    def _decode_bytes(self, data: bytes, url: str) -> Any:
        try:
            return self._decode(data)
        except ImageDecodeError:
            raise
        except Exception as e:
            raise ImageDecodeError(
                f"Could not decode image from {url}", key=url, original_error=e
            ) from e

    # Tier lookups

    def _memory_lookup(self, key: str) -> Optional[Any]:
        image = self.memory_cache.get(key)
        if image is not None:
            self._count("memory_hits")
        return image

    def _disk_lookup(self, key: str) -> Optional[Any]:
        try:
            data = self.disk_cache.load(key)
        except CacheError as e:
            logger.warning(f"Failed to load image from disk cache: {e}")
            return None
        if data is None:
            return None

        try:
            image = self._decode_bytes(data, key)
        except ImageDecodeError as e:
            logger.warning(f"Dropping undecodable cached image {key}: {e}")
            self.disk_cache.remove(key)
            return None

        self.memory_cache.set(key, image, cost=len(data))
        self._count("disk_hits")
        return image

    # Public API

    def image(self, url: str) -> Optional[Any]:
        """
        Cached image for ``url`` from memory or disk, never the network.

        Disk reads happen on the calling thread.
        """
        key = self.cache_key(url)
        image = self._memory_lookup(key)
        if image is not None:
            return image
        return self._disk_lookup(key)

    async def load_image(self, url: str) -> Any:
        """
        Get the image for ``url``, downloading it if neither tier has it.

        Callers may run on different threads and event loops; they all share
        one download per URL.

        Raises:
            ImageDecodeError: If the downloaded bytes are not an image.
            Exception: Whatever the fetch function raised, for every waiter.
        """
        key = self.cache_key(url)

        image = self._memory_lookup(key)
        if image is not None:
            return image

        image = await asyncio.to_thread(self._disk_lookup, key)
        if image is not None:
            return image

        with self._lock:
            future = self._downloads.get(key)
            if future is None:
                # A download may have finished while the disk was read
                image = self.memory_cache.get(key)
                if image is not None:
                    self.stats.memory_hits += 1
                    return image
            self.stats.misses += 1
            if future is None:
                future = self._start_download(key, url)
            else:
                logger.debug(f"Joining in-flight download for {url}")

        return await asyncio.wrap_future(future)

    # Downloads

    def _start_download(self, key: str, url: str) -> Future:
        """Register and start the download for ``key``. Caller holds ``_lock``."""
        future: Future = Future()
        # A running future ignores cancel(), so an abandoned waiter cannot
        # cancel the shared download through wrap_future.
        future.set_running_or_notify_cancel()
        future.add_done_callback(lambda done: self._forget_download(key, done))

        task = asyncio.get_running_loop().create_task(self._download(key, url, future))
        self._download_tasks.add(task)
        task.add_done_callback(lambda done: self._download_finished(done, future))

        self._downloads[key] = future
        return future

    async def _download(self, key: str, url: str, future: Future) -> None:
        self._count("downloads")
        try:
            data = await self._fetch(url)
            image = self._decode_bytes(data, url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._count("download_failures")
            logger.warning(f"Image download failed for {url}: {e}")
            future.set_exception(e)
            return

        self.memory_cache.set(key, image, cost=len(data))
        self._schedule_disk_write(key, data)
        future.set_result(image)

    def _download_finished(self, task: asyncio.Task, future: Future) -> None:
        with self._lock:
            self._download_tasks.discard(task)
        if future.done():
            return
        if task.cancelled():
            # Possibly before the coroutine ever started
            future.set_exception(asyncio.CancelledError())
        else:
            future.set_exception(task.exception())

    def _forget_download(self, key: str, future: Future) -> None:
        with self._lock:
            if self._downloads.get(key) is future:
                del self._downloads[key]

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._downloads)

    # Disk writes

    def _write_stamp(self, key: str) -> Tuple[int, int]:
        return self._generation, self._key_generations.get(key, 0)

    def _schedule_disk_write(self, key: str, data: bytes) -> None:
        try:
            future = self._writer.submit(self._write_to_disk, key, data, self._write_stamp(key))
        except RuntimeError:
            logger.debug(f"Image cache writer shut down, not persisting {key}")
            return
        with self._lock:
            self._pending_writes.add(future)
        future.add_done_callback(self._write_done)

    def _write_done(self, future: Future) -> None:
        with self._lock:
            self._pending_writes.discard(future)

    def _write_to_disk(self, key: str, data: bytes, stamp: Tuple[int, int]) -> None:
        with self._write_lock:
            if stamp != self._write_stamp(key):
                logger.debug(f"Dropping stale write for removed image {key}")
                return
            try:
                self.disk_cache.save(key, data)
            except CacheError as e:
                logger.warning(f"Failed to persist image {key}: {e}")

    async def wait_for_pending_writes(self) -> None:
        """Wait until background disk writes have finished."""
        while True:
            with self._lock:
                pending = list(self._pending_writes)
            if not pending:
                return
            await asyncio.gather(
                *(asyncio.wrap_future(future) for future in pending), return_exceptions=True
            )

    # Removal

    def remove_image(self, url: str) -> None:
        """Remove ``url`` from both tiers."""
        key = self.cache_key(url)
        with self._write_lock:
            self._key_generations[key] = self._key_generations.get(key, 0) + 1
            self.memory_cache.delete(key)
            self.disk_cache.remove(key)

    def clear_memory_cache(self) -> None:
        """Drop the memory tier; the disk tier is untouched."""
        removed = self.memory_cache.clear()
        logger.debug(f"Cleared {removed} images from memory")

    def clear_cache(self) -> None:
        """Drop both tiers."""
        with self._write_lock:
            self._generation += 1
            self._key_generations.clear()
            self.clear_memory_cache()
            self.disk_cache.remove_all()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = self.stats.to_dict()
            stats["in_flight"] = len(self._downloads)
        stats["memory"] = self.memory_cache.get_info()
        stats["disk_size_bytes"] = self.disk_cache.total_size_bytes()
        stats["disk_item_count"] = self.disk_cache.item_count()
        return stats

    async def aclose(self) -> None:
        """Cancel downloads, flush disk writes and detach from memory pressure."""
        if self._memory_pressure is not None:
            self._memory_pressure.unsubscribe(self.clear_memory_cache)
            self._memory_pressure = None

        with self._lock:
            downloads = list(self._downloads.values())
            tasks = list(self._download_tasks)
        for task in tasks:
            loop = task.get_loop()
            if not loop.is_closed():
                loop.call_soon_threadsafe(task.cancel)
        if downloads:
            await asyncio.gather(
                *(asyncio.wrap_future(future) for future in downloads), return_exceptions=True
            )

        await self.wait_for_pending_writes()
        self._writer.shutdown(wait=True)
