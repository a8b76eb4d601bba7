"""
Cache manager - builds the application's caches and drives their lifecycle.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from xtreamtv.cache.content import CONTENT_CACHE_NAME, ContentCache, MaintenanceReport
from xtreamtv.cache.disk import DiskCache
from xtreamtv.cache.image import FetchBytes, IMAGE_CACHE_NAME, ImageCache
from xtreamtv.cache.signals import MemoryPressureSignal
from xtreamtv.config import XtreamTVConfig, get_config
from xtreamtv.http import HTTPFetcher

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Owns the content cache and the image cache for one process.

    Provides:
    - Construction of both caches from configuration
    - Startup cleanup and periodic background maintenance
    - Lifecycle hooks for memory warnings and backgrounding
    - Statistics aggregation
    """

    def __init__(
        self,
        config: Optional[XtreamTVConfig] = None,
        fetch: Optional[FetchBytes] = None,
        memory_pressure: Optional[MemoryPressureSignal] = None,
    ):
        self.config = config or get_config()
        self.memory_pressure = memory_pressure or MemoryPressureSignal()
        self._fetcher: Optional[HTTPFetcher] = None
        self._fetch = fetch
        self._content: Optional[ContentCache] = None
        self._images: Optional[ImageCache] = None
        self._maintenance_task: Optional[asyncio.Task] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Build the caches, run startup cleanup and start maintenance."""
        if self._initialized:
            return

        cache_config = self.config.cache
        root = cache_config.root

        if self._fetch is None:
            self._fetcher = HTTPFetcher(self.config.network)
            self._fetch = self._fetcher

        # ContentCache runs maintenance in its constructor (disk I/O)
        self._content = await asyncio.to_thread(
            ContentCache,
            store=DiskCache(
                CONTENT_CACHE_NAME,
                expiration_interval=cache_config.content_expiration_seconds,
                root=root,
            ),
            size_budget=cache_config.content_size_budget,
        )
        self._images = ImageCache(
            self._fetch,
            disk_cache=DiskCache(
                IMAGE_CACHE_NAME,
                expiration_interval=cache_config.image_expiration_seconds,
                root=root,
            ),
            memory_pressure=self.memory_pressure,
            count_limit=cache_config.memory_count_limit,
            total_cost_limit=cache_config.memory_cost_limit,
        )
        await asyncio.to_thread(self._images.disk_cache.sweep_expired)
        self._images.clear_memory_cache()

        if cache_config.maintenance_interval > 0:
            self._maintenance_task = asyncio.create_task(
                self._maintenance_loop(cache_config.maintenance_interval)
            )

        self._initialized = True
        logger.info(f"Caches initialized at {root}")

    async def shutdown(self) -> None:
        """Stop maintenance, flush pending writes and close the fetcher."""
        if self._maintenance_task:
            self._maintenance_task.cancel()
            try:
                await self._maintenance_task
            except asyncio.CancelledError:
                pass
            self._maintenance_task = None

        if self._images is not None:
            await self._images.aclose()

        if self._fetcher is not None:
            await self._fetcher.aclose()

        self._initialized = False

    async def _maintenance_loop(self, interval: float) -> None:
        """Periodically sweep both caches."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.run_maintenance()
            except Exception as e:
                logger.error(f"Cache maintenance failed: {e}", exc_info=True)

    @property
    def content(self) -> ContentCache:
        if not self._initialized or self._content is None:
            raise RuntimeError("Cache manager not initialized. Call initialize() first.")
        return self._content

    @property
    def images(self) -> ImageCache:
        if not self._initialized or self._images is None:
            raise RuntimeError("Cache manager not initialized. Call initialize() first.")
        return self._images

    async def run_maintenance(self) -> MaintenanceReport:
        """Content maintenance plus an expiry sweep of the image disk tier."""
        report = await asyncio.to_thread(self.content.run_maintenance)
        await asyncio.to_thread(self.images.disk_cache.sweep_expired)
        return report

    # Lifecycle hooks

    def handle_memory_warning(self) -> None:
        """OS memory warning: drop volatile caches."""
        logger.warning("Memory warning received")
        self.memory_pressure.notify("memory warning")

    def handle_background(self) -> None:
        """Application moved to the background."""
        logger.info("App entering background")
        self.memory_pressure.notify("background")

    async def clear_all_caches(self) -> MaintenanceReport:
        """User requested cache clear."""
        await asyncio.to_thread(self.images.clear_cache)
        return await asyncio.to_thread(self.content.run_maintenance)

    # Statistics

    def get_stats(self) -> Dict[str, Any]:
        content_size = self.content.cache_size_bytes()
        return {
            "content": {
                "size_bytes": content_size,
                "size": self.content.format_size(content_size),
                "item_count": self.content.item_count(),
                "size_budget": self.content.size_budget,
            },
            "images": self.images.get_stats(),
        }
