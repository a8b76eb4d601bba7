"""
XtreamTV Caching Layer

Provides disk and memory caching for:
- Catalog content (stream lists, metadata maps)
- VOD container extensions
- Channel logos and posters
"""

from xtreamtv.cache.base import (
    CacheError,
    CacheStats,
    DecodingFailedError,
    EncodingFailedError,
    ImageDecodeError,
    ReadFailedError,
    WriteFailedError,
    normalize_key,
)
from xtreamtv.cache.disk import DiskCache
from xtreamtv.cache.typed import JSONSerializer, PydanticSerializer, Serializer, TypedCache
from xtreamtv.cache.memory import MemoryCache
from xtreamtv.cache.content import ContentCache, MaintenanceReport, format_size
from xtreamtv.cache.image import ImageCache, decode_image
from xtreamtv.cache.signals import MemoryPressureSignal
from xtreamtv.cache.manager import CacheManager

__all__ = [
    "CacheError",
    "CacheStats",
    "DecodingFailedError",
    "EncodingFailedError",
    "ImageDecodeError",
    "ReadFailedError",
    "WriteFailedError",
    "normalize_key",
    "DiskCache",
    "JSONSerializer",
    "PydanticSerializer",
    "Serializer",
    "TypedCache",
    "MemoryCache",
    "ContentCache",
    "MaintenanceReport",
    "format_size",
    "ImageCache",
    "decode_image",
    "MemoryPressureSignal",
    "CacheManager",
]
