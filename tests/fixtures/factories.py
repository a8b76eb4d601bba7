"""
Test Data Factories

Factory classes for generating test data.
"""

import io
import random
import string
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image
from pydantic import BaseModel


class VodStream(BaseModel):
    """Minimal VOD catalog entry, as the API layer would hand it over."""
    stream_id: str
    name: str
    container_extension: str = "mp4"
    category_id: Optional[str] = None


class FakeClock:
    """Controllable time source for expiration tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BaseFactory:
    """Base factory class."""

    _counter = 0

    @classmethod
    def _next_id(cls) -> int:
        BaseFactory._counter += 1
        return BaseFactory._counter

    @classmethod
    def _random_string(cls, length: int = 8) -> str:
        return ''.join(random.choices(string.ascii_letters, k=length))


class VodStreamFactory(BaseFactory):
    """Factory for creating VodStream test instances."""

    @classmethod
    def create(
        cls,
        stream_id: Optional[str] = None,
        name: Optional[str] = None,
        **kwargs
    ) -> VodStream:
        """Create a VodStream instance."""
        return VodStream(
            stream_id=stream_id or str(cls._next_id()),
            name=name or f"Test Movie {cls._random_string()}",
            container_extension=kwargs.get("container_extension", "mp4"),
            category_id=kwargs.get("category_id"),
        )

    @classmethod
    def create_batch(cls, count: int, **kwargs) -> List[VodStream]:
        """Create multiple VodStream instances."""
        return [cls.create(**kwargs) for _ in range(count)]

    @classmethod
    def create_dict(cls, stream_id: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """Create VodStream data as dictionary."""
        return cls.create(stream_id=stream_id, **kwargs).model_dump()


class ImageFactory:
    """Encoded test images."""

    @classmethod
    def png(cls, color: str = "red", size: Tuple[int, int] = (4, 4)) -> bytes:
        """Encode a small solid-colour PNG."""
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format="PNG")
        return buffer.getvalue()
