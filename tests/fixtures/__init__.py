"""
Test Fixtures

Shared test data, clocks and sample images.
"""

from .factories import (
    FakeClock,
    ImageFactory,
    VodStream,
    VodStreamFactory,
)

__all__ = [
    "FakeClock",
    "ImageFactory",
    "VodStream",
    "VodStreamFactory",
]
