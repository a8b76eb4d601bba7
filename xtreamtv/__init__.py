"""
XtreamTV - Xtream Codes IPTV client core

Caching for catalog content and artwork:
- Expiring disk cache with per-namespace isolation
- Size-budgeted catalog content cache
- Two-tier image cache with coalesced downloads
"""

__version__ = "0.1.0"
__license__ = "MIT"

from xtreamtv.config import get_config, load_config

__all__ = [
    "__version__",
    "get_config",
    "load_config",
]
