# job_tracker/scrapers/__init__.py
from __future__ import annotations

# Importing a source module registers it; order here is the default run order.
from .anthropic import AnthropicExtractor
from .zipline import ZiplineExtractor
from .wing import WingExtractor
from .waymo import WaymoExtractor
from .zoox import ZooxExtractor
from .alltrails import AllTrailsExtractor
from .base import SourceExtractor
from .registry import all_sources, get, register

__all__ = [
    "AllTrailsExtractor",
    "AnthropicExtractor",
    "SourceExtractor",
    "WaymoExtractor",
    "WingExtractor",
    "ZiplineExtractor",
    "ZooxExtractor",
    "all_sources",
    "get",
    "register",
]
