"""
Core Module - Pure Algorithm Logic
==================================
This module contains no UI dependencies.
Alpha map derivation, placement and alpha blending live here.
"""

from .alpha_map import AlphaMap, calculate_alpha_map, load_alpha_map
from .blend import (
    ALPHA_THRESHOLD, MAX_ALPHA, DEFAULT_LOGO_VALUE,
    add_watermark, remove_watermark
)
from .buffers import CHANNELS, DimensionMismatchError
from .engine import BlendMode, EngineConfig, WatermarkEngine
from .placement import (
    Placement, WatermarkSize, compute_placement, resolve_size, select_size
)

__all__ = [
    "AlphaMap",
    "calculate_alpha_map",
    "load_alpha_map",
    "ALPHA_THRESHOLD",
    "MAX_ALPHA",
    "DEFAULT_LOGO_VALUE",
    "add_watermark",
    "remove_watermark",
    "CHANNELS",
    "DimensionMismatchError",
    "BlendMode",
    "EngineConfig",
    "WatermarkEngine",
    "Placement",
    "WatermarkSize",
    "compute_placement",
    "resolve_size",
    "select_size",
]
