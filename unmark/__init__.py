"""
NightCat Unmark Package
=======================
Removes (or re-applies) the semi-transparent logo watermark stamped in
the bottom-right corner of generated images.

Modules:
    - core: Pure algorithm logic (no UI dependencies)
    - cli: Command line batch tool
    - workers: QThread workers for async processing
    - ui: PyQt6 user interface components

Usage:
    from unmark.core import WatermarkEngine, BlendMode
    from unmark.workers import ProcessWorker, ProcessConfig
    from unmark.ui import MainWindow

Only the core is re-exported here so the CLI runs without PyQt6 loaded.
"""

__version__ = "1.0.0"
__author__ = "NightCat"
__app_name__ = "NightCat Unmark"

from .core import (
    AlphaMap,
    BlendMode,
    DimensionMismatchError,
    EngineConfig,
    WatermarkEngine,
    WatermarkSize,
    add_watermark,
    calculate_alpha_map,
    remove_watermark,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__app_name__",

    # Core
    "AlphaMap",
    "BlendMode",
    "DimensionMismatchError",
    "EngineConfig",
    "WatermarkEngine",
    "WatermarkSize",
    "add_watermark",
    "calculate_alpha_map",
    "remove_watermark",
]
