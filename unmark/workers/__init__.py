"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking watermark operations.

All heavy computations run in separate threads to keep the UI responsive.

Components:
- ProcessWorker: Batch removal/insertion with progress tracking
- PreviewWorker: Before/after preview generation with debounce
"""

from .process_worker import (
    ProcessWorker, ProcessConfig, ProcessResult, generate_output_filename
)
from .preview_worker import (
    PreviewWorker, PreviewConfig, PreviewDebouncer, PreviewManager,
    pil_image_to_qpixmap
)

__all__ = [
    # Process
    "ProcessWorker",
    "ProcessConfig",
    "ProcessResult",
    "generate_output_filename",
    # Preview
    "PreviewWorker",
    "PreviewConfig",
    "PreviewDebouncer",
    "PreviewManager",
    "pil_image_to_qpixmap",
]
