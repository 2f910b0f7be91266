"""
Preview Worker - Debounced Before/After Preview
===============================================

Unlike text tiling, watermark removal cannot run on a downscaled proxy:
the placement and the alpha map are defined in full-resolution pixels.
So the preview pipeline is:

1. Decode the selected image once and cache the RGB source
2. Run the engine on a full-resolution copy (only the logo region changes)
3. Downscale the RESULT to a proxy (max 800px) for display

Decoding dominates the cost, so the source cache keeps repeated option
changes on the same image cheap. Requests are debounced so spin box
changes do not spawn a worker per keystroke.
"""

import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Set

from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal, QTimer, QObject, QMutex, QMutexLocker
from PyQt6.QtGui import QImage, QPixmap

from unmark.core import DEFAULT_LOGO_VALUE, BlendMode, EngineConfig, WatermarkEngine, WatermarkSize


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class PreviewConfig:
    """Configuration for preview generation."""
    image_path: Optional[Path] = None
    mode: BlendMode = BlendMode.REMOVE
    size_override: Optional[WatermarkSize] = None
    logo_value: float = DEFAULT_LOGO_VALUE
    assets_dir: Optional[Path] = None
    max_preview_size: int = 800  # Maximum proxy dimension


# =============================================================================
# SOURCE CACHE
# =============================================================================

# Decoded RGB sources keyed by path
_source_cache: Dict[str, Image.Image] = {}
_source_cache_lock = QMutex()

MAX_SOURCE_CACHE_SIZE = 4


def _get_cached_source(image_path: Path) -> Image.Image:
    """
    Get or decode the RGB source image.

    Returns a COPY so the engine result never aliases cached data.
    """
    cache_key = str(image_path)

    with QMutexLocker(_source_cache_lock):
        if cache_key in _source_cache:
            return _source_cache[cache_key].copy()

    with Image.open(image_path) as img:
        source = img.convert("RGB")

    with QMutexLocker(_source_cache_lock):
        if len(_source_cache) >= MAX_SOURCE_CACHE_SIZE:
            oldest_key = next(iter(_source_cache))
            del _source_cache[oldest_key]
        _source_cache[cache_key] = source.copy()

    return source


def clear_source_cache():
    """Clear the decoded source cache (call when images are removed/changed)."""
    with QMutexLocker(_source_cache_lock):
        _source_cache.clear()


def make_proxy(image: Image.Image, max_size: int) -> Image.Image:
    """Downscale an image so its longest side is at most ``max_size``."""
    width, height = image.size
    if width <= max_size and height <= max_size:
        return image

    if width > height:
        new_size = (max_size, max(1, int(height * (max_size / width))))
    else:
        new_size = (max(1, int(width * (max_size / height))), max_size)

    # BILINEAR is good enough for display
    return image.resize(new_size, Image.Resampling.BILINEAR)


def pil_image_to_qpixmap(pil_image: Image.Image) -> QPixmap:
    """
    Convert PIL Image to QPixmap efficiently.

    IMPORTANT: Creates a copy of the QImage to ensure data ownership,
    preventing crashes from garbage-collected PIL data.
    """
    if pil_image.mode != "RGBA":
        pil_image = pil_image.convert("RGBA")

    data = pil_image.tobytes("raw", "RGBA")
    qimage = QImage(
        data,
        pil_image.width,
        pil_image.height,
        pil_image.width * 4,  # bytes per line
        QImage.Format.Format_RGBA8888
    )

    return QPixmap.fromImage(qimage.copy())


# =============================================================================
# PREVIEW WORKER
# =============================================================================

class PreviewWorker(QThread):
    """
    Worker thread that renders one preview.

    SIGNALS:
    - preview_ready(QPixmap): Emitted when the preview is complete
    - placement_ready(str): Human readable size class and position
    - preview_error(str): Emitted on error
    """

    preview_ready = pyqtSignal(object)
    placement_ready = pyqtSignal(str)
    preview_error = pyqtSignal(str)

    def __init__(self, config: PreviewConfig, parent=None):
        super().__init__(parent)
        self.config = config
        self._is_cancelled = False

    def cancel(self):
        """Request cancellation of this worker."""
        self._is_cancelled = True

    def run(self):
        try:
            if self._is_cancelled:
                return

            if not self.config.image_path or not self.config.image_path.exists():
                self.preview_error.emit("尚未選擇圖片")
                return

            engine = WatermarkEngine.from_assets(
                self.config.assets_dir,
                EngineConfig(
                    logo_value=self.config.logo_value,
                    size_override=self.config.size_override
                )
            )

            source = _get_cached_source(self.config.image_path)

            if self._is_cancelled:
                return

            result = engine.process_image(source, self.config.mode)
            placement = engine.get_placement(*source.size)
            size = engine.get_size(*source.size)

            if self._is_cancelled:
                return

            proxy = make_proxy(result, self.config.max_preview_size)
            self.placement_ready.emit(
                f"{size.label} @ ({placement.x}, {placement.y})"
            )
            self.preview_ready.emit(pil_image_to_qpixmap(proxy))

        except Exception as e:
            if not self._is_cancelled:
                self.preview_error.emit(f"預覽生成失敗：{str(e)}")
                traceback.print_exc()


# =============================================================================
# DEBOUNCER
# =============================================================================

class PreviewDebouncer(QObject):
    """
    Collapses rapid preview requests into one.

    Only the LAST request within the debounce window actually fires.
    """

    preview_requested = pyqtSignal(object)

    def __init__(self, delay_ms: int = 150, parent=None):
        super().__init__(parent)
        self._delay_ms = delay_ms
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._pending_config: Optional[PreviewConfig] = None
        self._mutex = QMutex()

    def request_preview(self, config: PreviewConfig):
        """Queue a preview; restarts the debounce timer."""
        with QMutexLocker(self._mutex):
            self._pending_config = config
            self._timer.stop()
            self._timer.start(self._delay_ms)

    def cancel(self):
        """Cancel any pending preview request."""
        with QMutexLocker(self._mutex):
            self._timer.stop()
            self._pending_config = None

    def _on_timeout(self):
        with QMutexLocker(self._mutex):
            if self._pending_config is not None:
                self.preview_requested.emit(self._pending_config)
                self._pending_config = None


# =============================================================================
# PREVIEW MANAGER
# =============================================================================

class PreviewManager(QObject):
    """
    High-level manager for preview generation.

    RESPONSIBILITIES:
    1. Debounce incoming requests (via PreviewDebouncer)
    2. Cancel old workers when new requests arrive
    3. Manage worker lifecycle (creation, cleanup)
    4. Forward signals to the UI

    USAGE:
        manager = PreviewManager(debounce_ms=150)
        manager.preview_updated.connect(on_preview_ready)
        manager.request_preview(config)
    """

    preview_updated = pyqtSignal(object)  # QPixmap
    placement_updated = pyqtSignal(str)
    preview_error = pyqtSignal(str)
    preview_started = pyqtSignal()

    def __init__(self, debounce_ms: int = 150, parent=None):
        super().__init__(parent)

        self._debouncer = PreviewDebouncer(debounce_ms, self)
        self._debouncer.preview_requested.connect(self._start_preview_worker)

        self._current_worker: Optional[PreviewWorker] = None
        self._retired_workers: Set[PreviewWorker] = set()
        self._mutex = QMutex()

    def request_preview(self, config: PreviewConfig):
        """Request a (debounced) preview generation."""
        self._debouncer.request_preview(config)

    def cancel(self):
        """Cancel all pending and in-progress preview work."""
        self._debouncer.cancel()
        self._cancel_current_worker()

    def clear_cache(self):
        """Clear decoded sources (call when image list changes)."""
        clear_source_cache()

    def _cancel_current_worker(self):
        """Cancel and cleanup the current worker if any."""
        with QMutexLocker(self._mutex):
            if self._current_worker is not None:
                self._current_worker.cancel()

                # Disconnect signals to prevent late emissions
                try:
                    self._current_worker.preview_ready.disconnect()
                    self._current_worker.placement_ready.disconnect()
                    self._current_worker.preview_error.disconnect()
                    self._current_worker.finished.disconnect()
                except (TypeError, RuntimeError):
                    pass  # Already disconnected

                # Engine work is not interruptible; keep a reference until the
                # thread exits so it is never destroyed while running
                worker = self._current_worker
                self._current_worker = None
                self._retired_workers.add(worker)
                worker.finished.connect(lambda w=worker: self._release_retired(w))
                # finished may already have fired before the connect
                if worker.isFinished():
                    self._release_retired(worker)

    def _release_retired(self, worker: PreviewWorker):
        if worker in self._retired_workers:
            self._retired_workers.discard(worker)
            worker.deleteLater()

    def _start_preview_worker(self, config: PreviewConfig):
        """Start a new preview worker, cancelling any existing one first."""
        self._cancel_current_worker()

        self.preview_started.emit()

        with QMutexLocker(self._mutex):
            self._current_worker = PreviewWorker(config)
            self._current_worker.preview_ready.connect(self.preview_updated.emit)
            self._current_worker.placement_ready.connect(self.placement_updated.emit)
            self._current_worker.preview_error.connect(self.preview_error.emit)
            self._current_worker.finished.connect(self._on_worker_finished)
            self._current_worker.start()

    def _on_worker_finished(self):
        """Cleanup worker after completion."""
        with QMutexLocker(self._mutex):
            if self._current_worker is not None:
                self._current_worker.deleteLater()
                self._current_worker = None
