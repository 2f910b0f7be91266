"""
Test script for worker threads and the controller helpers.

Run with: python -m pytest tests/test_workers.py -v
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image

from PyQt6.QtCore import QEventLoop, QSettings, QTimer
from PyQt6.QtWidgets import QApplication

from unmark.core import BlendMode, WatermarkSize
from unmark.core.engine import clear_alpha_map_cache
from unmark.workers import (
    PreviewConfig, PreviewManager, PreviewWorker, ProcessConfig, ProcessResult,
    ProcessWorker, generate_output_filename
)
from unmark.workers.preview_worker import clear_source_cache, make_proxy

from test_engine import create_assets, create_test_image

# Global QApplication instance
_app = None


def get_app():
    """Get or create QApplication instance."""
    global _app
    _app = QApplication.instance() or QApplication(sys.argv)
    return _app


def wait_for_signal(signal, start=None, timeout_ms: int = 30000):
    """
    Wait for a Qt signal with timeout.

    ``start`` is called after connecting so a fast worker cannot finish
    before the listener exists.

    Returns:
        The value emitted by the signal, or None if timeout.
    """
    get_app()
    loop = QEventLoop()
    result = [None]

    def on_signal(*args):
        result[0] = args[0] if len(args) == 1 else args
        loop.quit()

    signal.connect(on_signal)

    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(timeout_ms)

    if start is not None:
        start()
    loop.exec()
    timer.stop()
    signal.disconnect(on_signal)

    return result[0]


@pytest.fixture(autouse=True)
def _fresh_caches():
    clear_alpha_map_cache()
    clear_source_cache()
    yield
    clear_alpha_map_cache()
    clear_source_cache()


@pytest.fixture
def assets_dir(tmp_path):
    return create_assets(tmp_path / "assets")


def test_generate_output_filename():
    assert generate_output_filename(Path("a/photo.JPG"), BlendMode.REMOVE) == "photo_unmarked.JPG"
    assert generate_output_filename(Path("shot.png"), BlendMode.ADD) == "shot_marked.png"


def test_process_worker_batch(assets_dir, tmp_path):
    """Two good images and one unreadable file."""
    print("\n" + "=" * 50)
    print("Testing ProcessWorker - Batch")
    print("=" * 50)

    get_app()
    images = [
        create_test_image(tmp_path / "small.png", 640, 480),
        create_test_image(tmp_path / "large.png", 1280, 1100),
    ]
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"garbage")
    images.append(broken)

    output_dir = tmp_path / "output"
    worker = ProcessWorker(ProcessConfig(
        image_paths=images,
        output_dir=output_dir,
        mode=BlendMode.REMOVE,
        assets_dir=assets_dir,
    ))

    progress_log = []
    worker.progress.connect(lambda c, t, f: progress_log.append((c, t, f)))

    results = wait_for_signal(worker.finished_all, start=worker.start)
    worker.wait()

    assert results is not None, "Worker timed out"
    assert len(results) == 3
    assert [entry[:2] for entry in progress_log] == [(1, 3), (2, 3), (3, 3)]

    small, large, failed = results
    assert isinstance(small, ProcessResult)
    assert small.success and small.size is WatermarkSize.SMALL
    assert large.success and large.size is WatermarkSize.LARGE
    assert small.output_path == output_dir / "small_unmarked.png"
    assert small.output_path.exists()

    assert not failed.success
    assert failed.error_message
    assert failed.output_path is None

    print(f"✅ Progress log: {progress_log}")


def test_process_worker_size_override(assets_dir, tmp_path):
    get_app()
    image = create_test_image(tmp_path / "tiny.png", 300, 300)
    worker = ProcessWorker(ProcessConfig(
        image_paths=[image],
        output_dir=tmp_path / "out",
        mode=BlendMode.ADD,
        size_override=WatermarkSize.LARGE,
        logo_value=200.0,
        assets_dir=assets_dir,
    ))

    results = wait_for_signal(worker.finished_all, start=worker.start)
    worker.wait()

    assert results[0].success
    assert results[0].size is WatermarkSize.LARGE
    assert results[0].output_path.name == "tiny_marked.png"


def test_process_worker_empty_list(tmp_path):
    get_app()
    worker = ProcessWorker(ProcessConfig(image_paths=[], output_dir=tmp_path))

    errors = []
    worker.error.connect(errors.append)

    results = wait_for_signal(worker.finished_all, start=worker.start)
    worker.wait()

    assert results == []
    assert errors == ["No images to process"]


def test_process_worker_missing_assets(tmp_path):
    get_app()
    image = create_test_image(tmp_path / "a.png", 100, 100)
    worker = ProcessWorker(ProcessConfig(
        image_paths=[image], output_dir=tmp_path / "out", assets_dir=tmp_path / "none"
    ))

    errors = []
    worker.error.connect(errors.append)

    results = wait_for_signal(worker.finished_all, start=worker.start)
    worker.wait()

    assert results == []
    assert len(errors) == 1 and errors[0].startswith("Critical error:")


def test_make_proxy_limits_longest_side():
    image = Image.new("RGB", (1600, 900))
    assert make_proxy(image, 800).size == (800, 450)
    assert make_proxy(Image.new("RGB", (300, 200)), 800).size == (300, 200)


def test_preview_worker_emits_placement(assets_dir, tmp_path):
    """Run synchronously: signals are delivered directly on this thread."""
    get_app()
    image = create_test_image(tmp_path / "p.png", 1600, 1200)
    worker = PreviewWorker(PreviewConfig(image_path=image, assets_dir=assets_dir))

    pixmaps, placements, errors = [], [], []
    worker.preview_ready.connect(pixmaps.append)
    worker.placement_ready.connect(placements.append)
    worker.preview_error.connect(errors.append)

    worker.run()

    assert errors == []
    assert placements == ["96x96 @ (1440, 1040)"]
    assert (pixmaps[0].width(), pixmaps[0].height()) == (800, 600)


def test_preview_worker_without_image():
    get_app()
    worker = PreviewWorker(PreviewConfig(image_path=None))
    errors = []
    worker.preview_error.connect(errors.append)
    worker.run()
    assert errors == ["尚未選擇圖片"]


def test_preview_manager_debounced(assets_dir, tmp_path):
    get_app()
    image = create_test_image(tmp_path / "m.png", 640, 480)
    manager = PreviewManager(debounce_ms=10)

    placements = []
    manager.placement_updated.connect(placements.append)

    def request_twice():
        manager.request_preview(PreviewConfig(image_path=image, assets_dir=assets_dir,
                                              size_override=WatermarkSize.LARGE))
        manager.request_preview(PreviewConfig(image_path=image, assets_dir=assets_dir))

    pixmap = wait_for_signal(manager.preview_updated, start=request_twice)
    manager.cancel()

    assert pixmap is not None, "Preview timed out"
    # Only the last request ran
    assert placements == ["48x48 @ (560, 400)"]


def test_preview_manager_releases_already_finished_worker():
    """A worker that finished before its cleanup slot ran is not parked forever."""
    get_app()
    manager = PreviewManager(debounce_ms=10)

    manager._start_preview_worker(PreviewConfig(image_path=None))
    worker = manager._current_worker
    # Block without spinning the event loop, so _on_worker_finished is still queued
    assert worker.wait(10000)

    manager.cancel()

    assert manager._current_worker is None
    assert worker not in manager._retired_workers


def test_preview_manager_parks_running_worker(assets_dir, tmp_path):
    get_app()
    image = create_test_image(tmp_path / "r.png", 640, 480)
    manager = PreviewManager(debounce_ms=10)

    manager._start_preview_worker(PreviewConfig(image_path=image, assets_dir=assets_dir))
    worker = manager._current_worker
    manager.cancel()

    if worker.isRunning():
        assert worker in manager._retired_workers
    worker.wait(10000)

    # Let the queued finished signal reach _release_retired
    loop = QEventLoop()
    QTimer.singleShot(200, loop.quit)
    loop.exec()

    assert worker not in manager._retired_workers


# =============================================================================
# CONTROLLER / WINDOW
# =============================================================================

def test_validate_and_create_config(tmp_path):
    get_app()
    from main import create_process_config, validate_config

    assert validate_config({"image_paths": [], "output_dir": str(tmp_path)}) is not None
    assert validate_config({"image_paths": [tmp_path / "a.png"], "output_dir": ""}) is not None
    assert validate_config({"image_paths": [tmp_path / "a.png"], "output_dir": str(tmp_path),
                            "logo_value": 300.0}) is not None

    good = {
        "image_paths": [tmp_path / "a.png"],
        "output_dir": str(tmp_path),
        "mode": BlendMode.ADD,
        "size_override": WatermarkSize.SMALL,
        "logo_value": 128.0,
        "assets_dir": None,
    }
    assert validate_config(good) is None

    config = create_process_config(good)
    assert config.output_dir == tmp_path
    assert config.mode is BlendMode.ADD
    assert config.engine_config().logo_value == 128.0
    assert config.engine_config().size_override is WatermarkSize.SMALL


def test_main_window_persists_settings(tmp_path):
    get_app()
    from unmark.ui import MainWindow

    settings = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)

    window = MainWindow(settings=settings)
    window.set_mode(BlendMode.ADD)
    window.process_tab.set_size_override(WatermarkSize.LARGE)
    window.process_tab.set_logo_value(200.0)
    window.process_tab.set_output_directory(str(tmp_path))
    window._save_settings()
    window.deleteLater()

    restored = MainWindow(settings=settings)
    tab = restored.process_tab
    assert tab.get_mode() is BlendMode.ADD
    assert restored.title_bar.btn_add.isChecked()
    assert tab.get_size_override() is WatermarkSize.LARGE
    assert tab.get_logo_value() == 200.0
    assert tab.get_output_directory() == str(tmp_path)
    assert tab.get_config()["mode"] is BlendMode.ADD
    restored.deleteLater()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
