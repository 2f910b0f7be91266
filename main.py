"""
NightCat Unmark - Main Entry Point
==================================
A desktop application for removing (or re-applying) the bottom-right
logo watermark with reverse alpha blending.

Usage:
    python main.py

Architecture:
    - Model: unmark/core/ (pure algorithms)
    - View: unmark/ui/ (PyQt6 interface)
    - Controller: This file (signal/slot connections)
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QApplication, QMessageBox

from unmark.core import DEFAULT_LOGO_VALUE, BlendMode
from unmark.ui import MainWindow
from unmark.workers import ProcessWorker, ProcessConfig, ProcessResult

log = logging.getLogger(__name__)

MODE_NAMES = {
    BlendMode.REMOVE: "去除",
    BlendMode.ADD: "添加",
}


def validate_config(config: dict) -> Optional[str]:
    """
    Validate the tab configuration.

    Returns:
        Error message if validation fails, None otherwise.
    """
    if not config.get("image_paths"):
        return "請先添加要處理的圖片"

    if not config.get("output_dir"):
        return "請指定輸出目錄"

    logo_value = config.get("logo_value", DEFAULT_LOGO_VALUE)
    if not 0.0 <= logo_value <= 255.0:
        return "水印亮度必須介於 0 到 255 之間"

    return None


def create_process_config(config_dict: dict) -> ProcessConfig:
    """Create a ProcessConfig from the tab's configuration dictionary."""
    assets_dir = config_dict.get("assets_dir")
    return ProcessConfig(
        image_paths=list(config_dict.get("image_paths", [])),
        output_dir=Path(config_dict.get("output_dir", ".")),
        mode=config_dict.get("mode", BlendMode.REMOVE),
        size_override=config_dict.get("size_override"),
        logo_value=float(config_dict.get("logo_value", DEFAULT_LOGO_VALUE)),
        assets_dir=Path(assets_dir) if assets_dir else None,
    )


class WatermarkController:
    """
    Controller class that connects UI signals to worker threads.

    Responsibilities:
    - Validate user input before processing
    - Create and manage the worker thread
    - Update UI based on worker progress/results
    - Handle errors and display appropriate messages
    """

    def __init__(self, main_window: MainWindow):
        self.window = main_window
        self.process_tab = main_window.process_tab

        # Worker reference (to prevent garbage collection)
        self._worker: Optional[ProcessWorker] = None
        self._last_results: List[ProcessResult] = []

        self._connect_signals()

    def _connect_signals(self):
        self.process_tab.start_requested.connect(self._on_start_requested)
        self.process_tab.cancel_btn.clicked.connect(self._on_cancel)

    def _on_start_requested(self, config_dict: dict):
        """Handle a processing request from the tab."""
        if self._worker is not None and self._worker.isRunning():
            return

        error = validate_config(config_dict)
        if error:
            self.window.show_error("配置錯誤", error)
            return

        config = create_process_config(config_dict)
        log.info("Starting %s run on %d image(s)", config.mode.name, len(config.image_paths))

        self._worker = ProcessWorker(config)
        self._worker.progress.connect(self._on_progress)
        self._worker.image_completed.connect(self._on_image_completed)
        self._worker.finished_all.connect(self._on_finished)
        self._worker.error.connect(self._on_error)

        self.process_tab.set_processing(True)
        self.process_tab.set_status("正在處理...")
        self.window.show_message(f"開始{MODE_NAMES[config.mode]}水印...")

        self._worker.start()

    def _on_progress(self, current: int, total: int, filename: str):
        self.process_tab.set_progress(current, total, filename)
        self.window.show_message(f"處理中: {filename} ({current}/{total})")

    def _on_image_completed(self, result: ProcessResult):
        if result.success:
            status = f"✅ {result.source_path.name} 處理完成（{result.size.label}）"
        else:
            status = f"❌ {result.source_path.name} 失敗: {result.error_message}"
            log.warning("Failed: %s: %s", result.source_path, result.error_message)
        self.process_tab.set_status(status)

    def _on_finished(self, results: list):
        """Handle run completion."""
        self._last_results = results

        self.process_tab.set_processing(False)
        self.process_tab.reset_progress()

        success_count = sum(1 for r in results if r.success)
        fail_count = len(results) - success_count
        log.info("Completed: %d succeeded, %d failed", success_count, fail_count)

        # Empty results: the error signal already reported why
        if results and fail_count == 0:
            self.window.show_message(f"全部完成！成功處理 {success_count} 張圖片", 5000)
            self.process_tab.set_complete(True, f"✓ 成功處理 {success_count} 張圖片！")
            self._show_success_dialog(results)
        elif fail_count:
            self.window.show_message(
                f"處理完成：成功 {success_count} 張，失敗 {fail_count} 張", 5000
            )
            self.process_tab.set_complete(False, f"成功 {success_count}，失敗 {fail_count}")
            self._show_partial_dialog(results)

        if self._worker:
            self._worker.deleteLater()
            self._worker = None

    def _on_error(self, error_message: str):
        self.window.show_error("處理錯誤", error_message)
        self.process_tab.set_complete(False, f"❌ 錯誤: {error_message}")

    def _on_cancel(self):
        if self._worker and self._worker.isRunning():
            self._worker.cancel()
            self.process_tab.set_status("正在取消...")
            self.window.show_message("正在取消操作...")

    def _show_success_dialog(self, results: list):
        message = f"成功處理 {len(results)} 張圖片！\n\n"
        message += f"輸出目錄：\n{results[0].output_path.parent}\n"
        QMessageBox.information(self.window, "處理完成", message)

    def _show_partial_dialog(self, results: list):
        success = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        message = "處理完成\n\n"
        message += f"✅ 成功：{len(success)} 張\n"
        message += f"❌ 失敗：{len(failed)} 張\n\n"

        message += "失敗詳情：\n"
        for r in failed[:5]:  # Show max 5 failures
            message += f"  • {r.source_path.name}: {r.error_message}\n"
        if len(failed) > 5:
            message += f"  ... 還有 {len(failed) - 5} 個錯誤\n"

        QMessageBox.warning(self.window, "處理完成（部分失敗）", message)


def main():
    """Application entry point."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    app = QApplication(sys.argv)
    app.setApplicationName(MainWindow.APP_NAME)
    app.setApplicationVersion(MainWindow.APP_VERSION)
    app.setOrganizationName(MainWindow.SETTINGS_ORG)

    font = QFont()
    font.setFamily("Microsoft YaHei")
    font.setPointSize(10)
    app.setFont(font)

    window = MainWindow()
    controller = WatermarkController(window)  # noqa: F841 (keeps slots alive)

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
