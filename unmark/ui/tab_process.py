"""
Process Tab - Three-Column Layout
=================================
Input -> Options -> Preview, one tab shared by both modes.

Layout (Ratio 1:1.5:3):
┌──────────────┬─────────────────────┬────────────────────────────────────────┐
│   ZONE A     │      ZONE B         │              ZONE C                    │
│   INPUT      │      OPTIONS        │              PREVIEW                   │
│              │                     │                                        │
│  Image list  │  Size class         │      Transparency grid canvas          │
│              │  Logo brightness    │      (result of the current mode)      │
│              │  ─────────────────  │                                        │
│              │  Output dir + CTA   │      Placement info bar                │
└──────────────┴─────────────────────┴────────────────────────────────────────┘

The REMOVE / ADD mode is chosen in the title bar and pushed in with set_mode().
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QPushButton,
    QFrame, QSplitter, QComboBox, QDoubleSpinBox, QProgressBar, QFileDialog
)

from unmark.core import DEFAULT_LOGO_VALUE, BlendMode, WatermarkSize
from ..workers.preview_worker import PreviewManager, PreviewConfig
from .widgets import ImageListWidget, TransparencyGridWidget


# Combo box entries: (label, size override)
SIZE_CHOICES = [
    ("自動（依圖片尺寸）", None),
    ("小 48×48", WatermarkSize.SMALL),
    ("大 96×96", WatermarkSize.LARGE),
]

MODE_LABELS = {
    BlendMode.REMOVE: "▶ 開始去除水印",
    BlendMode.ADD: "▶ 開始添加水印",
}


class ProcessTab(QWidget):
    """
    Tab widget for removing or adding the logo watermark.

    Signals:
        start_requested(dict): Emitted with get_config() when the CTA is clicked.
    """

    start_requested = pyqtSignal(dict)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._mode = BlendMode.REMOVE
        self._assets_dir: Optional[Path] = None
        self._preview_manager = PreviewManager(debounce_ms=150, parent=self)
        self._setup_ui()
        self._connect_signals()

    def _setup_ui(self):
        main_layout = QHBoxLayout(self)
        main_layout.setSpacing(0)
        main_layout.setContentsMargins(0, 0, 0, 0)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.setChildrenCollapsible(False)
        splitter.setHandleWidth(1)

        splitter.addWidget(self._create_zone_a())
        splitter.addWidget(self._create_zone_b())
        splitter.addWidget(self._create_zone_c())

        # 1 : 1.5 : 3 = 2 : 3 : 6
        splitter.setSizes([200, 300, 600])
        splitter.setStretchFactor(0, 2)
        splitter.setStretchFactor(1, 3)
        splitter.setStretchFactor(2, 6)

        main_layout.addWidget(splitter)

    def _create_panel(self, object_name: str, title: str, margins: tuple) -> tuple:
        """Panel frame with header and separator; returns (panel, layout)."""
        panel = QFrame()
        panel.setObjectName(object_name)

        layout = QVBoxLayout(panel)
        layout.setContentsMargins(*margins)
        layout.setSpacing(12)

        header = QLabel(title)
        header.setObjectName("panelHeader")
        layout.addWidget(header)

        sep = QFrame()
        sep.setFrameShape(QFrame.Shape.HLine)
        sep.setObjectName("panelSeparator")
        sep.setFixedHeight(1)
        layout.addWidget(sep)

        return panel, layout

    # ========================================================================
    # ZONE A: INPUT
    # ========================================================================

    def _create_zone_a(self) -> QFrame:
        panel, layout = self._create_panel("inputPanel", "INPUT", (16, 16, 8, 16))
        panel.setMinimumWidth(200)
        panel.setMaximumWidth(320)

        self.image_list = ImageListWidget()
        layout.addWidget(self.image_list, 1)

        return panel

    # ========================================================================
    # ZONE B: OPTIONS
    # ========================================================================

    def _create_zone_b(self) -> QFrame:
        panel, layout = self._create_panel("controlPanel", "OPTIONS", (8, 16, 8, 16))
        panel.setMinimumWidth(300)
        panel.setMaximumWidth(420)

        self.size_combo = QComboBox()
        for label, size in SIZE_CHOICES:
            self.size_combo.addItem(label, size)
        layout.addWidget(self._create_field_group("水印尺寸", self.size_combo))

        self.logo_value_spin = QDoubleSpinBox()
        self.logo_value_spin.setRange(0.0, 255.0)
        self.logo_value_spin.setDecimals(1)
        self.logo_value_spin.setSingleStep(1.0)
        self.logo_value_spin.setValue(DEFAULT_LOGO_VALUE)
        layout.addWidget(self._create_field_group("水印亮度 (logo value)", self.logo_value_spin))

        hint = QLabel("大尺寸僅在寬高皆大於 1024px 時自動使用")
        hint.setObjectName("fieldHint")
        hint.setWordWrap(True)
        layout.addWidget(hint)

        layout.addStretch(1)
        layout.addWidget(self._create_output_section())

        return panel

    def _create_output_section(self) -> QFrame:
        """Output directory, progress and action buttons."""
        section = QFrame()
        section.setObjectName("outputSection")

        layout = QVBoxLayout(section)
        layout.setContentsMargins(10, 14, 10, 10)
        layout.setSpacing(12)

        output_row = QHBoxLayout()
        output_row.setSpacing(8)

        self.output_path = QLineEdit()
        self.output_path.setPlaceholderText("輸出目錄...")
        self.output_path.setText(str(Path.home() / "Pictures" / "Unmarked"))
        output_row.addWidget(self.output_path, 1)

        self.browse_btn = QPushButton("📁")
        self.browse_btn.setObjectName("iconButton")
        self.browse_btn.setFixedSize(40, 40)
        self.browse_btn.setToolTip("選擇輸出目錄")
        self.browse_btn.clicked.connect(self._browse_output)
        output_row.addWidget(self.browse_btn)

        layout.addLayout(output_row)

        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        self.progress_bar.setTextVisible(False)
        self.progress_bar.setFixedHeight(6)
        layout.addWidget(self.progress_bar)

        self.status_label = QLabel("")
        self.status_label.setObjectName("statusText")
        self.status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.status_label)

        self.start_btn = QPushButton(MODE_LABELS[self._mode])
        self.start_btn.setObjectName("ctaButton")
        self.start_btn.setMinimumHeight(48)
        self.start_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.start_btn.clicked.connect(self._on_start_clicked)
        layout.addWidget(self.start_btn)

        self.cancel_btn = QPushButton("✕ 取消")
        self.cancel_btn.setObjectName("dangerButton")
        self.cancel_btn.setVisible(False)
        self.cancel_btn.setMinimumHeight(48)
        layout.addWidget(self.cancel_btn)

        return section

    # ========================================================================
    # ZONE C: PREVIEW
    # ========================================================================

    def _create_zone_c(self) -> QFrame:
        panel, layout = self._create_panel("previewPanel", "PREVIEW", (8, 16, 16, 16))

        self.preview_canvas = TransparencyGridWidget()
        layout.addWidget(self.preview_canvas, 1)

        self.preview_info = QLabel("◇ 選擇圖片後預覽處理結果")
        self.preview_info.setObjectName("previewInfoBar")
        self.preview_info.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.preview_info)

        return panel

    def _create_field_group(self, label: str, widget: QWidget) -> QWidget:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)

        lbl = QLabel(label)
        lbl.setObjectName("fieldLabel")
        layout.addWidget(lbl)
        layout.addWidget(widget)

        return container

    # ========================================================================
    # SIGNALS
    # ========================================================================

    def _connect_signals(self):
        self.image_list.images_changed.connect(self._on_images_changed)
        self.image_list.selection_changed.connect(self._request_preview)

        self._preview_manager.preview_started.connect(self._on_preview_started)
        self._preview_manager.preview_updated.connect(self._on_preview_updated)
        self._preview_manager.placement_updated.connect(self._on_placement_updated)
        self._preview_manager.preview_error.connect(self._on_preview_error)

        self.size_combo.currentIndexChanged.connect(self._request_preview)
        self.logo_value_spin.valueChanged.connect(self._request_preview)

    def _on_images_changed(self, images):
        self._preview_manager.clear_cache()
        if images:
            self._request_preview()
        else:
            self._preview_manager.cancel()
            self.preview_canvas.clear()

    def _request_preview(self, *args):
        selected_image = self.image_list.get_selected_image()
        if not selected_image:
            return

        self._preview_manager.request_preview(PreviewConfig(
            image_path=selected_image,
            mode=self._mode,
            size_override=self.size_combo.currentData(),
            logo_value=self.logo_value_spin.value(),
            assets_dir=self._assets_dir,
        ))

    def _set_info(self, text: str, status: str):
        self.preview_info.setText(text)
        self.preview_info.setProperty("status", status)
        self.preview_info.style().unpolish(self.preview_info)
        self.preview_info.style().polish(self.preview_info)

    def _on_preview_started(self):
        self.preview_canvas.set_loading(True)
        self._set_info("⟳ 生成預覽中...", "loading")

    def _on_preview_updated(self, pixmap):
        self.preview_canvas.set_preview(pixmap)

    def _on_placement_updated(self, text: str):
        self._set_info(f"◆ {text}", "success")

    def _on_preview_error(self, error):
        self.preview_canvas.set_error(error)
        self._set_info(f"✕ {error}", "error")

    def _browse_output(self):
        directory = QFileDialog.getExistingDirectory(
            self, "選擇輸出目錄", self.output_path.text()
        )
        if directory:
            self.output_path.setText(directory)

    def _on_start_clicked(self):
        self.start_requested.emit(self.get_config())

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def get_config(self) -> dict:
        """Get current configuration."""
        return {
            "image_paths": self.image_list.get_images(),
            "output_dir": self.output_path.text().strip(),
            "mode": self._mode,
            "size_override": self.size_combo.currentData(),
            "logo_value": self.logo_value_spin.value(),
            "assets_dir": self._assets_dir,
        }

    def get_mode(self) -> BlendMode:
        return self._mode

    def set_mode(self, mode: BlendMode):
        """Switch between REMOVE and ADD; refreshes the preview."""
        if mode is self._mode:
            return
        self._mode = mode
        self.start_btn.setText(MODE_LABELS[mode])
        self._request_preview()

    def set_assets_dir(self, path: Optional[Path]):
        self._assets_dir = path

    def get_size_override(self) -> Optional[WatermarkSize]:
        return self.size_combo.currentData()

    def set_size_override(self, size: Optional[WatermarkSize]):
        for index, (_, choice) in enumerate(SIZE_CHOICES):
            if choice is size:
                self.size_combo.setCurrentIndex(index)
                return

    def get_logo_value(self) -> float:
        return self.logo_value_spin.value()

    def set_logo_value(self, value: float):
        self.logo_value_spin.setValue(value)

    def set_progress(self, current: int, total: int, filename: str = ""):
        self.progress_bar.setVisible(True)
        self.progress_bar.setMaximum(total)
        self.progress_bar.setValue(current)
        if filename:
            self.status_label.setText(f"處理中: {filename}")

    def set_status(self, message: str):
        self.status_label.setText(message)

    def set_processing(self, is_processing: bool):
        self.start_btn.setEnabled(not is_processing)
        self.start_btn.setVisible(not is_processing)
        self.cancel_btn.setVisible(is_processing)
        self.progress_bar.setVisible(is_processing)

        self.image_list.setEnabled(not is_processing)
        self.output_path.setEnabled(not is_processing)
        self.browse_btn.setEnabled(not is_processing)
        self.size_combo.setEnabled(not is_processing)
        self.logo_value_spin.setEnabled(not is_processing)

    def set_complete(self, success: bool = True, message: str = ""):
        if success:
            self.status_label.setText(message or "✓ 完成！")
            self.status_label.setStyleSheet("color: #9ECE6A;")
        else:
            self.status_label.setText(message or "✕ 失敗")
            self.status_label.setStyleSheet("color: #F7768E;")

    def reset_progress(self):
        self.progress_bar.setValue(0)
        self.progress_bar.setVisible(False)

    def set_output_directory(self, path: str):
        self.output_path.setText(path)

    def get_output_directory(self) -> str:
        return self.output_path.text()
