"""
Reusable UI Widgets
===================
Custom widgets used across the application.

Key Components:
- DragDropLabel: Drag-and-drop file zone
- ImageListWidget: Image list with thumbnails
- TransparencyGridWidget: Preview canvas with checkerboard background
"""

from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import Qt, pyqtSignal, QSize, QRectF
from PyQt6.QtGui import (
    QDragEnterEvent, QDropEvent, QPixmap, QIcon, QColor,
    QPainter, QPainterPath, QBrush, QPen, QFont, QLinearGradient
)
from PyQt6.QtWidgets import (
    QLabel, QListWidget, QListWidgetItem, QWidget, QVBoxLayout,
    QHBoxLayout, QPushButton, QFileDialog, QAbstractItemView, QSizePolicy
)

from unmark.cli import SUPPORTED_EXTENSIONS


class DragDropLabel(QLabel):
    """
    A label that accepts drag-and-drop files.

    Signals:
        files_dropped(list[Path]): Emitted when files are dropped.
    """

    files_dropped = pyqtSignal(list)  # List[Path]

    SUPPORTED_FORMATS = SUPPORTED_EXTENSIONS

    # Color scheme
    ACCENT_COLOR = "#00B4D8"
    BORDER_COLOR = "#4B5563"
    TEXT_COLOR = "#B0B8C4"

    def __init__(self, text: str = "點擊或拖放添加圖片", parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._hint_text = text
        self._is_dragging = False

        self.setAcceptDrops(True)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setMinimumSize(200, 70)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self.setObjectName("dragDropLabel")
        self.setCursor(Qt.CursorShape.PointingHandCursor)

    def paintEvent(self, event):
        """Dashed drop zone with an upload arrow and hint text."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        rect = self.rect()
        margin = 4

        path = QPainterPath()
        path.addRoundedRect(QRectF(rect).adjusted(margin, margin, -margin, -margin), 10, 10)

        gradient = QLinearGradient(0, 0, 0, rect.height())
        if self._is_dragging:
            gradient.setColorAt(0, QColor("#1E3A4A"))
            gradient.setColorAt(1, QColor("#152535"))
        else:
            gradient.setColorAt(0, QColor("#2A2D35"))
            gradient.setColorAt(1, QColor("#252830"))
        painter.fillPath(path, QBrush(gradient))

        pen = QPen()
        pen.setStyle(Qt.PenStyle.DashLine)
        pen.setWidth(2)
        pen.setDashPattern([6, 4])
        pen.setColor(QColor(self.ACCENT_COLOR if self._is_dragging else self.BORDER_COLOR))
        painter.setPen(pen)
        painter.drawRoundedRect(QRectF(rect).adjusted(margin + 1, margin + 1, -margin - 1, -margin - 1), 9, 9)

        content_rect = rect.adjusted(margin + 8, margin + 8, -margin - 8, -margin - 8)

        # icon(24) + gap(8) + text(16) + gap(4) + subtext(14)
        total_content_height = 66
        start_y = content_rect.top() + (content_rect.height() - total_content_height) // 2

        icon_color = QColor(self.ACCENT_COLOR if self._is_dragging else "#6B7280")
        painter.setPen(QPen(icon_color, 2))

        center_x = content_rect.center().x()
        arrow_size = 24
        painter.drawLine(center_x, start_y + 4, center_x, start_y + arrow_size - 4)
        painter.drawLine(center_x, start_y + 4, center_x - 7, start_y + 12)
        painter.drawLine(center_x, start_y + 4, center_x + 7, start_y + 12)

        text_y = start_y + arrow_size + 8
        font = QFont()
        font.setPointSize(11)
        font.setWeight(QFont.Weight.Medium)
        painter.setFont(font)

        if self._is_dragging:
            painter.setPen(QColor(self.ACCENT_COLOR))
            hint = "鬆開滑鼠放下圖片"
        else:
            painter.setPen(QColor(self.TEXT_COLOR))
            hint = self._hint_text

        text_rect = QRectF(content_rect.left(), text_y, content_rect.width(), 20)
        painter.drawText(text_rect, Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop, hint)

        font.setPointSize(9)
        font.setWeight(QFont.Weight.Normal)
        painter.setFont(font)
        painter.setPen(QColor("#6B7280"))
        sub_rect = QRectF(content_rect.left(), text_y + 20, content_rect.width(), 16)
        painter.drawText(sub_rect, Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop,
                         "PNG, JPG, WEBP, BMP")

        painter.end()

    def mousePressEvent(self, event):
        """Handle mouse click to open file dialog."""
        if event.button() == Qt.MouseButton.LeftButton:
            self.open_file_dialog()
        super().mousePressEvent(event)

    def open_file_dialog(self):
        """Open file dialog to select images."""
        formats = " ".join(f"*{fmt}" for fmt in sorted(self.SUPPORTED_FORMATS))
        files, _ = QFileDialog.getOpenFileNames(
            self,
            "選擇圖片",
            "",
            f"圖片檔案 ({formats});;所有檔案 (*.*)"
        )

        if files:
            self.files_dropped.emit([Path(f) for f in files])

    def _supported_paths(self, mime_data) -> List[Path]:
        paths = []
        for url in mime_data.urls():
            if url.isLocalFile():
                path = Path(url.toLocalFile())
                if path.suffix.lower() in self.SUPPORTED_FORMATS:
                    paths.append(path)
        return paths

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls() and self._supported_paths(event.mimeData()):
            event.acceptProposedAction()
            self._is_dragging = True
            self.update()
            return
        event.ignore()

    def dragLeaveEvent(self, event):
        self._is_dragging = False
        self.update()
        super().dragLeaveEvent(event)

    def dropEvent(self, event: QDropEvent):
        self._is_dragging = False
        self.update()

        paths = self._supported_paths(event.mimeData())
        if paths:
            self.files_dropped.emit(paths)
            event.acceptProposedAction()


class ImageListWidget(QWidget):
    """
    A widget displaying a list of images with thumbnails.

    Signals:
        images_changed(list[Path]): Emitted when the image list changes.
        selection_changed(list[Path]): Emitted when selection changes.
    """

    images_changed = pyqtSignal(list)  # List[Path]
    selection_changed = pyqtSignal(list)  # List[Path]

    THUMBNAIL_SIZE = 48

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._image_paths: List[Path] = []
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self.drop_label = DragDropLabel()
        self.drop_label.setMinimumHeight(70)
        self.drop_label.setMaximumHeight(90)
        self.drop_label.files_dropped.connect(self.add_images)
        layout.addWidget(self.drop_label)

        self.list_widget = QListWidget()
        self.list_widget.setObjectName("imageList")
        self.list_widget.setSelectionMode(QAbstractItemView.SelectionMode.ExtendedSelection)
        self.list_widget.setIconSize(QSize(self.THUMBNAIL_SIZE, self.THUMBNAIL_SIZE))
        self.list_widget.setSpacing(3)
        self.list_widget.itemSelectionChanged.connect(self._on_selection_changed)
        layout.addWidget(self.list_widget, 1)

        btn_layout = QHBoxLayout()
        btn_layout.setSpacing(6)
        btn_layout.setContentsMargins(0, 6, 0, 0)

        self.btn_add = QPushButton("➕")
        self.btn_add.setObjectName("iconButton")
        self.btn_add.setFixedSize(34, 34)
        self.btn_add.setToolTip("添加圖片")
        self.btn_add.clicked.connect(self.drop_label.open_file_dialog)
        btn_layout.addWidget(self.btn_add, 0, Qt.AlignmentFlag.AlignVCenter)

        self.btn_remove = QPushButton("➖")
        self.btn_remove.setObjectName("iconButton")
        self.btn_remove.setFixedSize(34, 34)
        self.btn_remove.setToolTip("移除選中")
        self.btn_remove.clicked.connect(self.remove_selected)
        btn_layout.addWidget(self.btn_remove, 0, Qt.AlignmentFlag.AlignVCenter)

        self.btn_clear = QPushButton("🗑️")
        self.btn_clear.setObjectName("iconButton")
        self.btn_clear.setFixedSize(34, 34)
        self.btn_clear.setToolTip("清空列表")
        self.btn_clear.clicked.connect(self.clear_images)
        btn_layout.addWidget(self.btn_clear, 0, Qt.AlignmentFlag.AlignVCenter)

        btn_layout.addStretch(1)

        self.count_label = QLabel("0 張")
        self.count_label.setObjectName("countLabel")
        self.count_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.count_label.setFixedSize(52, 24)
        btn_layout.addWidget(self.count_label, 0, Qt.AlignmentFlag.AlignVCenter)

        layout.addLayout(btn_layout)

    def _create_thumbnail(self, image_path: Path) -> QIcon:
        pixmap = QPixmap(str(image_path))
        if pixmap.isNull():
            pixmap = QPixmap(self.THUMBNAIL_SIZE, self.THUMBNAIL_SIZE)
            pixmap.fill(QColor("#353842"))
        else:
            pixmap = pixmap.scaled(
                self.THUMBNAIL_SIZE, self.THUMBNAIL_SIZE,
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation
            )
        return QIcon(pixmap)

    def add_images(self, paths: List[Path]):
        """Add images to the list, skipping duplicates."""
        for path in paths:
            if path in self._image_paths:
                continue
            self._image_paths.append(path)

            item = QListWidgetItem()
            item.setText(path.name)
            item.setToolTip(str(path))
            item.setIcon(self._create_thumbnail(path))
            item.setData(Qt.ItemDataRole.UserRole, path)
            item.setSizeHint(QSize(-1, self.THUMBNAIL_SIZE + 8))
            self.list_widget.addItem(item)

        self._update_count()
        self.images_changed.emit(self._image_paths.copy())

    def remove_selected(self):
        """Remove selected images from the list."""
        for item in self.list_widget.selectedItems():
            path = item.data(Qt.ItemDataRole.UserRole)
            if path in self._image_paths:
                self._image_paths.remove(path)
            self.list_widget.takeItem(self.list_widget.row(item))

        self._update_count()
        self.images_changed.emit(self._image_paths.copy())

    def clear_images(self):
        self._image_paths.clear()
        self.list_widget.clear()
        self._update_count()
        self.images_changed.emit(self._image_paths.copy())

    def get_images(self) -> List[Path]:
        return self._image_paths.copy()

    def get_selected_image(self) -> Optional[Path]:
        """
        Get the currently selected image.

        Falls back to the first image in the list if nothing is selected.
        """
        selected_items = self.list_widget.selectedItems()
        if selected_items:
            return selected_items[0].data(Qt.ItemDataRole.UserRole)
        return self._image_paths[0] if self._image_paths else None

    def _update_count(self):
        self.count_label.setText(f"{len(self._image_paths)} 張")

    def _on_selection_changed(self):
        selected_paths = [
            item.data(Qt.ItemDataRole.UserRole)
            for item in self.list_widget.selectedItems()
        ]
        self.selection_changed.emit([p for p in selected_paths if p])


class TransparencyGridWidget(QWidget):
    """
    Preview widget with transparency grid background.

    Displays a checkerboard pattern behind the preview, similar to
    Photoshop/GIMP.
    """

    GRID_LIGHT = QColor("#222639")
    GRID_DARK = QColor("#1A1E2E")
    GRID_SIZE = 12

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._pixmap: Optional[QPixmap] = None
        self._is_loading = False
        self._error_message: Optional[str] = None

        self.setObjectName("previewCanvas")
        self.setMinimumSize(400, 400)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

    def set_preview(self, pixmap: QPixmap):
        self._pixmap = pixmap
        self._is_loading = False
        self._error_message = None
        self.update()

    def set_loading(self, is_loading: bool = True):
        self._is_loading = is_loading
        if is_loading:
            self._pixmap = None
        self.update()

    def set_error(self, message: str):
        self._error_message = message
        self._is_loading = False
        self._pixmap = None
        self.update()

    def clear(self):
        self._pixmap = None
        self._is_loading = False
        self._error_message = None
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        rect = self.rect()

        clip_path = QPainterPath()
        clip_path.addRoundedRect(QRectF(rect).adjusted(1, 1, -1, -1), 10, 10)
        painter.setClipPath(clip_path)

        for y in range(0, rect.height(), self.GRID_SIZE):
            for x in range(0, rect.width(), self.GRID_SIZE):
                is_light = ((x // self.GRID_SIZE) + (y // self.GRID_SIZE)) % 2 == 0
                color = self.GRID_LIGHT if is_light else self.GRID_DARK
                painter.fillRect(x, y, self.GRID_SIZE, self.GRID_SIZE, color)

        painter.setClipping(False)

        pen = QPen(QColor("#3B4261"))
        pen.setWidth(1)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRoundedRect(QRectF(rect).adjusted(0.5, 0.5, -0.5, -0.5), 10, 10)

        if self._is_loading:
            self._draw_message(painter, rect, "⟳ 生成預覽中...", "#7AA2F7")
        elif self._error_message:
            self._draw_message(painter, rect, f"✕ {self._error_message}", "#F7768E")
        elif self._pixmap and not self._pixmap.isNull():
            self._draw_preview(painter, rect)
        else:
            self._draw_message(painter, rect, "選擇圖片後在此預覽", "#565F89")

        painter.end()

    def _draw_preview(self, painter: QPainter, rect):
        """Draw the preview image centered and scaled."""
        scaled = self._pixmap.scaled(
            rect.width() - 40,
            rect.height() - 40,
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation
        )

        x = (rect.width() - scaled.width()) / 2
        y = (rect.height() - scaled.height()) / 2

        shadow_rect = QRectF(x + 4, y + 4, scaled.width(), scaled.height())
        painter.fillRect(shadow_rect, QColor(0, 0, 0, 60))
        painter.drawPixmap(int(x), int(y), scaled)

        pen = QPen(QColor("#565F89"))
        pen.setWidth(1)
        painter.setPen(pen)
        painter.drawRoundedRect(int(x), int(y), scaled.width(), scaled.height(), 4, 4)

    def _draw_message(self, painter: QPainter, rect, text: str, color: str):
        painter.setPen(QPen(QColor(color)))
        font = painter.font()
        font.setPointSize(13)
        painter.setFont(font)
        painter.drawText(QRectF(rect), Qt.AlignmentFlag.AlignCenter, text)
