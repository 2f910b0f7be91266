"""
Main Window - Frameless Rounded Shell
=====================================
自訂標題欄 + 單一處理分頁，模式（去除 / 添加）由標題欄分段控制切換。
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, QSettings, QPoint, QRectF, QTimer
from PyQt6.QtGui import QCloseEvent, QMouseEvent, QPainter, QColor, QPainterPath, QRegion, QPen
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QStatusBar, QMessageBox,
    QApplication, QLabel, QPushButton, QSizeGrip
)

from unmark.core import BlendMode, WatermarkSize
from .tab_process import ProcessTab


class CustomTitleBar(QWidget):
    """
    標題欄

    ┌────────────────────────────────────────────────────────────────┐
    │  ◆ UNMARK  │  [去除水印] [添加水印]  │   [─]  [□]  [×]        │
    └────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, parent: Optional['RoundedMainWindow'] = None):
        super().__init__(parent)
        self._parent = parent
        self._drag_position: Optional[QPoint] = None

        self.setObjectName("customTitleBar")
        self.setFixedHeight(52)
        self._setup_ui()

    def _make_button(self, text: str, object_name: str, width: int, height: int,
                     tooltip: str = "") -> QPushButton:
        btn = QPushButton(text)
        btn.setObjectName(object_name)
        btn.setFixedSize(width, height)
        btn.setCursor(Qt.CursorShape.PointingHandCursor)
        if tooltip:
            btn.setToolTip(tooltip)
        return btn

    def _setup_ui(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(16, 0, 0, 0)
        layout.setSpacing(0)

        brand = QLabel("◆ UNMARK")
        brand.setStyleSheet("""
            color: #C0CAF5;
            font-size: 14px;
            font-weight: bold;
            letter-spacing: 2px;
        """)
        layout.addWidget(brand)

        layout.addStretch(1)

        # 分段控制
        seg_container = QWidget()
        seg_container.setObjectName("segmentedControl")
        seg_layout = QHBoxLayout(seg_container)
        seg_layout.setContentsMargins(4, 4, 4, 4)
        seg_layout.setSpacing(2)

        self.btn_remove = self._make_button("去除水印", "segmentButton", 100, 32)
        self.btn_remove.setCheckable(True)
        self.btn_remove.setChecked(True)
        seg_layout.addWidget(self.btn_remove)

        self.btn_add = self._make_button("添加水印", "segmentButton", 100, 32)
        self.btn_add.setCheckable(True)
        seg_layout.addWidget(self.btn_add)

        layout.addWidget(seg_container)
        layout.addStretch(1)

        self.btn_minimize = self._make_button("─", "windowButton", 46, 52, "最小化")
        layout.addWidget(self.btn_minimize)

        self.btn_maximize = self._make_button("□", "windowButton", 46, 52, "最大化")
        layout.addWidget(self.btn_maximize)

        self.btn_close = self._make_button("×", "windowButtonClose", 46, 52, "關閉")
        layout.addWidget(self.btn_close)

    def set_mode(self, mode: BlendMode):
        self.btn_remove.setChecked(mode is BlendMode.REMOVE)
        self.btn_add.setChecked(mode is BlendMode.ADD)

    def update_maximize_button(self, is_maximized: bool):
        self.btn_maximize.setText("❐" if is_maximized else "□")
        self.btn_maximize.setToolTip("還原" if is_maximized else "最大化")

    def _is_draggable_at(self, pos: QPoint) -> bool:
        widget = self.childAt(pos)
        while widget is not None and widget is not self:
            if isinstance(widget, QPushButton) or widget.objectName() == "segmentedControl":
                return False
            widget = widget.parentWidget()
        return True

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._is_draggable_at(event.position().toPoint()):
            self._drag_position = event.globalPosition().toPoint() - self._parent.frameGeometry().topLeft()
            event.accept()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent):
        if self._drag_position is not None:
            if self._parent.isMaximized():
                self._parent.showNormal()
                self._drag_position = QPoint(self._parent.width() // 2, 26)
            self._parent.move(event.globalPosition().toPoint() - self._drag_position)
            event.accept()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent):
        self._drag_position = None
        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._is_draggable_at(event.position().toPoint()):
            self._parent.toggle_maximize()
        super().mouseDoubleClickEvent(event)


class RoundedMainWindow(QMainWindow):
    """
    Frameless main window with rounded corners.

    The corners are cut with a QPainterPath mask; resizing goes through a
    QSizeGrip in the status bar.
    """

    BORDER_RADIUS = 16

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowFlags(Qt.WindowType.FramelessWindowHint | Qt.WindowType.Window)
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)

    def _apply_rounded_mask(self):
        if self.isMaximized():
            self.clearMask()
            return
        path = QPainterPath()
        path.addRoundedRect(QRectF(self.rect()), self.BORDER_RADIUS, self.BORDER_RADIUS)
        self.setMask(QRegion(path.toFillPolygon().toPolygon()))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._apply_rounded_mask()

    def toggle_maximize(self):
        if self.isMaximized():
            self.showNormal()
        else:
            self.showMaximized()
        self._apply_rounded_mask()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        rect = QRectF(self.rect())
        path = QPainterPath()
        path.addRoundedRect(rect, self.BORDER_RADIUS, self.BORDER_RADIUS)
        painter.fillPath(path, QColor("#1A1B26"))

        pen = QPen(QColor("#3B4261"))
        pen.setWidth(1)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRoundedRect(rect.adjusted(0.5, 0.5, -0.5, -0.5), self.BORDER_RADIUS, self.BORDER_RADIUS)
        painter.end()


class MainWindow(RoundedMainWindow):
    """
    Application shell: title bar, processing tab and status bar.

    Persists the output directory, mode, size override, logo value and
    window geometry between sessions.
    """

    APP_NAME = "NightCat Unmark"
    APP_VERSION = "1.0.0"

    # QSettings keys
    SETTINGS_ORG = "NightCat"
    SETTINGS_APP = "Unmark"
    KEY_OUTPUT_DIR = "output_directory"
    KEY_WINDOW_GEOMETRY = "window_geometry"
    KEY_MODE = "mode"
    KEY_SIZE_OVERRIDE = "size_override"
    KEY_LOGO_VALUE = "logo_value"

    def __init__(self, parent: Optional[QWidget] = None, settings: Optional[QSettings] = None):
        super().__init__(parent)
        self._settings = settings if settings is not None else QSettings(self.SETTINGS_ORG, self.SETTINGS_APP)

        self._setup_window()
        self._setup_ui()
        self._setup_statusbar()
        self._load_stylesheet()
        self._connect_signals()
        self._restore_settings()

    def _setup_window(self):
        self.setWindowTitle(self.APP_NAME)
        self.setMinimumSize(1100, 700)
        self.resize(1320, 820)

        screen = QApplication.primaryScreen()
        if screen:
            geo = screen.availableGeometry()
            self.move((geo.width() - self.width()) // 2, (geo.height() - self.height()) // 2)

    def _setup_ui(self):
        central = QWidget()
        central.setObjectName("centralContainer")
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        self.title_bar = CustomTitleBar(self)
        main_layout.addWidget(self.title_bar)

        self.process_tab = ProcessTab()
        main_layout.addWidget(self.process_tab, 1)

    def _setup_statusbar(self):
        self.statusbar = QStatusBar()
        self.statusbar.setObjectName("mainStatusBar")
        self.statusbar.setSizeGripEnabled(False)
        self.setStatusBar(self.statusbar)

        self.status_label = QLabel("系統就緒")
        self.status_label.setObjectName("statusLabel")
        self.statusbar.addWidget(self.status_label)

        right_label = QLabel(f"◇ {self.APP_NAME.upper()} v{self.APP_VERSION}")
        right_label.setObjectName("statusRightLabel")
        self.statusbar.addPermanentWidget(right_label)
        self.statusbar.addPermanentWidget(QSizeGrip(self))

    def _load_stylesheet(self):
        style_path = Path(__file__).parent / "styles.qss"
        if style_path.exists():
            with open(style_path, "r", encoding="utf-8") as f:
                self.setStyleSheet(f.read())

    def _connect_signals(self):
        self.title_bar.btn_minimize.clicked.connect(self.showMinimized)
        self.title_bar.btn_maximize.clicked.connect(self.toggle_maximize)
        self.title_bar.btn_close.clicked.connect(self.close)

        self.title_bar.btn_remove.clicked.connect(lambda: self.set_mode(BlendMode.REMOVE))
        self.title_bar.btn_add.clicked.connect(lambda: self.set_mode(BlendMode.ADD))

    def toggle_maximize(self):
        super().toggle_maximize()
        self.title_bar.update_maximize_button(self.isMaximized())

    def set_mode(self, mode: BlendMode):
        """Switch the processing mode and keep the segmented control in sync."""
        self.title_bar.set_mode(mode)
        self.process_tab.set_mode(mode)

    def _restore_settings(self):
        last_dir = self._settings.value(self.KEY_OUTPUT_DIR, "")
        if last_dir and Path(last_dir).exists():
            self.process_tab.set_output_directory(last_dir)
        else:
            self.process_tab.set_output_directory(str(Path.home() / "Pictures" / "Unmarked"))

        mode_name = self._settings.value(self.KEY_MODE, BlendMode.REMOVE.name)
        if mode_name in BlendMode.__members__:
            self.set_mode(BlendMode[mode_name])

        size_name = self._settings.value(self.KEY_SIZE_OVERRIDE, "")
        self.process_tab.set_size_override(WatermarkSize.__members__.get(size_name))

        if self._settings.contains(self.KEY_LOGO_VALUE):
            self.process_tab.set_logo_value(self._settings.value(self.KEY_LOGO_VALUE, type=float))

        geometry = self._settings.value(self.KEY_WINDOW_GEOMETRY)
        if geometry is not None:
            self.restoreGeometry(geometry)

    def _save_settings(self):
        size = self.process_tab.get_size_override()
        self._settings.setValue(self.KEY_OUTPUT_DIR, self.process_tab.get_output_directory())
        self._settings.setValue(self.KEY_MODE, self.process_tab.get_mode().name)
        self._settings.setValue(self.KEY_SIZE_OVERRIDE, size.name if size else "")
        self._settings.setValue(self.KEY_LOGO_VALUE, self.process_tab.get_logo_value())
        self._settings.setValue(self.KEY_WINDOW_GEOMETRY, self.saveGeometry())
        self._settings.sync()

    # === Public API ===

    def show_message(self, message: str, timeout: int = 3000):
        """Show a message in the status bar."""
        self.status_label.setText(message)
        if timeout > 0:
            QTimer.singleShot(timeout, lambda: self.status_label.setText("系統就緒"))

    def show_error(self, title: str, message: str):
        QMessageBox.critical(self, title, message)

    def closeEvent(self, event: QCloseEvent):
        self._save_settings()
        event.accept()
