"""
UI Module - User Interface Components
=====================================
Contains all PyQt6 UI components for the Unmark application.

Architecture:
- widgets.py: Reusable UI components
- tab_process.py: Remove / add watermark interface
- main_window.py: Main application window
"""

from .main_window import MainWindow
from .tab_process import ProcessTab
from .widgets import DragDropLabel, ImageListWidget, TransparencyGridWidget

__all__ = [
    "DragDropLabel",
    "ImageListWidget",
    "TransparencyGridWidget",
    "ProcessTab",
    "MainWindow",
]
