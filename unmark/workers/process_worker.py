"""
Process Worker - Async Watermark Removal/Insertion
==================================================
QThread worker for running the watermark engine over a batch of images.

Workflow:
1. Load the alpha maps once (cached per assets directory)
2. For each image in the queue:
   a. Decode, flatten to RGB, remove or add the watermark
   b. Save to output directory with proper naming
3. Emit progress signals during processing
4. Emit finished signal with results

Naming Convention:
- Remove: filename_unmarked.<ext>
- Add: filename_marked.<ext>
"""

import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal

from unmark.core import DEFAULT_LOGO_VALUE, BlendMode, EngineConfig, WatermarkEngine, WatermarkSize


@dataclass
class ProcessConfig:
    """Complete configuration for a processing run."""
    image_paths: List[Path] = field(default_factory=list)
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "output")
    mode: BlendMode = BlendMode.REMOVE
    size_override: Optional[WatermarkSize] = None
    logo_value: float = DEFAULT_LOGO_VALUE

    # None = UNMARK_ASSETS_DIR or the bundled assets directory
    assets_dir: Optional[Path] = None

    def engine_config(self) -> EngineConfig:
        return EngineConfig(logo_value=self.logo_value, size_override=self.size_override)


@dataclass
class ProcessResult:
    """Result of processing a single image."""
    source_path: Path
    output_path: Optional[Path] = None
    size: Optional[WatermarkSize] = None  # Size class that was applied
    success: bool = False
    error_message: str = ""


OUTPUT_SUFFIXES = {
    BlendMode.REMOVE: "_unmarked",
    BlendMode.ADD: "_marked",
}


def generate_output_filename(source_path: Path, mode: BlendMode) -> str:
    """
    Generate the output filename for a processed image.

    The source extension is kept so the output format matches the input.
    """
    return f"{source_path.stem}{OUTPUT_SUFFIXES[mode]}{source_path.suffix}"


class ProcessWorker(QThread):
    """
    Worker thread for removing or adding watermarks on images.

    Signals:
        progress(int, int, str): (current, total, current_file_name)
        image_completed(ProcessResult): Emitted when each image is processed
        finished_all(list[ProcessResult]): Emitted when all images are done
        error(str): Emitted on critical errors
    """

    # Signals
    progress = pyqtSignal(int, int, str)  # current, total, filename
    image_completed = pyqtSignal(object)  # ProcessResult
    finished_all = pyqtSignal(list)  # List[ProcessResult]
    error = pyqtSignal(str)  # Error message

    def __init__(self, config: ProcessConfig, parent=None):
        """
        Initialize the process worker.

        Args:
            config: ProcessConfig with all run settings.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self._is_cancelled = False
        self._engine: Optional[WatermarkEngine] = None

    def cancel(self):
        """Request cancellation of the worker."""
        self._is_cancelled = True

    def _process_single_image(self, image_path: Path) -> ProcessResult:
        """
        Process a single image with the configured mode.

        Args:
            image_path: Path to the source image.

        Returns:
            ProcessResult with processing outcome.
        """
        result = ProcessResult(source_path=image_path)

        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)

            output_name = generate_output_filename(image_path, self.config.mode)
            output_path = self.config.output_dir / output_name

            # Header only; the engine does the full decode
            with Image.open(image_path) as img:
                result.size = self._engine.get_size(*img.size)

            self._engine.process_file(image_path, output_path, self.config.mode)

            result.output_path = output_path
            result.success = True

        except Exception as e:
            result.success = False
            result.error_message = str(e)
            traceback.print_exc()

        return result

    def run(self):
        """
        Main worker execution.

        Processes all images in the config and emits progress signals.
        """
        results: List[ProcessResult] = []
        total = len(self.config.image_paths)

        if total == 0:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        try:
            self._engine = WatermarkEngine.from_assets(
                self.config.assets_dir, self.config.engine_config()
            )

            for idx, image_path in enumerate(self.config.image_paths):
                if self._is_cancelled:
                    break

                self.progress.emit(idx + 1, total, image_path.name)

                result = self._process_single_image(image_path)
                results.append(result)

                self.image_completed.emit(result)

        except Exception as e:
            self.error.emit(f"Critical error: {str(e)}")
            traceback.print_exc()

        finally:
            self._engine = None

        self.finished_all.emit(results)
