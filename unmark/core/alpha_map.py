"""
Alpha Map Builder
=================
Derives a per-pixel opacity mask from a reference capture of the
watermark rendered over a black background.

Technical Notes:
- On black, alpha blending gives pixel = alpha * logo, so the brightest
  channel approximates how strongly the logo was blended at that pixel
- alpha = max(R, G, B) / 255.0
- The resulting map is read-only and safe to share between threads
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from .buffers import CHANNELS, DimensionMismatchError, PixelBuffer, as_pixel_array


@dataclass(frozen=True, eq=False)
class AlphaMap:
    """
    Immutable opacity mask, one value in [0.0, 1.0] per pixel.

    ``values`` has shape (height, width) and dtype float32, and its
    writeable flag is cleared on construction.
    """
    width: int
    height: int
    values: np.ndarray

    def __post_init__(self):
        # Own a private copy so no caller can mutate the map afterwards
        values = np.array(self.values, dtype=np.float32, copy=True)
        if values.shape != (self.height, self.width):
            raise DimensionMismatchError(
                f"Alpha values have shape {values.shape}, "
                f"expected ({self.height}, {self.width})"
            )
        values.flags.writeable = False
        object.__setattr__(self, "values", values)

    @property
    def size(self) -> tuple:
        return self.width, self.height

    def at(self, x: int, y: int) -> float:
        """Opacity at pixel (x, y)."""
        return float(self.values[y, x])


def calculate_alpha_map(reference: PixelBuffer, width: int, height: int) -> AlphaMap:
    """
    Build an alpha map from a reference RGB buffer.

    Args:
        reference: Raw RGB buffer of the watermark over black.
        width: Reference width in pixels.
        height: Reference height in pixels.

    Returns:
        AlphaMap with the same dimensions as the reference.

    Raises:
        DimensionMismatchError: If the buffer length is not width * height * 3.
    """
    pixels = as_pixel_array(reference, width, height, CHANNELS)
    values = pixels.max(axis=2).astype(np.float32) / np.float32(255.0)
    return AlphaMap(width=width, height=height, values=values)


def load_alpha_map(path: Union[str, Path], size: int) -> AlphaMap:
    """
    Load a reference capture from disk and derive its alpha map.

    The capture is flattened to RGB and resized to ``size`` x ``size``
    when it is not already that size.

    Raises:
        FileNotFoundError: If the capture does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Reference capture not found: {path}")

    with Image.open(path) as img:
        img = img.convert("RGB")
        if img.size != (size, size):
            img = img.resize((size, size), Image.Resampling.LANCZOS)
        data = bytearray(img.tobytes())

    return calculate_alpha_map(data, size, size)
