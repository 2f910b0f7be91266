"""
Compositor
==========
Applies an alpha map over a rectangular region of an RGB buffer,
in either direction.

Formulas:
- Add (forward):     result   = alpha * logo + (1 - alpha) * original
- Remove (inverse):  original = (watermarked - alpha * logo) / (1 - alpha)

Technical Notes:
- Only the intersection of the placed map and the image is touched
- Pixels with alpha below ALPHA_THRESHOLD are left bit-identical
- Removal caps alpha at MAX_ALPHA so (1 - alpha) never approaches zero
- Results are clamped to [0, 255] and truncated when stored as uint8
- The target buffer is mutated in place; the caller must not share it
  with another operation while the call runs
"""

from typing import Optional, Tuple

import numpy as np

from .alpha_map import AlphaMap
from .buffers import PixelBuffer, as_pixel_array

ALPHA_THRESHOLD = 0.002
MAX_ALPHA = 0.99
DEFAULT_LOGO_VALUE = 255.0


def intersect_region(
        width: int,
        height: int,
        alpha_map: AlphaMap,
        pos_x: int,
        pos_y: int
) -> Optional[Tuple[int, int, int, int]]:
    """
    Clip the placed alpha map to the image.

    Returns:
        (x1, y1, x2, y2) in image coordinates, half-open, or None when the
        rectangles do not overlap.
    """
    x1 = max(0, pos_x)
    y1 = max(0, pos_y)
    x2 = min(width, pos_x + alpha_map.width)
    y2 = min(height, pos_y + alpha_map.height)

    if x1 >= x2 or y1 >= y2:
        return None
    return x1, y1, x2, y2


def _composite(
        buffer: PixelBuffer,
        width: int,
        height: int,
        alpha_map: AlphaMap,
        pos_x: int,
        pos_y: int,
        logo_value: float,
        remove: bool
) -> None:
    """Shared region/threshold walk for both blend directions."""
    # Validate before anything else so a bad buffer never gets half-written
    pixels = as_pixel_array(buffer, width, height, writable=True)

    bounds = intersect_region(width, height, alpha_map, pos_x, pos_y)
    if bounds is None:
        return
    x1, y1, x2, y2 = bounds

    region = pixels[y1:y2, x1:x2]
    alpha = alpha_map.values[y1 - pos_y:y2 - pos_y, x1 - pos_x:x2 - pos_x]

    mask = alpha >= ALPHA_THRESHOLD
    if not mask.any():
        return

    a = alpha[mask].astype(np.float64)
    if remove:
        a = np.minimum(a, MAX_ALPHA)
    one_minus = (1.0 - a)[:, np.newaxis]
    alpha_times_logo = (a * logo_value)[:, np.newaxis]

    source = region[mask].astype(np.float64)  # (N, 3)
    if remove:
        blended = (source - alpha_times_logo) / one_minus
    else:
        blended = alpha_times_logo + one_minus * source

    region[mask] = np.clip(blended, 0, 255).astype(np.uint8)


def remove_watermark(
        buffer: PixelBuffer,
        width: int,
        height: int,
        alpha_map: AlphaMap,
        pos_x: int,
        pos_y: int,
        logo_value: float
) -> None:
    """
    Remove a watermark using reverse alpha blending, in place.

    Args:
        buffer: Writable RGB buffer of the target image.
        width: Target width in pixels.
        height: Target height in pixels.
        alpha_map: Alpha map of the watermark.
        pos_x: Left edge of the watermark in the target.
        pos_y: Top edge of the watermark in the target.
        logo_value: Brightness of the logo at full opacity.

    Raises:
        DimensionMismatchError: If the buffer length does not match.
        TypeError: If the buffer cannot be written.
    """
    _composite(buffer, width, height, alpha_map, pos_x, pos_y, logo_value, remove=True)


def add_watermark(
        buffer: PixelBuffer,
        width: int,
        height: int,
        alpha_map: AlphaMap,
        pos_x: int,
        pos_y: int,
        logo_value: float
) -> None:
    """
    Add a watermark using forward alpha blending, in place.

    Arguments and errors are the same as ``remove_watermark``.
    """
    _composite(buffer, width, height, alpha_map, pos_x, pos_y, logo_value, remove=False)
