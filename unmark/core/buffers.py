"""
Pixel Buffer Contract
=====================
Validation and numpy views for raw interleaved RGB buffers.

Technical Notes:
- Buffers are row-major, 8-bit, 3 channels per pixel (no alpha)
- A buffer's length MUST equal width * height * channels
- Views share memory with the caller's buffer, so writes land in place
"""

from typing import Union

import numpy as np

CHANNELS = 3

PixelBuffer = Union[bytearray, bytes, memoryview, np.ndarray]


class DimensionMismatchError(ValueError):
    """A buffer's length disagrees with its declared dimensions."""


def expected_length(width: int, height: int, channels: int = CHANNELS) -> int:
    """Number of samples a width x height buffer must hold."""
    if width < 0 or height < 0:
        raise DimensionMismatchError(
            f"Negative dimensions: {width}x{height}"
        )
    return width * height * channels


def as_pixel_array(
        buffer: PixelBuffer,
        width: int,
        height: int,
        channels: int = CHANNELS,
        writable: bool = False
) -> np.ndarray:
    """
    View a raw buffer as a (height, width, channels) uint8 array.

    The returned array shares memory with ``buffer``; nothing is copied.

    Args:
        buffer: bytearray, bytes, memoryview or C-contiguous uint8 ndarray.
        width: Buffer width in pixels.
        height: Buffer height in pixels.
        channels: Samples per pixel.
        writable: Require the view to accept in-place writes.

    Returns:
        A (height, width, channels) view of ``buffer``.

    Raises:
        DimensionMismatchError: If the sample count does not match.
        TypeError: If the buffer is not uint8, or is read-only while
                   ``writable`` is requested.
    """
    expected = expected_length(width, height, channels)

    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise TypeError(f"Pixel buffer must be uint8, got {buffer.dtype}")
        if buffer.size != expected:
            raise DimensionMismatchError(
                f"Buffer holds {buffer.size} samples, "
                f"expected {expected} for {width}x{height}x{channels}"
            )
        if not buffer.flags.c_contiguous:
            # reshape() would silently copy and the mutation would be lost
            raise TypeError("Pixel buffer array must be C-contiguous")
        array = buffer.reshape(height, width, channels)
    else:
        if len(buffer) != expected:
            raise DimensionMismatchError(
                f"Buffer holds {len(buffer)} samples, "
                f"expected {expected} for {width}x{height}x{channels}"
            )
        array = np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, channels)

    if writable and not array.flags.writeable:
        raise TypeError(
            "Pixel buffer is read-only; pass a bytearray or a writable numpy array"
        )

    return array
