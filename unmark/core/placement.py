"""
Placement Policy
================
Chooses the watermark size class and its bottom-right anchor.

Size classes:
- SMALL: 48x48 logo, 32px margin from the right and bottom edges
- LARGE: 96x96 logo, 64px margin, used only when BOTH sides exceed 1024px
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class WatermarkSize(Enum):
    """The two supported watermark size classes."""
    SMALL = (48, 32)
    LARGE = (96, 64)

    def __init__(self, logo_size: int, margin: int):
        self.logo_size = logo_size
        self.margin_right = margin
        self.margin_bottom = margin

    @property
    def label(self) -> str:
        return f"{self.logo_size}x{self.logo_size}"


# Images strictly larger than this on both axes get the large logo
LARGE_SIZE_THRESHOLD = 1024


@dataclass(frozen=True)
class Placement:
    """Rectangle of the target image covered by the alpha map."""
    x: int
    y: int
    width: int
    height: int


def select_size(width: int, height: int) -> WatermarkSize:
    """Pick the size class for an image of the given dimensions."""
    if width > LARGE_SIZE_THRESHOLD and height > LARGE_SIZE_THRESHOLD:
        return WatermarkSize.LARGE
    return WatermarkSize.SMALL


def resolve_size(
        width: int,
        height: int,
        override: Optional[WatermarkSize] = None
) -> WatermarkSize:
    """Explicit override wins; otherwise fall back to ``select_size``."""
    if override is not None:
        return override
    return select_size(width, height)


def compute_placement(width: int, height: int, size: WatermarkSize) -> Placement:
    """
    Anchor the logo at the bottom-right corner with the class margins.

    Coordinates may be negative for images smaller than the anchor box;
    the compositor clips the rectangle to the image.
    """
    return Placement(
        x=width - size.margin_right - size.logo_size,
        y=height - size.margin_bottom - size.logo_size,
        width=size.logo_size,
        height=size.logo_size
    )
