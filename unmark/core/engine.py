"""
Watermark Engine
================
Ties the alpha maps, the placement policy and the compositor together,
and handles image decoding/encoding with Pillow.

Technical Notes:
- Reference captures (bg_48.png, bg_96.png) are decoded once per assets
  directory and the resulting alpha maps are cached for the process
- Source alpha is flattened (dropped) before blending
- EXIF, ICC profile and DPI are carried over to the output file
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from PIL import Image

from .alpha_map import AlphaMap, load_alpha_map
from .blend import DEFAULT_LOGO_VALUE, add_watermark, remove_watermark
from .buffers import DimensionMismatchError, PixelBuffer
from .placement import Placement, WatermarkSize, compute_placement, resolve_size

log = logging.getLogger(__name__)

ASSETS_ENV_VAR = "UNMARK_ASSETS_DIR"
DEFAULT_ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"

ASSET_NAMES = {
    WatermarkSize.SMALL: "bg_48.png",
    WatermarkSize.LARGE: "bg_96.png",
}

# Formats whose encoder accepts Pillow's `exif` / `icc_profile` keywords
_METADATA_FORMATS = {"JPEG", "PNG", "WEBP", "TIFF"}
# Encoders take dpi only as a save() keyword, never from image.info
_DPI_FORMATS = {"JPEG", "PNG", "TIFF"}
_CARRIED_INFO = ("exif", "icc_profile", "dpi")

# Alpha maps keyed by resolved assets directory
_alpha_map_cache: Dict[Path, Dict[WatermarkSize, AlphaMap]] = {}


class BlendMode(Enum):
    """Which direction to composite the watermark."""
    REMOVE = "remove"
    ADD = "add"


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine settings. Both fields are always supplied.

    logo_value: Brightness of the logo at full opacity (255.0 = white).
    size_override: Force a size class, or None to pick by image size.
    """
    logo_value: float
    size_override: Optional[WatermarkSize]

    @classmethod
    def default(cls) -> "EngineConfig":
        return cls(logo_value=DEFAULT_LOGO_VALUE, size_override=None)


def resolve_assets_dir(assets_dir: Optional[Union[str, Path]] = None) -> Path:
    """Argument first, then the UNMARK_ASSETS_DIR variable, then the package assets."""
    if assets_dir is not None:
        return Path(assets_dir)
    env_dir = os.environ.get(ASSETS_ENV_VAR)
    if env_dir:
        return Path(env_dir)
    return DEFAULT_ASSETS_DIR


def load_alpha_maps(assets_dir: Optional[Union[str, Path]] = None) -> Dict[WatermarkSize, AlphaMap]:
    """
    Load (or fetch from cache) the alpha maps for both size classes.

    Raises:
        FileNotFoundError: If either reference capture is missing.
    """
    directory = resolve_assets_dir(assets_dir).resolve()
    cached = _alpha_map_cache.get(directory)
    if cached is not None:
        return cached

    paths = {size: directory / name for size, name in ASSET_NAMES.items()}
    missing = [p for p in paths.values() if not p.exists()]
    if missing:
        raise FileNotFoundError(
            "Background assets not found. Please ensure "
            f"{' and '.join(str(p) for p in paths.values())} exist."
        )

    maps = {}
    for size, path in paths.items():
        log.debug("Loading %s alpha map from %s", size.label, path)
        maps[size] = load_alpha_map(path, size.logo_size)

    _alpha_map_cache[directory] = maps
    return maps


def clear_alpha_map_cache():
    """Drop cached alpha maps (call when the capture files change)."""
    _alpha_map_cache.clear()


class WatermarkEngine:
    """
    Adds or removes the bottom-right logo watermark.

    One engine can serve any number of images, including from several
    threads, as long as each call gets its own pixel buffer.
    """

    def __init__(
            self,
            alpha_maps: Dict[WatermarkSize, AlphaMap],
            config: Optional[EngineConfig] = None
    ):
        """
        Args:
            alpha_maps: One alpha map per size class.
            config: Engine settings; EngineConfig.default() if None.

        Raises:
            KeyError: If a size class has no alpha map.
            DimensionMismatchError: If a map does not match its class size.
        """
        for size in WatermarkSize:
            if size not in alpha_maps:
                raise KeyError(f"No alpha map for size class {size.name}")
            alpha_map = alpha_maps[size]
            if alpha_map.size != (size.logo_size, size.logo_size):
                raise DimensionMismatchError(
                    f"{size.name} alpha map is {alpha_map.width}x{alpha_map.height}, "
                    f"expected {size.label}"
                )

        self._alpha_maps = dict(alpha_maps)
        self.config = config if config is not None else EngineConfig.default()

    @classmethod
    def from_assets(
            cls,
            assets_dir: Optional[Union[str, Path]] = None,
            config: Optional[EngineConfig] = None
    ) -> "WatermarkEngine":
        """Build an engine from the reference captures on disk."""
        return cls(load_alpha_maps(assets_dir), config)

    def get_size(self, width: int, height: int) -> WatermarkSize:
        """Size class for an image, honouring the configured override."""
        return resolve_size(width, height, self.config.size_override)

    def get_placement(self, width: int, height: int) -> Placement:
        """Where the watermark sits on an image of the given size."""
        return compute_placement(width, height, self.get_size(width, height))

    def apply(
            self,
            buffer: PixelBuffer,
            width: int,
            height: int,
            mode: BlendMode
    ) -> Placement:
        """
        Add or remove the watermark on a raw RGB buffer, in place.

        Returns:
            The placement that was used.
        """
        size = self.get_size(width, height)
        placement = compute_placement(width, height, size)
        alpha_map = self._alpha_maps[size]

        log.debug(
            "%s %s watermark at (%d, %d) on %dx%d image",
            mode.value, size.label, placement.x, placement.y, width, height
        )

        blend = remove_watermark if mode is BlendMode.REMOVE else add_watermark
        blend(
            buffer,
            width,
            height,
            alpha_map,
            placement.x,
            placement.y,
            self.config.logo_value
        )
        return placement

    def process_image(self, image: Image.Image, mode: BlendMode) -> Image.Image:
        """
        Apply the watermark operation to a PIL Image.

        The image is flattened to RGB; the original is not modified.

        Returns:
            New RGB image with the same ``info`` (EXIF, ICC profile).
        """
        rgb = image if image.mode == "RGB" else image.convert("RGB")
        width, height = rgb.size
        data = bytearray(rgb.tobytes())

        self.apply(data, width, height, mode)

        result = Image.frombytes("RGB", (width, height), bytes(data))
        for key in _CARRIED_INFO:
            if key in image.info:
                result.info[key] = image.info[key]
        return result

    def process_file(
            self,
            input_path: Union[str, Path],
            output_path: Union[str, Path],
            mode: BlendMode
    ) -> Path:
        """
        Decode an image file, process it, and write the result.

        Args:
            input_path: Source image.
            output_path: Destination; its extension picks the format.
            mode: REMOVE or ADD.

        Returns:
            The output path.

        Raises:
            FileNotFoundError: If the source image doesn't exist.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        if not input_path.exists():
            raise FileNotFoundError(f"Image not found: {input_path}")

        with Image.open(input_path) as source:
            source.load()
            exif = source.info.get("exif")
            icc_profile = source.info.get("icc_profile")
            dpi = source.info.get("dpi")
            result = self.process_image(source, mode)

        output_path.parent.mkdir(parents=True, exist_ok=True)

        save_kwargs = {}
        fmt = Image.registered_extensions().get(output_path.suffix.lower(), "")
        if fmt == "JPEG":
            save_kwargs["quality"] = 95
        if exif and fmt in _METADATA_FORMATS:
            save_kwargs["exif"] = exif
        if icc_profile and fmt in _METADATA_FORMATS:
            save_kwargs["icc_profile"] = icc_profile
        if dpi and fmt in _DPI_FORMATS:
            save_kwargs["dpi"] = dpi

        result.save(output_path, **save_kwargs)
        return output_path
