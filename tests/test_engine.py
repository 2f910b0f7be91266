"""
Test script for the watermark engine (assets, placement and file I/O).

Run with: python -m pytest tests/test_engine.py -v
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest
from PIL import Image

from unmark.core import (
    AlphaMap, BlendMode, DimensionMismatchError, EngineConfig, WatermarkEngine, WatermarkSize
)
from unmark.core.alpha_map import load_alpha_map
from unmark.core.engine import ASSETS_ENV_VAR, clear_alpha_map_cache, load_alpha_maps, resolve_assets_dir


def create_reference(size: int, peak: int = 128) -> Image.Image:
    """Synthetic reference capture: a soft white disc over black."""
    yy, xx = np.mgrid[0:size, 0:size]
    center = (size - 1) / 2.0
    dist = np.sqrt((xx - center) ** 2 + (yy - center) ** 2) / (size / 2.0)
    level = (np.clip(1.0 - dist, 0.0, 1.0) * peak).astype(np.uint8)
    return Image.fromarray(np.dstack([level, level, level]))


def create_assets(directory: Path, small_size: int = 48, large_size: int = 96) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    create_reference(small_size).save(directory / "bg_48.png")
    create_reference(large_size).save(directory / "bg_96.png")
    return directory


def create_test_image(path: Path, width: int = 800, height: int = 600, seed: int = 11) -> Path:
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    Image.fromarray(arr).save(path)
    return path


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_alpha_map_cache()
    yield
    clear_alpha_map_cache()


@pytest.fixture
def assets_dir(tmp_path):
    return create_assets(tmp_path / "assets")


def test_load_alpha_maps_from_assets(assets_dir):
    maps = load_alpha_maps(assets_dir)

    assert maps[WatermarkSize.SMALL].size == (48, 48)
    assert maps[WatermarkSize.LARGE].size == (96, 96)
    # Center pixel of the disc, corners stay transparent
    assert maps[WatermarkSize.SMALL].values.max() == pytest.approx(128 / 255, abs=0.03)
    assert maps[WatermarkSize.SMALL].at(0, 0) == 0.0

    # Cached per directory
    assert load_alpha_maps(assets_dir) is maps


def test_missing_assets_raise(tmp_path):
    with pytest.raises(FileNotFoundError, match="Background assets not found"):
        WatermarkEngine.from_assets(tmp_path)


def test_reference_is_resized(tmp_path):
    path = tmp_path / "odd.png"
    create_reference(60).save(path)
    assert load_alpha_map(path, 48).size == (48, 48)


def test_resolve_assets_dir_order(tmp_path, monkeypatch):
    monkeypatch.setenv(ASSETS_ENV_VAR, str(tmp_path / "from_env"))
    assert resolve_assets_dir(tmp_path / "explicit") == tmp_path / "explicit"
    assert resolve_assets_dir() == tmp_path / "from_env"

    monkeypatch.delenv(ASSETS_ENV_VAR)
    assert resolve_assets_dir().name == "assets"


def test_engine_rejects_wrong_map_size():
    maps = {
        WatermarkSize.SMALL: AlphaMap(96, 96, np.zeros((96, 96))),
        WatermarkSize.LARGE: AlphaMap(96, 96, np.zeros((96, 96))),
    }
    with pytest.raises(DimensionMismatchError):
        WatermarkEngine(maps)

    with pytest.raises(KeyError):
        WatermarkEngine({WatermarkSize.SMALL: AlphaMap(48, 48, np.zeros((48, 48)))})


def test_placement_follows_config(assets_dir):
    engine = WatermarkEngine.from_assets(assets_dir)
    assert engine.config == EngineConfig.default()
    assert engine.get_size(800, 600) is WatermarkSize.SMALL
    assert engine.get_size(2048, 2048) is WatermarkSize.LARGE

    forced = WatermarkEngine.from_assets(
        assets_dir, EngineConfig(logo_value=255.0, size_override=WatermarkSize.LARGE)
    )
    placement = forced.get_placement(800, 600)
    assert (placement.x, placement.y, placement.width) == (640, 440, 96)


def test_apply_returns_placement(assets_dir):
    engine = WatermarkEngine.from_assets(assets_dir)
    buffer = bytearray([50] * (800 * 600 * 3))

    placement = engine.apply(buffer, 800, 600, BlendMode.ADD)

    assert (placement.x, placement.y) == (720, 520)
    pixels = np.frombuffer(bytes(buffer), dtype=np.uint8).reshape(600, 800, 3)
    assert pixels[544, 744].min() > 50
    assert (pixels[:520] == 50).all()


def test_process_image_flattens_and_keeps_source(assets_dir):
    engine = WatermarkEngine.from_assets(assets_dir)
    source = Image.new("RGBA", (200, 150), (10, 20, 30, 128))

    result = engine.process_image(source, BlendMode.ADD)

    assert result.mode == "RGB"
    assert result.size == (200, 150)
    assert source.getpixel((150, 100)) == (10, 20, 30, 128)
    assert result.getpixel((0, 0)) == (10, 20, 30)
    assert result.getpixel((144, 94)) != (10, 20, 30)


def test_process_file_round_trip(assets_dir, tmp_path):
    """Add then remove through PNG files restores the logo box."""
    print("\n" + "=" * 50)
    print("Testing Engine File Round Trip")
    print("=" * 50)

    engine = WatermarkEngine.from_assets(assets_dir)
    original = create_test_image(tmp_path / "original.png")
    marked = tmp_path / "out" / "marked.png"
    restored = tmp_path / "out" / "restored.png"

    assert engine.process_file(original, marked, BlendMode.ADD) == marked
    engine.process_file(marked, restored, BlendMode.REMOVE)

    with Image.open(original) as a, Image.open(restored) as b, Image.open(marked) as m:
        before = np.asarray(a, dtype=np.int32)
        after = np.asarray(b, dtype=np.int32)
        stamped = np.asarray(m, dtype=np.int32)

    # SMALL logo at (720, 520) on 800x600
    box = (slice(520, 568), slice(720, 768))
    marked_mae = np.abs(before - stamped)[box].mean()
    box_mae = np.abs(before - after)[box].mean()
    print(f"✅ Logo box MAE: marked {marked_mae:.3f}, restored {box_mae:.3f}")

    assert marked_mae > 5.0
    assert box_mae < 1.5
    assert np.abs(before - after).max() <= 2
    assert np.array_equal(before[:520], after[:520])


def create_tagged_image(path: Path) -> Path:
    """Image carrying EXIF, an ICC profile and 300 DPI."""
    exif = Image.Exif()
    exif[0x010F] = "NightCat"  # Make
    Image.new("RGB", (200, 150), (90, 60, 30)).save(
        path, exif=exif.tobytes(), icc_profile=b"unmark-test-profile", dpi=(300, 300)
    )
    return path


@pytest.mark.parametrize("source_name,output_name", [
    ("tagged.png", "out.png"),
    ("tagged.png", "out.jpg"),
    ("tagged.jpg", "out.jpg"),
])
def test_process_file_keeps_metadata(assets_dir, tmp_path, source_name, output_name):
    engine = WatermarkEngine.from_assets(assets_dir)
    source = create_tagged_image(tmp_path / source_name)
    output = tmp_path / output_name

    engine.process_file(source, output, BlendMode.REMOVE)

    with Image.open(output) as img:
        img.load()
        assert img.getexif().get(0x010F) == "NightCat"
        assert img.info.get("icc_profile") == b"unmark-test-profile"
        dpi = img.info.get("dpi")
        assert dpi is not None
        assert (round(dpi[0]), round(dpi[1])) == (300, 300)


def test_process_file_writes_jpeg(assets_dir, tmp_path):
    engine = WatermarkEngine.from_assets(assets_dir)
    source = create_test_image(tmp_path / "photo.png", 1200, 1100)
    output = tmp_path / "photo.jpg"

    engine.process_file(source, output, BlendMode.REMOVE)

    with Image.open(output) as img:
        assert img.format == "JPEG"
        assert img.size == (1200, 1100)


def test_process_file_missing_input(assets_dir, tmp_path):
    engine = WatermarkEngine.from_assets(assets_dir)
    with pytest.raises(FileNotFoundError):
        engine.process_file(tmp_path / "nope.png", tmp_path / "out.png", BlendMode.REMOVE)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
