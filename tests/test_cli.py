"""
Test script for the command line tool.

Run with: python -m pytest tests/test_cli.py -v
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest
from PIL import Image

from unmark.cli import build_parser, collect_images, main
from unmark.core.engine import clear_alpha_map_cache

from test_engine import create_assets, create_test_image


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_alpha_map_cache()
    yield
    clear_alpha_map_cache()


@pytest.fixture
def assets_dir(tmp_path):
    return create_assets(tmp_path / "assets")


def test_parser_rejects_conflicting_flags():
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["-i", "a.png", "-o", "b.png", "--remove", "--add"])
    with pytest.raises(SystemExit):
        parser.parse_args(["-i", "a.png", "-o", "b.png", "--force-small", "--force-large"])
    with pytest.raises(SystemExit):
        parser.parse_args(["-i", "a.png"])


def test_parser_defaults():
    args = build_parser().parse_args(["-i", "a.png", "-o", "b.png"])
    assert not args.add
    assert args.logo_value == 255.0
    assert args.assets is None


def test_single_file(assets_dir, tmp_path, capsys):
    source = create_test_image(tmp_path / "in.png", 640, 480)
    output = tmp_path / "out" / "in_clean.png"

    code = main(["-i", str(source), "-o", str(output), "--assets", str(assets_dir)])

    assert code == 0
    assert output.exists()
    out = capsys.readouterr().out
    assert "Processing: in.png" in out
    assert "[OK] Success:" in out


def test_single_file_add_changes_logo_region(assets_dir, tmp_path):
    source = tmp_path / "flat.png"
    Image.new("RGB", (640, 480), (40, 40, 40)).save(source)
    output = tmp_path / "flat_marked.png"

    assert main(["-i", str(source), "-o", str(output), "-a", "--assets", str(assets_dir)]) == 0

    with Image.open(output) as img:
        pixels = np.asarray(img)
    # SMALL logo at (560, 400); its center brightened, top-left untouched
    assert pixels[424, 584].min() > 40
    assert (pixels[:400] == 40).all()


def test_batch_counts_and_exit_status(assets_dir, tmp_path, capsys):
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    create_test_image(inbox / "b.png", 300, 200, seed=1)
    create_test_image(inbox / "a.jpg", 300, 200, seed=2)
    (inbox / "broken.webp").write_bytes(b"not an image")
    (inbox / "notes.txt").write_text("skip me")

    assert [p.name for p in collect_images(inbox)] == ["a.jpg", "b.png", "broken.webp"]

    outbox = tmp_path / "outbox"
    code = main(["-i", str(inbox), "-o", str(outbox), "--assets", str(assets_dir)])

    captured = capsys.readouterr()
    assert code == 1
    assert "Processing: a.jpg... OK" in captured.out
    assert "Processing: broken.webp... FAILED" in captured.out
    assert "Completed: 2 succeeded, 1 failed." in captured.out
    assert sorted(p.name for p in outbox.iterdir()) == ["a.jpg", "b.png"]


def test_batch_all_ok(assets_dir, tmp_path, capsys):
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    create_test_image(inbox / "one.png", 120, 90)

    code = main(["-i", str(inbox), "-o", str(tmp_path / "outbox"), "--assets", str(assets_dir)])

    assert code == 0
    assert "Completed: 1 succeeded, 0 failed." in capsys.readouterr().out


def test_missing_input(assets_dir, tmp_path, capsys):
    code = main(["-i", str(tmp_path / "missing.png"), "-o", str(tmp_path / "x.png"),
                 "--assets", str(assets_dir)])
    assert code == 1
    assert "Input path not found" in capsys.readouterr().err


def test_missing_assets(tmp_path, capsys):
    source = create_test_image(tmp_path / "in.png", 100, 100)
    code = main(["-i", str(source), "-o", str(tmp_path / "out.png"),
                 "--assets", str(tmp_path / "empty")])
    assert code == 1
    assert "Fatal error" in capsys.readouterr().err


def test_unreadable_single_file(assets_dir, tmp_path, capsys):
    source = tmp_path / "fake.png"
    source.write_bytes(b"garbage")
    code = main(["-i", str(source), "-o", str(tmp_path / "out.png"), "--assets", str(assets_dir)])
    assert code == 1
    assert "Error:" in capsys.readouterr().err


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
