"""PNG export（`greatclown.export.image`）のテスト。"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from greatclown.core.artwork import regenerate
from greatclown.core.realized_geometry import empty_geom, geom_from_polylines
from greatclown.core.runtime_config import runtime_config, set_config_path, with_overrides
from greatclown.core.scene import layer
from greatclown.export.image import export_artwork, export_image, render_image


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    set_config_path(None)
    yield
    set_config_path(None)


def _square(x0: float, y0: float, x1: float, y1: float) -> np.ndarray:
    return np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]], dtype=np.float64)


def _hline(y: float) -> np.ndarray:
    return np.array([[10.0, y], [90.0, y]], dtype=np.float64)


def test_render_image_fill_and_background() -> None:
    red = layer(
        geom_from_polylines([_square(20.0, 20.0, 80.0, 80.0)]),
        (255, 0, 0),
        thickness=0.0,
        fill=True,
    )
    img = render_image([red], (100, 100), background=(10, 20, 30))
    assert img.mode == "RGB"
    assert img.size == (100, 100)
    assert img.getpixel((50, 50)) == (255, 0, 0)
    assert img.getpixel((5, 5)) == (10, 20, 30)


def test_render_image_translucent_fill_blends_with_background() -> None:
    half = layer(
        geom_from_polylines([_square(0.0, 0.0, 100.0, 100.0)]),
        (0, 0, 0),
        alpha=128.0,
        thickness=0.0,
        fill=True,
    )
    r, g, b = render_image([half], (100, 100)).getpixel((50, 50))
    assert 120 <= r <= 135
    assert r == g == b


def test_render_image_multiply_darkens_only_where_drawn() -> None:
    ink = layer(
        geom_from_polylines([_square(0.0, 0.0, 50.0, 100.0)]),
        (0, 0, 0),
        thickness=0.0,
        fill=True,
        blend="multiply",
    )
    img = render_image([ink], (100, 100), background=(200, 180, 160))
    assert img.getpixel((25, 50)) == (0, 0, 0)
    assert img.getpixel((75, 50)) == (200, 180, 160)


def test_render_image_draws_lines() -> None:
    thick = layer(geom_from_polylines([_hline(50.0)]), (0, 0, 255), thickness=4.0)
    img = render_image([thick], (100, 100))
    assert img.getpixel((50, 50)) == (0, 0, 255)
    assert img.getpixel((50, 10)) == (255, 255, 255)


def test_render_image_sub_pixel_width_lowers_alpha() -> None:
    thin = layer(geom_from_polylines([_hline(50.0)]), (0, 0, 0), thickness=0.5)
    r, _g, _b = render_image([thin], (100, 100)).getpixel((50, 50))
    assert 100 <= r <= 160


def test_render_image_scale_changes_size() -> None:
    img = render_image([layer(empty_geom(), (0, 0, 0))], (100, 50), scale=2.0)
    assert img.size == (200, 100)


def test_render_image_validation() -> None:
    with pytest.raises(ValueError):
        render_image([], (100, 100), scale=0.0)
    with pytest.raises(ValueError):
        render_image([], (0, 100))


def test_export_image_creates_parent_dirs(tmp_path: Path) -> None:
    out = tmp_path / "a" / "b" / "out.png"
    ink = layer(geom_from_polylines([_hline(20.0)]), (0, 0, 0), thickness=2.0)
    saved = export_image([ink], out, canvas_size=(100, 40))
    assert saved == out
    with Image.open(saved) as img:
        assert img.format == "PNG"
        assert img.size == (100, 40)


def test_export_artwork_default_path() -> None:
    cfg = with_overrides(
        runtime_config(),
        canvas={"width": 120, "height": 180},
        texture={"grain_density": 0.0005, "pulp_count": 10, "deckle_count": 2},
    )
    art = regenerate(cfg, 99)
    saved = export_artwork(art, run_id="t")
    assert saved == Path("data/output/png/the_great_clown_compressed_grid_99_120x180_t.png")
    assert saved.is_file()
    with Image.open(saved) as img:
        assert img.size == (120, 180)
