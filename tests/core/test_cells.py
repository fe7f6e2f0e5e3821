"""core.cells をテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from greatclown.core.cells import (
    cell_centers,
    cell_outlines,
    gut_lines,
    jittered_outline_layers,
    rounded_rect,
    rounded_rect_points,
)
from greatclown.core.grid import build_grid


@pytest.mark.parametrize("corner", ["round", "bezier"])
def test_rounded_rect_points_is_closed_and_inside_bbox(corner: str) -> None:
    pts = rounded_rect_points(10.0, 20.0, 80.0, 40.0, 12.0, corner=corner, samples=5)
    np.testing.assert_allclose(pts[0], pts[-1])
    assert float(pts[:, 0].min()) >= 10.0 - 1e-9
    assert float(pts[:, 0].max()) <= 90.0 + 1e-9
    assert float(pts[:, 1].min()) >= 20.0 - 1e-9
    assert float(pts[:, 1].max()) <= 60.0 + 1e-9
    # 角は切り落とされる
    assert not np.any(np.all(np.isclose(pts, [10.0, 20.0]), axis=1))


def test_rounded_rect_points_zero_radius_is_plain_rect() -> None:
    pts = rounded_rect_points(0.0, 0.0, 10.0, 5.0, 0.0)
    assert pts.shape == (5, 2)
    np.testing.assert_allclose(pts[0], pts[-1])


def test_rounded_rect_points_radius_is_clamped_to_half_side() -> None:
    pts = rounded_rect_points(0.0, 0.0, 20.0, 10.0, 100.0)
    # r=5 に丸められるので上辺の始点は x=5
    np.testing.assert_allclose(pts[0], [5.0, 0.0])


def test_rounded_rect_points_degenerate_and_invalid() -> None:
    assert rounded_rect_points(0.0, 0.0, 0.0, 10.0, 2.0).shape == (0, 2)
    assert rounded_rect_points(0.0, 0.0, 10.0, -1.0, 2.0).shape == (0, 2)
    with pytest.raises(ValueError):
        rounded_rect_points(0.0, 0.0, 10.0, 10.0, 2.0, corner="chamfer")


def test_rounded_rect_returns_single_polyline() -> None:
    _coords, offsets = rounded_rect(0.0, 0.0, 10.0, 10.0, 2.0)
    assert offsets.size == 2
    _coords, offsets = rounded_rect(0.0, 0.0, 0.0, 10.0, 2.0)
    assert offsets.tolist() == [0]


def test_cell_outlines_one_per_cell_with_gutter() -> None:
    grid = build_grid(4, 3, 400.0, 300.0)
    coords, offsets = cell_outlines(grid, gutter=10.0, corner_frac=0.2)
    assert offsets.size - 1 == 12
    # 最初のセルは 5px 内側に縮む
    first = coords[offsets[0] : offsets[1]]
    assert float(first[:, 0].min()) == pytest.approx(5.0)
    assert float(first[:, 0].max()) == pytest.approx(95.0)


def test_cell_outlines_skips_cells_swallowed_by_gutter() -> None:
    grid = build_grid(2, 2, 20.0, 20.0)
    _coords, offsets = cell_outlines(grid, gutter=12.0)
    assert offsets.tolist() == [0]


def test_gut_lines_span_canvas() -> None:
    grid = build_grid(4, 3, 400.0, 300.0)
    coords, offsets = gut_lines(grid)
    assert offsets.size - 1 == 3 + 2
    first = coords[offsets[0] : offsets[1]]
    np.testing.assert_allclose(first, [[100.0, 0.0], [100.0, 300.0]])


def test_cell_centers_row_major() -> None:
    grid = build_grid(2, 2, 100.0, 50.0)
    centers = cell_centers(grid)
    np.testing.assert_allclose(centers, [[25.0, 12.5], [75.0, 12.5], [25.0, 37.5], [75.0, 37.5]])
    assert cell_centers(build_grid(0, 0, 10.0, 10.0)).shape == (0, 2)


def test_jittered_outline_layers_passes_and_alpha() -> None:
    grid = build_grid(3, 3, 300.0, 300.0)
    geom = cell_outlines(grid)
    colors = [(10, 10, 10), (200, 0, 0)]
    layers = jittered_outline_layers(geom, colors=colors, rng=np.random.default_rng(4))

    total = sum(lay.geometry.n_lines for lay in layers)
    assert 2 * 9 <= total <= 3 * 9
    for lay in layers:
        assert lay.name.startswith("cells:")
        assert lay.color in colors
        assert float(lay.alpha.min()) >= 40.0
        assert float(lay.alpha.max()) <= 80.0
        assert float(lay.thickness.min()) >= 1.6 - 1e-9
        assert float(lay.thickness.max()) <= 2.4 + 1e-9


def test_jittered_outline_layers_requires_colors() -> None:
    grid = build_grid(1, 1, 10.0, 10.0)
    with pytest.raises(ValueError):
        jittered_outline_layers(cell_outlines(grid), colors=[], rng=np.random.default_rng(0))
