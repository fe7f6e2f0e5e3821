"""core.motifs をテスト。"""

from __future__ import annotations

import numpy as np

from greatclown.core.compression import FocalPoint
from greatclown.core.grid import build_grid
from greatclown.core.motifs import (
    background_layers,
    circle_motif_layers,
    clown_figure_layers,
    compression_tint_layer,
    ellipse_points,
    focal_marker_layers,
    paper_texture_layers,
    wash_layers,
)


def test_ellipse_points_is_closed() -> None:
    pts = ellipse_points(10.0, 20.0, 5.0, 3.0, segments=16)
    assert pts.shape == (17, 2)
    np.testing.assert_array_equal(pts[0], pts[-1])
    np.testing.assert_allclose(pts[0], [15.0, 20.0])


def test_background_layers_are_filled_pulp() -> None:
    layers = background_layers(200.0, 100.0, np.random.default_rng(0), count=50)
    assert [lay.name for lay in layers] == ["background:pulp"]
    assert layers[0].fill
    assert layers[0].geometry.n_lines == 50
    assert background_layers(200.0, 100.0, np.random.default_rng(0), count=0) == []


def test_paper_texture_layers_are_multiply() -> None:
    layers = paper_texture_layers(
        100.0,
        80.0,
        np.random.default_rng(1),
        opacity=0.5,
        grain_density=0.01,
        pulp_count=20,
        deckle_count=4,
    )
    names = [lay.name for lay in layers]
    assert all(lay.blend == "multiply" for lay in layers)
    assert any(n.startswith("texture:grain") for n in names)
    assert names[-2:] == ["texture:pulp", "texture:deckle"]

    grain_total = sum(
        lay.geometry.n_lines for lay in layers if lay.name.startswith("texture:grain")
    )
    assert grain_total == int(100.0 * 80.0 * 0.01)

    deckle = layers[-1]
    assert deckle.geometry.n_lines == 4
    assert not deckle.fill
    np.testing.assert_allclose(deckle.alpha, 10.0)


def test_paper_texture_layers_zero_opacity_is_empty() -> None:
    assert paper_texture_layers(100.0, 80.0, np.random.default_rng(1), opacity=0.0) == []


def test_wash_layers_order_and_vignette_alpha() -> None:
    layers = wash_layers(300.0, 600.0, wash_opacity=26.0)
    assert [lay.name for lay in layers] == ["wash:glaze", "wash:vignette", "wash:lavender"]
    assert layers[0].color == (255, 255, 200)
    np.testing.assert_allclose(layers[0].alpha, [26.0])
    np.testing.assert_allclose(layers[1].alpha, np.linspace(10.0, 30.0, 6))
    lavender = layers[2].geometry.coords
    assert float(lavender[:, 1].max()) == np.float32(600.0 * 0.42)


def test_circle_motif_layers_probability_bounds() -> None:
    pts = np.array([[10.0, 10.0], [50.0, 50.0], [90.0, 90.0]])
    assert circle_motif_layers(pts, np.random.default_rng(0), probability=0.0) == []

    layers = circle_motif_layers(pts, np.random.default_rng(0), probability=1.0)
    assert [lay.name for lay in layers] == ["circles:ring", "circles:core", "circles:highlight"]
    assert all(lay.geometry.n_lines == 3 for lay in layers)
    assert all(lay.fill for lay in layers)
    np.testing.assert_allclose(layers[2].alpha, 50.0)


def test_circle_motif_sizes_follow_size_range() -> None:
    pts = np.zeros((20, 2))
    rings = circle_motif_layers(
        pts, np.random.default_rng(3), probability=1.0, size_range=(20.0, 30.0)
    )[0]
    for line in rings.geometry.polylines():
        diameter = float(line[:, 0].max() - line[:, 0].min())
        assert 0.9 * 20.0 <= diameter <= 0.98 * 30.0 + 1e-3


def test_clown_figure_layers_stay_in_left_half() -> None:
    layers = clown_figure_layers(800.0, 1200.0, np.random.default_rng(0))
    assert [lay.name for lay in layers] == [
        "clown:body",
        "clown:face",
        "clown:shine",
        "clown:legs",
        "clown:crossbar",
    ]
    legs = layers[3]
    assert legs.geometry.n_lines == 5
    for lay in layers:
        assert float(lay.geometry.coords[:, 0].max()) <= 400.0 + 1e-3


def test_compression_tint_layer_is_strongest_near_focal() -> None:
    grid = build_grid(5, 5, 500.0, 500.0)
    focal = FocalPoint(x=250.0, y=250.0, strength=1.0, radius=200.0)
    tint = compression_tint_layer(grid, focal)
    assert tint is not None
    assert tint.name == "debug:compression"
    assert tint.geometry.n_lines == 25
    assert int(np.argmax(tint.alpha)) == 12
    assert float(tint.alpha.max()) <= 255.0 * 0.2
    # 四隅のセルは半径外
    assert float(tint.alpha[0]) == 0.0


def test_compression_tint_layer_none_without_strength() -> None:
    grid = build_grid(2, 2, 100.0, 100.0)
    focal = FocalPoint(x=50.0, y=50.0, strength=0.0, radius=40.0)
    assert compression_tint_layer(grid, focal) is None
    assert focal_marker_layers(focal) == []


def test_focal_marker_layers_names() -> None:
    focal = FocalPoint(x=50.0, y=60.0, strength=0.8, radius=40.0)
    layers = focal_marker_layers(focal)
    assert [lay.name for lay in layers] == ["debug:radius", "debug:core", "debug:center"]
    radius = layers[0].geometry.coords
    assert float(radius[:, 0].max()) == np.float32(90.0)


def test_paper_texture_deckle_skips_rects_smaller_than_border() -> None:
    layers = paper_texture_layers(
        5.0, 5.0, np.random.default_rng(3), grain_density=0.0, pulp_count=0, deckle_count=30
    )
    for lay in layers:
        assert lay.thickness.size == lay.geometry.n_lines
        assert lay.alpha.size == lay.geometry.n_lines

    # 一部だけ縁に収まる寸法でも本数と太さが揃う
    layers = paper_texture_layers(
        6.0, 6.0, np.random.default_rng(4), grain_density=0.0, pulp_count=0, deckle_count=30
    )
    deckle = [lay for lay in layers if lay.name == "texture:deckle"]
    for lay in deckle:
        assert 0 < lay.geometry.n_lines <= 30
        assert lay.thickness.size == lay.geometry.n_lines
        assert np.all((lay.thickness >= 0.2) & (lay.thickness <= 0.6))
