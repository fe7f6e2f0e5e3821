"""core.brush をテスト。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from greatclown.core.brush import (
    BrushStyle,
    ConstantField,
    PerlinField,
    PressureCurve,
    RadialField,
    concat_strokes,
    empty_stroke,
    hatch_rect,
    stroke_polyline,
    synthesize_stroke,
    watercolor_bleed,
)
from greatclown.core.noise import PerlinNoise
from greatclown.core.realized_geometry import RealizedGeometry


def test_pressure_curve_is_linear_without_rng() -> None:
    curve = PressureCurve(start=0.5, end=1.0, noise=0.2)
    assert curve.sample(0.0, 100.0) == pytest.approx(0.5)
    assert curve.sample(50.0, 100.0) == pytest.approx(0.75)
    assert curve.sample(100.0, 100.0) == pytest.approx(1.0)
    assert curve.sample(50.0, 0.0) == pytest.approx(0.5)


def test_pressure_curve_noise_is_clamped() -> None:
    curve = PressureCurve(start=0.5, end=1.0, noise=5.0, min_pressure=0.1, max_pressure=1.0)
    out = curve.sample(np.linspace(0.0, 10.0, 500), 10.0, np.random.default_rng(0))
    assert out.shape == (500,)
    assert float(out.min()) >= 0.1
    assert float(out.max()) <= 1.0


def test_pressure_curve_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        PressureCurve(min_pressure=0.9, max_pressure=0.2)


def test_fields_return_one_angle_per_point() -> None:
    pts = np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
    np.testing.assert_allclose(ConstantField(0.4).angles(pts), [0.4, 0.4, 0.4])
    np.testing.assert_allclose(
        RadialField(0.0, 0.0).angles(pts), [0.0, math.pi / 2.0, math.pi]
    )
    ang = PerlinField(PerlinNoise(3), turns=1.0).angles(pts)
    assert ang.shape == (3,)
    assert np.all((ang >= 0.0) & (ang <= 2.0 * math.pi))


def test_synthesize_stroke_segment_count_and_style_scaling() -> None:
    style = BrushStyle(weight=3.0, alpha=100.0, passes=2, segment_length=10.0, vibration=0.5)
    stroke = synthesize_stroke(
        (0.0, 0.0),
        (95.0, 0.0),
        pressure=PressureCurve(),
        style=style,
        rng=np.random.default_rng(1),
    )
    assert stroke.n_segments == 2 * 10
    assert stroke.segments.shape == (20, 2, 2)
    assert stroke.segments.dtype == np.float32
    np.testing.assert_allclose(stroke.alpha, 100.0 * stroke.pressure)
    np.testing.assert_allclose(stroke.weight, 3.0 * stroke.pressure)


def test_synthesize_stroke_without_vibration_follows_the_line() -> None:
    style = BrushStyle(passes=1, vibration=0.0, segment_length=5.0)
    stroke = synthesize_stroke(
        (10.0, 20.0),
        (10.0, 70.0),
        pressure=PressureCurve(noise=0.0),
        style=style,
        rng=np.random.default_rng(0),
    )
    np.testing.assert_allclose(stroke.segments[:, :, 0], 10.0, atol=1e-5)
    assert stroke.segments[0, 0, 1] == pytest.approx(20.0)
    assert stroke.segments[-1, 1, 1] == pytest.approx(70.0)


def test_synthesize_stroke_field_bias_shifts_points() -> None:
    style = BrushStyle(passes=1, vibration=0.0, segment_length=5.0, field_bias=2.0)
    stroke = synthesize_stroke(
        (0.0, 0.0),
        (50.0, 0.0),
        pressure=PressureCurve(noise=0.0),
        style=style,
        field=ConstantField(math.pi / 2.0),
        rng=np.random.default_rng(0),
    )
    assert float(stroke.segments[:, :, 1].min()) > 0.0


def test_synthesize_stroke_same_seed_is_reproducible() -> None:
    kwargs = {"pressure": PressureCurve(), "style": BrushStyle()}
    a = synthesize_stroke((0, 0), (40, 30), rng=np.random.default_rng(9), **kwargs)
    b = synthesize_stroke((0, 0), (40, 30), rng=np.random.default_rng(9), **kwargs)
    np.testing.assert_array_equal(a.segments, b.segments)
    np.testing.assert_array_equal(a.alpha, b.alpha)


def test_zero_length_stroke_is_empty() -> None:
    stroke = synthesize_stroke(
        (5.0, 5.0),
        (5.0, 5.0),
        pressure=PressureCurve(),
        style=BrushStyle(),
        rng=np.random.default_rng(0),
    )
    assert stroke.n_segments == 0
    coords, offsets = stroke.to_geom()
    assert coords.shape == (0, 2)
    assert offsets.tolist() == [0]


def test_stroke_to_layer_has_one_line_per_segment() -> None:
    stroke = synthesize_stroke(
        (0.0, 0.0),
        (30.0, 0.0),
        pressure=PressureCurve(),
        style=BrushStyle(passes=1, segment_length=10.0),
        rng=np.random.default_rng(2),
    )
    lay = stroke.to_layer((0, 0, 0), name="brush")
    assert isinstance(lay.geometry, RealizedGeometry)
    assert lay.geometry.n_lines == stroke.n_segments
    np.testing.assert_allclose(lay.thickness, stroke.weight)


def test_stroke_polyline_closed_adds_closing_edge() -> None:
    square = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])
    style = BrushStyle(passes=1, segment_length=10.0, vibration=0.0)
    pressure = PressureCurve(noise=0.0)
    open_ = stroke_polyline(square, pressure=pressure, style=style, rng=np.random.default_rng(0))
    closed = stroke_polyline(
        square, closed=True, pressure=pressure, style=style, rng=np.random.default_rng(0)
    )
    assert open_.n_segments == 3
    assert closed.n_segments == 4


def test_concat_strokes_skips_empty() -> None:
    assert concat_strokes([]).n_segments == 0
    assert concat_strokes([empty_stroke(), empty_stroke()]).n_segments == 0


def test_watercolor_bleed_returns_closed_layers() -> None:
    square = np.array([[0.0, 0.0], [40.0, 0.0], [40.0, 40.0], [0.0, 40.0], [0.0, 0.0]])
    coords, offsets = watercolor_bleed(
        square, rng=np.random.default_rng(0), noise=PerlinNoise(0), layers=5, spread=4.0
    )
    assert offsets.size - 1 == 5
    for i in range(5):
        poly = coords[offsets[i] : offsets[i + 1]]
        np.testing.assert_allclose(poly[0], poly[-1])


def test_watercolor_bleed_degenerate_polygon_is_empty() -> None:
    coords, offsets = watercolor_bleed(
        np.array([[0.0, 0.0], [1.0, 1.0]]), rng=np.random.default_rng(0)
    )
    assert coords.shape == (0, 2)
    assert offsets.tolist() == [0]


def test_hatch_rect_lines_stay_inside_rect() -> None:
    coords, offsets = hatch_rect(10.0, 20.0, 60.0, 40.0, angle=30.0, spacing=5.0)
    assert offsets.size > 1
    assert float(coords[:, 0].min()) >= 10.0 - 1e-4
    assert float(coords[:, 0].max()) <= 70.0 + 1e-4
    assert float(coords[:, 1].min()) >= 20.0 - 1e-4
    assert float(coords[:, 1].max()) <= 60.0 + 1e-4


def test_hatch_rect_non_positive_spacing_is_empty() -> None:
    _coords, offsets = hatch_rect(0.0, 0.0, 10.0, 10.0, spacing=0.0)
    assert offsets.tolist() == [0]
