"""core.scene をテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from greatclown.core.realized_geometry import RealizedGeometry, empty_geom, geom_from_polylines
from greatclown.core.scene import Layer, layer


def _two_lines() -> tuple[np.ndarray, np.ndarray]:
    return geom_from_polylines(
        [np.array([[0.0, 0.0], [10.0, 0.0]]), np.array([[0.0, 5.0], [10.0, 5.0]])]
    )


def test_layer_converts_tuple_and_broadcasts_style() -> None:
    lay = Layer(
        geometry=_two_lines(),  # type: ignore[arg-type]
        color=(10, 20, 30),
        alpha=128.0,
        thickness=2.5,
    )
    assert isinstance(lay.geometry, RealizedGeometry)
    assert lay.geometry.n_lines == 2
    np.testing.assert_array_equal(lay.alpha, [128.0, 128.0])
    np.testing.assert_array_equal(lay.thickness, [2.5, 2.5])
    assert not lay.alpha.flags.writeable
    assert not lay.thickness.flags.writeable


def test_layer_clamps_color_and_alpha() -> None:
    lay = layer(_two_lines(), (300, -5, 12.6), alpha=np.array([-1.0, 400.0]), thickness=-2.0)
    assert lay.color == (255, 0, 13)
    np.testing.assert_array_equal(lay.alpha, [0.0, 255.0])
    np.testing.assert_array_equal(lay.thickness, [0.0, 0.0])


def test_layer_rejects_per_line_length_mismatch() -> None:
    with pytest.raises(ValueError, match="alpha"):
        layer(_two_lines(), (0, 0, 0), alpha=np.array([1.0, 2.0, 3.0]))
    with pytest.raises(ValueError, match="thickness"):
        layer(_two_lines(), (0, 0, 0), thickness=np.array([1.0]))


def test_layer_rejects_unknown_blend_and_bad_color() -> None:
    with pytest.raises(ValueError):
        layer(_two_lines(), (0, 0, 0), blend="screen")
    with pytest.raises(ValueError):
        layer(_two_lines(), (0, 0))  # type: ignore[arg-type]


def test_empty_layer_is_empty() -> None:
    lay = layer(empty_geom(), (0, 0, 0), name="nothing")
    assert lay.is_empty
    assert lay.alpha.shape == (0,)
