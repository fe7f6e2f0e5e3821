"""core.realized_geometry をテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from greatclown.core.realized_geometry import (
    RealizedGeometry,
    concat_geom_tuples,
    concat_realized_geometries,
    empty_geom,
    geom_from_polylines,
    realized_geometry_from_tuple,
)


def test_realized_geometry_freezes_arrays_and_casts_dtypes() -> None:
    g = RealizedGeometry(
        coords=np.array([[0.0, 0.0], [1.0, 2.0]], dtype=np.float64),
        offsets=np.array([0, 2], dtype=np.int64),
    )
    assert g.coords.dtype == np.float32
    assert g.offsets.dtype == np.int32
    assert not g.coords.flags.writeable
    assert not g.offsets.flags.writeable
    assert g.n_lines == 1


@pytest.mark.parametrize(
    ("coords", "offsets"),
    [
        (np.zeros((2, 3)), np.array([0, 2])),
        (np.zeros((2, 2)), np.array([1, 2])),
        (np.zeros((2, 2)), np.array([0, 3])),
        (np.zeros((3, 2)), np.array([0, 2, 1, 3])),
        (np.zeros((0, 2)), np.array([], dtype=np.int32)),
    ],
)
def test_realized_geometry_rejects_malformed_inputs(
    coords: np.ndarray, offsets: np.ndarray
) -> None:
    with pytest.raises(ValueError):
        RealizedGeometry(coords=coords, offsets=offsets)


def test_realized_geometry_from_tuple_requires_pair() -> None:
    with pytest.raises(TypeError):
        realized_geometry_from_tuple([np.zeros((0, 2)), np.zeros((1,))], context="test")


def test_realized_geometry_from_tuple_wraps_validation_error_with_context() -> None:
    with pytest.raises(ValueError, match="cells"):
        realized_geometry_from_tuple(
            (np.zeros((2, 2)), np.array([0, 5])), context="cells"
        )


def test_geom_from_polylines_drops_empty_entries() -> None:
    coords, offsets = geom_from_polylines(
        [np.array([[0.0, 0.0], [1.0, 1.0]]), np.zeros((0, 2)), np.array([[5.0, 5.0]])]
    )
    assert coords.shape == (3, 2)
    assert offsets.tolist() == [0, 2, 3]


def test_empty_geom_has_zero_lines() -> None:
    coords, offsets = empty_geom()
    assert coords.shape == (0, 2)
    assert offsets.tolist() == [0]
    assert RealizedGeometry(coords=coords, offsets=offsets).n_lines == 0


def test_concat_geom_tuples_shifts_offsets() -> None:
    a = geom_from_polylines([np.array([[0.0, 0.0], [1.0, 0.0]])])
    b = geom_from_polylines([np.array([[2.0, 0.0], [3.0, 0.0], [4.0, 0.0]])])
    coords, offsets = concat_geom_tuples(a, empty_geom(), b)
    assert coords.shape == (5, 2)
    assert offsets.tolist() == [0, 2, 5]


def test_concat_realized_geometries_polylines_round_trip() -> None:
    a = RealizedGeometry(*geom_from_polylines([np.array([[0.0, 0.0], [1.0, 0.0]])]))
    b = RealizedGeometry(*geom_from_polylines([np.array([[2.0, 2.0], [3.0, 3.0]])]))
    out = concat_realized_geometries(a, b)
    lines = out.polylines()
    assert len(lines) == 2
    np.testing.assert_allclose(lines[1], [[2.0, 2.0], [3.0, 3.0]])
