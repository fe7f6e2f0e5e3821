"""core.noise をテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from greatclown.core.noise import PerlinNoise


def test_noise2_values_are_in_unit_range() -> None:
    noise = PerlinNoise(7)
    xs, ys = np.meshgrid(np.linspace(-20.0, 20.0, 64), np.linspace(-5.0, 35.0, 48))
    values = noise.noise2(xs, ys)
    assert values.shape == xs.shape
    assert float(values.min()) >= 0.0
    assert float(values.max()) <= 1.0
    # 定数にならないこと
    assert float(values.std()) > 0.01


def test_noise2_is_deterministic_per_seed() -> None:
    xs = np.linspace(0.0, 10.0, 100)
    a = PerlinNoise(123).noise2(xs, xs * 0.5)
    b = PerlinNoise(123).noise2(xs, xs * 0.5)
    c = PerlinNoise(124).noise2(xs, xs * 0.5)
    np.testing.assert_array_equal(a, b)
    assert not np.allclose(a, c)


def test_noise2_scalar_input_returns_float() -> None:
    noise = PerlinNoise(0)
    value = noise.noise2(0.3, 0.7)
    assert isinstance(value, float)
    assert value == noise(0.3, 0.7)


def test_noise2_broadcasts_scalar_and_array() -> None:
    out = PerlinNoise(1).noise2(np.arange(5, dtype=np.float64), 2.5)
    assert out.shape == (5,)


def test_noise2_is_continuous() -> None:
    noise = PerlinNoise(5, octaves=1)
    x = np.linspace(3.0, 3.01, 11)
    values = noise.noise2(x, np.full_like(x, 1.3))
    assert float(np.max(np.abs(np.diff(values)))) < 0.01


def test_invalid_octaves_raise() -> None:
    with pytest.raises(ValueError):
        PerlinNoise(0, octaves=0)
