"""
どこで: `src/greatclown/core/noise.py`。
何を: シード付き 2D Perlin ノイズ（オクターブ合成込み）を提供する。
なぜ: 格子の歪み・ベクトル場・にじみの輪郭を、シードだけで再現できる形で揺らすため。
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit  # type: ignore[import-untyped]

# 勾配ベクトル（8 方向）。ハッシュ下位 3bit で選ぶ。
_GRAD_X = np.array([1.0, -1.0, 1.0, -1.0, 1.0, -1.0, 0.0, 0.0], dtype=np.float64)
_GRAD_Y = np.array([1.0, 1.0, -1.0, -1.0, 0.0, 0.0, 1.0, -1.0], dtype=np.float64)


@njit(cache=True)
def _fade(t: float) -> float:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@njit(cache=True)
def _lerp(a: float, b: float, t: float) -> float:
    return a + t * (b - a)


@njit(cache=True)
def _perlin2_numba(
    xs: np.ndarray,
    ys: np.ndarray,
    perm: np.ndarray,
    grad_x: np.ndarray,
    grad_y: np.ndarray,
    octaves: int,
    falloff: float,
) -> np.ndarray:
    n = xs.shape[0]
    out = np.empty((n,), dtype=np.float64)
    for i in range(n):
        total = 0.0
        amp = 1.0
        amp_sum = 0.0
        freq = 1.0
        for _ in range(octaves):
            x = xs[i] * freq
            y = ys[i] * freq
            x0f = math.floor(x)
            y0f = math.floor(y)
            xi = int(x0f) & 255
            yi = int(y0f) & 255
            xf = x - x0f
            yf = y - y0f
            u = _fade(xf)
            v = _fade(yf)

            h00 = perm[perm[xi] + yi] & 7
            h10 = perm[perm[xi + 1] + yi] & 7
            h01 = perm[perm[xi] + yi + 1] & 7
            h11 = perm[perm[xi + 1] + yi + 1] & 7

            d00 = grad_x[h00] * xf + grad_y[h00] * yf
            d10 = grad_x[h10] * (xf - 1.0) + grad_y[h10] * yf
            d01 = grad_x[h01] * xf + grad_y[h01] * (yf - 1.0)
            d11 = grad_x[h11] * (xf - 1.0) + grad_y[h11] * (yf - 1.0)

            total += amp * _lerp(_lerp(d00, d10, u), _lerp(d01, d11, u), v)
            amp_sum += amp
            amp *= falloff
            freq *= 2.0

        if amp_sum > 0.0:
            total /= amp_sum
        # 勾配ノイズの値域 [-1,1] 付近を [0,1] へ写す。
        value = 0.5 * (total + 1.0)
        if value < 0.0:
            value = 0.0
        elif value > 1.0:
            value = 1.0
        out[i] = value
    return out


class PerlinNoise:
    """シード付き 2D Perlin ノイズ。

    Parameters
    ----------
    seed : int
        置換テーブル生成の乱数シード。
    octaves : int, default 4
        合成するオクターブ数（1 以上）。
    falloff : float, default 0.5
        オクターブごとの振幅減衰率。

    Notes
    -----
    出力は [0,1] に収まる。同じ seed / 座標に対して常に同じ値を返す。
    """

    def __init__(self, seed: int, *, octaves: int = 4, falloff: float = 0.5) -> None:
        octaves_i = int(octaves)
        if octaves_i < 1:
            raise ValueError(f"octaves は 1 以上である必要がある: got={octaves!r}")
        self.seed = int(seed)
        self.octaves = octaves_i
        self.falloff = float(falloff)

        rng = np.random.default_rng(self.seed)
        p = rng.permutation(256).astype(np.int64)
        self._perm = np.concatenate([p, p])

    def noise2(self, x, y):
        """座標 (x, y) のノイズ値を返す。

        Parameters
        ----------
        x, y : float or array_like
            サンプル座標。配列はブロードキャストされる。

        Returns
        -------
        float or np.ndarray
            [0,1] のノイズ値。入力が両方スカラーなら float。
        """
        scalar = np.ndim(x) == 0 and np.ndim(y) == 0
        xb, yb = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64)
        )
        shape = xb.shape
        flat = _perlin2_numba(
            np.ascontiguousarray(xb.reshape(-1)),
            np.ascontiguousarray(yb.reshape(-1)),
            self._perm,
            _GRAD_X,
            _GRAD_Y,
            self.octaves,
            self.falloff,
        )
        if scalar:
            return float(flat[0])
        return flat.reshape(shape)

    def __call__(self, x, y):
        return self.noise2(x, y)


__all__ = ["PerlinNoise"]
