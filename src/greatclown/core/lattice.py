"""
どこで: `src/greatclown/core/lattice.py`。
何を: 左半分の点格子をノイズで歪め、格子線・網目（webbing）・左右反転を生成する。
なぜ: 縦の対称軸をもつ肖像的な構図（mirrored_lattice バリアント）の骨組みを作るため。
"""

from __future__ import annotations

import numpy as np

from greatclown.core.noise import PerlinNoise
from greatclown.core.realized_geometry import GeomTuple, empty_geom, geom_from_polylines


def build_lattice(cols: int, rows: int, width: float, height: float) -> np.ndarray:
    """キャンバス左半分を覆う点格子を返す。

    Returns
    -------
    np.ndarray
        shape (cols+1, rows+1, 2)。`[i, j]` は列 i / 行 j の点。
        cols/rows が 0 以下なら shape (0, 0, 2)。
    """
    c = int(cols)
    r = int(rows)
    if c <= 0 or r <= 0:
        return np.zeros((0, 0, 2), dtype=np.float64)
    xs = np.linspace(0.0, 0.5 * float(width), c + 1)
    ys = np.linspace(0.0, float(height), r + 1)
    gx, gy = np.meshgrid(xs, ys, indexing="ij")
    return np.stack([gx, gy], axis=2)


def distort_lattice(
    points: np.ndarray,
    noise: PerlinNoise,
    *,
    noise_scale: float = 0.015,
    strength: float = 34.0,
) -> np.ndarray:
    """各点を 2 つの独立したノイズサンプルで x/y 方向にずらす。

    変位は `(n - 0.5) * 2 * strength` で、±strength に収まる。
    """
    p = np.asarray(points, dtype=np.float64)
    if p.size == 0:
        return p.copy()
    s = float(noise_scale)
    x = p[..., 0]
    y = p[..., 1]
    n1 = np.asarray(noise.noise2(x * s, y * s), dtype=np.float64)
    n2 = np.asarray(noise.noise2((y + 1000.0) * s, (x - 1000.0) * s), dtype=np.float64)
    out = p.copy()
    out[..., 0] = x + (n1 - 0.5) * 2.0 * float(strength)
    out[..., 1] = y + (n2 - 0.5) * 2.0 * float(strength)
    return out


def lattice_lines(points: np.ndarray) -> GeomTuple:
    """格子の列（縦）と行（横）をポリラインとして返す。"""
    p = np.asarray(points, dtype=np.float64)
    if p.ndim != 3 or p.shape[0] < 1 or p.shape[1] < 1:
        return empty_geom()
    polylines = [p[i, :, :] for i in range(p.shape[0])]
    polylines += [p[:, j, :] for j in range(p.shape[1])]
    return geom_from_polylines([pl for pl in polylines if pl.shape[0] >= 2])


def _bezier_points(
    p0: np.ndarray, c1: np.ndarray, c2: np.ndarray, p1: np.ndarray, samples: int
) -> np.ndarray:
    t = np.linspace(0.0, 1.0, samples + 1)[:, None]
    u = 1.0 - t
    return u**3 * p0 + 3.0 * u**2 * t * c1 + 3.0 * u * t**2 * c2 + t**3 * p1


def webbing(
    points: np.ndarray,
    noise: PerlinNoise,
    *,
    bulge: float = 20.0,
    diagonal_threshold: float = 0.55,
    samples: int = 8,
) -> tuple[GeomTuple, GeomTuple]:
    """隣接点を結ぶ柔らかなベジェの網目と、まばらな対角線を返す。

    Returns
    -------
    tuple[GeomTuple, GeomTuple]
        (strands, diagonals)。diagonals はノイズ値が閾値を超えたセルだけ。
    """
    p = np.asarray(points, dtype=np.float64)
    if p.ndim != 3 or p.shape[0] < 2 or p.shape[1] < 2:
        return empty_geom(), empty_geom()

    strands: list[np.ndarray] = []
    diagonals: list[np.ndarray] = []
    for i in range(p.shape[0] - 1):
        for j in range(p.shape[1] - 1):
            p00 = p[i, j]
            p10 = p[i + 1, j]
            p01 = p[i, j + 1]
            p11 = p[i + 1, j + 1]

            mid_hx = 0.5 * (p00[0] + p10[0])
            bh = (noise.noise2(mid_hx * 0.03, p00[1] * 0.03) - 0.5) * float(bulge)
            strands.append(
                _bezier_points(
                    p00,
                    np.array([mid_hx, p00[1] + bh]),
                    np.array([mid_hx, p10[1] - bh]),
                    p10,
                    samples,
                )
            )

            mid_vy = 0.5 * (p00[1] + p01[1])
            bv = (noise.noise2(p00[0] * 0.03, mid_vy * 0.03) - 0.5) * float(bulge)
            strands.append(
                _bezier_points(
                    p00,
                    np.array([p00[0] + bv, mid_vy]),
                    np.array([p01[0] - bv, mid_vy]),
                    p01,
                    samples,
                )
            )

            n = noise.noise2((p00[0] + p11[0]) * 0.01, (p00[1] + p11[1]) * 0.01)
            if n > float(diagonal_threshold):
                diagonals.append(np.stack([p00, p11], axis=0))

    return geom_from_polylines(strands), geom_from_polylines(diagonals)


def mirror_geometry(
    geometry: GeomTuple,
    width: float,
    *,
    jitter: float = 0.0,
    rng: np.random.Generator | None = None,
) -> GeomTuple:
    """縦の中心線で左右反転したコピーを返す（版ずれ風の平行移動付き）。

    `x' = width - x + dx`, `y' = y + dy`。dx/dy は ±jitter の一様乱数（rng があるとき）。
    """
    coords, offsets = geometry
    c = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    dx = dy = 0.0
    if rng is not None and float(jitter) > 0.0:
        dx, dy = (float(v) for v in rng.uniform(-float(jitter), float(jitter), size=2))
    out = np.empty_like(c)
    out[:, 0] = float(width) - c[:, 0] + dx
    out[:, 1] = c[:, 1] + dy
    return out.astype(np.float32), np.asarray(offsets, dtype=np.int32).copy()


__all__ = [
    "build_lattice",
    "distort_lattice",
    "lattice_lines",
    "mirror_geometry",
    "webbing",
]
