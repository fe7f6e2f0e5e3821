"""
どこで: `src/greatclown/core/cells.py`。
何を: 格子の各セルを角丸矩形（ベジェ角）の閉ポリラインとして生成し、手描き風の重ね線を作る。
なぜ: 圧縮後の不均一な格子を「セルの集まり」として読ませる主要な描画要素のため。
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from greatclown.core.grid import Grid
from greatclown.core.realized_geometry import GeomTuple, empty_geom, geom_from_polylines
from greatclown.core.scene import RGB, Layer, layer

# 4 分円を 3 次ベジェで近似する制御点係数。
KAPPA = 0.5523

CORNER_STYLES: tuple[str, ...] = ("round", "bezier")


def _cubic(
    p0: np.ndarray, c1: np.ndarray, c2: np.ndarray, p1: np.ndarray, samples: int
) -> np.ndarray:
    # 始点を除く samples 点
    t = np.arange(1, samples + 1, dtype=np.float64)[:, None] / float(samples)
    u = 1.0 - t
    return (
        (u**3) * p0[None, :]
        + 3.0 * (u**2) * t * c1[None, :]
        + 3.0 * u * (t**2) * c2[None, :]
        + (t**3) * p1[None, :]
    )


def rounded_rect_points(
    x: float,
    y: float,
    w: float,
    h: float,
    r: float,
    *,
    corner: str = "round",
    samples: int = 6,
) -> np.ndarray:
    """角丸矩形の閉じた頂点列（先頭 = 末尾）を返す。

    Parameters
    ----------
    x, y, w, h : float
        矩形（左上 + 寸法）。w/h が 0 以下なら空配列。
    r : float
        角の半径。`min(w,h)/2` にクランプする。
    corner : {"round","bezier"}, default "round"
        "round" は 4 分円近似、"bezier" は制御点を角の頂点に置いた鋭めの角。
    samples : int, default 6
        角 1 つあたりのサンプル数。
    """
    if corner not in CORNER_STYLES:
        raise ValueError(f"未対応の corner: {corner!r}")
    wf = float(w)
    hf = float(h)
    if wf <= 0.0 or hf <= 0.0:
        return np.zeros((0, 2), dtype=np.float64)

    x0 = float(x)
    y0 = float(y)
    x1 = x0 + wf
    y1 = y0 + hf
    rf = min(max(0.0, float(r)), 0.5 * min(wf, hf))

    if rf <= 0.0:
        return np.array([[x0, y0], [x0, y1], [x1, y1], [x1, y0], [x0, y0]], dtype=np.float64)

    k = KAPPA if corner == "round" else 1.0
    n = max(1, int(samples))
    # (辺の終点 S, 角の頂点 C, 次辺の始点 E)。上辺左端から反時計回り（y 下向き座標）。
    corners = (
        ((x0 + rf, y0), (x0, y0), (x0, y0 + rf)),
        ((x0, y1 - rf), (x0, y1), (x0 + rf, y1)),
        ((x1 - rf, y1), (x1, y1), (x1, y1 - rf)),
        ((x1, y0 + rf), (x1, y0), (x1 - rf, y0)),
    )

    pts: list[np.ndarray] = [np.array([[x0 + rf, y0]], dtype=np.float64)]
    for s_raw, c_raw, e_raw in corners:
        s = np.asarray(s_raw, dtype=np.float64)
        c = np.asarray(c_raw, dtype=np.float64)
        e = np.asarray(e_raw, dtype=np.float64)
        if not np.allclose(pts[-1][-1], s):
            pts.append(s[None, :])
        pts.append(_cubic(s, s + k * (c - s), e + k * (c - e), e, n))
    pts.append(np.array([[x0 + rf, y0]], dtype=np.float64))
    return np.concatenate(pts, axis=0)


def rounded_rect(
    x: float,
    y: float,
    w: float,
    h: float,
    r: float,
    *,
    corner: str = "round",
    samples: int = 6,
) -> GeomTuple:
    """角丸矩形 1 つを `(coords, offsets)` で返す。"""
    pts = rounded_rect_points(x, y, w, h, r, corner=corner, samples=samples)
    if pts.shape[0] == 0:
        return empty_geom()
    return geom_from_polylines([pts])


def cell_outlines(
    grid: Grid,
    *,
    gutter: float = 0.0,
    corner_frac: float = 0.15,
    max_radius: float | None = None,
    corner: str = "round",
    samples: int = 6,
) -> GeomTuple:
    """正の寸法を持つ全セルの角丸矩形を返す。

    Parameters
    ----------
    grid : Grid
        入力格子。
    gutter : float, default 0.0
        セル間の隙間 [px]。各セルを `gutter/2` ずつ内側へ縮める。
    corner_frac : float, default 0.15
        `min(w,h)` に対する角半径の比率。
    max_radius : float or None
        角半径の上限 [px]。
    """
    inset = 0.5 * max(0.0, float(gutter))
    polylines: list[np.ndarray] = []
    for cell in grid.cells():
        w = cell.w - 2.0 * inset
        h = cell.h - 2.0 * inset
        if w <= 0.0 or h <= 0.0:
            continue
        r = min(w, h) * float(corner_frac)
        if max_radius is not None:
            r = min(r, float(max_radius))
        polylines.append(
            rounded_rect_points(
                cell.x + inset, cell.y + inset, w, h, r, corner=corner, samples=samples
            )
        )
    return geom_from_polylines(polylines)


def gut_lines(grid: Grid) -> GeomTuple:
    """内側の格子線をキャンバス全幅/全高の直線として返す。"""
    polylines: list[np.ndarray] = []
    for x in grid.xs[1:-1]:
        polylines.append(np.array([[x, 0.0], [x, grid.height]], dtype=np.float64))
    for y in grid.ys[1:-1]:
        polylines.append(np.array([[0.0, y], [grid.width, y]], dtype=np.float64))
    return geom_from_polylines(polylines)


def cell_centers(grid: Grid) -> np.ndarray:
    """セル中心を行優先で shape (K,2) の配列として返す。"""
    if grid.n_cols == 0 or grid.n_rows == 0:
        return np.zeros((0, 2), dtype=np.float64)
    cx = 0.5 * (grid.xs[:-1] + grid.xs[1:])
    cy = 0.5 * (grid.ys[:-1] + grid.ys[1:])
    gx, gy = np.meshgrid(cx, cy)
    return np.stack([gx.reshape(-1), gy.reshape(-1)], axis=1)


def jittered_outline_layers(
    geometry: GeomTuple,
    *,
    colors: Sequence[RGB],
    rng: np.random.Generator,
    base_weight: float = 2.0,
    passes: tuple[int, int] = (2, 3),
    alpha_range: tuple[float, float] = (40.0, 80.0),
    jitter: float = 2.0,
    name: str = "cells",
) -> list[Layer]:
    """各ポリラインを少しずらして複数回描く、手描き風の重ね線レイヤを作る。

    ポリラインごとに重ね数・色・alpha・線幅（±0.4）・平行移動量を乱数で選ぶ。
    色ごとに 1 枚の Layer へまとめて返す。
    """
    if not colors:
        raise ValueError("colors は 1 色以上必要")
    coords, offsets = geometry
    n_lines = int(offsets.size) - 1
    lo, hi = sorted((int(passes[0]), int(passes[1])))

    per_color: list[list[np.ndarray]] = [[] for _ in colors]
    per_alpha: list[list[float]] = [[] for _ in colors]
    per_weight: list[list[float]] = [[] for _ in colors]
    for i in range(n_lines):
        pts = np.asarray(coords[int(offsets[i]) : int(offsets[i + 1])], dtype=np.float64)
        if pts.shape[0] == 0:
            continue
        for _ in range(int(rng.integers(lo, hi + 1))):
            ci = int(rng.integers(0, len(colors)))
            shift = rng.uniform(-float(jitter), float(jitter), size=2)
            per_color[ci].append(pts + shift[None, :])
            per_alpha[ci].append(float(rng.uniform(*sorted(alpha_range))))
            per_weight[ci].append(max(0.1, float(base_weight) + float(rng.uniform(-0.4, 0.4))))

    out: list[Layer] = []
    for ci, color in enumerate(colors):
        if not per_color[ci]:
            continue
        out.append(
            layer(
                geom_from_polylines(per_color[ci]),
                color,
                alpha=np.asarray(per_alpha[ci]),
                thickness=np.asarray(per_weight[ci]),
                name=f"{name}:{ci}",
            )
        )
    return out


__all__ = [
    "CORNER_STYLES",
    "KAPPA",
    "cell_centers",
    "cell_outlines",
    "gut_lines",
    "jittered_outline_layers",
    "rounded_rect",
    "rounded_rect_points",
]
