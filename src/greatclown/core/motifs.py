"""
どこで: `src/greatclown/core/motifs.py`。
何を: 紙テクスチャ・ウォッシュ・円モチーフ・中央の道化師像・圧縮の可視化を Layer として生成する。
なぜ: 格子の上に重ねる装飾パスを、描画バックエンドに依存しない形で組み立てるため。
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from greatclown.core.cells import rounded_rect_points
from greatclown.core.compression import FocalPoint, compression_field
from greatclown.core.grid import Grid
from greatclown.core.realized_geometry import geom_from_polylines
from greatclown.core.scene import RGB, Layer, layer

WHITE: RGB = (255, 255, 255)
BLACK: RGB = (0, 0, 0)

# グレイン色の量子化段数（1 段 = 1 Layer）
_GRAIN_LEVELS = 6


def ellipse_points(
    cx: float, cy: float, rx: float, ry: float, *, segments: int = 32
) -> np.ndarray:
    """楕円の閉じた頂点列（先頭 = 末尾）を返す。"""
    n = max(3, int(segments))
    t = np.linspace(0.0, 2.0 * math.pi, n + 1)
    pts = np.stack([float(cx) + float(rx) * np.cos(t), float(cy) + float(ry) * np.sin(t)], axis=1)
    pts[-1] = pts[0]
    return pts


def rect_points(x: float, y: float, w: float, h: float) -> np.ndarray:
    x0 = float(x)
    y0 = float(y)
    x1 = x0 + float(w)
    y1 = y0 + float(h)
    return np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]], dtype=np.float64)


def _segments_for(diameter: float) -> int:
    return int(min(64, max(12, math.ceil(float(diameter) * 0.8))))


def _fill_layer(
    polygons: Sequence[np.ndarray],
    color: RGB,
    alpha: float | np.ndarray,
    *,
    blend: str = "normal",
    name: str,
) -> Layer:
    return layer(
        geom_from_polylines(list(polygons)),
        color,
        alpha=alpha,
        thickness=0.0,
        fill=True,
        blend=blend,
        name=name,
    )


def background_layers(
    width: float,
    height: float,
    rng: np.random.Generator,
    *,
    count: int = 800,
) -> list[Layer]:
    """下地の柔らかな紙パルプ（白の半透明円）を返す。"""
    n = int(count)
    if n <= 0:
        return []
    xs = rng.uniform(0.0, float(width), size=n)
    ys = rng.uniform(0.0, float(height), size=n)
    ds = rng.uniform(6.0, 24.0, size=n)
    polys = [
        ellipse_points(x, y, 0.5 * d, 0.5 * d, segments=12) for x, y, d in zip(xs, ys, ds)
    ]
    return [_fill_layer(polys, WHITE, 6.0, name="background:pulp")]


def paper_texture_layers(
    width: float,
    height: float,
    rng: np.random.Generator,
    *,
    opacity: float = 0.25,
    grain_density: float = 0.004,
    pulp_count: int = 1400,
    deckle_count: int = 30,
) -> list[Layer]:
    """紙の質感（グレイン/パルプ/デッケル縁）を乗算合成用の Layer 群として返す。

    Parameters
    ----------
    width, height : float
        キャンバス寸法 [px]。
    rng : np.random.Generator
        配置用の乱数。
    opacity : float, default 0.25
        テクスチャ全体の不透明度 [0,1]。各要素の alpha に掛ける。
    grain_density : float, default 0.004
        1 px あたりのグレイン数。
    pulp_count : int, default 1400
        パルプ（ぼんやりした白円）の数。
    deckle_count : int, default 30
        縁の重ね線の本数。

    Returns
    -------
    list[Layer]
        すべて `blend="multiply"`。opacity が 0 以下なら空。
    """
    op = min(1.0, max(0.0, float(opacity)))
    if op <= 0.0:
        return []
    w = float(width)
    h = float(height)
    out: list[Layer] = []

    n_grain = int(w * h * max(0.0, float(grain_density)))
    if n_grain > 0:
        gx = rng.uniform(0.0, w, size=n_grain)
        gy = rng.uniform(0.0, h, size=n_grain)
        gv = rng.uniform(230.0, 255.0, size=n_grain)
        gw = rng.uniform(0.5, 1.2, size=n_grain)
        gh = rng.uniform(0.5, 1.2, size=n_grain)
        # 明度を数段に丸めて Layer 数を抑える
        levels = ((gv - 230.0) / 25.0 * _GRAIN_LEVELS).astype(np.int64)
        levels = np.minimum(levels, _GRAIN_LEVELS - 1)
        for k in range(_GRAIN_LEVELS):
            idx = np.flatnonzero(levels == k)
            if idx.size == 0:
                continue
            v = int(round(230.0 + 25.0 * (k + 0.5) / _GRAIN_LEVELS))
            polys = [rect_points(gx[i], gy[i], gw[i], gh[i]) for i in idx]
            out.append(
                _fill_layer(
                    polys, (v, v, v), 18.0 * op, blend="multiply", name=f"texture:grain{k}"
                )
            )

    n_pulp = int(pulp_count)
    if n_pulp > 0:
        px = rng.uniform(0.0, w, size=n_pulp)
        py = rng.uniform(0.0, h, size=n_pulp)
        pd = rng.uniform(6.0, 24.0, size=n_pulp)
        polys = [
            ellipse_points(x, y, 0.5 * d, 0.5 * d, segments=12) for x, y, d in zip(px, py, pd)
        ]
        out.append(_fill_layer(polys, WHITE, 10.0 * op, blend="multiply", name="texture:pulp"))

    n_deckle = int(deckle_count)
    if n_deckle > 0:
        deckles: list[np.ndarray] = []
        weights = rng.uniform(0.2, 0.6, size=n_deckle)
        kept: list[float] = []
        for k in range(n_deckle):
            x0 = 2.0 + float(rng.uniform(-1.0, 1.0))
            y0 = 2.0 + float(rng.uniform(-1.0, 1.0))
            rw = w - 4.0 + float(rng.uniform(-2.0, 2.0))
            rh = h - 4.0 + float(rng.uniform(-2.0, 2.0))
            pts = rounded_rect_points(x0, y0, rw, rh, 2.0, samples=2)
            # 縁より小さいキャンバスでは空になる
            if pts.shape[0] == 0:
                continue
            deckles.append(pts)
            kept.append(float(weights[k]))
        if deckles:
            out.append(
                layer(
                    geom_from_polylines(deckles),
                    BLACK,
                    alpha=20.0 * op,
                    thickness=np.asarray(kept),
                    blend="multiply",
                    name="texture:deckle",
                )
            )
    return out


def wash_layers(width: float, height: float, *, wash_opacity: float = 26.0) -> list[Layer]:
    """全面の暖色グレーズ、帯状のビネット、上部のラベンダーを返す。"""
    w = float(width)
    h = float(height)
    glaze = rect_points(0.0, 0.0, w, h)
    out = [_fill_layer([glaze], (255, 255, 200), float(wash_opacity), name="wash:glaze")]

    bands = [rect_points(0.0, (i / 6.0) * h, w, h / 20.0) for i in range(6)]
    alphas = np.linspace(10.0, 30.0, 6)
    out.append(_fill_layer(bands, BLACK, alphas, name="wash:vignette"))

    top = rect_points(0.0, 0.0, w, h * 0.42)
    out.append(_fill_layer([top], (210, 190, 230), 16.0, name="wash:lavender"))
    return out


def circle_motif_layers(
    points: np.ndarray,
    rng: np.random.Generator,
    *,
    probability: float = 0.26,
    size_range: tuple[float, float] = (18.0, 48.0),
    ring_color: RGB = (180, 60, 60),
    core_color: RGB = (255, 200, 200),
) -> list[Layer]:
    """点ごとに確率 `probability` で円モチーフ（外輪/芯/ハイライト）を置く。

    直径 d に対し、外輪 0.98d、芯 0.52d（ずれ 0.6 倍）、
    ハイライト 0.25d（左上へ 0.12d、白 alpha 50）。
    """
    p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    lo, hi = sorted((float(size_range[0]), float(size_range[1])))
    rings: list[np.ndarray] = []
    cores: list[np.ndarray] = []
    highlights: list[np.ndarray] = []
    for x, y in p:
        if float(rng.random()) >= float(probability):
            continue
        d = float(rng.uniform(lo, hi))
        jx, jy = (float(v) for v in rng.normal(0.0, 1.2, size=2))
        seg = _segments_for(d)
        rings.append(ellipse_points(x + jx, y + jy, 0.49 * d, 0.49 * d, segments=seg))
        cores.append(ellipse_points(x + 0.6 * jx, y + 0.6 * jy, 0.26 * d, 0.26 * d, segments=seg))
        highlights.append(
            ellipse_points(x + jx - 0.12 * d, y + jy - 0.12 * d, 0.125 * d, 0.125 * d, segments=seg)
        )

    if not rings:
        return []
    return [
        _fill_layer(rings, ring_color, 255.0, name="circles:ring"),
        _fill_layer(cores, core_color, 255.0, name="circles:core"),
        _fill_layer(highlights, WHITE, 50.0, name="circles:highlight"),
    ]


def clown_figure_layers(
    width: float,
    height: float,
    rng: np.random.Generator,
    *,
    body_color: RGB = (255, 200, 100),
    leg_color: RGB = (120, 130, 140),
) -> list[Layer]:
    """左半分の中央に道化師像（胴の帯/顔/脚の筋/横木）を置く。

    右半分は呼び出し側で左右反転して作る。
    """
    w = float(width)
    h = float(height)
    cx = 0.25 * w
    body_w = max(18.0, 0.04 * w)

    body = rounded_rect_points(cx - 0.5 * body_w, 0.22 * h, body_w, 0.58 * h, 3.0, samples=3)
    face_d = 68.0
    face = ellipse_points(cx, 0.34 * h, 0.5 * face_d, 0.5 * face_d, segments=40)
    shine = ellipse_points(
        cx - 0.18 * face_d, 0.33 * h, 0.175 * face_d, 0.175 * face_d, segments=20
    )

    leg_top = 0.79 * h
    leg_bottom = 0.98 * h
    legs: list[np.ndarray] = []
    for k in range(-2, 3):
        split = -1.0 if k % 2 == 0 else 1.0
        x = cx + k * (0.18 * body_w) + float(rng.uniform(-1.0, 1.0))
        dx = split * float(rng.uniform(16.0, 36.0))
        legs.append(np.array([[x, leg_top], [x + dx, leg_bottom]], dtype=np.float64))

    crossbar = rect_points(0.0, 0.5 * h - 6.0, 0.5 * w, 12.0)

    return [
        _fill_layer([body], body_color, 190.0, name="clown:body"),
        _fill_layer([face], body_color, 255.0, name="clown:face"),
        _fill_layer([shine], WHITE, 45.0, name="clown:shine"),
        layer(
            geom_from_polylines(legs),
            leg_color,
            alpha=255.0,
            thickness=1.2,
            name="clown:legs",
        ),
        _fill_layer([crossbar], (200, 200, 100), 180.0, name="clown:crossbar"),
    ]


def compression_tint_layer(grid: Grid, focal: FocalPoint) -> Layer | None:
    """セル中心の圧縮量 `1 - factor` に比例した赤の塗りを返す。

    強さ 0 の焦点、またはセルが無い場合は None。
    """
    if float(focal.strength) <= 0.0:
        return None
    cells = list(grid.cells())
    if not cells:
        return None
    centers = np.array([c.center for c in cells], dtype=np.float64)
    factor = np.asarray(compression_field(centers[:, 0], centers[:, 1], focal), dtype=np.float64)
    alpha = (1.0 - factor) * 255.0 * 0.2
    polys = [rect_points(c.x, c.y, c.w, c.h) for c in cells]
    return _fill_layer(polys, (255, 0, 0), alpha, name="debug:compression")


def focal_marker_layers(focal: FocalPoint) -> list[Layer]:
    """焦点の影響半径（赤）、コア円（黄, 0.25 半径）、中心点を返す。"""
    r = float(focal.radius)
    if float(focal.strength) <= 0.0 or r <= 0.0:
        return []
    fx = float(focal.x)
    fy = float(focal.y)
    return [
        layer(
            geom_from_polylines([ellipse_points(fx, fy, r, r, segments=96)]),
            (255, 0, 0),
            alpha=150.0,
            thickness=3.0,
            name="debug:radius",
        ),
        layer(
            geom_from_polylines([ellipse_points(fx, fy, 0.25 * r, 0.25 * r, segments=48)]),
            (255, 255, 0),
            alpha=150.0,
            thickness=6.0,
            name="debug:core",
        ),
        layer(
            geom_from_polylines([ellipse_points(fx, fy, 7.5, 7.5, segments=16)]),
            (255, 255, 0),
            alpha=255.0,
            thickness=4.0,
            name="debug:center",
        ),
    ]


__all__ = [
    "background_layers",
    "circle_motif_layers",
    "clown_figure_layers",
    "compression_tint_layer",
    "ellipse_points",
    "focal_marker_layers",
    "paper_texture_layers",
    "rect_points",
    "wash_layers",
]
