"""
どこで: `src/greatclown/core/brush.py`。
何を: 筆圧カーブとベクトル場で揺らした短い線分の束としてストロークを合成する。
     併せて、にじみ（watercolor）とハッチングの補助ジオメトリを提供する。
なぜ: 一定幅のフラットな線の代わりに、手描きの画材らしい濃淡とたわみを格子に与えるため。
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from greatclown.core.noise import PerlinNoise
from greatclown.core.realized_geometry import GeomTuple, empty_geom, geom_from_polylines
from greatclown.core.scene import RGB, Layer, layer


@dataclass(frozen=True, slots=True)
class PressureCurve:
    """ストローク進行度 → 疑似筆圧の写像。

    `start` から `end` へ線形補間し、乱数が渡されたときだけ
    標準偏差 `noise` のガウスノイズを加えて `[min_pressure, max_pressure]` にクランプする。
    """

    start: float = 0.5
    end: float = 1.0
    noise: float = 0.08
    min_pressure: float = 0.1
    max_pressure: float = 1.0

    def __post_init__(self) -> None:
        if float(self.min_pressure) > float(self.max_pressure):
            raise ValueError(
                "min_pressure は max_pressure 以下である必要がある"
                f": got=({self.min_pressure}, {self.max_pressure})"
            )

    def sample(self, progress, length: float, rng: np.random.Generator | None = None):
        """進行度 `progress`（0..length）の筆圧を返す。

        Parameters
        ----------
        progress : float or array_like
            ストローク始点からの距離。
        length : float
            ストローク全長。0 以下なら常に始点の筆圧を使う。
        rng : np.random.Generator or None
            ノイズ用乱数。None ならノイズなし（決定的）。

        Returns
        -------
        float or np.ndarray
            筆圧。入力がスカラーなら float。
        """
        scalar = np.ndim(progress) == 0
        pos = np.asarray(progress, dtype=np.float64)
        total = float(length)
        if total > 0.0:
            t = np.clip(pos / total, 0.0, 1.0)
        else:
            t = np.zeros_like(pos)

        p = float(self.start) + (float(self.end) - float(self.start)) * t
        sigma = float(self.noise)
        if rng is not None and sigma > 0.0:
            p = p + rng.normal(0.0, sigma, size=p.shape)
        out = np.clip(p, float(self.min_pressure), float(self.max_pressure))
        return float(out) if scalar else out


class VectorField(Protocol):
    """位置 → 角度 [rad] の場。"""

    def angles(self, points: np.ndarray) -> np.ndarray: ...


@dataclass(frozen=True, slots=True)
class ConstantField:
    angle: float = 0.0

    def angles(self, points: np.ndarray) -> np.ndarray:
        return np.full((np.asarray(points).shape[0],), float(self.angle), dtype=np.float64)


@dataclass(frozen=True, slots=True)
class RadialField:
    """中心から放射（swirl で回転）する角度場。swirl=π/2 で渦になる。"""

    cx: float
    cy: float
    swirl: float = 0.0

    def angles(self, points: np.ndarray) -> np.ndarray:
        p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        return np.arctan2(p[:, 1] - float(self.cy), p[:, 0] - float(self.cx)) + float(self.swirl)


@dataclass(frozen=True, slots=True)
class PerlinField:
    """Perlin ノイズ値を角度に写した流れ場。"""

    noise: PerlinNoise
    scale: float = 0.005
    turns: float = 2.0

    def angles(self, points: np.ndarray) -> np.ndarray:
        p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        s = float(self.scale)
        n = np.asarray(self.noise.noise2(p[:, 0] * s, p[:, 1] * s), dtype=np.float64)
        return n * (2.0 * math.pi * float(self.turns))


@dataclass(frozen=True, slots=True)
class BrushStyle:
    """ストロークの見た目。

    Attributes
    ----------
    weight : float
        筆圧 1.0 での線幅 [px]。
    alpha : float
        筆圧 1.0 での不透明度（0..255）。
    passes : int
        重ね描きする揺らぎ線の本数。
    vibration : float
        法線方向の揺らぎ（標準偏差 [px]）。
    segment_length : float
        線分 1 本あたりの長さ [px]。
    field_bias : float
        ベクトル場方向へのずらし量 [px]。
    """

    weight: float = 2.0
    alpha: float = 70.0
    passes: int = 2
    vibration: float = 0.6
    segment_length: float = 6.0
    field_bias: float = 1.5


@dataclass(frozen=True, slots=True)
class Stroke:
    """線分の束で表したストローク。

    Attributes
    ----------
    segments : np.ndarray
        float32 shape (K, 2, 2)。各線分の始点/終点。
    pressure, alpha, weight : np.ndarray
        float64 shape (K,)。線分ごとの筆圧/不透明度/線幅。
    """

    segments: np.ndarray
    pressure: np.ndarray
    alpha: np.ndarray
    weight: np.ndarray

    @property
    def n_segments(self) -> int:
        return int(self.segments.shape[0])

    def to_geom(self) -> GeomTuple:
        k = self.n_segments
        if k == 0:
            return empty_geom()
        coords = self.segments.reshape(-1, 2).astype(np.float32, copy=False)
        offsets = np.arange(0, 2 * k + 1, 2, dtype=np.int32)
        return coords, offsets

    def to_layer(self, color: RGB, *, name: str = "") -> Layer:
        return layer(
            self.to_geom(),
            color,
            alpha=self.alpha,
            thickness=self.weight,
            name=name,
        )


def empty_stroke() -> Stroke:
    return Stroke(
        segments=np.zeros((0, 2, 2), dtype=np.float32),
        pressure=np.zeros((0,), dtype=np.float64),
        alpha=np.zeros((0,), dtype=np.float64),
        weight=np.zeros((0,), dtype=np.float64),
    )


def concat_strokes(strokes: Sequence[Stroke]) -> Stroke:
    """複数ストロークを 1 本にまとめる。"""
    kept = [s for s in strokes if s.n_segments > 0]
    if not kept:
        return empty_stroke()
    return Stroke(
        segments=np.concatenate([s.segments for s in kept], axis=0),
        pressure=np.concatenate([s.pressure for s in kept]),
        alpha=np.concatenate([s.alpha for s in kept]),
        weight=np.concatenate([s.weight for s in kept]),
    )


def _smooth(values: np.ndarray) -> np.ndarray:
    if values.size < 3:
        return values
    padded = np.concatenate([values[:1], values, values[-1:]])
    return 0.25 * padded[:-2] + 0.5 * padded[1:-1] + 0.25 * padded[2:]


def synthesize_stroke(
    p0: Sequence[float],
    p1: Sequence[float],
    *,
    pressure: PressureCurve,
    style: BrushStyle,
    field: VectorField | None = None,
    rng: np.random.Generator,
) -> Stroke:
    """2 点間のストロークを合成する。

    Parameters
    ----------
    p0, p1 : Sequence[float]
        始点/終点のキャンバス座標。
    pressure : PressureCurve
        進行度に対する筆圧。線分中点で評価する。
    style : BrushStyle
        線幅/不透明度/揺らぎの設定。
    field : VectorField or None
        点列を偏らせる角度場。None なら偏りなし。
    rng : np.random.Generator
        揺らぎと筆圧ノイズの乱数。

    Returns
    -------
    Stroke
        `style.passes` 本の揺らぎ線を連結したストローク。長さ 0 では空。

    Notes
    -----
    端点付近は揺らぎを弱め、線が角で大きく外れないようにする。
    """
    a = np.asarray(p0, dtype=np.float64).reshape(2)
    b = np.asarray(p1, dtype=np.float64).reshape(2)
    vec = b - a
    length = float(np.hypot(vec[0], vec[1]))
    passes = int(style.passes)
    if not np.isfinite(length) or length <= 1e-9 or passes <= 0:
        return empty_stroke()

    seg_len = max(0.5, float(style.segment_length))
    n_seg = max(1, int(math.ceil(length / seg_len)))
    t = np.linspace(0.0, 1.0, n_seg + 1)
    base = a[None, :] + t[:, None] * vec[None, :]
    normal = np.array([-vec[1], vec[0]], dtype=np.float64) / length
    envelope = 0.35 + 0.65 * np.sin(math.pi * t)

    bias = np.zeros_like(base)
    if field is not None and float(style.field_bias) != 0.0:
        ang = np.asarray(field.angles(base), dtype=np.float64)
        bias = float(style.field_bias) * envelope[:, None] * np.stack(
            [np.cos(ang), np.sin(ang)], axis=1
        )

    mid_progress = 0.5 * (t[:-1] + t[1:]) * length
    vibration = max(0.0, float(style.vibration))

    out: list[Stroke] = []
    for _ in range(passes):
        if vibration > 0.0:
            offs = _smooth(rng.normal(0.0, vibration, size=n_seg + 1)) * envelope
            shift = rng.normal(0.0, 0.5 * vibration, size=2)
        else:
            offs = np.zeros((n_seg + 1,), dtype=np.float64)
            shift = np.zeros((2,), dtype=np.float64)
        pts = base + offs[:, None] * normal[None, :] + bias + shift[None, :]
        segments = np.stack([pts[:-1], pts[1:]], axis=1).astype(np.float32)

        p = np.asarray(pressure.sample(mid_progress, length, rng), dtype=np.float64)
        out.append(
            Stroke(
                segments=segments,
                pressure=p,
                alpha=float(style.alpha) * p,
                weight=float(style.weight) * p,
            )
        )
    return concat_strokes(out)


def stroke_polyline(
    points: np.ndarray,
    *,
    closed: bool = False,
    pressure: PressureCurve,
    style: BrushStyle,
    field: VectorField | None = None,
    rng: np.random.Generator,
) -> Stroke:
    """ポリラインの各辺をストロークで描く。"""
    p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if p.shape[0] < 2:
        return empty_stroke()
    if closed and not np.allclose(p[0], p[-1]):
        p = np.concatenate([p, p[:1]], axis=0)
    return concat_strokes(
        [
            synthesize_stroke(p[i], p[i + 1], pressure=pressure, style=style, field=field, rng=rng)
            for i in range(p.shape[0] - 1)
        ]
    )


def _resample_closed(polygon: np.ndarray, step: float) -> np.ndarray:
    poly = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    if poly.shape[0] >= 2 and np.allclose(poly[0], poly[-1]):
        poly = poly[:-1]
    if poly.shape[0] < 3:
        return poly
    ring = np.concatenate([poly, poly[:1]], axis=0)
    out: list[np.ndarray] = []
    for i in range(poly.shape[0]):
        a = ring[i]
        b = ring[i + 1]
        n = max(1, int(math.ceil(float(np.hypot(*(b - a))) / max(step, 1e-6))))
        ts = np.arange(n, dtype=np.float64) / n
        out.append(a[None, :] + ts[:, None] * (b - a)[None, :])
    return np.concatenate(out, axis=0)


def watercolor_bleed(
    polygon: np.ndarray,
    *,
    rng: np.random.Generator,
    noise: PerlinNoise | None = None,
    layers: int = 6,
    spread: float = 4.0,
    noise_scale: float = 0.02,
) -> GeomTuple:
    """多角形のまわりに、にじんだ水彩の輪郭を複数枚生成する。

    各層は重心から放射方向に頂点を揺らした閉多角形で、層が進むほどわずかに広がる。
    低い alpha で塗り重ねることで縁の濃いにじみになる。

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        閉多角形（先頭 = 末尾）の集合。入力が 3 頂点未満なら空。
    """
    n_layers = int(layers)
    poly = _resample_closed(polygon, step=max(2.0, float(spread)))
    if poly.shape[0] < 3 or n_layers <= 0:
        return empty_geom()

    centroid = poly.mean(axis=0)
    radial = poly - centroid[None, :]
    norm = np.hypot(radial[:, 0], radial[:, 1])
    norm = np.where(norm > 1e-9, norm, 1.0)
    direction = radial / norm[:, None]

    out: list[np.ndarray] = []
    for k in range(n_layers):
        if noise is not None:
            s = float(noise_scale)
            n = np.asarray(noise.noise2(poly[:, 0] * s + 31.7 * k, poly[:, 1] * s), dtype=np.float64)
            disp = (n - 0.5) * 2.0 * float(spread)
        else:
            disp = np.zeros((poly.shape[0],), dtype=np.float64)
        disp = disp + rng.normal(0.0, 0.3 * float(spread), size=poly.shape[0])
        grow = 1.0 + 0.02 * k
        pts = centroid[None, :] + radial * grow + direction * disp[:, None]
        out.append(np.concatenate([pts, pts[:1]], axis=0))
    return geom_from_polylines(out)


def _clip_segment_to_rect(
    p0: np.ndarray, p1: np.ndarray, x0: float, y0: float, x1: float, y1: float
) -> tuple[np.ndarray, np.ndarray] | None:
    # Liang-Barsky
    d = p1 - p0
    t_lo, t_hi = 0.0, 1.0
    for p, q in (
        (-d[0], p0[0] - x0),
        (d[0], x1 - p0[0]),
        (-d[1], p0[1] - y0),
        (d[1], y1 - p0[1]),
    ):
        if abs(p) < 1e-12:
            if q < 0.0:
                return None
            continue
        r = q / p
        if p < 0.0:
            t_lo = max(t_lo, r)
        else:
            t_hi = min(t_hi, r)
        if t_lo > t_hi:
            return None
    return p0 + t_lo * d, p0 + t_hi * d


def hatch_rect(
    x: float,
    y: float,
    w: float,
    h: float,
    *,
    angle: float = 45.0,
    spacing: float = 6.0,
    wobble: float = 0.0,
    rng: np.random.Generator | None = None,
) -> GeomTuple:
    """矩形内を平行線でハッチングする。

    Parameters
    ----------
    x, y, w, h : float
        矩形（左上 + 寸法）。
    angle : float, default 45.0
        線の向き [deg]。
    spacing : float, default 6.0
        線間隔 [px]。0 以下なら空。
    wobble : float, default 0.0
        端点の揺らぎ（標準偏差 [px]）。rng があるときのみ。
    """
    wf = float(w)
    hf = float(h)
    gap = float(spacing)
    if wf <= 0.0 or hf <= 0.0 or gap <= 0.0:
        return empty_geom()

    theta = math.radians(float(angle))
    direction = np.array([math.cos(theta), math.sin(theta)], dtype=np.float64)
    normal = np.array([-direction[1], direction[0]], dtype=np.float64)
    center = np.array([float(x) + 0.5 * wf, float(y) + 0.5 * hf], dtype=np.float64)
    half_diag = 0.5 * math.hypot(wf, hf)

    lines: list[np.ndarray] = []
    c = -half_diag + 0.5 * gap
    while c < half_diag:
        mid = center + c * normal
        clipped = _clip_segment_to_rect(
            mid - half_diag * direction,
            mid + half_diag * direction,
            float(x),
            float(y),
            float(x) + wf,
            float(y) + hf,
        )
        if clipped is not None:
            a, b = clipped
            if float(np.hypot(*(b - a))) > 1e-6:
                if rng is not None and float(wobble) > 0.0:
                    a = a + rng.normal(0.0, float(wobble), size=2)
                    b = b + rng.normal(0.0, float(wobble), size=2)
                lines.append(np.stack([a, b], axis=0))
        c += gap
    return geom_from_polylines(lines)


__all__ = [
    "BrushStyle",
    "ConstantField",
    "PerlinField",
    "PressureCurve",
    "RadialField",
    "Stroke",
    "VectorField",
    "concat_strokes",
    "empty_stroke",
    "hatch_rect",
    "stroke_polyline",
    "synthesize_stroke",
    "watercolor_bleed",
]
