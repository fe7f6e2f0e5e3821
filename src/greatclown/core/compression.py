"""
どこで: `src/greatclown/core/compression.py`。
何を: 焦点（focal point）に向けて格子線を引き寄せる/押し出す圧縮変形と、焦点付近の線の追加を行う。
なぜ: 格子の一様さを局所的に崩し、視線が集まる「密な領域」を構図に作るため。

圧縮係数（factor）は「元の位置をどれだけ保つか」を表す [0,1] のスカラーで、
正規化距離 1 以上では 1.0（変化なし）、焦点上で最小（最大圧縮）になる。
線は `lerp(line, focal, 1 - factor)` で焦点へ寄せる。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from greatclown.core.grid import Grid

logger = logging.getLogger(__name__)

PROFILES: tuple[str, ...] = ("zoned", "power")
MODES: tuple[str, ...] = ("compress", "densify")
DIRECTIONS: tuple[str, ...] = ("attract", "repel")

# zoned プロファイルの係数: 中心 → コア境界 → 半径端。
_ZONED_CENTER = 0.3
_ZONED_CORE_EDGE = 0.7
# power プロファイルの中心での最大引き込み量。
_POWER_MAX_PULL = 0.8


@dataclass(frozen=True, slots=True)
class FocalPoint:
    """圧縮の焦点と強さ。

    Parameters
    ----------
    x, y : float
        焦点のキャンバス座標 [px]。
    strength : float
        引き込み量の倍率 [0,1]。0 で圧縮なし。
    radius : float
        影響半径 [px]。
    falloff : float
        外側グラデーションのべき指数。
    core : float
        近傍コア領域の正規化半径 [0,1)。
    profile : {"zoned","power"}
        係数の形。
    """

    x: float
    y: float
    strength: float
    radius: float
    falloff: float = 1.5
    core: float = 0.25
    profile: str = "zoned"

    def factor(self, distance):
        """焦点からの距離に対する圧縮係数を返す。"""
        return compression_factor(
            distance,
            self.radius,
            strength=self.strength,
            falloff=self.falloff,
            core=self.core,
            profile=self.profile,
        )


def compression_factor(
    distance,
    radius: float,
    *,
    strength: float = 1.0,
    falloff: float = 1.5,
    core: float = 0.25,
    profile: str = "zoned",
):
    """焦点からの距離を圧縮係数へ写す。

    Parameters
    ----------
    distance : float or array_like
        焦点からの距離 [px]。符号は無視する。
    radius : float
        影響半径 [px]。0 以下なら常に 1.0。
    strength : float, default 1.0
        引き込み量の倍率。[0,1] にクランプする。
    falloff : float, default 1.5
        外側グラデーションのべき指数（0 以上）。
    core : float, default 0.25
        zoned プロファイルのコア領域（正規化半径）。
    profile : {"zoned","power"}, default "zoned"
        - "zoned": コア内は 0.3→0.7 の線形、外側は `1 - 0.3*(1-g)^falloff`。
        - "power": `1 - 0.8*(1-nd)^falloff`。

    Returns
    -------
    float or np.ndarray
        [0,1] の係数。入力がスカラーなら float。

    Raises
    ------
    ValueError
        未知の profile、または core が [0,1) の外の場合。
    """
    profile_s = str(profile)
    if profile_s not in PROFILES:
        raise ValueError(f"未対応の compression profile: {profile!r}")
    core_f = float(core)
    if not 0.0 <= core_f < 1.0:
        raise ValueError(f"core は [0,1) の範囲である必要がある: got={core!r}")

    scalar = np.ndim(distance) == 0
    d = np.abs(np.asarray(distance, dtype=np.float64))
    r = float(radius)
    s = min(1.0, max(0.0, float(strength)))
    if not np.isfinite(r) or r <= 0.0 or s <= 0.0:
        out = np.ones_like(d)
        return float(out) if scalar else out

    nd = d / r
    p = max(0.0, float(falloff))

    if profile_s == "zoned":
        if core_f > 0.0:
            inner = _ZONED_CENTER + (_ZONED_CORE_EDGE - _ZONED_CENTER) * (nd / core_f)
        else:
            inner = np.full_like(nd, _ZONED_CORE_EDGE)
        g = np.clip((nd - core_f) / (1.0 - core_f), 0.0, 1.0)
        outer = 1.0 - (1.0 - _ZONED_CORE_EDGE) * np.power(1.0 - g, p)
        base = np.where(nd <= core_f, inner, outer)
    else:
        base = 1.0 - _POWER_MAX_PULL * np.power(np.clip(1.0 - nd, 0.0, 1.0), p)

    base = np.where(nd >= 1.0, 1.0, base)
    out = np.clip(1.0 - s * (1.0 - base), 0.0, 1.0)
    return float(out) if scalar else out


def choose_focal_point(
    width: float,
    height: float,
    rng: np.random.Generator,
    *,
    margin: float = 0.15,
    strength_range: tuple[float, float] = (0.6, 1.0),
    radius_range: tuple[float, float] = (0.3, 0.5),
    falloff: float = 1.5,
    core: float = 0.25,
    profile: str = "zoned",
) -> FocalPoint:
    """キャンバス端から離れた位置に焦点をランダムに選ぶ。

    半径は `min(width, height)` に対する比率で選ぶ。
    """
    m = min(0.49, max(0.0, float(margin)))
    w = float(width)
    h = float(height)
    x = float(rng.uniform(w * m, w * (1.0 - m)))
    y = float(rng.uniform(h * m, h * (1.0 - m)))
    strength = float(rng.uniform(*sorted(strength_range)))
    radius = float(rng.uniform(*sorted(radius_range))) * min(w, h)
    return FocalPoint(
        x=x,
        y=y,
        strength=strength,
        radius=radius,
        falloff=float(falloff),
        core=float(core),
        profile=str(profile),
    )


def _axis_center(focal: FocalPoint, axis: str) -> float:
    if axis == "x":
        return float(focal.x)
    if axis == "y":
        return float(focal.y)
    raise ValueError(f"axis は 'x' か 'y' である必要がある: got={axis!r}")


def compress_lines(
    lines: np.ndarray,
    focal: FocalPoint,
    *,
    axis: str,
    extent: float,
    direction: str = "attract",
) -> np.ndarray:
    """1 軸ぶんの格子線を焦点へ引き寄せる（または押し出す）。

    Parameters
    ----------
    lines : np.ndarray
        格子線位置。
    focal : FocalPoint
        焦点。x 線は焦点の行上で、y 線は焦点の列上で距離を測る。
    axis : {"x","y"}
        対象軸。
    extent : float
        軸方向のキャンバス長。repel 時のクリップ範囲。
    direction : {"attract","repel"}, default "attract"
        引き寄せ / 押し出し。

    Returns
    -------
    np.ndarray
        変形後の線位置（新しい配列）。

    Notes
    -----
    attract は各線を自身と焦点の間へ動かすため、順序と [0, extent] を保つ。
    再適用するとさらに寄る（冪等ではない）。
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"未対応の compression direction: {direction!r}")

    v = np.asarray(lines, dtype=np.float64)
    if v.size == 0:
        return v.copy()

    center = _axis_center(focal, axis)
    pull = 1.0 - np.asarray(focal.factor(v - center), dtype=np.float64)
    if direction == "attract":
        return v + pull * (center - v)
    out = v - pull * (center - v)
    return np.clip(out, 0.0, float(extent))


def inject_density_lines(
    lines: np.ndarray,
    focal: FocalPoint,
    *,
    axis: str,
    max_extra: int = 3,
) -> np.ndarray:
    """焦点の影響半径内のセルへ補間線を追加する。

    各隣接ペアの中点が半径内にあれば、`density = (1-factor)/(1-factor(0))` に比例して
    `floor(density * max_extra)` 本の線を `t = j/(n+1)` で挿入する。

    Returns
    -------
    np.ndarray
        追加後にソートした線位置。
    """
    v = np.asarray(lines, dtype=np.float64)
    extra_max = int(max_extra)
    if v.size < 2 or extra_max <= 0:
        return v.copy()

    center = _axis_center(focal, axis)
    pull_center = 1.0 - float(focal.factor(0.0))
    if pull_center <= 0.0:
        return v.copy()

    mids = 0.5 * (v[:-1] + v[1:])
    dist = np.abs(mids - center)
    density = (1.0 - np.asarray(focal.factor(dist), dtype=np.float64)) / pull_center
    counts = np.where(dist < float(focal.radius), np.floor(density * extra_max), 0.0)
    counts = np.clip(counts, 0, extra_max).astype(np.int64)

    extras: list[float] = []
    for i in np.flatnonzero(counts):
        n = int(counts[i])
        a = float(v[i])
        b = float(v[i + 1])
        for j in range(1, n + 1):
            t = j / (n + 1)
            extras.append(a + (b - a) * t)

    if not extras:
        return v.copy()
    logger.debug("axis=%s: %d 本の補間線を追加", axis, len(extras))
    return np.sort(np.concatenate([v, np.asarray(extras, dtype=np.float64)]))


def apply_compression(
    grid: Grid,
    focal: FocalPoint,
    *,
    mode: str = "compress",
    direction: str = "attract",
    max_extra: int = 3,
) -> Grid:
    """格子全体に圧縮変形を適用した新しい Grid を返す。

    Parameters
    ----------
    grid : Grid
        入力格子。
    focal : FocalPoint
        焦点。
    mode : {"compress","densify"}, default "compress"
        "densify" は圧縮前に半径内へ補間線を追加する。
    direction : {"attract","repel"}, default "attract"
        線の移動方向。
    max_extra : int, default 3
        1 セルあたりの最大追加本数（densify のみ）。
    """
    if mode not in MODES:
        raise ValueError(f"未対応の compression mode: {mode!r}")

    xs = grid.xs
    ys = grid.ys
    if mode == "densify":
        xs = inject_density_lines(xs, focal, axis="x", max_extra=max_extra)
        ys = inject_density_lines(ys, focal, axis="y", max_extra=max_extra)

    xs = compress_lines(xs, focal, axis="x", extent=grid.width, direction=direction)
    ys = compress_lines(ys, focal, axis="y", extent=grid.height, direction=direction)
    logger.debug("compressed grid: %d x %d lines", xs.size, ys.size)
    return Grid(xs=xs, ys=ys, width=grid.width, height=grid.height)


def compression_field(x, y, focal: FocalPoint):
    """2D 座標に対する圧縮係数（焦点からのユークリッド距離ベース）を返す。"""
    dx = np.asarray(x, dtype=np.float64) - float(focal.x)
    dy = np.asarray(y, dtype=np.float64) - float(focal.y)
    return focal.factor(np.hypot(dx, dy))


__all__ = [
    "DIRECTIONS",
    "FocalPoint",
    "MODES",
    "PROFILES",
    "apply_compression",
    "choose_focal_point",
    "compress_lines",
    "compression_factor",
    "compression_field",
    "inject_density_lines",
]
