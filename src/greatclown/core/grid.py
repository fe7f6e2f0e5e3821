"""
どこで: `src/greatclown/core/grid.py`。
何を: 列数/行数とキャンバス寸法から、ガター込みで揺らした格子線位置を生成する。
なぜ: セル描画・圧縮変形・モチーフ配置が共有する「格子」という最小の構図単位を作るため。
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class Cell:
    """隣接する格子線に挟まれた矩形。"""

    col: int
    row: int
    x: float
    y: float
    w: float
    h: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + 0.5 * self.w, self.y + 0.5 * self.h)


@dataclass(frozen=True, slots=True)
class Grid:
    """x 方向 / y 方向の格子線位置の組。

    Parameters
    ----------
    xs : np.ndarray
        縦線の x 座標（昇順）。
    ys : np.ndarray
        横線の y 座標（昇順）。
    width, height : float
        キャンバス寸法 [px]。
    """

    xs: np.ndarray
    ys: np.ndarray
    width: float
    height: float

    def __post_init__(self) -> None:
        xs = np.asarray(self.xs, dtype=np.float64).reshape(-1).copy()
        ys = np.asarray(self.ys, dtype=np.float64).reshape(-1).copy()
        xs.setflags(write=False)
        ys.setflags(write=False)
        object.__setattr__(self, "xs", xs)
        object.__setattr__(self, "ys", ys)

    @property
    def n_cols(self) -> int:
        return max(0, int(self.xs.size) - 1)

    @property
    def n_rows(self) -> int:
        return max(0, int(self.ys.size) - 1)

    def col_widths(self) -> np.ndarray:
        return np.diff(self.xs)

    def row_heights(self) -> np.ndarray:
        return np.diff(self.ys)

    def cells(self) -> Iterator[Cell]:
        """セルを行優先（row → col）の順に返す。"""
        for j in range(self.n_rows):
            y0 = float(self.ys[j])
            h = float(self.ys[j + 1]) - y0
            for i in range(self.n_cols):
                x0 = float(self.xs[i])
                w = float(self.xs[i + 1]) - x0
                yield Cell(col=i, row=j, x=x0, y=y0, w=w, h=h)


def build_lines(
    count: int,
    extent: float,
    *,
    gutter_frac: float = 0.08,
    jitter_frac: float = 0.1,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """1 軸ぶんの格子線位置を生成する。

    Parameters
    ----------
    count : int
        セル数。線の本数は `count + 1`。
    extent : float
        軸方向のキャンバス長 [px]。
    gutter_frac : float, default 0.08
        キャンバス長に対するガター幅の比率。
    jitter_frac : float, default 0.1
        ガター控除後のセル幅に対する揺らぎ幅の比率（±）。
    rng : np.random.Generator or None
        揺らぎ用の乱数。None なら揺らさない。

    Returns
    -------
    np.ndarray
        float64 の昇順配列。先頭は 0、末尾は extent。
        `count <= 0` または `extent <= 0` では空配列。
    """
    n = int(count)
    length = float(extent)
    if n <= 0 or not np.isfinite(length) or length <= 0.0:
        return np.zeros((0,), dtype=np.float64)

    lines = length * np.arange(n + 1, dtype=np.float64) / float(n)

    gutter = length * max(0.0, float(gutter_frac))
    tile = max(0.0, (length - gutter * (n + 1)) / float(n))
    amp = tile * max(0.0, float(jitter_frac))
    if rng is not None and amp > 0.0 and n > 1:
        lines[1:-1] += rng.uniform(-amp, amp, size=n - 1)

    # 揺らぎ後も外周はキャンバス端に一致させる。
    lines[0] = 0.0
    lines[-1] = length
    return lines


def build_grid(
    cols: int,
    rows: int,
    width: float,
    height: float,
    *,
    gutter_frac: float = 0.08,
    jitter_frac: float = 0.1,
    rng: np.random.Generator | None = None,
) -> Grid:
    """キャンバス全面を覆う格子を生成する。

    x 方向を先に、y 方向を後に乱数消費する（同一シードで同一格子）。
    """
    xs = build_lines(cols, width, gutter_frac=gutter_frac, jitter_frac=jitter_frac, rng=rng)
    ys = build_lines(rows, height, gutter_frac=gutter_frac, jitter_frac=jitter_frac, rng=rng)
    return Grid(xs=xs, ys=ys, width=float(width), height=float(height))


def choose_grid_size(
    rng: np.random.Generator,
    *,
    min_cols: int,
    max_cols: int,
    min_rows: int,
    max_rows: int,
) -> tuple[int, int]:
    """列数/行数を閉区間から一様に選ぶ。"""
    lo_c, hi_c = sorted((int(min_cols), int(max_cols)))
    lo_r, hi_r = sorted((int(min_rows), int(max_rows)))
    cols = int(rng.integers(lo_c, hi_c + 1))
    rows = int(rng.integers(lo_r, hi_r + 1))
    return cols, rows


__all__ = ["Cell", "Grid", "build_grid", "build_lines", "choose_grid_size"]
