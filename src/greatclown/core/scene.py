"""
どこで: `src/greatclown/core/scene.py`。
何を: 描画パスの 1 単位である Layer（ジオメトリ + 色/不透明度/線幅/合成モード）を定義する。
なぜ: 生成側（格子/ブラシ/モチーフ）と出力側（PNG ラスタライズ）の受け渡しを 1 つの型に固定するため。
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from greatclown.core.realized_geometry import (
    GeomTuple,
    RealizedGeometry,
    realized_geometry_from_tuple,
)

BLEND_MODES: tuple[str, ...] = ("normal", "multiply")

RGB = tuple[int, int, int]


def _per_line(value: float | np.ndarray, n_lines: int, *, name: str, context: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == 0:
        return np.full((n_lines,), float(arr), dtype=np.float64)
    arr = arr.reshape(-1)
    if arr.size != n_lines:
        raise ValueError(
            f"{context}: {name} の要素数がポリライン本数と一致しない: "
            f"got={arr.size}, expected={n_lines}"
        )
    return arr.astype(np.float64, copy=True)


@dataclass(frozen=True, slots=True)
class Layer:
    """1 回の描画パスで描くポリライン集合とスタイル。

    Parameters
    ----------
    geometry : RealizedGeometry or GeomTuple
        描画対象。タプルは RealizedGeometry に変換して保持する。
    color : tuple[int, int, int]
        RGB（0..255）。
    alpha : float or np.ndarray, default 255.0
        不透明度（0..255）。配列ならポリラインごと。
    thickness : float or np.ndarray, default 1.0
        線幅 [px]。配列ならポリラインごと。塗りでは輪郭線幅（0 で輪郭なし）。
    fill : bool, default False
        True なら各ポリラインを閉多角形として塗る。
    blend : {"normal","multiply"}, default "normal"
        キャンバスへの合成モード。
    name : str, default ""
        デバッグ/ログ用の名前。
    """

    geometry: RealizedGeometry
    color: RGB
    alpha: float | np.ndarray = 255.0
    thickness: float | np.ndarray = 1.0
    fill: bool = False
    blend: str = "normal"
    name: str = ""

    def __post_init__(self) -> None:
        context = f"Layer {self.name!r}" if self.name else "Layer"
        geometry = self.geometry
        if not isinstance(geometry, RealizedGeometry):
            geometry = realized_geometry_from_tuple(geometry, context=context)

        if self.blend not in BLEND_MODES:
            raise ValueError(f"{context}: 未対応の blend: {self.blend!r}")

        try:
            r, g, b = self.color
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{context}: color は長さ 3 の RGB である必要がある") from exc
        color = (
            int(np.clip(round(float(r)), 0, 255)),
            int(np.clip(round(float(g)), 0, 255)),
            int(np.clip(round(float(b)), 0, 255)),
        )

        n_lines = geometry.n_lines
        alpha = np.clip(_per_line(self.alpha, n_lines, name="alpha", context=context), 0.0, 255.0)
        thickness = np.maximum(
            _per_line(self.thickness, n_lines, name="thickness", context=context), 0.0
        )
        alpha.setflags(write=False)
        thickness.setflags(write=False)

        object.__setattr__(self, "geometry", geometry)
        object.__setattr__(self, "color", color)
        object.__setattr__(self, "alpha", alpha)
        object.__setattr__(self, "thickness", thickness)

    @property
    def is_empty(self) -> bool:
        return self.geometry.n_lines == 0


def layer(
    geometry: RealizedGeometry | GeomTuple,
    color: RGB,
    *,
    alpha: float | np.ndarray = 255.0,
    thickness: float | np.ndarray = 1.0,
    fill: bool = False,
    blend: str = "normal",
    name: str = "",
) -> Layer:
    """キーワード引数で Layer を作るショートカット。"""
    return Layer(
        geometry=geometry,  # type: ignore[arg-type]
        color=color,
        alpha=alpha,
        thickness=thickness,
        fill=fill,
        blend=blend,
        name=name,
    )


__all__ = ["BLEND_MODES", "Layer", "RGB", "layer"]
