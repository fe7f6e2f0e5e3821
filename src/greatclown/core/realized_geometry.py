# src/greatclown/core/realized_geometry.py
# キャンバス上のポリライン集合 RealizedGeometry のモデルと検証ロジック。

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


GeomTuple = tuple[np.ndarray, np.ndarray]
"""`(coords, offsets)` で表すポリライン集合の最小表現。

- `coords`: shape `(N,2)` のキャンバス座標配列 [px]（y 下向き、dtype は float32 を推奨）
- `offsets`: shape `(M+1,)` の境界配列（dtype は int32 を推奨）

Notes
-----
グリッド・セル・ブラシ・モチーフの各生成関数はこのタプルを返す。
描画レイヤに積む段階で `RealizedGeometry` に統一する。
"""


@dataclass(frozen=True, slots=True)
class RealizedGeometry:
    """検証済みで不変なポリライン集合。

    Parameters
    ----------
    coords : np.ndarray
        float32 型 shape (N, 2) の頂点配列。
    offsets : np.ndarray
        int32 型 shape (M+1,) のポリライン開始インデックス配列。

    Notes
    -----
    不変性を契約とし、配列は writeable=False で保持する。
    offsets と coords の整合性はコンストラクタ内で検証する。
    """

    coords: np.ndarray
    offsets: np.ndarray

    def __post_init__(self) -> None:
        """配列形状と整合性を検証し、不変条件を満たす形に固定する。"""
        coords = np.array(self.coords, copy=True)
        offsets = np.array(self.offsets, copy=True)

        if coords.ndim == 2 and coords.shape[0] == 0 and coords.shape[1] != 2:
            coords = coords.reshape(0, 2)
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError("coords は shape (N,2) の 2 次元配列である必要がある")

        if coords.dtype != np.float32:
            coords = coords.astype(np.float32, copy=False)

        if offsets.ndim != 1:
            raise ValueError("offsets は 1 次元配列である必要がある")

        if offsets.dtype != np.int32:
            offsets = offsets.astype(np.int32, copy=False)

        if offsets.size == 0:
            raise ValueError("offsets は少なくとも 1 要素を含む必要がある")

        if offsets[0] != 0:
            raise ValueError("offsets[0] は 0 である必要がある")

        if offsets[-1] != coords.shape[0]:
            raise ValueError("offsets[-1] は coords 行数と一致する必要がある")

        if np.any(np.diff(offsets) < 0):
            raise ValueError("offsets は単調非減少である必要がある")

        coords.setflags(write=False)
        offsets.setflags(write=False)

        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "offsets", offsets)

    @property
    def n_lines(self) -> int:
        """ポリライン本数を返す。"""
        return int(self.offsets.size) - 1

    def polylines(self) -> list[np.ndarray]:
        """各ポリラインの頂点配列（ビュー）を順に返す。"""
        return [
            self.coords[int(self.offsets[i]) : int(self.offsets[i + 1])]
            for i in range(self.n_lines)
        ]


def empty_geom() -> GeomTuple:
    """頂点 0 / ポリライン 0 本の `(coords, offsets)` を返す。"""
    return np.zeros((0, 2), dtype=np.float32), np.zeros((1,), dtype=np.int32)


def geom_from_polylines(polylines: list[np.ndarray]) -> GeomTuple:
    """頂点配列のリストを `(coords, offsets)` に詰める。

    頂点数 0 の要素は捨てる。
    """
    kept = [np.asarray(p, dtype=np.float32).reshape(-1, 2) for p in polylines]
    kept = [p for p in kept if p.shape[0] > 0]
    if not kept:
        return empty_geom()
    counts = np.asarray([p.shape[0] for p in kept], dtype=np.int64)
    offsets = np.zeros((len(kept) + 1,), dtype=np.int32)
    offsets[1:] = np.cumsum(counts).astype(np.int32)
    return np.concatenate(kept, axis=0), offsets


def realized_geometry_from_tuple(value: object, *, context: str) -> RealizedGeometry:
    """`(coords, offsets)` を `RealizedGeometry` に変換する。

    Parameters
    ----------
    value : object
        `(coords, offsets)` タプル。
    context : str
        例外メッセージに含める文脈情報（レイヤ名/関数名など）。

    Returns
    -------
    RealizedGeometry
        変換結果。
    """

    if not isinstance(value, tuple) or len(value) != 2:
        raise TypeError(
            f"{context}: 期待する値は (coords, offsets) タプルです: {type(value)!r}"
        )

    coords_raw, offsets_raw = value
    coords = np.asarray(coords_raw)
    offsets = np.asarray(offsets_raw)

    if coords.ndim != 2 or int(coords.shape[1]) != 2:
        raise ValueError(
            f"{context}: coords は shape (N,2) の配列である必要があります: shape={coords.shape}"
        )
    if offsets.ndim != 1:
        raise ValueError(
            f"{context}: offsets は 1 次元配列である必要があります: shape={offsets.shape}"
        )

    try:
        return RealizedGeometry(coords=coords, offsets=offsets)
    except ValueError as exc:
        raise ValueError(f"{context}: (coords, offsets) が不正です") from exc


def concat_geom_tuples(*geometries: GeomTuple) -> GeomTuple:
    """複数の `(coords, offsets)` を連結して 1 つにまとめる。"""
    if not geometries:
        return empty_geom()

    coords_list = [np.asarray(g[0], dtype=np.float32).reshape(-1, 2) for g in geometries]
    offsets_list = [g[1] for g in geometries]

    total_coords = np.concatenate(coords_list, axis=0).astype(np.float32, copy=False)

    new_offsets: list[int] = [0]
    offset_base = 0
    for offsets in offsets_list:
        # 先頭 0 を除いた差分部分だけをシフトして足し込む。
        shifted = np.asarray(offsets, dtype=np.int64)[1:] + int(offset_base)
        new_offsets.extend(shifted.tolist())
        offset_base += int(np.asarray(offsets)[-1])

    return total_coords, np.asarray(new_offsets, dtype=np.int32)


def concat_realized_geometries(*geometries: RealizedGeometry) -> RealizedGeometry:
    """複数の RealizedGeometry を連結して 1 つにまとめる。"""
    coords, offsets = concat_geom_tuples(*((g.coords, g.offsets) for g in geometries))
    return RealizedGeometry(coords=coords, offsets=offsets)


__all__ = [
    "GeomTuple",
    "RealizedGeometry",
    "concat_geom_tuples",
    "concat_realized_geometries",
    "empty_geom",
    "geom_from_polylines",
    "realized_geometry_from_tuple",
]
