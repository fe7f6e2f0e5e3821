"""
どこで: `src/greatclown/core/artwork.py`。
何を: シードと設定から 1 枚の作品（Layer 列）を組み立てる再生成パイプライン。
なぜ: 格子/圧縮/ブラシ/モチーフの各段を決まった順序で合成し、同一シードで同一結果を保証するため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from greatclown.core.brush import (
    BrushStyle,
    PerlinField,
    PressureCurve,
    RadialField,
    Stroke,
    VectorField,
    concat_strokes,
    hatch_rect,
    stroke_polyline,
    watercolor_bleed,
)
from greatclown.core.cells import (
    cell_centers,
    cell_outlines,
    gut_lines,
    jittered_outline_layers,
    rounded_rect_points,
)
from greatclown.core.compression import (
    FocalPoint,
    apply_compression,
    choose_focal_point,
    compression_field,
)
from greatclown.core.grid import Grid, build_grid, choose_grid_size
from greatclown.core.lattice import (
    build_lattice,
    distort_lattice,
    lattice_lines,
    mirror_geometry,
    webbing,
)
from greatclown.core.motifs import (
    background_layers,
    circle_motif_layers,
    clown_figure_layers,
    compression_tint_layer,
    focal_marker_layers,
    paper_texture_layers,
    wash_layers,
)
from greatclown.core.noise import PerlinNoise
from greatclown.core.realized_geometry import GeomTuple, concat_geom_tuples
from greatclown.core.runtime_config import VARIANTS, RuntimeConfig
from greatclown.core.scene import RGB, Layer, layer

logger = logging.getLogger(__name__)

SEED_MAX = 1_000_000_000


@dataclass(frozen=True, slots=True)
class Artwork:
    """1 回の再生成で得られる作品。

    Attributes
    ----------
    seed : int
        乱数シード。
    variant : str
        "compressed_grid" / "mirrored_lattice"。
    canvas_size : tuple[int, int]
        キャンバス寸法 [px]。
    background : tuple[int, int, int]
        下地色。
    layers : tuple[Layer, ...]
        描画順の Layer 列。
    grid : Grid or None
        圧縮後の格子（compressed_grid のみ）。
    focal : FocalPoint or None
        圧縮の焦点（圧縮有効時のみ）。
    lattice : np.ndarray or None
        歪めた左半分の点格子（mirrored_lattice のみ）。
    visualize : bool
        圧縮の可視化レイヤを含むか。
    """

    seed: int
    variant: str
    canvas_size: tuple[int, int]
    background: RGB
    layers: tuple[Layer, ...]
    grid: Grid | None = None
    focal: FocalPoint | None = None
    lattice: np.ndarray | None = None
    visualize: bool = False

    @property
    def n_polylines(self) -> int:
        return sum(lay.geometry.n_lines for lay in self.layers)


def new_seed(rng: np.random.Generator | None = None) -> int:
    """`[0, 1e9)` の新しいシードを返す。"""
    gen = np.random.default_rng() if rng is None else rng
    return int(gen.integers(0, SEED_MAX))


def _brush_field(
    cfg: RuntimeConfig, noise: PerlinNoise, focal: FocalPoint | None
) -> VectorField | None:
    b = cfg.brush
    if b.field == "perlin":
        return PerlinField(noise, scale=float(b.field_scale))
    if b.field == "radial":
        if focal is not None:
            return RadialField(float(focal.x), float(focal.y), swirl=0.5 * math.pi)
        w, h = cfg.canvas_size
        return RadialField(0.5 * w, 0.5 * h, swirl=0.5 * math.pi)
    return None


def _brushed_cell_layers(
    cfg: RuntimeConfig,
    grid: Grid,
    focal: FocalPoint | None,
    *,
    rng: np.random.Generator,
    noise: PerlinNoise,
) -> list[Layer]:
    """セル輪郭を筆圧ストロークで描き、確率でハッチングとにじみを足す。

    圧縮の強いセルほど線が太く濃くなる（`1 + (1 - factor)` 倍）。
    """
    b = cfg.brush
    g = cfg.grid
    pal = cfg.palette
    colors: tuple[RGB, ...] = (pal.muted_blue_gray, pal.deep_red)

    pressure = PressureCurve(
        start=b.pressure_start,
        end=b.pressure_end,
        noise=b.pressure_noise,
        min_pressure=b.pressure_min,
        max_pressure=b.pressure_max,
    )
    field = _brush_field(cfg, noise, focal)

    strokes: list[list[Stroke]] = [[] for _ in colors]
    hatches: list[GeomTuple] = []
    washes: list[GeomTuple] = []

    for cell in grid.cells():
        inset = 0.5 * max(0.0, g.cell_gutter)
        cw = cell.w - 2.0 * inset
        ch = cell.h - 2.0 * inset
        if cw <= 0.0 or ch <= 0.0:
            continue
        radius = min(cw, ch) * g.corner_radius_frac
        if g.max_corner_radius is not None:
            radius = min(radius, g.max_corner_radius)
        pts = rounded_rect_points(
            cell.x + inset, cell.y + inset, cw, ch, radius, corner=g.corner
        )

        boost = 1.0
        if focal is not None:
            cx, cy = cell.center
            boost = 2.0 - float(compression_field(cx, cy, focal))
        style = BrushStyle(
            weight=b.weight * boost,
            alpha=min(255.0, b.alpha * boost),
            passes=b.passes,
            vibration=b.vibration,
            segment_length=b.segment_length,
            field_bias=b.field_bias,
        )
        ci = int(rng.integers(0, len(colors)))
        strokes[ci].append(
            stroke_polyline(pts, closed=True, pressure=pressure, style=style, field=field, rng=rng)
        )

        if float(rng.random()) < b.hatch_probability:
            angle = float(rng.uniform(30.0, 60.0))
            hatches.append(
                hatch_rect(
                    cell.x,
                    cell.y,
                    cell.w,
                    cell.h,
                    angle=angle,
                    spacing=b.hatch_spacing,
                    wobble=0.5 * b.vibration,
                    rng=rng,
                )
            )
        if float(rng.random()) < b.watercolor_probability:
            washes.append(watercolor_bleed(pts, rng=rng, noise=noise))

    out: list[Layer] = []
    if washes:
        out.append(
            layer(
                concat_geom_tuples(*washes),
                pal.soft_pink,
                alpha=12.0,
                thickness=0.0,
                fill=True,
                name="brush:watercolor",
            )
        )
    for ci, color in enumerate(colors):
        merged = concat_strokes(strokes[ci])
        if merged.n_segments > 0:
            out.append(merged.to_layer(color, name=f"brush:cells{ci}"))
    if hatches:
        out.append(
            layer(
                concat_geom_tuples(*hatches),
                pal.deep_red,
                alpha=0.6 * b.alpha,
                thickness=0.6,
                name="brush:hatch",
            )
        )
    logger.debug(
        "brushed cells: strokes=%d hatches=%d washes=%d",
        sum(len(s) for s in strokes),
        len(hatches),
        len(washes),
    )
    return out


def _compressed_grid_layers(
    cfg: RuntimeConfig,
    *,
    rng: np.random.Generator,
    noise: PerlinNoise,
    visualize: bool,
) -> tuple[list[Layer], Grid, FocalPoint | None]:
    w, h = cfg.canvas_size
    g = cfg.grid
    c = cfg.compression
    pal = cfg.palette

    layers: list[Layer] = list(background_layers(w, h, rng))

    cols, rows = choose_grid_size(
        rng,
        min_cols=g.min_cols,
        max_cols=g.max_cols,
        min_rows=g.min_rows,
        max_rows=g.max_rows,
    )
    grid = build_grid(
        cols, rows, w, h, gutter_frac=g.gutter_frac, jitter_frac=g.jitter_frac, rng=rng
    )
    logger.debug("grid: cols=%d rows=%d", cols, rows)

    focal: FocalPoint | None = None
    if c.enabled:
        focal = choose_focal_point(
            w,
            h,
            rng,
            margin=c.margin,
            strength_range=c.strength_range,
            radius_range=c.radius_range,
            falloff=c.falloff,
            core=c.core,
            profile=c.profile,
        )
        grid = apply_compression(
            grid, focal, mode=c.mode, direction=c.direction, max_extra=c.max_extra_lines
        )
        logger.debug(
            "focal: (%.1f, %.1f) strength=%.2f radius=%.1f",
            focal.x,
            focal.y,
            focal.strength,
            focal.radius,
        )

    if visualize and focal is not None:
        tint = compression_tint_layer(grid, focal)
        if tint is not None:
            layers.append(tint)

    if cfg.brush.enabled:
        layers.extend(_brushed_cell_layers(cfg, grid, focal, rng=rng, noise=noise))
    else:
        outlines = cell_outlines(
            grid,
            gutter=g.cell_gutter,
            corner_frac=g.corner_radius_frac,
            max_radius=g.max_corner_radius,
            corner=g.corner,
        )
        layers.extend(
            jittered_outline_layers(
                outlines,
                colors=(pal.muted_blue_gray, pal.deep_red),
                rng=rng,
                base_weight=g.stroke_weight,
            )
        )

    layers.append(layer(gut_lines(grid), pal.muted_blue_gray, thickness=0.8, name="gut"))

    m = cfg.motifs
    layers.extend(
        circle_motif_layers(
            cell_centers(grid),
            rng,
            probability=m.circle_probability,
            size_range=m.circle_size,
            ring_color=pal.deep_red,
            core_color=pal.soft_pink,
        )
    )

    if visualize and focal is not None:
        layers.extend(focal_marker_layers(focal))
    return layers, grid, focal


def _mirror_layer(source: Layer, width: float, *, jitter: float, pass_seed: int) -> Layer:
    # 同じパスの Layer は同じずれ量を使う
    geometry = (source.geometry.coords, source.geometry.offsets)
    mirrored = mirror_geometry(
        geometry, width, jitter=jitter, rng=np.random.default_rng(pass_seed)
    )
    return layer(
        concat_geom_tuples(geometry, mirrored),
        source.color,
        alpha=np.concatenate([source.alpha, source.alpha]),
        thickness=np.concatenate([source.thickness, source.thickness]),
        fill=source.fill,
        blend=source.blend,
        name=source.name,
    )


def _mirrored(
    layers: list[Layer], width: float, *, jitter: float, rng: np.random.Generator
) -> list[Layer]:
    pass_seed = int(rng.integers(0, 2**32))
    return [_mirror_layer(lay, width, jitter=jitter, pass_seed=pass_seed) for lay in layers]


def _mirrored_lattice_layers(
    cfg: RuntimeConfig,
    *,
    rng: np.random.Generator,
    noise: PerlinNoise,
) -> tuple[list[Layer], np.ndarray]:
    w, h = cfg.canvas_size
    m = cfg.motifs
    pal = cfg.palette

    layers: list[Layer] = list(background_layers(w, h, rng))

    points = build_lattice(m.lattice_cols, m.lattice_rows, w, h)
    points = distort_lattice(
        points, noise, noise_scale=m.noise_scale, strength=m.distortion_strength
    )

    strands, diagonals = webbing(points, noise)
    structure = [
        layer(lattice_lines(points), pal.muted_blue_gray, name="lattice:lines"),
        layer(strands, pal.muted_blue_gray, alpha=90.0, name="lattice:webbing"),
    ]
    structure.append(
        layer(
            diagonals, pal.muted_blue_gray, alpha=90.0, thickness=0.7, name="lattice:diagonal"
        )
    )
    layers.extend(_mirrored(structure, w, jitter=m.symmetry_jitter, rng=rng))

    shapes = circle_motif_layers(
        points.reshape(-1, 2),
        rng,
        probability=m.circle_probability,
        size_range=m.circle_size,
        ring_color=pal.deep_red,
        core_color=pal.soft_pink,
    )
    shapes += clown_figure_layers(
        w, h, rng, body_color=pal.golden_yellow, leg_color=pal.muted_blue_gray
    )
    layers.extend(_mirrored(shapes, w, jitter=m.symmetry_jitter, rng=rng))
    return layers, points


def regenerate(
    cfg: RuntimeConfig,
    seed: int | None = None,
    *,
    variant: str | None = None,
    visualize: bool | None = None,
) -> Artwork:
    """シードから作品を再生成する。

    Parameters
    ----------
    cfg : RuntimeConfig
        実行時設定。
    seed : int or None
        乱数シード。None なら `new_seed()`。
    variant : str or None
        None なら `cfg.variant`。
    visualize : bool or None
        圧縮の可視化（セルの赤い濃淡と焦点マーカー）。None なら `cfg.compression.visualize`。

    Returns
    -------
    Artwork
        同じ (cfg, seed, variant, visualize) からは同一の作品。

    Raises
    ------
    ValueError
        未知の variant。
    """
    variant_s = cfg.variant if variant is None else str(variant)
    if variant_s not in VARIANTS:
        raise ValueError(f"未対応の variant: {variant_s!r}（{VARIANTS} のいずれか）")
    seed_i = new_seed() if seed is None else int(seed)
    show = cfg.compression.visualize if visualize is None else bool(visualize)

    rng = np.random.default_rng(seed_i)
    noise = PerlinNoise(seed_i)
    w, h = cfg.canvas_size

    grid: Grid | None = None
    focal: FocalPoint | None = None
    lattice: np.ndarray | None = None
    if variant_s == "compressed_grid":
        layers, grid, focal = _compressed_grid_layers(cfg, rng=rng, noise=noise, visualize=show)
    else:
        layers, lattice = _mirrored_lattice_layers(cfg, rng=rng, noise=noise)

    layers.extend(wash_layers(w, h, wash_opacity=cfg.motifs.wash_opacity))
    t = cfg.texture
    layers.extend(
        paper_texture_layers(
            w,
            h,
            rng,
            opacity=t.opacity,
            grain_density=t.grain_density,
            pulp_count=t.pulp_count,
            deckle_count=t.deckle_count,
        )
    )

    kept = tuple(lay for lay in layers if not lay.is_empty)
    logger.info("regenerated %s seed=%d layers=%d", variant_s, seed_i, len(kept))
    return Artwork(
        seed=seed_i,
        variant=variant_s,
        canvas_size=(int(w), int(h)),
        background=cfg.palette.warm_beige,
        layers=kept,
        grid=grid,
        focal=focal,
        lattice=lattice,
        visualize=show,
    )


__all__ = ["Artwork", "SEED_MAX", "new_seed", "regenerate"]
