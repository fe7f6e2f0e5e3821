"""
どこで: `src/greatclown/export/image.py`。
何を: Layer 列を Pillow でラスタライズし、PNG として保存する関数を提供する。
なぜ: ウィンドウ（pyglet）に依存せず、ヘッドレスで作品を書き出せるようにするため。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import numpy as np
from PIL import Image, ImageChops, ImageDraw

from greatclown.core.artwork import Artwork
from greatclown.core.output_paths import default_png_output_path
from greatclown.core.scene import RGB, Layer

logger = logging.getLogger(__name__)

# 同じ overlay にまとめる alpha の刻み（0..255）
_ALPHA_STEP = 4
# 同じ overlay にまとめる線幅の刻み [px]
_WIDTH_STEP = 0.5

# --- 描画の前提 ---
#
# ImageDraw は RGBA を「上書き」で描くため、半透明の線同士は 1 枚の overlay 内では重ならない。
# そこで Layer 内のポリラインを (alpha, 線幅) で量子化してグループに分け、
# グループごとに overlay を作って `alpha_composite` で積む。
# 1px 未満の線幅は 1px で描き、その分 alpha を下げて濃さを合わせる。


def _scaled_polylines(layer: Layer, scale: float) -> list[np.ndarray]:
    coords = np.asarray(layer.geometry.coords, dtype=np.float64) * float(scale)
    offsets = layer.geometry.offsets
    return [coords[int(offsets[i]) : int(offsets[i + 1])] for i in range(offsets.size - 1)]


def _stroke_groups(
    layer: Layer, scale: float
) -> dict[tuple[int, int], list[np.ndarray]]:
    groups: dict[tuple[int, int], list[np.ndarray]] = {}
    polylines = _scaled_polylines(layer, scale)
    alphas = np.asarray(layer.alpha, dtype=np.float64)
    widths = np.asarray(layer.thickness, dtype=np.float64) * float(scale)
    for pts, a, w in zip(polylines, alphas, widths):
        if pts.shape[0] < 2 or w <= 0.0 or a <= 0.0:
            continue
        if w < 1.0:
            a = a * w
            w = 1.0
        w_q = max(1, int(round(round(w / _WIDTH_STEP) * _WIDTH_STEP)))
        a_q = int(min(255, round(a / _ALPHA_STEP) * _ALPHA_STEP))
        if a_q <= 0:
            continue
        groups.setdefault((a_q, w_q), []).append(pts)
    return groups


def _fill_groups(layer: Layer, scale: float) -> dict[int, list[np.ndarray]]:
    groups: dict[int, list[np.ndarray]] = {}
    polylines = _scaled_polylines(layer, scale)
    for pts, a in zip(polylines, np.asarray(layer.alpha, dtype=np.float64)):
        if pts.shape[0] < 3 or a <= 0.0:
            continue
        a_q = int(min(255, max(1, round(a))))
        groups.setdefault(a_q, []).append(pts)
    return groups


def _bbox(
    polylines: Sequence[np.ndarray], pad: float, size: tuple[int, int]
) -> tuple[int, int, int, int] | None:
    stacked = np.concatenate(polylines, axis=0)
    x0 = max(0, int(np.floor(stacked[:, 0].min() - pad)))
    y0 = max(0, int(np.floor(stacked[:, 1].min() - pad)))
    x1 = min(size[0], int(np.ceil(stacked[:, 0].max() + pad)) + 1)
    y1 = min(size[1], int(np.ceil(stacked[:, 1].max() + pad)) + 1)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def _composite_group(
    canvas: Image.Image,
    polylines: Sequence[np.ndarray],
    color: RGB,
    alpha: int,
    *,
    width: int = 0,
    fill: bool = False,
) -> None:
    box = _bbox(polylines, pad=float(width) + 1.0, size=canvas.size)
    if box is None:
        return
    x0, y0, x1, y1 = box
    overlay = Image.new("RGBA", (x1 - x0, y1 - y0), (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    rgba = (int(color[0]), int(color[1]), int(color[2]), int(alpha))
    shift = np.array([x0, y0], dtype=np.float64)
    for pts in polylines:
        flat = (pts - shift[None, :]).ravel().tolist()
        if fill:
            draw.polygon(flat, fill=rgba)
        else:
            draw.line(flat, fill=rgba, width=int(width), joint="curve" if width > 2 else None)
    canvas.alpha_composite(overlay, dest=(x0, y0))


def _draw_layer(canvas: Image.Image, layer: Layer, scale: float) -> None:
    if layer.fill:
        for a_q, polys in _fill_groups(layer, scale).items():
            _composite_group(canvas, polys, layer.color, a_q, fill=True)
    # 線幅 0 のポリライン（輪郭なしの塗り）は _stroke_groups が除く
    for (a_q, w_q), polys in _stroke_groups(layer, scale).items():
        _composite_group(canvas, polys, layer.color, a_q, width=w_q)


def _multiply_layer(canvas: Image.Image, layer: Layer, scale: float) -> Image.Image:
    paper = Image.new("RGBA", canvas.size, (255, 255, 255, 255))
    _draw_layer(paper, layer, scale)
    out = ImageChops.multiply(canvas.convert("RGB"), paper.convert("RGB"))
    return out.convert("RGBA")


def render_image(
    layers: Iterable[Layer],
    canvas_size: tuple[int, int],
    *,
    background: RGB = (255, 255, 255),
    scale: float = 1.0,
) -> Image.Image:
    """Layer 列を描画順にラスタライズした RGB 画像を返す。

    Parameters
    ----------
    layers : Iterable[Layer]
        描画順の Layer。
    canvas_size : tuple[int, int]
        キャンバス寸法 [px]。
    background : tuple[int, int, int], default (255, 255, 255)
        下地色。
    scale : float, default 1.0
        出力の拡大率。画像寸法は `round(canvas_size * scale)`。

    Returns
    -------
    PIL.Image.Image
        mode "RGB"。

    Notes
    -----
    - `blend="multiply"` の Layer は白紙に描いてから `ImageChops.multiply` で乗算する。
    - 塗り Layer は各ポリラインを閉多角形として塗り、thickness > 0 なら輪郭線も描く。
    """
    s = float(scale)
    if not np.isfinite(s) or s <= 0.0:
        raise ValueError(f"scale は正の値である必要がある: got={scale!r}")
    w, h = canvas_size
    if float(w) <= 0.0 or float(h) <= 0.0:
        raise ValueError(f"canvas_size は正の値である必要がある: got={canvas_size!r}")
    size = (max(1, int(round(float(w) * s))), max(1, int(round(float(h) * s))))

    bg = tuple(int(c) for c in background)
    canvas = Image.new("RGBA", size, (bg[0], bg[1], bg[2], 255))
    n_layers = 0
    for layer in layers:
        if layer.is_empty:
            continue
        if layer.blend == "multiply":
            canvas = _multiply_layer(canvas, layer, s)
        else:
            _draw_layer(canvas, layer, s)
        n_layers += 1
    logger.debug("rendered %d layers at %dx%d", n_layers, size[0], size[1])
    return canvas.convert("RGB")


def export_image(
    layers: Iterable[Layer],
    path: str | Path,
    *,
    canvas_size: tuple[int, int],
    background: RGB = (255, 255, 255),
    scale: float = 1.0,
) -> Path:
    """Layer 列を PNG として保存し、保存先パスを返す。

    親ディレクトリが無ければ作成する。
    """
    out_path = Path(path)
    image = render_image(layers, canvas_size, background=background, scale=scale)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(out_path, format="PNG")
    logger.info("saved %s (%dx%d)", out_path, image.width, image.height)
    return out_path


def export_artwork(
    artwork: Artwork,
    path: str | Path | None = None,
    *,
    scale: float = 1.0,
    run_id: str | None = None,
) -> Path:
    """作品を PNG として保存する。

    `path` 未指定なら `default_png_output_path()` の既定パスへ保存する。
    """
    out_path = (
        default_png_output_path(artwork.variant, artwork.seed, artwork.canvas_size, run_id)
        if path is None
        else Path(path)
    )
    return export_image(
        artwork.layers,
        out_path,
        canvas_size=artwork.canvas_size,
        background=artwork.background,
        scale=scale,
    )


__all__ = ["export_artwork", "export_image", "render_image"]
