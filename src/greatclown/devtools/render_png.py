"""
どこで: `src/greatclown/devtools/render_png.py`。
何を: `python -m greatclown render ...` で作品を headless で PNG に書き出す。
なぜ: ウィンドウ無しで複数シードの候補画像を生成し、見比べられるようにするため。
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from greatclown.core.artwork import new_seed, regenerate
from greatclown.core.output_paths import output_path_for_artwork
from greatclown.core.runtime_config import (
    VARIANTS,
    runtime_config,
    set_config_path,
    with_overrides,
)
from greatclown.export.image import export_artwork


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="python -m greatclown render")
    p.add_argument(
        "--seed",
        nargs="+",
        type=int,
        default=None,
        help="乱数シード（複数指定可、既定: ランダムに 1 つ）",
    )
    p.add_argument(
        "--variant",
        choices=VARIANTS,
        default=None,
        help="スケッチバリアント（既定: config の variant）",
    )
    p.add_argument(
        "--canvas",
        nargs=2,
        type=int,
        default=None,
        metavar=("W", "H"),
        help="canvas_size (width height)。既定: config の canvas",
    )
    p.add_argument(
        "--scale",
        type=float,
        default=None,
        help="PNG の拡大率（既定: config の export.png_scale）",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="圧縮の可視化（セルの濃淡と焦点マーカー）を重ねる",
    )
    p.add_argument(
        "--out",
        default=None,
        help="出力 PNG パス（--seed が 1 つのときのみ）",
    )
    p.add_argument(
        "--out-dir",
        default=None,
        help="出力ディレクトリ（省略時: 既定の出力先）",
    )
    p.add_argument(
        "--run-id",
        default=None,
        help="既定出力パスの run_id（ファイル名 suffix）",
    )
    p.add_argument(
        "--config",
        default=None,
        help="config.yaml のパス（指定した場合は探索より優先）",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="DEBUG ログを表示する")

    args = p.parse_args(argv)

    if args.out is not None and args.out_dir is not None:
        p.error("--out と --out-dir は同時に指定できません")
    if args.out is not None and args.seed is not None and len(args.seed) != 1:
        p.error("--out は --seed が 1 つのときだけ指定できます（複数枚は --out-dir を使ってください）")
    if args.seed is not None and any(s < 0 for s in args.seed):
        p.error("--seed は 0 以上である必要があります")
    if args.canvas is not None and any(v <= 0 for v in args.canvas):
        p.error("--canvas の W / H は正の値である必要があります")
    if args.scale is not None and not args.scale > 0.0:
        p.error("--scale は正の値である必要があります")

    return args


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    configure_logging(bool(args.verbose))

    if args.config is not None:
        set_config_path(args.config)

    cfg = runtime_config()
    if args.canvas is not None:
        canvas_w, canvas_h = args.canvas
        cfg = with_overrides(cfg, canvas={"width": int(canvas_w), "height": int(canvas_h)})
    scale = cfg.png_scale if args.scale is None else float(args.scale)

    seeds = [new_seed()] if args.seed is None else [int(s) for s in args.seed]
    out_dir = None if args.out_dir is None else Path(str(args.out_dir))

    for seed in seeds:
        art = regenerate(cfg, seed, variant=args.variant, visualize=True if args.debug else None)
        if args.out is not None:
            path = Path(str(args.out))
        else:
            path = output_path_for_artwork(
                kind="png",
                ext="png",
                variant=art.variant,
                seed=art.seed,
                canvas_size=art.canvas_size,
                run_id=args.run_id,
                out_dir=out_dir,
            )
        saved = export_artwork(art, path, scale=scale)
        print(f"Saved PNG: {saved} (seed={art.seed})")

    return 0


__all__ = ["configure_logging", "main"]
