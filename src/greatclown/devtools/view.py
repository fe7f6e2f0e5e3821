# どこで: `src/greatclown/devtools/view.py`。
# 何を: `python -m greatclown view ...` で対話ビューアを開く。
# なぜ: 引数解釈を pyglet の import より前に済ませ、`--help` をウィンドウ環境なしで使えるようにするため。

from __future__ import annotations

import argparse
import sys

from greatclown.core.runtime_config import VARIANTS, runtime_config, set_config_path
from greatclown.devtools.render_png import configure_logging


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="python -m greatclown view")
    p.add_argument("--seed", type=int, default=None, help="初回のシード（既定: ランダム）")
    p.add_argument("--variant", choices=VARIANTS, default=None, help="スケッチバリアント")
    p.add_argument("--scale", type=float, default=None, help="表示倍率（既定: 画面に収める）")
    p.add_argument(
        "--config",
        default=None,
        help="config.yaml のパス（指定した場合は探索より優先）",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="DEBUG ログを表示する")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    configure_logging(bool(args.verbose))

    if args.config is not None:
        set_config_path(args.config)

    from greatclown.interactive.viewer import run_viewer

    run_viewer(runtime_config(), seed=args.seed, variant=args.variant, scale=args.scale)
    return 0


__all__ = ["main"]
