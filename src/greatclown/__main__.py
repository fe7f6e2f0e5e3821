# どこで: `src/greatclown/__main__.py`。
# 何を: `python -m greatclown ...` の CLI エントリポイントを提供する。
# なぜ: headless 書き出し（render）と対話ビューア（view）を短い導線で実行できるようにするため。

from __future__ import annotations

import argparse
import sys


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    p = argparse.ArgumentParser(prog="python -m greatclown")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("render", help="作品を PNG に書き出す", add_help=False)
    sub.add_parser("view", help="対話ビューアを開く（r: 再生成 / s: 保存 / d: 可視化）", add_help=False)

    args, rest = p.parse_known_args(argv)

    sub_argv = list(rest)
    if sub_argv and sub_argv[0] == "--":
        sub_argv = sub_argv[1:]

    if args.cmd == "render":
        from greatclown.devtools import render_png

        return int(render_png.main(sub_argv))

    if args.cmd == "view":
        from greatclown.devtools import view

        return int(view.main(sub_argv))

    raise AssertionError(f"unknown cmd: {args.cmd!r}")


if __name__ == "__main__":
    raise SystemExit(main())
