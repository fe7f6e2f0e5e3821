# どこで: `src/greatclown/__init__.py`。
# 何を: ルート `greatclown` パッケージを定義し、よく使う入口を再公開する。
# なぜ: スケッチ側の import 起点を `greatclown` に統一するため。

from __future__ import annotations

from greatclown.core.artwork import Artwork, new_seed, regenerate
from greatclown.core.runtime_config import runtime_config, set_config_path
from greatclown.export.image import export_image, render_image

__all__ = [
    "Artwork",
    "export_image",
    "new_seed",
    "regenerate",
    "render_image",
    "runtime_config",
    "set_config_path",
]
