# どこで: `src/greatclown/interactive/session.py`。
# 何を: キー入力（r/s/d）を「再生成/保存/可視化切替」に対応付ける状態オブジェクトを提供する。
# なぜ: pyglet のイベントループから切り離し、キー操作の振る舞いをウィンドウなしでテストできるようにするため。

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from greatclown.core.artwork import Artwork, new_seed, regenerate
from greatclown.core.output_paths import output_path_for_artwork
from greatclown.core.runtime_config import RuntimeConfig
from greatclown.export.image import export_artwork

logger = logging.getLogger(__name__)

REGENERATE_KEYS = frozenset({"r", "R"})
SAVE_KEYS = frozenset({"s", "S"})
DEBUG_KEYS = frozenset({"d", "D"})


@dataclass(frozen=True, slots=True)
class KeyAction:
    """handle_key の結果。

    Attributes
    ----------
    kind : {"regenerate","save","toggle_debug"}
        実行した操作。
    path : Path or None
        "save" のときの保存先。
    """

    kind: str
    path: Path | None = None

    @property
    def needs_redraw(self) -> bool:
        return self.kind != "save"


class KeySession:
    """現在の作品と、キー操作による更新を保持する。

    Parameters
    ----------
    cfg : RuntimeConfig
        実行時設定。
    seed : int or None
        初回のシード。None なら新しいシードを引く。
    variant : str or None
        None なら `cfg.variant`。
    visualize : bool or None
        None なら `cfg.compression.visualize`。
    seed_rng : np.random.Generator or None
        r キーで引く新シードの乱数。None なら OS エントロピー。
    out_dir : str or Path or None
        s キーの保存先ディレクトリ。None なら `output_dir/png`。
    """

    def __init__(
        self,
        cfg: RuntimeConfig,
        *,
        seed: int | None = None,
        variant: str | None = None,
        visualize: bool | None = None,
        seed_rng: np.random.Generator | None = None,
        out_dir: str | Path | None = None,
    ) -> None:
        self._cfg = cfg
        self._variant = cfg.variant if variant is None else str(variant)
        self._visualize = cfg.compression.visualize if visualize is None else bool(visualize)
        self._seed_rng = np.random.default_rng() if seed_rng is None else seed_rng
        self._out_dir = None if out_dir is None else Path(out_dir)
        self._revision = 0
        first_seed = new_seed(self._seed_rng) if seed is None else int(seed)
        self._artwork = self._build(first_seed)

    def _build(self, seed: int) -> Artwork:
        return regenerate(self._cfg, seed, variant=self._variant, visualize=self._visualize)

    @property
    def artwork(self) -> Artwork:
        return self._artwork

    @property
    def seed(self) -> int:
        return int(self._artwork.seed)

    @property
    def visualize(self) -> bool:
        return self._visualize

    @property
    def revision(self) -> int:
        """作品が作り直された回数。ビューアの再描画判定に使う。"""
        return self._revision

    def regenerate(self, seed: int | None = None) -> Artwork:
        """新しいシード（または指定シード）で作り直す。"""
        seed_i = new_seed(self._seed_rng) if seed is None else int(seed)
        self._artwork = self._build(seed_i)
        self._revision += 1
        return self._artwork

    def toggle_visualization(self) -> Artwork:
        """圧縮の可視化を切り替え、同じシードで作り直す。"""
        self._visualize = not self._visualize
        self._artwork = self._build(self.seed)
        self._revision += 1
        logger.info("compression visualization: %s", "on" if self._visualize else "off")
        return self._artwork

    def save(self, *, run_id: str | None = None) -> Path:
        """現在の作品を PNG として保存し、保存先を返す。"""
        art = self._artwork
        path = output_path_for_artwork(
            kind="png",
            ext="png",
            variant=art.variant,
            seed=art.seed,
            canvas_size=art.canvas_size,
            run_id=run_id,
            out_dir=self._out_dir,
        )
        saved = export_artwork(art, path, scale=self._cfg.png_scale)
        logger.info("saved %s (seed=%d)", saved, art.seed)
        return saved

    def handle_key(self, char: str) -> KeyAction | None:
        """1 文字のキー入力を処理する。

        - r / R: 新しいシードで再生成
        - s / S: PNG 保存（`KeyAction.path` に保存先）
        - d / D: 圧縮の可視化を切替
        - それ以外: 何もしないで None
        """
        if char in REGENERATE_KEYS:
            self.regenerate()
            return KeyAction("regenerate")
        if char in SAVE_KEYS:
            return KeyAction("save", path=self.save())
        if char in DEBUG_KEYS:
            self.toggle_visualization()
            return KeyAction("toggle_debug")
        return None


__all__ = ["KeyAction", "KeySession"]
