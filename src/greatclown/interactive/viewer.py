# どこで: `src/greatclown/interactive/viewer.py`。
# 何を: KeySession の作品を pyglet ウィンドウに表示し、キー入力をセッションへ渡す。
# なぜ: 描画は Pillow 側で完結させ、ウィンドウは「画像を貼る + キーを受ける」だけに保つため。

from __future__ import annotations

import logging
from typing import Any

import pyglet
from pyglet.gl import Config

from greatclown.core.runtime_config import RuntimeConfig
from greatclown.export.image import render_image
from greatclown.interactive.session import KeySession

logger = logging.getLogger(__name__)

_SCREEN_FILL = 0.9


def _fit_scale(canvas_size: tuple[int, int], scale: float | None) -> float:
    """画面に収まる表示倍率を返す（1.0 を超えない）。"""
    if scale is not None:
        s = float(scale)
        if s <= 0.0:
            raise ValueError(f"scale は正の値である必要がある: got={scale!r}")
        return s
    w, h = canvas_size
    try:
        screen = pyglet.display.get_display().get_default_screen()
    except Exception:
        logger.debug("screen size unavailable; using scale=1.0", exc_info=True)
        return 1.0
    return min(1.0, _SCREEN_FILL * screen.width / float(w), _SCREEN_FILL * screen.height / float(h))


def _to_image_data(session: KeySession, scale: float) -> Any:
    art = session.artwork
    image = render_image(art.layers, art.canvas_size, background=art.background, scale=scale)
    # pyglet は下から上の行順なので、負の pitch で上下を合わせる
    return pyglet.image.ImageData(
        image.width, image.height, "RGB", image.tobytes(), pitch=-image.width * 3
    )


def _caption(session: KeySession) -> str:
    art = session.artwork
    debug = " [debug]" if session.visualize else ""
    return f"The Great Clown: {art.variant} seed={art.seed}{debug}  (r: new, s: save, d: debug)"


def run_viewer(
    cfg: RuntimeConfig,
    *,
    seed: int | None = None,
    variant: str | None = None,
    scale: float | None = None,
) -> None:
    """作品ビューアを開き、ウィンドウが閉じられるまでブロックする。

    Parameters
    ----------
    cfg : RuntimeConfig
        実行時設定。
    seed : int or None
        初回のシード。None なら新しいシード。
    variant : str or None
        None なら `cfg.variant`。
    scale : float or None
        表示倍率。None なら画面に収まる倍率。PNG 保存は常に `cfg.png_scale` で行う。

    Notes
    -----
    再描画はキー操作で作品が変わったときだけ行う（アニメーションしない）。
    """
    session = KeySession(cfg, seed=seed, variant=variant)
    view_scale = _fit_scale(session.artwork.canvas_size, scale)
    state: dict[str, Any] = {"image": _to_image_data(session, view_scale)}
    img = state["image"]

    config = Config(double_buffer=True)
    window = pyglet.window.Window(
        width=int(img.width),
        height=int(img.height),
        resizable=False,
        caption=_caption(session),
        config=config,
    )
    x, y = cfg.window_pos
    window.set_location(int(x), int(y))

    @window.event
    def on_draw() -> None:
        window.clear()
        state["image"].blit(0, 0)

    @window.event
    def on_text(text: str) -> None:
        action = session.handle_key(text)
        if action is None:
            return
        if action.path is not None:
            print(f"Saved PNG: {action.path} (seed={session.seed})")
        if action.needs_redraw:
            state["image"] = _to_image_data(session, view_scale)
            window.set_caption(_caption(session))

    logger.info("viewer: %s seed=%d scale=%.2f", session.artwork.variant, session.seed, view_scale)
    pyglet.app.run()


__all__ = ["run_viewer"]
