# どこで: `src/greatclown/core/output_paths.py`。
# 何を: バリアント/シード/キャンバス寸法から、出力ファイルの保存先パスを決める。
# なぜ: `output/{kind}/` 配下に、再生成した作品を上書きせずに並べて保存するため。

from __future__ import annotations

import re
from pathlib import Path

from greatclown.core.runtime_config import output_root_dir

ARTWORK_STEM = "the_great_clown"


def _sanitize_run_id(run_id: str) -> str:
    """run_id をファイル名の一部として使える形に正規化して返す。"""

    return re.sub(r"[^A-Za-z0-9._-]+", "_", str(run_id))


def _run_id_suffix(run_id: str | None) -> str:
    """run_id の接尾辞（例: `_v1`）を返す。未指定なら空文字を返す。"""

    if run_id is None:
        return ""
    s = str(run_id).strip()
    if not s:
        return ""
    sanitized = _sanitize_run_id(s)
    if not sanitized:
        return ""
    return f"_{sanitized}"


def _fmt_canvas_dim_for_filename(value: float | int) -> str:
    """canvas の寸法をファイル名に埋め込むための短い表現にして返す。"""

    v = float(value)
    if v <= 0:
        raise ValueError("canvas_size は正の値である必要がある")
    if abs(v - round(v)) < 1e-9:
        return str(int(round(v)))

    s = f"{v:.3f}".rstrip("0").rstrip(".")
    return s if s else "0"


def _canvas_size_suffix(canvas_size: tuple[float | int, float | int] | None) -> str:
    """canvas_size の接尾辞（例: `_800x1200`）を返す。未指定なら空文字を返す。"""

    if canvas_size is None:
        return ""
    w, h = canvas_size
    return f"_{_fmt_canvas_dim_for_filename(w)}x{_fmt_canvas_dim_for_filename(h)}"


def artwork_filename(
    *,
    variant: str,
    seed: int,
    ext: str = "png",
    canvas_size: tuple[float | int, float | int] | None = None,
    run_id: str | None = None,
) -> str:
    """`the_great_clown_<variant>_<seed>[_WxH][_run_id].<ext>` を返す。"""

    ext_norm = str(ext).lstrip(".").strip()
    if not ext_norm:
        raise ValueError("ext は空でない必要がある")
    variant_txt = _sanitize_run_id(str(variant).strip()).strip("_")
    if not variant_txt:
        raise ValueError("variant は空でない必要がある")
    seed_i = int(seed)
    if seed_i < 0:
        raise ValueError(f"seed は 0 以上である必要がある: got={seed_i}")
    return (
        f"{ARTWORK_STEM}_{variant_txt}_{seed_i}"
        f"{_canvas_size_suffix(canvas_size)}{_run_id_suffix(run_id)}.{ext_norm}"
    )


def output_path_for_artwork(
    *,
    kind: str,
    ext: str,
    variant: str,
    seed: int,
    canvas_size: tuple[float | int, float | int] | None = None,
    run_id: str | None = None,
    out_dir: str | Path | None = None,
) -> Path:
    """作品の保存先パスを返す。

    Notes
    -----
    - `out_dir` 未指定なら `output_root/{kind}/<filename>`。
    - `out_dir` 指定時は `out_dir/<filename>`（`kind` は付けない）。
    """

    filename = artwork_filename(
        variant=variant, seed=seed, ext=ext, canvas_size=canvas_size, run_id=run_id
    )
    if out_dir is not None:
        return Path(out_dir).expanduser() / filename
    return output_root_dir() / str(kind) / filename


def default_png_output_path(
    variant: str,
    seed: int,
    canvas_size: tuple[float | int, float | int],
    run_id: str | None = None,
) -> Path:
    """PNG 保存の既定パス（`output_root/png/...`）を返す。"""

    return output_path_for_artwork(
        kind="png",
        ext="png",
        variant=variant,
        seed=seed,
        canvas_size=canvas_size,
        run_id=run_id,
    )


__all__ = [
    "ARTWORK_STEM",
    "artwork_filename",
    "default_png_output_path",
    "output_path_for_artwork",
]
