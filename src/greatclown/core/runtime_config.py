# どこで: `src/greatclown/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: キャンバス/格子/圧縮/ブラシの既定値を、コードを書き換えずにユーザーが差し替えられるようにするため。

"""実行時設定（`config.yaml`）の探索・ロード・キャッシュを担当する。

このモジュールは、以下を提供する:

- `config.yaml` を「同梱デフォルト → ユーザー設定（任意）」の順に適用して `RuntimeConfig` を構築
- 探索パス（CWD / HOME）と、明示指定（`set_config_path()`）の両方に対応
- 1 回ロードした結果をプロセス内でキャッシュ（設定を切り替える場合は `set_config_path()` で破棄）

入出力 / 副作用
----------------
- 入力: 同梱 `greatclown/resource/default_config.yaml`、任意でユーザーの `config.yaml`
- 出力: `RuntimeConfig`（不変データ）
- 副作用: ファイル読み取り、YAML パース、モジュールグローバルへのキャッシュ保存

実装メモ
--------
- ユーザー設定の適用は `dict.update()`（トップレベルの浅い上書き）で行う。
  ネストした mapping は「部分的にマージ」されず「丸ごと置換」される。
- 再生成ごとに設定を書き換える代わりに、`with_overrides()` で派生設定を作る。
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

VARIANTS: tuple[str, ...] = ("compressed_grid", "mirrored_lattice")
FIELDS: tuple[str, ...] = ("perlin", "radial", "none")

_MISSING_HINT = "（同梱 default_config.yaml を確認してください）"


@dataclass(frozen=True, slots=True)
class CanvasConfig:
    """キャンバス寸法 [px]（`canvas`）。"""

    width: int
    height: int


@dataclass(frozen=True, slots=True)
class GridConfig:
    """格子生成とセル描画の設定（`grid`）。"""

    min_cols: int
    max_cols: int
    min_rows: int
    max_rows: int
    gutter_frac: float
    jitter_frac: float
    corner_radius_frac: float
    max_corner_radius: float | None
    corner: str
    cell_gutter: float
    stroke_weight: float


@dataclass(frozen=True, slots=True)
class CompressionConfig:
    """焦点圧縮の設定（`compression`）。"""

    enabled: bool
    mode: str
    direction: str
    profile: str
    margin: float
    strength_range: tuple[float, float]
    radius_range: tuple[float, float]
    falloff: float
    core: float
    max_extra_lines: int
    visualize: bool


@dataclass(frozen=True, slots=True)
class BrushConfig:
    """ブラシ（筆圧ストローク/ハッチング/にじみ）の設定（`brush`）。"""

    enabled: bool
    pressure_start: float
    pressure_end: float
    pressure_noise: float
    pressure_min: float
    pressure_max: float
    weight: float
    alpha: float
    passes: int
    vibration: float
    segment_length: float
    field: str
    field_scale: float
    field_bias: float
    hatch_probability: float
    hatch_spacing: float
    watercolor_probability: float


@dataclass(frozen=True, slots=True)
class TextureConfig:
    """紙テクスチャの設定（`texture`）。"""

    opacity: float
    grain_density: float
    pulp_count: int
    deckle_count: int


@dataclass(frozen=True, slots=True)
class MotifConfig:
    """ウォッシュ/円モチーフ/点格子の設定（`motifs`）。"""

    wash_opacity: float
    circle_probability: float
    circle_size: tuple[float, float]
    symmetry_jitter: float
    noise_scale: float
    distortion_strength: float
    lattice_cols: int
    lattice_rows: int


@dataclass(frozen=True, slots=True)
class PaletteConfig:
    """RGB（0..255）のパレット（`palette`）。"""

    warm_beige: tuple[int, int, int]
    muted_blue_gray: tuple[int, int, int]
    deep_red: tuple[int, int, int]
    soft_pink: tuple[int, int, int]
    golden_yellow: tuple[int, int, int]


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """greatclown の実行時設定。

    Attributes
    ----------
    config_path:
        実際に採用されたユーザー設定ファイルのパス。無ければ None。
    output_dir:
        生成物（PNG）の出力先ディレクトリ。
    variant:
        既定のスケッチバリアント。
    png_scale:
        PNG 出力時の拡大率。
    window_pos:
        ビューアウィンドウの左上座標 (x, y)。
    """

    config_path: Path | None
    output_dir: Path
    variant: str
    canvas: CanvasConfig
    grid: GridConfig
    compression: CompressionConfig
    brush: BrushConfig
    texture: TextureConfig
    motifs: MotifConfig
    palette: PaletteConfig
    png_scale: float
    window_pos: tuple[int, int]

    @property
    def canvas_size(self) -> tuple[int, int]:
        return (int(self.canvas.width), int(self.canvas.height))


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """以降の設定探索で使う明示 config パスを設定する。

    Notes
    -----
    - `path` を None にすると明示指定を解除し、既定の探索に戻る。
    - 設定が変わるため、`runtime_config()` のキャッシュを破棄する。
    """

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    _EXPLICIT_CONFIG_PATH = None if path is None else Path(str(path)).expanduser()
    _CONFIG_CACHE = None


def _default_config_candidates() -> tuple[Path, ...]:
    """既定の `config.yaml` 探索候補を返す。

    探索順（先勝ち）:
    - `./.greatclown/config.yaml`
    - `~/.config/greatclown/config.yaml`
    """

    return (
        Path.cwd() / ".greatclown" / "config.yaml",
        Path.home() / ".config" / "greatclown" / "config.yaml",
    )


def _as_mapping(value: Any, *, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")


def _require(section: dict[str, Any], name: str, *, prefix: str) -> Any:
    value = section.get(name)
    if value is None:
        raise RuntimeError(f"{prefix}.{name} が未設定です{_MISSING_HINT}")
    return value


def _as_float(value: Any, *, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}") from exc


def _as_int(value: Any, *, key: str) -> int:
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc


def _as_bool(value: Any, *, key: str) -> bool:
    if isinstance(value, bool):
        return bool(value)
    if isinstance(value, int) and int(value) in (0, 1):
        return bool(int(value))
    raise RuntimeError(f"{key} は bool である必要があります: got={value!r}")


def _as_choice(value: Any, choices: tuple[str, ...], *, key: str) -> str:
    s = str(value).strip()
    if s not in choices:
        raise ValueError(f"{key} は {choices} のいずれかである必要があります: got={value!r}")
    return s


def _as_float_pair(value: Any, *, key: str) -> tuple[float, float]:
    try:
        seq = list(value)
    except TypeError as exc:
        raise RuntimeError(f"{key} は [a, b] の配列である必要があります: got={value!r}") from exc
    if len(seq) != 2:
        raise RuntimeError(f"{key} は [a, b] の配列である必要があります: got={value!r}")
    return (_as_float(seq[0], key=key), _as_float(seq[1], key=key))


def _as_int_pair(value: Any, *, key: str) -> tuple[int, int]:
    try:
        seq = list(value)
    except TypeError as exc:
        raise RuntimeError(f"{key} は [x, y] の配列である必要があります: got={value!r}") from exc
    if len(seq) != 2:
        raise RuntimeError(f"{key} は [x, y] の配列である必要があります: got={value!r}")
    return (_as_int(seq[0], key=key), _as_int(seq[1], key=key))


def _as_rgb(value: Any, *, key: str) -> tuple[int, int, int]:
    try:
        seq = list(value)
    except TypeError as exc:
        raise RuntimeError(f"{key} は [r, g, b] の配列である必要があります: got={value!r}") from exc
    if len(seq) != 3:
        raise RuntimeError(f"{key} は [r, g, b] の配列である必要があります: got={value!r}")
    rgb = tuple(_as_int(v, key=key) for v in seq)
    if any(c < 0 or c > 255 for c in rgb):
        raise ValueError(f"{key} の各成分は 0..255 である必要があります: got={value!r}")
    return (rgb[0], rgb[1], rgb[2])


def _as_unit(value: Any, *, key: str) -> float:
    f = _as_float(value, key=key)
    if not 0.0 <= f <= 1.0:
        raise ValueError(f"{key} は [0,1] の範囲である必要があります: got={f}")
    return f


def _as_positive(value: Any, *, key: str) -> float:
    f = _as_float(value, key=key)
    if f <= 0.0:
        raise ValueError(f"{key} は正の値である必要があります: got={f}")
    return f


def _as_non_negative(value: Any, *, key: str) -> float:
    f = _as_float(value, key=key)
    if f < 0.0:
        raise ValueError(f"{key} は 0 以上である必要があります: got={f}")
    return f


def _load_yaml_text(text: str, *, source: str) -> dict[str, Any]:
    """YAML テキストを読み、トップレベル mapping を dict として返す。"""

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"config.yaml の読み込みに失敗しました: source={source}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml は mapping である必要があります: source={source}")

    return dict(data)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    return _load_yaml_text(text, source=str(path))


def _load_packaged_default_config() -> dict[str, Any]:
    """同梱デフォルト config をロードして dict を返す。"""

    try:
        blob = (
            resources.files("greatclown")
            .joinpath("resource", "default_config.yaml")
            .read_text(encoding="utf-8")
        )
    except OSError as exc:  # pragma: no cover
        raise RuntimeError(
            "同梱 default_config.yaml の読み込みに失敗しました"
            "（パッケージ配布物の package-data を確認してください）"
        ) from exc

    return _load_yaml_text(blob, source="greatclown/resource/default_config.yaml")


def _parse_grid(section: dict[str, Any]) -> GridConfig:
    p = "grid"
    min_cols = _as_int(_require(section, "min_cols", prefix=p), key=f"{p}.min_cols")
    max_cols = _as_int(_require(section, "max_cols", prefix=p), key=f"{p}.max_cols")
    min_rows = _as_int(_require(section, "min_rows", prefix=p), key=f"{p}.min_rows")
    max_rows = _as_int(_require(section, "max_rows", prefix=p), key=f"{p}.max_rows")
    if min_cols > max_cols or min_rows > max_rows:
        raise ValueError(
            "grid.min_* は grid.max_* 以下である必要があります"
            f": cols=({min_cols}, {max_cols}), rows=({min_rows}, {max_rows})"
        )
    jitter_frac = _as_non_negative(
        _require(section, "jitter_frac", prefix=p), key=f"{p}.jitter_frac"
    )
    if jitter_frac >= 0.5:
        raise ValueError(f"grid.jitter_frac は 0.5 未満である必要があります: got={jitter_frac}")

    max_corner_radius_raw = section.get("max_corner_radius")
    max_corner_radius = (
        None
        if max_corner_radius_raw is None
        else _as_non_negative(max_corner_radius_raw, key=f"{p}.max_corner_radius")
    )

    return GridConfig(
        min_cols=min_cols,
        max_cols=max_cols,
        min_rows=min_rows,
        max_rows=max_rows,
        gutter_frac=_as_non_negative(
            _require(section, "gutter_frac", prefix=p), key=f"{p}.gutter_frac"
        ),
        jitter_frac=jitter_frac,
        corner_radius_frac=_as_unit(
            _require(section, "corner_radius_frac", prefix=p), key=f"{p}.corner_radius_frac"
        ),
        max_corner_radius=max_corner_radius,
        corner=_as_choice(
            _require(section, "corner", prefix=p), ("round", "bezier"), key=f"{p}.corner"
        ),
        cell_gutter=_as_non_negative(
            _require(section, "cell_gutter", prefix=p), key=f"{p}.cell_gutter"
        ),
        stroke_weight=_as_positive(
            _require(section, "stroke_weight", prefix=p), key=f"{p}.stroke_weight"
        ),
    )


def _parse_compression(section: dict[str, Any]) -> CompressionConfig:
    p = "compression"
    core = _as_float(_require(section, "core", prefix=p), key=f"{p}.core")
    if not 0.0 <= core < 1.0:
        raise ValueError(f"compression.core は [0,1) の範囲である必要があります: got={core}")
    strength_range = _as_float_pair(
        _require(section, "strength_range", prefix=p), key=f"{p}.strength_range"
    )
    for v in strength_range:
        _as_unit(v, key=f"{p}.strength_range")
    return CompressionConfig(
        enabled=_as_bool(_require(section, "enabled", prefix=p), key=f"{p}.enabled"),
        mode=_as_choice(
            _require(section, "mode", prefix=p), ("compress", "densify"), key=f"{p}.mode"
        ),
        direction=_as_choice(
            _require(section, "direction", prefix=p),
            ("attract", "repel"),
            key=f"{p}.direction",
        ),
        profile=_as_choice(
            _require(section, "profile", prefix=p), ("zoned", "power"), key=f"{p}.profile"
        ),
        margin=_as_unit(_require(section, "margin", prefix=p), key=f"{p}.margin"),
        strength_range=strength_range,
        radius_range=_as_float_pair(
            _require(section, "radius_range", prefix=p), key=f"{p}.radius_range"
        ),
        falloff=_as_non_negative(_require(section, "falloff", prefix=p), key=f"{p}.falloff"),
        core=core,
        max_extra_lines=_as_int(
            _require(section, "max_extra_lines", prefix=p), key=f"{p}.max_extra_lines"
        ),
        visualize=_as_bool(_require(section, "visualize", prefix=p), key=f"{p}.visualize"),
    )


def _parse_brush(section: dict[str, Any]) -> BrushConfig:
    p = "brush"

    def f(name: str) -> float:
        return _as_float(_require(section, name, prefix=p), key=f"{p}.{name}")

    pressure_min = f("pressure_min")
    pressure_max = f("pressure_max")
    if pressure_min > pressure_max:
        raise ValueError(
            "brush.pressure_min は brush.pressure_max 以下である必要があります"
            f": got=({pressure_min}, {pressure_max})"
        )
    return BrushConfig(
        enabled=_as_bool(_require(section, "enabled", prefix=p), key=f"{p}.enabled"),
        pressure_start=f("pressure_start"),
        pressure_end=f("pressure_end"),
        pressure_noise=_as_non_negative(f("pressure_noise"), key=f"{p}.pressure_noise"),
        pressure_min=pressure_min,
        pressure_max=pressure_max,
        weight=_as_positive(f("weight"), key=f"{p}.weight"),
        alpha=f("alpha"),
        passes=_as_int(_require(section, "passes", prefix=p), key=f"{p}.passes"),
        vibration=_as_non_negative(f("vibration"), key=f"{p}.vibration"),
        segment_length=_as_positive(f("segment_length"), key=f"{p}.segment_length"),
        field=_as_choice(_require(section, "field", prefix=p), FIELDS, key=f"{p}.field"),
        field_scale=f("field_scale"),
        field_bias=f("field_bias"),
        hatch_probability=_as_unit(f("hatch_probability"), key=f"{p}.hatch_probability"),
        hatch_spacing=_as_positive(f("hatch_spacing"), key=f"{p}.hatch_spacing"),
        watercolor_probability=_as_unit(
            f("watercolor_probability"), key=f"{p}.watercolor_probability"
        ),
    )


def _parse_texture(section: dict[str, Any]) -> TextureConfig:
    p = "texture"
    return TextureConfig(
        opacity=_as_unit(_require(section, "opacity", prefix=p), key=f"{p}.opacity"),
        grain_density=_as_non_negative(
            _require(section, "grain_density", prefix=p), key=f"{p}.grain_density"
        ),
        pulp_count=_as_int(_require(section, "pulp_count", prefix=p), key=f"{p}.pulp_count"),
        deckle_count=_as_int(
            _require(section, "deckle_count", prefix=p), key=f"{p}.deckle_count"
        ),
    )


def _parse_motifs(section: dict[str, Any]) -> MotifConfig:
    p = "motifs"
    return MotifConfig(
        wash_opacity=_as_non_negative(
            _require(section, "wash_opacity", prefix=p), key=f"{p}.wash_opacity"
        ),
        circle_probability=_as_unit(
            _require(section, "circle_probability", prefix=p), key=f"{p}.circle_probability"
        ),
        circle_size=_as_float_pair(
            _require(section, "circle_size", prefix=p), key=f"{p}.circle_size"
        ),
        symmetry_jitter=_as_non_negative(
            _require(section, "symmetry_jitter", prefix=p), key=f"{p}.symmetry_jitter"
        ),
        noise_scale=_as_positive(
            _require(section, "noise_scale", prefix=p), key=f"{p}.noise_scale"
        ),
        distortion_strength=_as_non_negative(
            _require(section, "distortion_strength", prefix=p), key=f"{p}.distortion_strength"
        ),
        lattice_cols=_as_int(
            _require(section, "lattice_cols", prefix=p), key=f"{p}.lattice_cols"
        ),
        lattice_rows=_as_int(
            _require(section, "lattice_rows", prefix=p), key=f"{p}.lattice_rows"
        ),
    )


def _parse_palette(section: dict[str, Any]) -> PaletteConfig:
    p = "palette"
    names = [f.name for f in dataclasses.fields(PaletteConfig)]
    values = {
        name: _as_rgb(_require(section, name, prefix=p), key=f"{p}.{name}") for name in names
    }
    return PaletteConfig(**values)


def build_runtime_config(
    payload: dict[str, Any], *, config_path: Path | None = None
) -> RuntimeConfig:
    """マージ済みの設定 dict を検証して `RuntimeConfig` を構築する。"""

    version = payload.get("version")
    if version is None:
        raise RuntimeError(f"config.yaml の version が未設定です{_MISSING_HINT}")
    version_i = _as_int(version, key="version")
    if version_i != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version_i}")

    paths = _as_mapping(payload.get("paths"), key="paths")
    output_dir_raw = paths.get("output_dir")
    if output_dir_raw is None or not str(output_dir_raw).strip():
        raise RuntimeError(f"paths.output_dir が未設定です{_MISSING_HINT}")
    output_dir = Path(os.path.expandvars(os.path.expanduser(str(output_dir_raw).strip())))

    canvas = _as_mapping(payload.get("canvas"), key="canvas")
    width = _as_int(_require(canvas, "width", prefix="canvas"), key="canvas.width")
    height = _as_int(_require(canvas, "height", prefix="canvas"), key="canvas.height")
    if width <= 0 or height <= 0:
        raise ValueError(f"canvas の寸法は正の値である必要があります: got=({width}, {height})")

    export = _as_mapping(payload.get("export"), key="export")
    png_scale = _as_positive(
        _require(export, "png_scale", prefix="export"), key="export.png_scale"
    )

    ui = _as_mapping(payload.get("ui"), key="ui")
    window_pos = _as_int_pair(_require(ui, "window_pos", prefix="ui"), key="ui.window_pos")

    return RuntimeConfig(
        config_path=config_path,
        output_dir=output_dir,
        variant=_as_choice(payload.get("variant", VARIANTS[0]), VARIANTS, key="variant"),
        canvas=CanvasConfig(width=width, height=height),
        grid=_parse_grid(_as_mapping(payload.get("grid"), key="grid")),
        compression=_parse_compression(
            _as_mapping(payload.get("compression"), key="compression")
        ),
        brush=_parse_brush(_as_mapping(payload.get("brush"), key="brush")),
        texture=_parse_texture(_as_mapping(payload.get("texture"), key="texture")),
        motifs=_parse_motifs(_as_mapping(payload.get("motifs"), key="motifs")),
        palette=_parse_palette(_as_mapping(payload.get("palette"), key="palette")),
        png_scale=png_scale,
        window_pos=window_pos,
    )


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（キャッシュ）。

    読み込み元の優先順位（後勝ち）:
    1) 同梱 `greatclown/resource/default_config.yaml`
    2) 探索で見つかった `config.yaml`（任意）
    3) `set_config_path()` で明示指定された `config.yaml`（任意）
    """

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")

    discovered_path: Path | None = None
    for p in _default_config_candidates():
        if p.is_file():
            discovered_path = p
            break

    payload = _load_packaged_default_config()
    if discovered_path is not None:
        payload.update(_load_yaml_config(discovered_path))
    if explicit_path is not None:
        payload.update(_load_yaml_config(explicit_path))

    cfg = build_runtime_config(payload, config_path=explicit_path or discovered_path)
    _CONFIG_CACHE = cfg
    return cfg


def with_overrides(cfg: RuntimeConfig, **sections: Any) -> RuntimeConfig:
    """トップレベル項目/セクション単位で差し替えた設定を返す。

    Examples
    --------
    >>> cfg2 = with_overrides(cfg, variant="mirrored_lattice")
    >>> cfg3 = with_overrides(cfg, compression={"visualize": True})

    dict を渡したセクションは `dataclasses.replace` で部分置換する。
    """

    changes: dict[str, Any] = {}
    for name, value in sections.items():
        current = getattr(cfg, name)
        if isinstance(value, dict) and dataclasses.is_dataclass(current):
            changes[name] = dataclasses.replace(current, **value)  # type: ignore[type-var]
        else:
            changes[name] = value
    if "variant" in changes:
        changes["variant"] = _as_choice(changes["variant"], VARIANTS, key="variant")
    if "canvas" in changes:
        canvas = changes["canvas"]
        if int(canvas.width) <= 0 or int(canvas.height) <= 0:
            raise ValueError(
                f"canvas の寸法は正の値である必要があります: got=({canvas.width}, {canvas.height})"
            )
    return dataclasses.replace(cfg, **changes)


def output_root_dir() -> Path:
    """出力ファイルを保存する既定ルートディレクトリを返す。"""

    return Path(runtime_config().output_dir)


__all__ = [
    "BrushConfig",
    "CanvasConfig",
    "CompressionConfig",
    "FIELDS",
    "GridConfig",
    "MotifConfig",
    "PaletteConfig",
    "RuntimeConfig",
    "TextureConfig",
    "VARIANTS",
    "build_runtime_config",
    "output_root_dir",
    "runtime_config",
    "set_config_path",
    "with_overrides",
]
