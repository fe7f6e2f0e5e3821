from __future__ import annotations

from pathlib import Path

import pytest

from greatclown.core.output_paths import (
    artwork_filename,
    default_png_output_path,
    output_path_for_artwork,
)
from greatclown.core.runtime_config import set_config_path


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    set_config_path(None)
    yield
    set_config_path(None)


def test_artwork_filename_includes_variant_seed_and_canvas() -> None:
    assert (
        artwork_filename(variant="compressed_grid", seed=42, canvas_size=(800, 1200))
        == "the_great_clown_compressed_grid_42_800x1200.png"
    )
    assert (
        artwork_filename(variant="mirrored_lattice", seed=7, ext=".png")
        == "the_great_clown_mirrored_lattice_7.png"
    )


def test_artwork_filename_formats_fractional_canvas_and_run_id() -> None:
    name = artwork_filename(
        variant="compressed_grid", seed=1, canvas_size=(210.5, 297.25), run_id="take 2/final"
    )
    assert name == "the_great_clown_compressed_grid_1_210.5x297.25_take_2_final.png"
    # 空白だけの run_id は無視する
    assert artwork_filename(variant="compressed_grid", seed=1, run_id="  ").endswith("_1.png")


def test_artwork_filename_validation() -> None:
    with pytest.raises(ValueError):
        artwork_filename(variant="compressed_grid", seed=-1)
    with pytest.raises(ValueError):
        artwork_filename(variant="compressed_grid", seed=1, ext="")
    with pytest.raises(ValueError):
        artwork_filename(variant="  ", seed=1)
    with pytest.raises(ValueError):
        artwork_filename(variant="compressed_grid", seed=1, canvas_size=(0, 10))


def test_output_path_for_artwork_uses_out_dir_without_kind(tmp_path: Path) -> None:
    path = output_path_for_artwork(
        kind="png",
        ext="png",
        variant="compressed_grid",
        seed=3,
        canvas_size=(100, 200),
        out_dir=tmp_path / "shots",
    )
    assert path == tmp_path / "shots" / "the_great_clown_compressed_grid_3_100x200.png"


def test_default_png_output_path_is_under_output_root() -> None:
    path = default_png_output_path("mirrored_lattice", 9, (800, 1200), run_id="v1")
    expected = "the_great_clown_mirrored_lattice_9_800x1200_v1.png"
    assert path == Path("data/output") / "png" / expected
