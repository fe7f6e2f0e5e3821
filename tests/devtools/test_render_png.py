from __future__ import annotations

from pathlib import Path

import pytest

from greatclown.__main__ import main as cli_main
from greatclown.core.runtime_config import set_config_path
from greatclown.devtools.render_png import main


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    set_config_path(None)
    yield
    set_config_path(None)


def test_render_png_writes_one_file_per_seed(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    out_dir = tmp_path / "out"
    rc = main(["--seed", "1", "2", "--canvas", "120", "180", "--out-dir", str(out_dir)])
    assert rc == 0
    assert (out_dir / "the_great_clown_compressed_grid_1_120x180.png").is_file()
    assert (out_dir / "the_great_clown_compressed_grid_2_120x180.png").is_file()

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("Saved PNG: ")
    assert lines[0].endswith("(seed=1)")


def test_render_png_explicit_out_and_variant(tmp_path: Path) -> None:
    out = tmp_path / "x" / "clown.png"
    rc = main(
        [
            "--seed",
            "4",
            "--variant",
            "mirrored_lattice",
            "--canvas",
            "120",
            "180",
            "--scale",
            "0.5",
            "--out",
            str(out),
        ]
    )
    assert rc == 0
    assert out.is_file()


def test_render_png_uses_config_file(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "\n".join(
            [
                "version: 1",
                "paths:",
                '  output_dir: "renders"',
                "canvas:",
                "  width: 100",
                "  height: 150",
                "",
            ]
        ),
        encoding="utf-8",
    )
    assert main(["--seed", "8", "--config", str(cfg_path), "--debug"]) == 0
    assert Path("renders/png/the_great_clown_compressed_grid_8_100x150.png").is_file()


@pytest.mark.parametrize(
    "argv",
    [
        ["--seed", "1", "2", "--out", "a.png"],
        ["--out", "a.png", "--out-dir", "b"],
        ["--seed", "-3"],
        ["--variant", "spiral"],
        ["--canvas", "0", "0"],
        ["--canvas", "100", "-5"],
        ["--scale", "0"],
    ],
)
def test_render_png_rejects_invalid_args(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code == 2


def test_cli_dispatches_render_subcommand(tmp_path: Path) -> None:
    out_dir = tmp_path / "cli"
    rc = cli_main(["render", "--seed", "6", "--canvas", "120", "180", "--out-dir", str(out_dir)])
    assert rc == 0
    assert (out_dir / "the_great_clown_compressed_grid_6_120x180.png").is_file()
