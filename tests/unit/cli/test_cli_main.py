"""Unit tests for HDViz CLI commands."""

from __future__ import annotations

import pytest

from cli.main import build_parser, main


def test_cli_levels_lists_persistence_per_level(dataset_dir, capsys) -> None:
    """Levels command should print every selectable level with its persistence."""
    exit_code = main(["--data-path", str(dataset_dir), "levels"])
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0
    assert output == ["1\t0.133333", "2\t0.266667", "3\t0.4"]


def test_cli_summary_defaults_to_highest_level(dataset_dir, capsys) -> None:
    """Summary command should describe the top level when no level is given."""
    exit_code = main(["--data-path", str(dataset_dir), "summary"])
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0
    assert output == [
        "level=3",
        "layout=isomap",
        "cell_count=2",
        "sample_count=4",
        "extrema_count=3",
        "extrema_range=2,6",
        "width_range=0,2",
        "variance_max=0.1",
    ]


def test_cli_summary_honors_layout_override(dataset_dir, capsys) -> None:
    """Layout flag should select the embedding mode for the summary."""
    exit_code = main(
        ["--data-path", str(dataset_dir), "--layout", "pca2", "summary", "--level", "1"]
    )
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0
    assert output[:3] == ["level=1", "layout=pca2", "cell_count=5"]


def test_cli_extrema_prints_value_norm_and_width(dataset_dir, capsys) -> None:
    """Extrema command should print one row per extremum."""
    exit_code = main(["--data-path", str(dataset_dir), "extrema", "--level", "2"])
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0
    assert output == ["0\t2\t0\t0.03", "1\t4\t0.5\t0.18", "2\t6\t1\t0.33"]


def test_cli_out_of_range_level_exits_with_error(dataset_dir, capsys) -> None:
    """Levels outside the dataset range should exit non-zero with a message."""
    with pytest.raises(SystemExit) as exit_info:
        main(["--data-path", str(dataset_dir), "summary", "--level", "9"])

    assert exit_info.value.code == 1
    assert "outside" in capsys.readouterr().err


def test_cli_missing_dataset_exits_with_error(tmp_path, capsys) -> None:
    """Opening a directory without dataset files should fail cleanly."""
    with pytest.raises(SystemExit) as exit_info:
        main(["--data-path", str(tmp_path / "absent"), "levels"])

    assert exit_info.value.code == 1
    assert "Cannot open dataset" in capsys.readouterr().err


def test_cli_parser_rejects_unknown_layout() -> None:
    """Layout flag should only accept known layout names."""
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--layout", "spiral", "levels"])


def test_cli_levels_tolerates_undecodable_names(dataset_dir, capsys) -> None:
    """A names file with invalid UTF-8 should not stop the CLI."""
    (dataset_dir / "names.txt").write_bytes(b"\xff\xfe\n")

    exit_code = main(["--data-path", str(dataset_dir), "levels"])

    assert exit_code == 0
    assert capsys.readouterr().out.splitlines()[0] == "1\t0.133333"
