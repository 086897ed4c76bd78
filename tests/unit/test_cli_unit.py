"""Unit tests for the Typer CLI wiring.

The alignment itself is replaced by stubs; these tests check that options
reach the runner as the right configuration objects.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from audio_matcher import __version__, cli
from audio_matcher.config import MatcherConfig, OutputConfig, UIConfig

runner = CliRunner()


@pytest.fixture
def inputs(tmp_path: Path) -> tuple[Path, Path]:
    ref = tmp_path / "raw.wav"
    tgt = tmp_path / "edit.wav"
    ref.write_bytes(b"")
    tgt.write_bytes(b"")
    return ref, tgt


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> dict[str, dict[str, object]]:
    calls: dict[str, dict[str, object]] = {}

    def fake_align(**kwargs: object) -> None:
        calls["align"] = kwargs

    def fake_map(**kwargs: object) -> None:
        calls["map"] = kwargs

    monkeypatch.setattr(cli, "cli_align", fake_align)
    monkeypatch.setattr(cli, "cli_map_labels", fake_map)
    return calls


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert f"audio-matcher version: {__version__}" in result.stdout


def test_no_command_shows_help() -> None:
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 0
    assert "align" in result.stdout
    assert "map-labels" in result.stdout


def test_align_passes_configuration(inputs, captured, tmp_path: Path) -> None:
    ref, tgt = inputs
    result = runner.invoke(
        cli.app,
        [
            "align",
            str(ref),
            str(tgt),
            "--output-dir",
            str(tmp_path / "out"),
            "--output-format",
            "csv",
            "--timeline",
            "reference",
            "--chunk-duration",
            "3",
            "--overlap",
            "0.25",
            "--threshold",
            "0.6",
            "--peak-distance",
            "0.5",
            "--backtrack-tolerance",
            "1.5",
            "--no-full-search-fallback",
            "--workers",
            "2",
            "--min-coverage",
            "0.7",
            "--retries",
            "2",
            "--decoder",
            "soundfile",
            "--sample-rate",
            "16000",
            "--dry-run",
            "--quiet",
        ],
    )
    assert result.exit_code == 0, result.output
    kwargs = captured["align"]
    config = kwargs["matcher_config"]
    assert isinstance(config, MatcherConfig)
    assert config.chunk_duration == 3.0
    assert config.overlap == 0.25
    assert config.peak.threshold == 0.6
    assert config.peak.distance == 0.5
    assert config.backtrack_tolerance == 1.5
    assert config.full_search_fallback is False
    assert config.workers == 2
    output = kwargs["output_config"]
    assert isinstance(output, OutputConfig)
    assert output.output_format == "csv"
    assert output.timeline == "reference"
    assert output.dry_run is True
    assert output.output_dir == (tmp_path / "out").resolve()
    assert kwargs["ui_config"] == UIConfig(quiet=True)
    assert (kwargs["decoder"], kwargs["sample_rate"]) == ("soundfile", 16000)
    assert (kwargs["min_coverage"], kwargs["retries"]) == (0.7, 2)


def test_align_rejects_out_of_range_option(inputs, captured) -> None:
    ref, tgt = inputs
    result = runner.invoke(cli.app, ["align", str(ref), str(tgt), "--overlap", "1.0"])
    assert result.exit_code != 0
    assert "align" not in captured


def test_align_rejects_unknown_timeline(inputs, captured) -> None:
    ref, tgt = inputs
    result = runner.invoke(cli.app, ["align", str(ref), str(tgt), "--timeline", "both"])
    assert result.exit_code != 0
    assert "align" not in captured


def test_align_requires_existing_files(tmp_path: Path, captured) -> None:
    result = runner.invoke(
        cli.app, ["align", str(tmp_path / "a.wav"), str(tmp_path / "b.wav")]
    )
    assert result.exit_code != 0
    assert not captured


def test_map_labels_command(inputs, captured, tmp_path: Path) -> None:
    ref, tgt = inputs
    labels = tmp_path / "chapters.txt"
    labels.write_text("0.0\t0.0\tStart\n")
    result = runner.invoke(
        cli.app,
        ["map-labels", str(ref), str(tgt), str(labels), "--overwrite", "--verbose"],
    )
    assert result.exit_code == 0, result.output
    kwargs = captured["map"]
    assert kwargs["labels"] == labels
    assert kwargs["output_config"].overwrite is True
    assert kwargs["ui_config"].verbose is True
