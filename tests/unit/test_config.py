"""Unit tests for configuration dataclasses."""

from pathlib import Path

import pytest

from audio_matcher.config import MatcherConfig, OutputConfig, PeakConfig, UIConfig
from audio_matcher.errors import InvalidConfiguration
from audio_matcher.utils.constant import (
    DEFAULT_CHUNK_DURATION_SEC,
    DEFAULT_LABEL_PATTERN,
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_OVERLAP,
    DEFAULT_PEAK_THRESHOLD,
    DEFAULT_SEARCH_WINDOW_SEC,
)


def test_matcher_config_defaults() -> None:
    """MatcherConfig should use defaults from constants."""
    config = MatcherConfig()
    assert config.chunk_duration == DEFAULT_CHUNK_DURATION_SEC
    assert config.overlap == DEFAULT_OVERLAP
    assert config.search_window == DEFAULT_SEARCH_WINDOW_SEC
    assert config.max_in_flight == DEFAULT_MAX_IN_FLIGHT
    assert config.peak.threshold == DEFAULT_PEAK_THRESHOLD
    assert config.full_search_fallback is True
    config.validate()


def test_step_and_backtrack() -> None:
    config = MatcherConfig(chunk_duration=4.0, overlap=0.25)
    assert config.step == pytest.approx(3.0)
    assert config.effective_backtrack == pytest.approx(4.0)
    assert MatcherConfig(backtrack_tolerance=0.5).effective_backtrack == 0.5


@pytest.mark.parametrize(
    ("kwargs", "parameter"),
    [
        ({"chunk_duration": 0.0}, "chunk_duration"),
        ({"chunk_duration": float("nan")}, "chunk_duration"),
        ({"overlap": 1.0}, "overlap"),
        ({"overlap": -0.5}, "overlap"),
        ({"search_window": -1.0}, "search_window"),
        ({"workers": -2}, "workers"),
        ({"max_in_flight": 0}, "max_in_flight"),
        ({"refine_block": -0.1}, "refine_block"),
        ({"lag_tolerance": -1.0}, "lag_tolerance"),
        ({"score_tie_tolerance": -1.0}, "score_tie_tolerance"),
        ({"backtrack_tolerance": -1.0}, "backtrack_tolerance"),
        ({"peak": PeakConfig(threshold=1.5)}, "threshold"),
        ({"peak": PeakConfig(prominence=-0.1)}, "prominence"),
        ({"peak": PeakConfig(distance=-1.0)}, "distance"),
        ({"peak": PeakConfig(max_candidates=0)}, "max_candidates"),
    ],
)
def test_validate_names_offending_parameter(kwargs: dict, parameter: str) -> None:
    with pytest.raises(InvalidConfiguration) as excinfo:
        MatcherConfig(**kwargs).validate()
    assert excinfo.value.parameter == parameter
    assert isinstance(excinfo.value, ValueError)


def test_relaxed_loosens_thresholds() -> None:
    config = MatcherConfig(search_window=10.0, peak=PeakConfig(threshold=0.6, prominence=0.2))
    relaxed = config.relaxed(0.5)
    assert relaxed.peak.threshold == pytest.approx(0.3)
    assert relaxed.peak.prominence == pytest.approx(0.1)
    assert relaxed.search_window == pytest.approx(20.0)
    assert config.peak.threshold == 0.6
    with pytest.raises(InvalidConfiguration):
        config.relaxed(0.0)


def test_output_config_defaults() -> None:
    config = OutputConfig(output_dir=Path("out"))
    assert config.output_format == "labels"
    assert config.timeline == "target"
    assert config.label_pattern == DEFAULT_LABEL_PATTERN
    assert config.overwrite is False
    assert config.dry_run is False


def test_ui_config_defaults() -> None:
    config = UIConfig()
    assert (config.verbose, config.quiet, config.no_progress) == (False, False, False)
