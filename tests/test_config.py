"""
Unit tests for EngineConfig.
"""

import dataclasses

import pytest

from gradesheet_toolkit.config import DEFAULT_CONFIG, EngineConfig


class TestEngineConfig:
    """Tests for EngineConfig dataclass."""

    def test_defaults_when_created_then_portal_values(self):
        assert DEFAULT_CONFIG.autosave_delay_ms == 700
        assert DEFAULT_CONFIG.saved_status == "saved"
        assert DEFAULT_CONFIG.autosave_failed_status == "autosave failed - save manually"
        assert DEFAULT_CONFIG.range_separator == "~"

    def test_init_when_negative_delay_then_raises_error(self):
        with pytest.raises(ValueError, match="autosave_delay_ms must be non-negative"):
            EngineConfig(autosave_delay_ms=-1)

    def test_init_when_zero_max_count_then_raises_error(self):
        with pytest.raises(ValueError, match="max_problem_count must be positive"):
            EngineConfig(max_problem_count=0)

    def test_init_when_empty_separator_then_raises_error(self):
        with pytest.raises(ValueError, match="range_separator must not be empty"):
            EngineConfig(range_separator="")

    def test_config_when_assigned_then_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.autosave_delay_ms = 1
