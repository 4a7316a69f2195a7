"""Tests for OrchestrationSystemConfig loading."""

import json
import tempfile
from pathlib import Path

import pytest

from clinical_orchestrator.config import (
    AlertThresholds,
    OrchestrationSystemConfig,
    load_config,
)


class TestOrchestrationSystemConfig:
    """Test suite for configuration loading."""

    @pytest.fixture
    def temp_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def _write(self, temp_dir, data):
        path = temp_dir / "orchestration_config.json"
        path.write_text(json.dumps(data) if not isinstance(data, str) else data)
        return path

    def test_defaults(self):
        config = OrchestrationSystemConfig()
        assert config.router.confidence_threshold == 0.8
        assert config.router.fallback_agent == "socratico"
        assert config.orchestrator.max_tools_per_session == 8
        assert config.orchestrator.session_timeout_minutes == 60
        assert config.monitoring.max_events_in_memory == 10000
        assert config.monitoring.alert_thresholds.response_time_ms == 5000

    def test_missing_file_returns_defaults(self, temp_dir):
        config = OrchestrationSystemConfig.from_file(temp_dir / "missing.json")
        assert config == OrchestrationSystemConfig()

    def test_corrupted_file_returns_defaults(self, temp_dir):
        path = self._write(temp_dir, "{ not json")
        assert OrchestrationSystemConfig.from_file(path) == OrchestrationSystemConfig()

    def test_nested_format(self, temp_dir):
        path = self._write(
            temp_dir,
            {
                "router": {"confidence_threshold": 0.7, "unknown_key": True},
                "bridge": {"enable_gradual_migration": True, "migration_percentage": 25},
                "monitoring": {"alert_thresholds": {"confidence": 0.5}},
                "logging": {"level": "DEBUG"},
            },
        )
        config = OrchestrationSystemConfig.from_file(path)

        assert config.router.confidence_threshold == 0.7
        assert config.bridge.enable_gradual_migration is True
        assert config.bridge.migration_percentage == 25
        assert config.monitoring.alert_thresholds == AlertThresholds(confidence=0.5)
        assert config.logging.level == "DEBUG"
        assert config.orchestrator.max_tools_per_session == 8

    def test_flat_format(self, temp_dir):
        path = self._write(
            temp_dir,
            {
                "confidence_threshold": 0.75,
                "max_tools_per_session": 4,
                "enable_gradual_migration": True,
                "log_level": "WARNING",
            },
        )
        config = OrchestrationSystemConfig.from_file(path)

        assert config.router.confidence_threshold == 0.75
        assert config.extraction.confidence_threshold == 0.7
        assert config.orchestrator.max_tools_per_session == 4
        assert config.bridge.enable_gradual_migration is True
        assert config.logging.level == "WARNING"

    def test_to_dict_has_every_section(self):
        data = OrchestrationSystemConfig().to_dict()
        assert set(data) == set(OrchestrationSystemConfig.SECTIONS)
        assert data["monitoring"]["alert_thresholds"]["confidence"] == 0.6

    def test_shipped_config_file_loads(self):
        config = load_config()
        assert config.router.fallback_agent == "socratico"
        assert OrchestrationSystemConfig.default_config_path().exists()
