"""Configuration for the orchestration pipeline."""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class RouterConfig:
    """Intent router settings."""

    confidence_threshold: float = 0.8
    fallback_agent: str = "socratico"
    model: str = "claude-3-5-haiku-20241022"
    max_output_tokens: int = 500
    context_messages: int = 2
    enable_explicit_requests: bool = True


@dataclass
class ExtractionConfig:
    """Entity extraction engine settings."""

    enable_validation: bool = True
    confidence_threshold: float = 0.7
    max_entities_per_type: int = 10
    enable_synonym_expansion: bool = True
    enable_contextual_analysis: bool = True
    max_output_tokens: int = 1024


@dataclass
class DynamicOrchestratorConfig:
    """Session-owning orchestrator settings."""

    max_tools_per_session: int = 8
    session_timeout_minutes: int = 60
    enable_recommendations: bool = True
    async_recommendations: bool = False
    dominant_topics_update_interval: int = 5
    history_limit: int = 40
    recommendation_cache_size: int = 50
    topic_confidence_floor: float = 0.7
    topic_window: int = 6
    max_dominant_topics: int = 10
    new_topics_per_update: int = 5
    recommendation_model: str = "claude-sonnet-4-20250514"


@dataclass
class BridgeConfig:
    """Dynamic/legacy traffic split settings."""

    enable_dynamic_orchestration: bool = True
    fallback_to_legacy: bool = True
    enable_performance_monitoring: bool = True
    enable_gradual_migration: bool = False
    migration_percentage: float = 100.0
    hybrid_confidence_threshold: float = 0.7
    max_hybrid_tools: int = 8


@dataclass
class AlertThresholds:
    """Anomaly thresholds evaluated on every recorded event."""

    response_time_ms: float = 5000.0
    confidence: float = 0.6
    error_rate: float = 0.1
    session_failure: float = 0.2


@dataclass
class MonitoringConfig:
    """Monitoring settings."""

    max_events_in_memory: int = 10000
    metrics_retention_days: int = 30
    enable_real_time_alerts: bool = True
    alert_thresholds: AlertThresholds = field(default_factory=AlertThresholds)


@dataclass
class SystemConfig:
    """Facade settings."""

    cleanup_interval_minutes: int = 30
    health_check_interval_minutes: int = 5
    max_active_alerts_healthy: int = 10
    min_tools_healthy: int = 5


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    log_routing_decisions: bool = True


def _build(section_cls: type, data: Any) -> Any:
    """Instantiate a section dataclass from a mapping, ignoring unknown keys."""
    if not isinstance(data, dict):
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    values = {key: value for key, value in data.items() if key in known}
    if section_cls is MonitoringConfig and isinstance(values.get("alert_thresholds"), dict):
        values["alert_thresholds"] = _build(AlertThresholds, values["alert_thresholds"])
    unknown = set(data) - known
    if unknown:
        logger.debug(f"Ignoring unknown {section_cls.__name__} keys: {sorted(unknown)}")
    return section_cls(**values)


@dataclass
class OrchestrationSystemConfig:
    """Configuration for the whole orchestration system."""

    router: RouterConfig = field(default_factory=RouterConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    orchestrator: DynamicOrchestratorConfig = field(default_factory=DynamicOrchestratorConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    SECTIONS = {
        "router": RouterConfig,
        "extraction": ExtractionConfig,
        "orchestrator": DynamicOrchestratorConfig,
        "bridge": BridgeConfig,
        "monitoring": MonitoringConfig,
        "system": SystemConfig,
        "logging": LoggingConfig,
    }

    @classmethod
    def from_file(cls, path: Path) -> "OrchestrationSystemConfig":
        """Load configuration from a JSON file.

        Supports both nested structure (one section per component) and flat
        structure (all fields at the root level).

        Args:
            path: Path to the configuration file.

        Returns:
            OrchestrationSystemConfig instance with values from file,
            falling back to defaults for missing fields.
        """
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            # Return defaults if config file is corrupted or unreadable
            logger.warning(f"Could not read config file {path}, using defaults")
            return cls()

        if not isinstance(data, dict):
            return cls()

        if any(key in data for key in cls.SECTIONS):
            return cls._from_nested(data)
        return cls._from_flat(data)

    @classmethod
    def _from_nested(cls, data: dict) -> "OrchestrationSystemConfig":
        """Parse nested config format with one section per component."""
        return cls(
            **{
                name: _build(section_cls, data.get(name, {}))
                for name, section_cls in cls.SECTIONS.items()
            }
        )

    @classmethod
    def _from_flat(cls, data: dict) -> "OrchestrationSystemConfig":
        """Parse flat config format.

        Each root key is assigned to the first section that declares it, so
        names shared by several sections (e.g. confidence_threshold) apply to
        the router.
        """
        sections: dict[str, dict] = {name: {} for name in cls.SECTIONS}
        for key, value in data.items():
            if key == "log_level":
                sections["logging"]["level"] = value
                continue
            for name, section_cls in cls.SECTIONS.items():
                if key in {f.name for f in fields(section_cls)}:
                    sections[name][key] = value
                    break
        return cls._from_nested(sections)

    def to_dict(self) -> dict:
        return {name: asdict(getattr(self, name)) for name in self.SECTIONS}

    @classmethod
    def default_config_path(cls) -> Path:
        """Return the default configuration file path."""
        return Path(__file__).parent.parent / "configs" / "orchestration_config.json"


def load_config() -> OrchestrationSystemConfig:
    """Load the orchestration configuration from the default path."""
    return OrchestrationSystemConfig.from_file(
        OrchestrationSystemConfig.default_config_path()
    )
