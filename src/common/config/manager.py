from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pathlib import Path
from typing import List, Optional

from .models import TrafficConfig
from ..exceptions import ConfigurationError

class ConfigManager:
    """Centralizes loading and validation of the traffic service configuration"""

    def __init__(self, config_dir: Path = Path("conf")):
        self.config_dir = Path(config_dir)

    def defaults(self) -> DictConfig:
        """Structured defaults, without any YAML applied."""
        return OmegaConf.structured(TrafficConfig)

    def load_traffic_config(self, profile: str = "default", overrides: Optional[List[str]] = None) -> DictConfig:
        """Loads conf/traffic/<profile>.yaml over the structured defaults."""
        config_path = self.config_dir / "traffic" / f"{profile}.yaml"

        if not config_path.exists():
            raise ConfigurationError(f"Config not found: {config_path}")

        try:
            cfg = self.merge(OmegaConf.load(config_path), overrides)
        except OmegaConfBaseException as e:
            raise ConfigurationError(f"Invalid traffic config {config_path}: {e}") from e
        return cfg

    def merge(self, raw: DictConfig, overrides: Optional[List[str]] = None) -> DictConfig:
        """Validates a raw traffic config against the schema and applies dotlist overrides."""
        try:
            cfg = OmegaConf.merge(self.defaults(), raw)
            if overrides:
                cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(overrides))
            # Resolve ${oc.env:...} interpolations eagerly so errors surface at startup
            OmegaConf.resolve(cfg)
        except OmegaConfBaseException as e:
            raise ConfigurationError(f"Invalid traffic config: {e}") from e

        self._validate(cfg)
        return cfg

    @staticmethod
    def _validate(cfg: DictConfig):
        if cfg.scheduler.tick_interval_seconds <= 0:
            raise ConfigurationError("scheduler.tick_interval_seconds must be positive")
        if cfg.simulation.history_capacity < 1:
            raise ConfigurationError("simulation.history_capacity must be >= 1")
        if cfg.prediction.step_minutes < 1:
            raise ConfigurationError("prediction.step_minutes must be >= 1")
        if cfg.prediction.samples_per_segment < 1:
            raise ConfigurationError("prediction.samples_per_segment must be >= 1")
        if cfg.persistence.queue_size < 1:
            raise ConfigurationError("persistence.queue_size must be >= 1")
