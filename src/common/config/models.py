from dataclasses import dataclass, field
from typing import Optional

@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3001

@dataclass
class SchedulerConfig:
    enabled: bool = True
    tick_interval_seconds: float = 10.0

@dataclass
class SimulationConfig:
    seed: Optional[int] = None  # None = derive from wall clock at startup
    history_capacity: int = 500

@dataclass
class HistoryConfig:
    default_window_minutes: int = 60
    db_limit: int = 50

@dataclass
class PredictionConfig:
    step_minutes: int = 5
    samples_per_segment: int = 10
    db_scan_limit: int = 1000

@dataclass
class PersistenceConfig:
    url: str = ""  # empty disables persistence
    queue_size: int = 100

@dataclass
class LiveProviderConfig:
    api_key: str = ""  # empty disables external mode
    base_url: str = "https://api.tomtom.com/traffic/services/4/flowSegmentData/relative0/10/json"
    timeout_seconds: float = 5.0

@dataclass
class LoggingConfig:
    level: str = "INFO"

@dataclass
class TrafficConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    live_provider: LiveProviderConfig = field(default_factory=LiveProviderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
