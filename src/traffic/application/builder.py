import logging
import random
import time
from omegaconf import DictConfig
from typing import Optional

from .city_state import CityRegistry
from .history import HistoryAggregator
from .predictor import TrendPredictor
from .scheduler import TrafficScheduler
from .service import TrafficService
from .snapshot_builder import SnapshotBuilder
from ..domain import LiveDataProvider, TrafficRepository
from ..infrastructure.live_provider import TomTomLiveDataProvider
from ..infrastructure.persistence_gateway import PersistenceGateway
from ..infrastructure.repositories import SQLTrafficRepository
from ...common.database import build_engine, build_session_factory, init_db

logger = logging.getLogger(__name__)

class TrafficApplicationBuilder:
    """
    Builder pattern for constructing the traffic state engine.
    Centralizes component instantiation and wiring.
    """

    def __init__(self, config: DictConfig):
        self.config = config

        # Components
        self.registry: Optional[CityRegistry] = None
        self.snapshot_builder: Optional[SnapshotBuilder] = None
        self.repository: Optional[TrafficRepository] = None
        self.gateway: Optional[PersistenceGateway] = None
        self.live_provider: Optional[LiveDataProvider] = None
        self.scheduler: Optional[TrafficScheduler] = None
        self.service: Optional[TrafficService] = None

    def build_registry(self) -> 'TrafficApplicationBuilder':
        seed = self.config.simulation.seed
        if seed is None:
            seed = int(time.time() * 1000) % 100000
        logger.info(f"Generating road networks (seed={seed})")
        self.registry = CityRegistry(base_seed=seed, capacity=self.config.simulation.history_capacity)
        return self

    def build_snapshot_builder(self, snapshot_builder: Optional[SnapshotBuilder] = None) -> 'TrafficApplicationBuilder':
        self.snapshot_builder = snapshot_builder or SnapshotBuilder()
        return self

    def build_persistence(self, repository: Optional[TrafficRepository] = None) -> 'TrafficApplicationBuilder':
        persistence_cfg = self.config.persistence
        if repository is None and persistence_cfg.url:
            logger.info("Initializing traffic record persistence...")
            engine = build_engine(persistence_cfg.url)
            init_db(engine)
            repository = SQLTrafficRepository(build_session_factory(engine))
        if repository is None:
            logger.warning("No persistence URL configured; traffic history persistence disabled")
            return self
        self.repository = repository
        self.gateway = PersistenceGateway(repository, queue_size=persistence_cfg.queue_size)
        return self

    def build_live_provider(self, provider: Optional[LiveDataProvider] = None) -> 'TrafficApplicationBuilder':
        live_cfg = self.config.live_provider
        if provider is None and live_cfg.api_key:
            logger.info("Live traffic provider enabled (TomTom)")
            provider = TomTomLiveDataProvider(
                api_key=live_cfg.api_key,
                base_url=live_cfg.base_url,
                timeout_seconds=live_cfg.timeout_seconds,
            )
        self.live_provider = provider
        return self

    def build_service(self) -> TrafficService:
        if not self.registry:
            self.build_registry()
        if not self.snapshot_builder:
            self.build_snapshot_builder()

        persist = self.gateway.submit if self.gateway else None
        self.scheduler = TrafficScheduler(
            registry=self.registry,
            builder=self.snapshot_builder,
            persist=persist,
            tick_interval=self.config.scheduler.tick_interval_seconds,
            external_mode=self.live_provider is not None,
        )
        history = HistoryAggregator(
            registry=self.registry,
            repository=self.repository,
            default_window_minutes=self.config.history.default_window_minutes,
            db_limit=self.config.history.db_limit,
        )
        predictor = TrendPredictor(
            registry=self.registry,
            repository=self.repository,
            step_minutes=self.config.prediction.step_minutes,
            samples_per_segment=self.config.prediction.samples_per_segment,
            db_scan_limit=self.config.prediction.db_scan_limit,
            rng=random.Random(),
        )
        self.service = TrafficService(
            registry=self.registry,
            builder=self.snapshot_builder,
            history=history,
            predictor=predictor,
            scheduler=self.scheduler,
            persist=persist,
            live_provider=self.live_provider,
        )
        return self.service

    def start(self):
        if self.scheduler is None:
            self.build_service()
        if self.config.scheduler.enabled:
            self.scheduler.start()

    def shutdown(self):
        if self.scheduler:
            self.scheduler.stop()
        if self.gateway:
            self.gateway.stop()
