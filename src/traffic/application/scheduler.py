"""
Periodic advancement of simulated traffic for every city.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from .city_state import CityRegistry
from .snapshot_builder import SnapshotBuilder
from ..domain import Snapshot, SOURCE_EXTERNAL, SOURCE_SIMULATED, utc_now

logger = logging.getLogger(__name__)

class TrafficScheduler:
    """
    A single background thread that ticks every `tick_interval` seconds.
    Each tick builds a snapshot per city, records it in the city's state and hands
    it to `persist` without waiting. A failing city or tick is logged and skipped;
    the ticker keeps running.
    """

    def __init__(
        self,
        registry: CityRegistry,
        builder: SnapshotBuilder,
        persist: Optional[Callable[[Snapshot], object]] = None,
        tick_interval: float = 10.0,
        external_mode: bool = False,
    ):
        self.registry = registry
        self.builder = builder
        self.persist = persist
        self.tick_interval = tick_interval
        self.external_mode = external_mode

        self.tick_count = 0
        self._stats_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def mode(self) -> str:
        return SOURCE_EXTERNAL if self.external_mode else SOURCE_SIMULATED

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.is_running:
            logger.info("Scheduler already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="TrafficScheduler", daemon=True)
        self._thread.start()
        logger.info(f"Scheduler started (interval={self.tick_interval}s, mode={self.mode})")

    def stop(self, timeout: float = 3.0):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Scheduler stopped")

    def _run(self):
        while not self._stop_event.wait(self.tick_interval):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Scheduled simulation update error: {e}", exc_info=True)

    def tick(self) -> int:
        """Advances every simulated city once. Returns how many cities were updated."""
        with self._stats_lock:
            self.tick_count += 1
        if self.external_mode:
            # Cities are sourced on demand from the live provider
            return 0

        updated = 0
        for state in self.registry:
            try:
                snapshot = self.builder.build(state.city, state.segments)
                state.append(snapshot, from_tick=True)
                updated += 1
            except Exception as e:
                logger.error(f"Tick failed for {state.city}: {e}", exc_info=True)
                continue
            self._submit(snapshot)
        return updated

    def _submit(self, snapshot: Snapshot):
        if self.persist is None:
            return
        try:
            self.persist(snapshot)
        except Exception as e:
            logger.warning(f"Persistence submit failed for {snapshot.city}: {e}")

    def metrics(self) -> Dict:
        with self._stats_lock:
            tick_count = self.tick_count
        last_ticks: Dict[str, Optional[datetime]] = {
            state.city: state.last_tick for state in self.registry
        }
        return {
            "mode": self.mode,
            "tick_count": tick_count,
            "city_last_tick": last_ticks,
            "server_timestamp": utc_now(),
        }
