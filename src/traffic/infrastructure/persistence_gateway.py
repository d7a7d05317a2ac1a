"""
Fire-and-forget persistence of snapshots.
"""
import logging
import queue
import threading
from typing import Optional

from ..domain import Snapshot, TrafficRepository, records_from_snapshot

logger = logging.getLogger(__name__)

class PersistenceGateway:
    """
    Hands snapshots to a worker thread that writes them to the repository.
    Callers never wait for I/O. Delivery is at-most-once and best-effort:
    a full queue or a failed write drops the batch with a log entry.
    """

    def __init__(self, repository: TrafficRepository, queue_size: int = 100):
        self.repository = repository
        self.submit_queue: "queue.Queue[Snapshot]" = queue.Queue(maxsize=queue_size)
        self.dropped = 0
        self.written = 0
        self.stats_lock = threading.Lock()

        self._stop_event = threading.Event()
        self._worker_thread = threading.Thread(
            target=self._write_worker,
            name="PersistenceWorker",
            daemon=True
        )
        self._worker_thread.start()

    def submit(self, snapshot: Snapshot) -> bool:
        """
        Queues a snapshot for writing. Non-blocking.
        Returns False when the snapshot was dropped.
        """
        try:
            self.submit_queue.put_nowait(snapshot)
            return True
        except queue.Full:
            with self.stats_lock:
                self.dropped += 1
            logger.warning(f"Persistence queue full - snapshot for {snapshot.city} dropped")
            return False

    def _write_worker(self):
        while not self._stop_event.is_set():
            try:
                snapshot = self.submit_queue.get(timeout=0.5)
            except queue.Empty:
                continue
            try:
                self._write(snapshot)
            except Exception as e:
                logger.error(f"Persistence worker error: {e}", exc_info=True)
            finally:
                self.submit_queue.task_done()

    def _write(self, snapshot: Snapshot):
        try:
            records = records_from_snapshot(snapshot)
            inserted = self.repository.insert_many(records)
            with self.stats_lock:
                self.written += inserted
            logger.debug(
                f"Persisted snapshot for {snapshot.city} at {snapshot.timestamp.isoformat()}: "
                f"{inserted}/{len(records)} records"
            )
        except Exception as e:
            # Never let a write failure reach the tick or request that produced it
            with self.stats_lock:
                self.dropped += 1
            logger.warning(f"Persist snapshot failed for {snapshot.city}: {e}")

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Waits until every queued snapshot has been handled."""
        if timeout is None:
            self.submit_queue.join()
            return True
        done = threading.Event()

        def _join():
            self.submit_queue.join()
            done.set()

        threading.Thread(target=_join, daemon=True).start()
        return done.wait(timeout)

    def stop(self, timeout: float = 3.0):
        """Drains the queue and stops the worker thread."""
        self.flush(timeout)
        self._stop_event.set()
        self._worker_thread.join(timeout=timeout)
