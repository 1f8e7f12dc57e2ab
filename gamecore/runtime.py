"""
Per-process composition of the scheduler, caches and registries.

One CoreRuntime exists per process side (server, or each client). Sides do
not share memory; everything here is rebuilt when the process starts.
"""
import threading
import logging
from typing import Any, Dict, Optional

from config.settings import settings
from gamecore.cache import CacheManager
from gamecore.registry import BulkRegistry, Validator
from gamecore.scheduler import AdaptiveLoopScheduler
from gamecore.utils.clock import Clock, monotonic_clock
from gamecore.utils.helpers import random_string

logger = logging.getLogger("runtime")


class CoreRuntime:
    """
    Owns one scheduler, one cache manager and any number of named registries.

    Registries are created here and handed to callers explicitly; nothing
    looks them up through module globals.
    """

    def __init__(self, side: Optional[str] = None, clock: Optional[Clock] = None):
        self.side = side or settings.runtime_side
        # Tells restarted runtimes of the same side apart in logs and stats
        self.instance_id = random_string(8)
        self._clock = clock or monotonic_clock
        self.scheduler = AdaptiveLoopScheduler(clock=self._clock)
        self.caches = CacheManager(clock=self._clock)
        self._registries: Dict[str, BulkRegistry] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def registry(
        self,
        name: str,
        initial: Optional[Dict[str, Any]] = None,
        validate: Optional[Validator] = None,
    ) -> BulkRegistry:
        """
        Get the named registry, creating it on first use.

        ``initial`` and ``validate`` only apply when the registry is created.
        """
        with self._lock:
            registry = self._registries.get(name)
            if registry is None:
                registry = BulkRegistry(name, initial, validate=validate)
                self._registries[name] = registry
                logger.info(f"Created registry: {name} [{self.side}]")
            return registry

    def registries(self) -> Dict[str, BulkRegistry]:
        with self._lock:
            return dict(self._registries)

    def start(self) -> None:
        """Drive the scheduler on a dedicated thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(
            target=self.scheduler.run,
            name=f"gamecore-{self.side}-scheduler",
            daemon=True,
        )
        self._thread.start()
        # stop() before the loop is up would be discarded by run()
        if not self.scheduler.wait_started(timeout=5.0):
            logger.warning(f"Scheduler thread did not start [{self.side}]")
        logger.info(f"Runtime started [{self.side}/{self.instance_id}]")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the driver thread and drop every task."""
        self.scheduler.shutdown()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Scheduler thread did not stop within {timeout}s")
        self._thread = None
        logger.info(f"Runtime stopped [{self.side}]")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "side": self.side,
            "instance_id": self.instance_id,
            "scheduler": self.scheduler.get_stats(),
            "caches": self.caches.get_stats(),
            "registries": {n: r.get_stats() for n, r in self.registries().items()},
        }


# Process-wide runtime instance
_runtime: Optional[CoreRuntime] = None


def get_runtime() -> CoreRuntime:
    """Get or create the process runtime."""
    global _runtime
    if _runtime is None:
        _runtime = CoreRuntime()
    return _runtime


def reset_runtime() -> None:
    """Stop and discard the process runtime (tests, restarts)."""
    global _runtime
    if _runtime is not None:
        _runtime.stop()
    _runtime = None
