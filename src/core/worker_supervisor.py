import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from abstractions.probe import Probe
from contracts.errors import ConfigurationError
from core.probe_worker import ProbeWorker

logger = logging.getLogger(__name__)


class WorkerSupervisor:
    """
    Owns the fixed set of probe workers: one asyncio task per probe, one
    shared cancellation event, and a barrier that waits for every task.
    """

    def __init__(self):
        self.workers: List[ProbeWorker] = []
        self._tasks: List[asyncio.Task] = []

    async def run(
        self,
        probes: Sequence[Probe],
        interval: float,
        cancel: asyncio.Event,
        log_context: Optional[Dict[str, int]] = None,
    ):
        """
        Run one worker per probe until ``cancel`` is set.

        Returns only after every worker has observed the cancellation and
        finished its in-flight attempt.

        Args:
            probes (Sequence[Probe]): One probe per worker, never shared.
            interval (float): Seconds between ticks of each worker.
            cancel (asyncio.Event): Cancellation signal broadcast to all workers.
            log_context (Optional[Dict[str, int]]): Timeout values for failure logs.

        Raises:
            ConfigurationError: If no probe is given or the interval is negative.
        """
        if not probes:
            raise ConfigurationError("At least one probe is required to start workers")
        if interval < 0:
            raise ConfigurationError(f"interval must not be negative, got {interval}")

        self.workers = [
            ProbeWorker(i, probe, interval, cancel, log_context)
            for i, probe in enumerate(probes)
        ]
        self._tasks = [asyncio.create_task(worker.run()) for worker in self.workers]
        logger.info(f"Started {len(self._tasks)} worker(s) with interval={interval}s")

        try:
            await asyncio.gather(*self._tasks)
        finally:
            # No-op after a clean shutdown. If run() itself was cancelled, the
            # workers are cancelled too and still awaited: no task outlives run().
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("All workers stopped")
