import asyncio
import enum
import logging
from typing import Dict, Optional

from abstractions.probe import Probe
from contracts.errors import ProbeError

logger = logging.getLogger(__name__)


class WorkerState(enum.Enum):
    IDLE = "idle"
    PROBING = "probing"
    CANCELLED = "cancelled"


class ProbeWorker:
    """
    Runs one probe on a fixed-period tick until the cancellation event is set.

    The first tick fires one interval after the worker starts. Attempts are
    strictly sequential: when an attempt outlasts the interval, the next tick
    fires as soon as it returns and the schedule restarts from there, without
    a burst of catch-up ticks. Cancellation is observed between attempts; an
    in-flight attempt always runs to completion.
    """

    def __init__(
        self,
        worker_id: int,
        probe: Probe,
        interval: float,
        cancel: asyncio.Event,
        log_context: Optional[Dict[str, int]] = None,
    ):
        """
        Initialize the ProbeWorker.

        Args:
            worker_id (int): Index of the worker, used in log records.
            probe (Probe): The probe owned by this worker.
            interval (float): Seconds between ticks.
            cancel (asyncio.Event): Shared cancellation signal.
            log_context (Optional[Dict[str, int]]): Configured timeouts added
                to every failure record.
        """
        self.worker_id = worker_id
        self.probe = probe
        self.interval = interval
        self.cancel = cancel
        self.log_context = log_context or {}
        self.state = WorkerState.IDLE

    async def run(self):
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        logger.info(f"Worker {self.worker_id} started: {self.probe.describe()}")

        while await self._wait_for_tick(next_tick - loop.time()):
            self.state = WorkerState.PROBING
            await self._attempt_once()
            self.state = WorkerState.IDLE

            next_tick += self.interval
            now = loop.time()
            if next_tick < now:
                next_tick = now

        self.state = WorkerState.CANCELLED
        logger.info(f"Worker {self.worker_id} cancelled")

    async def _wait_for_tick(self, delay: float) -> bool:
        """
        Sleep until the next tick. Returns False once cancellation is signalled.
        """
        if self.cancel.is_set():
            return False
        try:
            await asyncio.wait_for(self.cancel.wait(), timeout=max(delay, 0))
        except asyncio.TimeoutError:
            return True
        return False

    async def _attempt_once(self):
        try:
            await self.probe.attempt()
        except ProbeError as e:
            timeouts = " ".join(f"{k}={v}" for k, v in self.log_context.items())
            logger.error(
                f"[Worker {self.worker_id}] {e.detail}. {timeouts}",
                extra={
                    "worker_id": self.worker_id,
                    "target": self.probe.describe(),
                    "error": e.detail,
                    **self.log_context,
                },
            )
        except Exception as e:
            logger.exception(
                f"[Worker {self.worker_id}] unexpected probe failure: {e}",
                extra={"worker_id": self.worker_id, "target": self.probe.describe()},
            )
