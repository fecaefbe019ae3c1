from abc import ABC, abstractmethod


class Probe(ABC):
    """
    Abstract base class for a single connectivity check bound to one worker.
    """

    @abstractmethod
    async def attempt(self) -> None:
        """
        Perform exactly one probe against the target.

        Returns:
            None: The probe completed.

        Raises:
            ProbeError: The connect, exchange or timeout failed.
        """

    @abstractmethod
    def describe(self) -> str:
        """
        Return a human readable name of the probe target for log records.
        """

    async def aclose(self) -> None:
        """
        Release resources owned by this probe. Called once on shutdown.
        """
