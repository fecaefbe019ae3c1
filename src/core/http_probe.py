import logging

import httpx

from abstractions.probe import Probe
from contracts.errors import ProbeError
from core.profiler import Profiler
from core.urls import redact_url

logger = logging.getLogger(__name__)


class HttpProbe(Probe):
    """
    Issues one GET per attempt through a client owned by this probe only.

    Any response, whatever its status code, counts as success: the probe
    checks that a connection could be made and a response exchanged.
    """

    def __init__(self, client: httpx.AsyncClient, url: str):
        """
        Initialize the HttpProbe.

        Args:
            client (httpx.AsyncClient): Client dedicated to this probe.
            url (str): The URL to send GET requests to.
        """
        self.client = client
        self.url = url

    def describe(self) -> str:
        return f"GET {redact_url(self.url)}"

    @Profiler.profile
    async def attempt(self) -> None:
        try:
            resp = await self.client.get(self.url)
        except httpx.HTTPError as e:
            raise ProbeError(f"request error: {e!r}") from e
        logger.debug(f"{self.describe()} -> {resp.status_code}")

    async def aclose(self) -> None:
        await self.client.aclose()
