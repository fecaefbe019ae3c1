from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProbeSettings(BaseModel):
    """
    Immutable probe parameters shared by every probe mode.

    Durations keep the unit of the option they were read from (``_ms`` or
    ``_us``); the properties expose them in seconds for the client libraries.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    connect_timeout_ms: int = Field(15, ge=0)
    pool_idle_timeout_us: int = Field(1, ge=0)
    interval_ms: int = Field(100, ge=0)
    parallel: int = Field(1, ge=1)

    @property
    def connect_timeout(self) -> float:
        return self.connect_timeout_ms / 1000

    @property
    def pool_idle_timeout(self) -> float:
        return self.pool_idle_timeout_us / 1_000_000

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000

    def timeout_context(self) -> Dict[str, int]:
        """
        Configured timeout values attached to every failure log record.
        """
        return {"connect_timeout_ms": self.connect_timeout_ms}


class HttpProbeSettings(ProbeSettings):
    """
    Settings for the HTTP GET probe.
    """

    mode: Literal["http"] = "http"
    url: str
    timeout_ms: int = Field(20, ge=0)
    pool_max_idle_per_host: int = Field(1, ge=0)

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000

    def timeout_context(self) -> Dict[str, int]:
        return {
            "connect_timeout_ms": self.connect_timeout_ms,
            "timeout_ms": self.timeout_ms,
        }


class DbProbeSettings(ProbeSettings):
    """
    Settings for the Redis connection probe.

    The target is either ``url`` or the ``host``/``port``/``username``/
    ``password``/``database`` fields; ``url`` wins when both are given.
    """

    mode: Literal["db"] = "db"
    url: Optional[str] = None
    host: Optional[str] = None
    port: int = Field(6379, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = Field(None, repr=False)
    database: int = Field(0, ge=0)
    tls: bool = False
    insecure: bool = False
    pooled: bool = False
    pool_max_lifetime_us: Optional[int] = Field(None, ge=0)

    @property
    def pool_max_lifetime(self) -> Optional[float]:
        if self.pool_max_lifetime_us is None:
            return None
        return self.pool_max_lifetime_us / 1_000_000

    def timeout_context(self) -> Dict[str, int]:
        context = {
            "connect_timeout_ms": self.connect_timeout_ms,
            "pool_idle_timeout_us": self.pool_idle_timeout_us,
        }
        if self.pool_max_lifetime_us is not None:
            context["pool_max_lifetime_us"] = self.pool_max_lifetime_us
        return context
