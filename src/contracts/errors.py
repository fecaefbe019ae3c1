class ConnprobeError(Exception):
    """
    Base class for all errors raised by connprobe.
    """


class ConfigurationError(ConnprobeError):
    """
    Raised at startup when the settings or the target cannot be turned into
    usable probes. No worker is started once this is raised.
    """


class ProbeError(ConnprobeError):
    """
    A single probe attempt failed (connect, timeout or protocol failure).
    """

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail
