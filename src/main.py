import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Mapping, Optional

from config.config import load_settings
from config.logging_config import LOG_FORMAT, setup_logging
from contracts.errors import ConfigurationError
from contracts.probe_settings import ProbeSettings
from core.probe_factory import ProbeFactory
from core.worker_supervisor import WorkerSupervisor

logger = logging.getLogger(__name__)

NON_SETTINGS_ARGS = ("mode", "log_level")


def _add_common_options(parser: argparse.ArgumentParser):
    # Flags default to None; the settings models hold the real defaults.
    parser.add_argument(
        "--connect-timeout-ms", type=int, help="Timeout of the connect phase (default: 15)."
    )
    parser.add_argument(
        "--pool-idle-timeout-us",
        type=int,
        help="Idle time after which a pooled connection is closed (default: 1).",
    )
    parser.add_argument(
        "--interval-ms", type=int, help="Interval between probes of one worker (default: 100)."
    )
    parser.add_argument(
        "--parallel", type=int, help="Number of workers to run in parallel (default: 1)."
    )
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or ERROR).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="connprobe",
        description=(
            "Send periodic health-check probes from independent workers. Every "
            "option can also be set as CONNPROBE_<OPTION>, which takes precedence."
        ),
    )
    modes = parser.add_subparsers(dest="mode", required=True)

    http = modes.add_parser("http", help="Probe an HTTP endpoint with GET requests.")
    _add_common_options(http)
    http.add_argument("--url", help="URL to send requests to.")
    http.add_argument("--timeout-ms", type=int, help="Total request timeout (default: 20).")
    http.add_argument(
        "--pool-max-idle-per-host",
        type=int,
        help="Maximum idle connections kept per host (default: 1).",
    )

    db = modes.add_parser("db", help="Probe a Redis server with connection pings.")
    _add_common_options(db)
    db.add_argument("--url", help="Connection URL (redis://, rediss:// or unix://).")
    db.add_argument("--host", help="Server host, used when --url is not given.")
    db.add_argument("--port", type=int, help="Server port (default: 6379).")
    db.add_argument("--username", help="Username for AUTH.")
    db.add_argument("--password", help="Password for AUTH.")
    db.add_argument("--database", type=int, help="Logical database index (default: 0).")
    db.add_argument("--tls", action="store_true", default=None, help="Connect over TLS.")
    db.add_argument(
        "--insecure",
        action="store_true",
        default=None,
        help="Disable TLS certificate and hostname verification.",
    )
    db.add_argument(
        "--pooled",
        action="store_true",
        default=None,
        help="Acquire from a shared single-connection pool instead of connecting per attempt.",
    )
    db.add_argument(
        "--pool-max-lifetime-us",
        type=int,
        help="Maximum age of a pooled connection (default: unlimited).",
    )
    return parser


async def run_probes(
    settings: ProbeSettings,
    cancel: asyncio.Event,
    factory: Optional[ProbeFactory] = None,
):
    """
    Build the probes, run the workers until ``cancel`` is set, then close the probes.

    Raises:
        ConfigurationError: Before any worker is started.
    """
    probes = await (factory or ProbeFactory()).build(settings)
    try:
        await WorkerSupervisor().run(
            probes, settings.interval, cancel, settings.timeout_context()
        )
    finally:
        await asyncio.gather(*(probe.aclose() for probe in probes))


async def serve(settings: ProbeSettings):
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, cancel.set)
    await run_probes(settings, cancel)


def main(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cli_values = {k: v for k, v in vars(args).items() if k not in NON_SETTINGS_ARGS}
    try:
        setup_logging(args.log_level)
        settings = load_settings(args.mode, cli_values, environ)
        asyncio.run(serve(settings))
    except ConfigurationError as e:
        # Only takes effect when the root logger has no handlers yet.
        logging.basicConfig(format=LOG_FORMAT)
        logger.error(f"Configuration error: {e}")
        return 1
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
