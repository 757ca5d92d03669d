"""
TELELINK Application Entry Point

Runs the telescope client from the command line: loads configuration,
creates the client, optionally sends one goto command, then drives the
communication cycle and prints the interpolated J2000 position.

Usage:
    telelink                                  # Run with default config
    telelink --config /path/to/config.yaml
    telelink --driver alpaca://10.0.0.5:11111/0 --equinox jnow
    telelink --goto 5.5881 -5.3911 --duration 30
    telelink --dry-run                        # Validate config without connecting

Entry Points:
    - CLI: `telelink` command (via pyproject.toml)
    - Direct: `python -m telelink.main`
"""

from __future__ import annotations

import argparse
import signal
import sys
import time
from typing import TYPE_CHECKING, Optional

from services.ephemeris import SkyfieldFrameService
from services.telescope import TelescopeClient, driver_to_vector, vector_to_driver
from telelink import __version__
from telelink.config import TelelinkConfig, load_config
from telelink.exceptions import ConfigurationError, TelelinkError
from telelink.logging_config import get_logger, setup_logging
from telelink.types import EquinoxMode

if TYPE_CHECKING:
    from types import FrameType

__all__ = ["main", "run", "create_parser", "create_client"]

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_DRIVER_UNUSABLE = 2


# =============================================================================
# Argument Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="telelink",
        description="TELELINK telescope position and goto client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Configuration
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file (default: auto-discover)",
    )
    parser.add_argument(
        "-d",
        "--driver",
        type=str,
        metavar="ID",
        help="Driver identifier, e.g. alpaca://host:11111/0 (overrides config)",
    )
    parser.add_argument(
        "-e",
        "--equinox",
        choices=["j2000", "jnow", "auto"],
        default=None,
        help="Frame the driver reports coordinates in (overrides config)",
    )

    # Logging
    parser.add_argument(
        "-l",
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (overrides config file)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        metavar="PATH",
        help="Path to log file (default: console only)",
    )

    # Operation
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit without connecting",
    )
    parser.add_argument(
        "--goto",
        type=float,
        nargs=2,
        metavar=("RA_HOURS", "DEC_DEGREES"),
        help="Send a goto to J2000 coordinates after connecting",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Stop after this many seconds (default: run until interrupted)",
    )

    return parser


# =============================================================================
# Signal Handling
# =============================================================================


class GracefulShutdown:
    """Stops the polling loop on SIGINT or SIGTERM."""

    def __init__(self) -> None:
        self._shutdown_requested = False
        self._original_handlers: dict[int, signal.Handlers] = {}

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def install_handlers(self) -> None:
        self._original_handlers[signal.SIGINT] = signal.signal(
            signal.SIGINT, self._handle_signal
        )
        self._original_handlers[signal.SIGTERM] = signal.signal(
            signal.SIGTERM, self._handle_signal
        )

    def restore_handlers(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        signal_name = signal.Signals(signum).name
        if self._shutdown_requested:
            logger.warning(f"Received {signal_name} again - forcing immediate exit")
            sys.exit(1)
        logger.info(f"Received {signal_name} - stopping...")
        self._shutdown_requested = True


# =============================================================================
# Client Setup and Loop
# =============================================================================


def _equinox_mode(value: str) -> Optional[EquinoxMode]:
    if value == "auto":
        return None
    return EquinoxMode(value)


def create_client(config: TelelinkConfig) -> TelescopeClient:
    """Create the telescope client described by the configuration."""
    telescope = config.telescope
    return TelescopeClient.create(
        telescope.name,
        telescope.driver_id,
        _equinox_mode(telescope.equinox),
        frame=SkyfieldFrameService(),
        refresh_interval=telescope.refresh_interval,
        position_delay=telescope.effective_position_delay,
        error_listener=lambda message: print(message, file=sys.stderr),
        call_timeout=telescope.call_timeout,
        slew_timeout=telescope.slew_timeout,
    )


def run(
    client: TelescopeClient,
    tick_interval: float,
    duration: Optional[float] = None,
    shutdown: Optional[GracefulShutdown] = None,
) -> None:
    """Drive the communication cycle and print each new position."""
    start = time.monotonic()
    last_printed: Optional[float] = None

    while client.is_usable():
        if shutdown is not None and shutdown.shutdown_requested:
            break
        if duration is not None and time.monotonic() - start >= duration:
            break

        client.perform_communication()

        status = client.get_status()
        sample_time = status["last_sample_time"]
        if sample_time is not None and sample_time != last_printed:
            last_printed = sample_time
            position = client.get_canonical_position()
            if position is not None:
                ra_hours, dec_degrees = vector_to_driver(position)
                print(f"J2000 RA={ra_hours:.5f}h Dec={dec_degrees:+.4f}°")

        time.sleep(tick_interval)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the TELELINK application.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level or "INFO", log_file=args.log_file)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    if args.driver:
        config.telescope.driver_id = args.driver
    if args.equinox:
        config.telescope.equinox = args.equinox
    # Config file settings apply unless overridden on the command line
    setup_logging(
        log_level=args.log_level or config.log_level,
        log_file=args.log_file or config.log_file,
    )

    logger.info(
        f"TELELINK v{__version__}: {config.telescope.name} via "
        f"{config.telescope.driver_id} ({config.telescope.equinox})"
    )

    if args.dry_run:
        print("Configuration is valid")
        return EXIT_OK

    shutdown = GracefulShutdown()
    shutdown.install_handlers()
    client: Optional[TelescopeClient] = None

    try:
        client = create_client(config)
        if not client.is_usable():
            logger.error(f"Telescope driver {config.telescope.driver_id} is not usable")
            return EXIT_DRIVER_UNUSABLE

        if args.goto:
            ra_hours, dec_degrees = args.goto
            client.goto_position(driver_to_vector(ra_hours, dec_degrees))

        run(client, config.telescope.tick_interval, args.duration, shutdown)
        return EXIT_OK if client.is_usable() else EXIT_DRIVER_UNUSABLE

    except TelelinkError as e:
        logger.error(f"TELELINK error: {e}")
        return EXIT_CONFIG_ERROR
    finally:
        if client is not None:
            client.close()
        shutdown.restore_handlers()


if __name__ == "__main__":
    sys.exit(main())
