"""
Command-line entry point.

Run it as:

    check_traffic_rate -H 192.0.2.1 -C public -I 3 -o -w 50000000 -c 80000000

or:

    python -m check_traffic_rate.cli --help

Prints a single status line on stdout and exits with the monitoring
system's code: 0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN. Diagnostics go to
stderr (-v for progress, -vv for every SNMP reading).

Note that both thresholds default to 0: without -w/-c any traffic at all
is reported as CRITICAL.
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from check_traffic_rate import __version__
from check_traffic_rate.config import CheckConfig, ConfigurationError, Settings, load_settings
from check_traffic_rate.sampler import DegenerateIntervalError, format_error, run_check
from check_traffic_rate.schemas import Direction, Status
from check_traffic_rate.snmp_client import SnmpError, SnmpSession

logger = logging.getLogger(__name__)


class PluginArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors as UNKNOWN."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        print(format_error(Status.UNKNOWN, message))
        self.exit(int(Status.UNKNOWN))


def build_parser() -> argparse.ArgumentParser:
    parser = PluginArgumentParser(
        prog="check_traffic_rate",
        description=(
            "Average the traffic rate of one interface over a short window "
            "using its SNMP octet counters, and compare it against thresholds."
        ),
        epilog="Thresholds default to 0, which makes any traffic CRITICAL.",
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version and exit.",
    )

    parser.add_argument("-w", "--warning", type=int, default=0,
                        help="Warning threshold in bps (Bps with -B) (default: 0)")
    parser.add_argument("-c", "--critical", type=int, default=0,
                        help="Critical threshold in bps (Bps with -B) (default: 0)")
    parser.add_argument("-H", "--hostname", default="localhost",
                        help="Host to query (default: localhost)")
    parser.add_argument("-C", "--community", default="public",
                        help="SNMPv2c community (default: public)")
    parser.add_argument("-p", "--port", type=int, default=None,
                        help="SNMP UDP port (default: TRAFFIC_RATE_SNMP_PORT or 161)")
    parser.add_argument("-I", "--interface", default="1",
                        help="Interface index (default: 1)")

    direction = parser.add_mutually_exclusive_group()
    direction.add_argument("-i", "--inbound", dest="direction", action="store_const",
                           const=Direction.INBOUND, help="Check inbound traffic (default)")
    direction.add_argument("-o", "--outbound", dest="direction", action="store_const",
                           const=Direction.OUTBOUND, help="Check outbound traffic")
    parser.set_defaults(direction=Direction.INBOUND)

    parser.add_argument("-B", "--bytes", action="store_true",
                        help="Report bytes per second instead of bits per second")
    parser.add_argument("-t", "--time", type=int, default=30,
                        help="Observation window in seconds (default: 30)")
    parser.add_argument("-n", "--number", type=int, default=3,
                        help="Number of samples taken over the window, at least 2 (default: 3)")

    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress to stderr; repeat for debug output")
    return parser


def configure_logging(verbosity: int, default_level: str = "WARNING") -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, default_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="[%(name)s] %(message)s",
        force=True,
    )


def config_from_args(args: argparse.Namespace, settings: Settings) -> CheckConfig:
    return CheckConfig.build(
        host=args.hostname,
        community=args.community,
        port=settings.snmp_port if args.port is None else args.port,
        timeout=settings.snmp_timeout,
        retries=settings.snmp_retries,
        interface=args.interface,
        direction=args.direction,
        in_bytes=args.bytes,
        duration=args.time,
        samples=args.number,
        warning=args.warning,
        critical=args.critical,
    )


def check(config: CheckConfig) -> Tuple[Status, str]:
    """
    Run the check inside one SNMP session.

    The session is closed before this returns, whatever the outcome.
    """
    try:
        with SnmpSession(
            host=config.host,
            community=config.community,
            port=config.port,
            timeout=config.timeout,
            retries=config.retries,
        ) as session:
            return run_check(session, config)
    except SnmpError as exc:
        logger.debug("SNMP failure", exc_info=True)
        return Status.CRITICAL, format_error(Status.CRITICAL, exc)
    except DegenerateIntervalError as exc:
        return Status.UNKNOWN, format_error(Status.UNKNOWN, exc)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(args.verbose, settings.log_level)
        config = config_from_args(args, settings)
    except ConfigurationError as exc:
        print(format_error(Status.UNKNOWN, exc))
        return int(Status.UNKNOWN)

    logger.info(
        "Checking %s traffic on %s interface %s: %d samples over %ds",
        config.direction.value,
        config.host,
        config.interface,
        config.samples,
        config.duration,
    )
    status, summary = check(config)
    print(summary)
    return int(status)


if __name__ == "__main__":
    sys.exit(main())
