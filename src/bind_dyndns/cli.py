"""CLI for the dynamic DNS client and server."""
from __future__ import annotations

import argparse
import logging
import sys

from . import client, server
from .config import load_client_config, load_server_config
from .errors import DynDNSError

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed CLI options:
            - config (str): Path to YAML config file.
            - log_level (str): Logging level.
            - command (str): ``client`` or ``server``.
            - force_reload (bool): Server only, reload even if unchanged.
    """
    parser = argparse.ArgumentParser(
        prog="bind-dyndns",
        description="Dynamic DNS for a BIND-served hostname",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", default="dyndns.yaml", help="Path to YAML config")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser(
        "client",
        help="Detect the external IP and push it to the DNS host",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    srv = sub.add_parser(
        "server",
        help="Render the zone from the pushed IP and reload BIND",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    srv.add_argument(
        "--force-reload",
        action="store_true",
        help="Reload BIND even when the zone is unchanged",
    )
    return parser.parse_args(argv)


def configure_logging(log_level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run(args: argparse.Namespace) -> int:
    """Run one update cycle and map its outcome to an exit status.

    Returns:
        int: 0 on success (including "unchanged"), otherwise the exit code
        of the error that ended the cycle.
    """
    try:
        if args.command == "client":
            client.run(load_client_config(args.config))
        else:
            server.run(load_server_config(args.config), force_reload=args.force_reload)
    except DynDNSError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return exc.exit_code
    return 0


def main(argv: list[str] | None = None) -> None:
    """Run the CLI entry point."""
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        code = run(args)
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)
