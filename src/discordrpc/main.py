"""
discordrpc - Entry point.

This module handles:
- Argument parsing
- Logging and configuration setup
- Publishing a Rich Presence until interrupted
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from discordrpc import __version__
from discordrpc.core.config import (
    ClientConfig,
    ConfigurationError,
    find_config_file,
    load_config,
)
from discordrpc.ipc import ClientEvent, RPCClient, RPCError
from discordrpc.presence import PresenceBuilder

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="discordrpc",
        description="Publish a Discord Rich Presence over local IPC",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"discordrpc {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: auto-detect)",
    )

    parser.add_argument(
        "--client-id",
        default=None,
        help="Application client ID (overrides the configuration file)",
    )

    parser.add_argument(
        "--pipe",
        type=int,
        default=None,
        choices=range(10),
        metavar="INDEX",
        help="IPC slot to connect to, 0-9 (default: scan all)",
    )

    parser.add_argument("--details", default=None, help="Top line of the presence")
    parser.add_argument("--state", default=None, help="Second line of the presence")
    parser.add_argument("--large-image", default=None, help="Large image asset key")
    parser.add_argument("--large-text", default=None, help="Large image hover text")

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ClientConfig:
    """
    Merge the configuration file with command-line overrides.

    Raises:
        ConfigurationError: If the configuration is invalid or incomplete
    """
    config_path = find_config_file(args.config)
    config = load_config(config_path) if config_path is not None else ClientConfig()

    overrides: dict[str, object] = {}
    if args.client_id:
        overrides["client_id"] = args.client_id
    if args.pipe is not None:
        overrides["pipe_index"] = args.pipe
    if overrides:
        config = config.model_copy(update=overrides)

    if not config.client_id:
        raise ConfigurationError("No client ID given. Use --client-id or set client_id in the config file.")
    return config


def build_presence(args: argparse.Namespace) -> PresenceBuilder:
    """Create the presence described by the command line."""
    builder = PresenceBuilder()
    if args.details:
        builder.set_details(args.details)
    if args.state:
        builder.set_state(args.state)
    if args.large_image:
        builder.set_large_image(args.large_image, args.large_text)
    return builder


async def run_presence(config: ClientConfig, builder: PresenceBuilder) -> int:
    """
    Log in, publish the presence and wait for a shutdown signal.

    Returns:
        Exit code
    """
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    def signal_handler(signum: int, _frame: object) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        loop.call_soon_threadsafe(shutdown.set)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    client = RPCClient(config)
    client.on(ClientEvent.DISCONNECTED, lambda reason: shutdown.set())

    try:
        ready = await client.login()
        if ready.user is not None:
            logger.info(f"Logged in as {ready.user.username}")

        await client.set_activity(builder.build())
        logger.info("Presence published, press Ctrl+C to exit")

        await shutdown.wait()
        return 0

    except RPCError as e:
        logger.error(f"RPC error: {e}")
        return 1

    finally:
        await client.destroy()


def main(argv: list[str] | None = None) -> int:
    """
    Application entry point.

    Returns:
        Exit code (0 = success)
    """
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = logging.DEBUG if args.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s]: %(message)s",
    )

    return asyncio.run(run_presence(config, build_presence(args)))


if __name__ == "__main__":
    sys.exit(main())
