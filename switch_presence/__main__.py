"""Switch Presence entry point.

Usage:
    python -m switch_presence [HOST] [--port PORT] [--config CONFIG_PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .config import PresenceConfig
from .errors import StartupError
from .session import EXIT_FATAL, SessionController


def main() -> None:
    parser = argparse.ArgumentParser(description="Nintendo Switch → Discord Rich Presence")
    parser.add_argument(
        "host",
        nargs="?",
        default=None,
        help="IP address of the console (overrides config)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Sysmodule TCP port (overrides config)",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to config.json (default: ~/.switch-presence/config.json)",
    )
    parser.add_argument(
        "--client-id",
        default=None,
        help="Discord application client ID (overrides config)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    # Logging
    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    log = logging.getLogger(__name__)

    # Load config
    config_path = args.config
    if config_path is None:
        candidate = Path.home() / ".switch-presence" / "config.json"
        if candidate.exists():
            config_path = str(candidate)

    if config_path:
        config = PresenceConfig.load(config_path)
        log.info("Loaded config from %s", config_path)
    else:
        config = PresenceConfig()

    # Environment, then CLI overrides
    config.apply_env()
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.client_id:
        config.client_id = args.client_id

    if not config.host:
        parser.error("no console host given (pass HOST, set SWITCH_HOST or add it to config.json)")

    controller = SessionController(config)
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    run_task = loop.create_task(controller.run())

    def _shutdown(sig: int) -> None:
        log.info("Received signal %d, shutting down", sig)
        controller.request_stop()
        if not controller.started:
            run_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown, sig)
        except NotImplementedError:
            # Windows event loops have no signal handlers.
            pass

    exit_code = 0
    try:
        exit_code = loop.run_until_complete(run_task)
    except StartupError as exc:
        log.error("%s", exc)
        exit_code = EXIT_FATAL
    except (asyncio.CancelledError, KeyboardInterrupt):
        loop.run_until_complete(controller.stop())
    finally:
        loop.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
