"""
Apphash monitor entrypoint.

Usage:
    python -m apphash_monitor
    python -m apphash_monitor --env-file /etc/apphash-monitor.env --no-health

Exit codes: 0 when every log stream ended cleanly, 1 on missing or invalid
configuration, 2 on a root divergence.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from apphash_monitor.config import load_config
from apphash_monitor.exceptions import ConfigurationError
from apphash_monitor.health import HealthServer
from apphash_monitor.notifier import DiscordNotifier
from apphash_monitor.supervisor import EXIT_CONFIG, Supervisor

logger = logging.getLogger("apphash_monitor")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apphash-monitor",
        description="Tail validator logs and alert on apphash divergence",
    )
    parser.add_argument("--env-file", default=None,
                        help="Load environment variables from this .env file")
    parser.add_argument("--no-health", action="store_true",
                        help="Do not serve the /health endpoint")
    parser.add_argument("--log-level", default=None,
                        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(env_file=args.env_file)
    except ConfigurationError as e:
        print(e)
        return EXIT_CONFIG

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format=LOG_FORMAT,
    )
    logger.info("log relayer starting up!")
    logger.info(f"starting log relayer for network: {config.network}")

    notifier = DiscordNotifier(config.webhook_url, timeout=config.notify_timeout)
    health = None if args.no_health else HealthServer(config.health_host, config.health_port)
    supervisor = Supervisor(config, notifier, health=health)

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        supervisor.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return supervisor.run()


if __name__ == "__main__":
    sys.exit(main())
