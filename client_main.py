"""CLI entry point for a demo log producer."""

import argparse
import logging
import random
import sys
import time

from ipclog.config import load_emitter_config
from ipclog.emitter import Emitter

logger = logging.getLogger(__name__)

SAMPLE_MESSAGES = [
    "Application started successfully",
    "Processing user request",
    "Database query completed",
    "Cache miss for key: user_session",
    "Failed to connect to external API",
    "Disk usage above 90%",
    "Authentication token expired",
    "Request timeout after 30s",
    "New user registered",
    "Scheduled job completed",
]


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(description="Demo log producer")
    parser.add_argument("--count", type=int, default=20, help="Number of lines to send")
    parser.add_argument("--interval", type=float, default=0.1, help="Seconds between lines")
    args, rest = parser.parse_known_args(argv)

    emitter = Emitter(load_emitter_config(rest))
    emitter.install_fatal_hooks()
    calls = [emitter.info, emitter.warn, emitter.error, emitter.debug]
    try:
        for i in range(args.count):
            random.choice(calls)(random.choice(SAMPLE_MESSAGES))
            if args.interval > 0 and i < args.count - 1:
                time.sleep(args.interval)
        emitter.error(Exception("error test"))
        emitter.info({"sent": args.count, "system": emitter.system})
        logger.info("Sent %d sample lines", args.count + 2)
    finally:
        emitter.close()


if __name__ == "__main__":
    main()
