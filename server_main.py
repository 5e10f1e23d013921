"""Entry point for the log collector."""

import logging
import signal
import sys
import threading

from ipclog.collector import Collector
from ipclog.config import load_collector_config
from ipclog.errors import StartupError


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )

    config = load_collector_config(argv)
    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logging.getLogger(__name__).info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    collector = Collector(config)
    try:
        collector.start()
    except StartupError as exc:
        logging.getLogger(__name__).critical("%s", exc)
        sys.exit(1)

    try:
        shutdown_event.wait()
    finally:
        collector.stop()


if __name__ == "__main__":
    main()
