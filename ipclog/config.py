"""Configuration — frozen dataclasses built from defaults, YAML, env vars and CLI args."""

import argparse
import logging
import os
import tempfile
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "logger"


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _default_socket_dir() -> str:
    return tempfile.gettempdir()


@dataclass(frozen=True)
class CollectorConfig:
    directory: str = "./logs"
    flush_interval: float = 60.0
    debug: bool = True
    console: bool = True
    channel: str = DEFAULT_CHANNEL
    socket_dir: str = field(default_factory=_default_socket_dir)

    def __post_init__(self):
        if not self.directory:
            raise ValueError("directory must not be empty")
        if self.flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        if not self.channel:
            raise ValueError("channel must not be empty")


@dataclass(frozen=True)
class EmitterConfig:
    system: str
    cluster: int | str = 0
    debug: bool = True
    echo: bool = False
    channel: str = DEFAULT_CHANNEL
    socket_dir: str = field(default_factory=_default_socket_dir)

    def __post_init__(self):
        if not isinstance(self.system, str) or not self.system:
            raise ValueError("system must be a non-empty string")
        if not self.channel:
            raise ValueError("channel must not be empty")


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
        return data
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}


def load_collector_config(argv=None) -> CollectorConfig:
    """Build CollectorConfig: defaults < YAML file < env vars < CLI args."""
    parser = argparse.ArgumentParser(description="Log collector")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--directory", type=str, default=None)
    parser.add_argument("--flush-interval", type=float, default=None)
    parser.add_argument("--no-debug", action="store_true", default=False,
                        help="Persist debug lines without echoing them")
    parser.add_argument("--quiet", action="store_true", default=False,
                        help="Disable console echo")
    parser.add_argument("--channel", type=str, default=None)
    parser.add_argument("--socket-dir", type=str, default=None)
    args = parser.parse_args(argv)

    data = load_yaml_config(args.config or os.environ.get("LOGGER_CONFIG"))

    directory = os.environ.get("LOG_DIR", data.get("directory", CollectorConfig.directory))
    flush_interval = float(
        os.environ.get("FLUSH_INTERVAL", data.get("flush_interval", CollectorConfig.flush_interval))
    )
    debug = _parse_bool(os.environ.get("LOG_DEBUG", data.get("debug", CollectorConfig.debug)))
    console = _parse_bool(os.environ.get("CONSOLE_ECHO", data.get("console", CollectorConfig.console)))
    channel = os.environ.get("LOGGER_CHANNEL", data.get("channel", CollectorConfig.channel))
    socket_dir = os.environ.get("LOGGER_SOCKET_DIR", data.get("socket_dir") or _default_socket_dir())

    return CollectorConfig(
        directory=args.directory if args.directory is not None else directory,
        flush_interval=args.flush_interval if args.flush_interval is not None else flush_interval,
        debug=False if args.no_debug else debug,
        console=False if args.quiet else console,
        channel=args.channel if args.channel is not None else channel,
        socket_dir=args.socket_dir if args.socket_dir is not None else socket_dir,
    )


def load_emitter_config(argv=None) -> EmitterConfig:
    """Build EmitterConfig for the demo producer: defaults < env vars < CLI args."""
    parser = argparse.ArgumentParser(description="Log producer")
    parser.add_argument("--system", type=str, default=None)
    parser.add_argument("--cluster", type=str, default=None)
    parser.add_argument("--no-debug", action="store_true", default=False)
    parser.add_argument("--echo", action="store_true", default=False)
    parser.add_argument("--channel", type=str, default=None)
    parser.add_argument("--socket-dir", type=str, default=None)
    args, _ = parser.parse_known_args(argv)

    return EmitterConfig(
        system=args.system or os.environ.get("LOG_SYSTEM", "demo"),
        cluster=args.cluster if args.cluster is not None else os.environ.get("LOG_CLUSTER", "0"),
        debug=False if args.no_debug else _parse_bool(os.environ.get("LOG_DEBUG", "true")),
        echo=args.echo or _parse_bool(os.environ.get("LOG_ECHO", "false")),
        channel=args.channel or os.environ.get("LOGGER_CHANNEL", DEFAULT_CHANNEL),
        socket_dir=args.socket_dir or os.environ.get("LOGGER_SOCKET_DIR", _default_socket_dir()),
    )
