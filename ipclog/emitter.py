"""Per-process facade that sends log lines to the collector."""

import logging
import os
import sys
import threading

from ipclog.config import EmitterConfig
from ipclog.errors import TransportError
from ipclog.formatter import format_line, printable
from ipclog.models import LogEnvelope, Severity
from ipclog.normalizer import format_fatal, normalize
from ipclog.transport import ChannelClient

logger = logging.getLogger(__name__)


def _hard_exit():
    os._exit(1)


class Emitter:
    """One call per severity; each call is a single fire-and-forget send.

    Fatal lines are never sent by application code. They come only from the
    crash hooks installed with install_fatal_hooks(), which send the
    traceback and then terminate the process.
    """

    def __init__(self, config: EmitterConfig, client: ChannelClient | None = None,
                 exit_func=None, stream=None):
        self._config = config
        self._system = config.system
        self._cluster = str(config.cluster)
        self._client = client or ChannelClient(config.channel, config.socket_dir)
        self._exit_func = exit_func or _hard_exit
        self._stream = stream
        self._terminated = threading.Event()

    @property
    def system(self) -> str:
        return self._system

    @property
    def cluster(self) -> str:
        return self._cluster

    @property
    def terminated(self) -> bool:
        return self._terminated.is_set()

    def info(self, value):
        self._emit(Severity.INFO, value)

    def warn(self, value):
        self._emit(Severity.WARN, value)

    def error(self, value):
        self._emit(Severity.ERROR, value)

    def debug(self, value):
        self._emit(Severity.DEBUG, value)

    def _emit(self, severity: Severity, value):
        if self._terminated.is_set():
            return
        message = normalize(value)
        envelope = LogEnvelope(severity, self._system, self._cluster, message)
        self._client.send(severity.value, envelope.to_payload())
        self._echo(severity, message)

    def _echo(self, severity: Severity, message: str):
        if not self._config.echo:
            return
        if severity is Severity.DEBUG and not self._config.debug:
            return
        line = format_line(severity, self._system, self._cluster, message)
        print(printable(line.color), file=self._stream or sys.stdout, flush=True)

    def install_fatal_hooks(self, loop=None):
        """Route uncaught exceptions (and, given a loop, unretrieved task errors) to the fatal path."""
        sys.excepthook = self._sys_excepthook
        threading.excepthook = self._thread_excepthook
        if loop is not None:
            loop.set_exception_handler(
                lambda _loop, context: self._fatal(
                    context.get("exception") or context.get("message")
                )
            )
        return self

    def _sys_excepthook(self, exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        self._fatal(exc)

    def _thread_excepthook(self, args):
        if args.exc_type is SystemExit:
            return
        self._fatal(args.exc_value)

    def _fatal(self, exc):
        """Send exc as a fatal line, then terminate. Runs at most once."""
        if self._terminated.is_set():
            return
        self._terminated.set()

        try:
            message = format_fatal(exc)
            envelope = LogEnvelope(Severity.FATAL, self._system, self._cluster, message)
            try:
                self._client.send(Severity.FATAL.value, envelope.to_payload())
            except TransportError as send_exc:
                logger.error("Could not deliver fatal line: %s", send_exc)
            self._echo(Severity.FATAL, message)
        finally:
            self._exit_func()

    def close(self):
        self._client.close()
