"""Collector — buffers incoming lines per system and flushes them to dated files."""

import functools
import logging
import os
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from ipclog.config import CollectorConfig
from ipclog.errors import FlushError, StartupError
from ipclog.formatter import format_line, printable
from ipclog.models import LISTEN_ALL, LogEnvelope, Severity, SystemBuffer, parse_severity
from ipclog.transport import ChannelServer

logger = logging.getLogger(__name__)

ERROR_CHANNEL = "error"
MAX_WRITE_WORKERS = 8


def log_filename(scope: str, date: str) -> str:
    """File name for one scope (a system, or the shared error channel) on one day."""
    return f"[{scope}]{date}.log"


def append_file(path: str, content: str):
    with open(path, "a", encoding="utf-8", errors="backslashreplace") as f:
        f.write(content)


class Collector:
    """Receives envelopes from the channel, buffers them and writes them out periodically.

    Buffer mutations (ingest appends and flush swaps) are serialized by a
    single lock held only around the mutation, never across file I/O.
    Flushes are serialized against each other by a second lock.
    """

    def __init__(self, config: CollectorConfig, server: ChannelServer | None = None,
                 time_func=None, stream=None):
        self._config = config
        self._server = server or ChannelServer(config.channel, config.socket_dir)
        self._time_func = time_func or datetime.now
        self._stream = stream

        self._pending: dict[str, SystemBuffer] = {}
        self._listeners: dict[str, list] = {}
        self._buffer_lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._dispatch_lock = threading.Lock()

        self._stop_event = threading.Event()
        self._timer_thread = None
        self._started = False

    @property
    def config(self) -> CollectorConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._timer_thread is not None and self._timer_thread.is_alive()

    def start(self):
        """Create the output directory, open the channel and start the flush timer."""
        if self._started:
            return self
        self._ensure_directory()

        for severity in Severity:
            self._server.on(severity.value, functools.partial(self.ingest, severity))
        self._server.start()

        self._stop_event.clear()
        self._timer_thread = threading.Thread(target=self._flush_timer, daemon=True)
        self._timer_thread.start()
        self._started = True
        logger.info(
            "Collector writing to %s every %.1fs",
            self._config.directory, self._config.flush_interval,
        )
        return self

    def stop(self):
        """Stop the timer and the channel, then flush whatever is still buffered."""
        self._stop_event.set()
        if self._timer_thread:
            self._timer_thread.join(timeout=5)
            self._timer_thread = None
        if self._started:
            self._server.stop()
            self._started = False
        try:
            self.save()
        except FlushError as exc:
            logger.error("Final flush failed: %s", exc)
        logger.info("Collector stopped")

    def on(self, severity, handler):
        """Register handler(line) for a severity or for "all". Returns self."""
        key = severity if severity == LISTEN_ALL else parse_severity(severity).value
        self._listeners.setdefault(key, []).append(handler)
        return self

    def ingest(self, severity, system, cluster, message):
        """Handle one envelope: buffer it, echo it, and notify listeners."""
        envelope = LogEnvelope(severity, system, cluster, message)
        line = format_line(
            envelope.severity, envelope.system, envelope.cluster,
            envelope.message, self._time_func(),
        )

        with self._buffer_lock:
            buffer = self._pending.get(envelope.system)
            if buffer is None:
                buffer = self._pending[envelope.system] = SystemBuffer()
            buffer.append(envelope.severity.slot, line.plain)

        with self._dispatch_lock:
            if self._config.console and (
                envelope.severity is not Severity.DEBUG or self._config.debug
            ):
                print(printable(line.color), file=self._stream or sys.stdout, flush=True)

            if envelope.severity is Severity.DEBUG and not self._config.debug:
                return

            for handler in self._listeners.get(envelope.severity.value, ()):
                handler(line.plain)
            for handler in self._listeners.get(LISTEN_ALL, ()):
                handler(line.plain)

    def pending(self, system: str) -> dict[str, str]:
        """Snapshot of the buffered, not yet flushed content for system."""
        with self._buffer_lock:
            buffer = self._pending.get(system)
            if buffer is None:
                return {"data": "", "error": "", "fatal": ""}
            return {slot: buffer.content(slot) for slot in ("data", "error", "fatal")}

    def save(self) -> int:
        """Flush every buffered line to disk. Returns the number of file appends.

        Raises FlushError if any append fails; content swapped out for this
        cycle is not put back.
        """
        with self._flush_lock:
            writes = self._collect_writes()
            if not writes:
                return 0

            failures = []
            with ThreadPoolExecutor(max_workers=min(len(writes), MAX_WRITE_WORKERS)) as executor:
                futures = {
                    executor.submit(append_file, path, content): path
                    for path, content in writes.items()
                }
                for future, path in futures.items():
                    exc = future.exception()
                    if exc is not None:
                        failures.append((path, exc))

            if failures:
                path, first = failures[0]
                raise FlushError(
                    f"{len(failures)} of {len(writes)} appends failed; first {path}: {first}",
                    failures=len(failures),
                ) from first

            logger.debug("Flushed %d files to %s", len(writes), self._config.directory)
            return len(writes)

    def _collect_writes(self) -> dict[str, str]:
        """Swap every non-empty slot out and group the content by destination file."""
        chunks: dict[str, list[str]] = {}
        with self._buffer_lock:
            for system, buffer in self._pending.items():
                if buffer.is_empty():
                    continue
                date = self._time_func().strftime("%Y-%m-%d")
                system_path = os.path.join(self._config.directory, log_filename(system, date))
                for slot, content in buffer.drain().items():
                    if slot in ("error", "fatal"):
                        error_path = os.path.join(
                            self._config.directory, log_filename(ERROR_CHANNEL, date)
                        )
                        chunks.setdefault(error_path, []).append(content)
                    chunks.setdefault(system_path, []).append(content)
        return {path: "".join(parts) for path, parts in chunks.items()}

    def _ensure_directory(self):
        try:
            os.makedirs(self._config.directory, exist_ok=True)
        except OSError as exc:
            raise StartupError(
                f"cannot create log directory {self._config.directory}: {exc}"
            ) from exc

    def _flush_timer(self):
        """Background thread that flushes on a fixed-rate schedule."""
        interval = self._config.flush_interval
        next_run = time.monotonic() + interval
        while not self._stop_event.wait(timeout=max(0.0, next_run - time.monotonic())):
            now = time.monotonic()
            while next_run <= now:
                next_run += interval
            try:
                self.save()
            except FlushError as exc:
                logger.error("Flush failed: %s", exc)
