"""Named local channel — NDJSON framing over a Unix-domain stream socket."""

import json
import logging
import os
import socket
import tempfile
import threading

from ipclog.errors import TransportError

logger = logging.getLogger(__name__)

RECV_SIZE = 65536


def channel_path(name: str, socket_dir: str | None = None) -> str:
    """Filesystem path of the socket backing the channel called name."""
    return os.path.join(socket_dir or tempfile.gettempdir(), f"{name}.sock")


def encode_message(tag: str, payload) -> bytes:
    return (json.dumps({"tag": tag, "payload": list(payload)}) + "\n").encode("utf-8")


def decode_message(line: bytes) -> tuple[str, list]:
    """Parse one NDJSON line into (tag, payload). Raises ValueError if malformed."""
    try:
        msg = json.loads(line.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc
    if not isinstance(msg, dict):
        raise ValueError("expected JSON object")
    if "tag" not in msg or "payload" not in msg:
        raise ValueError("missing required fields: tag, payload")
    if not isinstance(msg["payload"], list):
        raise ValueError("payload must be a list")
    return str(msg["tag"]), msg["payload"]


class ChannelServer:
    """Server end of a named channel; dispatches each message to the handler for its tag.

    Each client connection is read on its own thread, so messages from one
    sender are dispatched in the order they were sent.
    """

    def __init__(self, name: str, socket_dir: str | None = None):
        self._name = name
        self._path = channel_path(name, socket_dir)
        self._handlers = {}
        self._shutdown = threading.Event()
        self._sock = None
        self._thread = None
        self._clients: list[threading.Thread] = []

    @property
    def path(self) -> str:
        return self._path

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def on(self, tag: str, handler):
        """Register handler(*payload) for messages sent with tag."""
        self._handlers[tag] = handler
        return self

    def start(self):
        """Bind the socket and accept connections on a background thread."""
        if os.path.exists(self._path):
            # Stale socket from a previous run.
            os.unlink(self._path)
        self._shutdown.clear()
        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._sock.settimeout(1.0)
        self._sock.bind(self._path)
        self._sock.listen(16)
        logger.info("Channel %r listening on %s", self._name, self._path)

        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()
        return self

    def stop(self):
        """Close the listen socket, wait for reader threads and remove the socket file."""
        self._shutdown.set()
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        for t in self._clients:
            t.join(timeout=5)
        self._clients.clear()
        if os.path.exists(self._path):
            try:
                os.unlink(self._path)
            except OSError:
                pass
        logger.info("Channel %r stopped", self._name)

    def _accept_loop(self):
        while not self._shutdown.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break

            t = threading.Thread(target=self._handle_client, args=(conn,), daemon=True)
            self._clients = [c for c in self._clients if c.is_alive()]
            self._clients.append(t)
            t.start()

    def _handle_client(self, conn: socket.socket):
        logger.debug("Client connected to channel %r", self._name)
        conn.settimeout(1.0)
        buffer = b""
        try:
            while not self._shutdown.is_set():
                try:
                    data = conn.recv(RECV_SIZE)
                except socket.timeout:
                    continue
                except OSError:
                    break

                if not data:
                    break

                buffer += data
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    line = line.strip()
                    if line:
                        self.dispatch(line)
        finally:
            conn.close()
            logger.debug("Client disconnected from channel %r", self._name)

    def dispatch(self, line: bytes):
        """Decode one line and call its handler. Bad lines are logged and dropped."""
        try:
            tag, payload = decode_message(line)
        except ValueError as exc:
            logger.warning("Dropping malformed message on channel %r: %s", self._name, exc)
            return

        handler = self._handlers.get(tag)
        if handler is None:
            logger.warning("No handler for tag %r on channel %r", tag, self._name)
            return

        try:
            handler(*payload)
        except Exception:
            logger.exception("Handler for tag %r failed", tag)


class ChannelClient:
    """Client end of a named channel. Connects on first send."""

    def __init__(self, name: str, socket_dir: str | None = None):
        self._name = name
        self._path = channel_path(name, socket_dir)
        self._sock = None
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def send(self, tag: str, payload):
        """Write one tagged message. Raises TransportError on any socket failure."""
        data = encode_message(tag, payload)
        with self._lock:
            try:
                if self._sock is None:
                    self._connect_locked()
                self._sock.sendall(data)
            except OSError as exc:
                self._close_locked()
                raise TransportError(
                    f"send on channel {self._name!r} failed: {exc}"
                ) from exc

    def close(self):
        with self._lock:
            self._close_locked()

    def _connect_locked(self):
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self._path)
        except OSError:
            sock.close()
            raise
        self._sock = sock
        logger.debug("Connected to channel %r at %s", self._name, self._path)

    def _close_locked(self):
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
