"""Log collector and per-process emitters connected by a named local channel."""

from ipclog.collector import Collector
from ipclog.config import CollectorConfig, EmitterConfig
from ipclog.emitter import Emitter
from ipclog.errors import FlushError, StartupError, StorageError, TransportError
from ipclog.models import LISTEN_ALL, Severity

__all__ = [
    "Collector",
    "CollectorConfig",
    "Emitter",
    "EmitterConfig",
    "FlushError",
    "LISTEN_ALL",
    "Severity",
    "StartupError",
    "StorageError",
    "TransportError",
]
