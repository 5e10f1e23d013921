"""Exception types raised at the storage and channel boundaries."""


class IpcLogError(Exception):
    """Base class for every error raised by this package."""


class StorageError(IpcLogError):
    """The log directory or a log file could not be written."""


class StartupError(StorageError):
    """The output directory could not be created; the collector cannot run."""


class FlushError(StorageError):
    """At least one file append failed during a flush cycle.

    Content swapped out of the buffers for that cycle is not restored.
    """

    def __init__(self, message: str, failures: int = 1):
        super().__init__(message)
        self.failures = failures


class TransportError(IpcLogError):
    """A send on the named channel failed."""
