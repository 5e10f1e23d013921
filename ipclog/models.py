"""Severities, envelopes and the per-system line buffers."""

from dataclasses import dataclass, field
from enum import Enum

LISTEN_ALL = "all"

SLOTS = ("data", "error", "fatal")


class Severity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def slot(self) -> str:
        """Name of the SystemBuffer slot lines of this severity land in."""
        if self is Severity.ERROR:
            return "error"
        if self is Severity.FATAL:
            return "fatal"
        return "data"



def parse_severity(value) -> Severity:
    """Coerce a string or Severity to Severity. Raises ValueError if unknown."""
    if isinstance(value, Severity):
        return value
    try:
        return Severity(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"unknown severity: {value!r}") from None


@dataclass(frozen=True)
class LogEnvelope:
    severity: Severity
    system: str
    cluster: str
    message: str

    def __post_init__(self):
        if not isinstance(self.system, str) or not self.system:
            raise ValueError("envelope system must be a non-empty string")
        if not isinstance(self.message, str):
            raise ValueError("envelope message must be a string")
        object.__setattr__(self, "severity", parse_severity(self.severity))
        object.__setattr__(self, "cluster", str(self.cluster))

    def to_payload(self) -> list:
        return [self.system, self.cluster, self.message]


@dataclass
class SystemBuffer:
    """Accumulates complete formatted lines for one originating system.

    Not thread-safe; the collector serializes every access.
    """

    _slots: dict = field(default_factory=lambda: {slot: [] for slot in SLOTS})

    def append(self, slot: str, line: str):
        self._slots[slot].append(line)

    def content(self, slot: str) -> str:
        """Newline-terminated content of a slot, or '' when empty."""
        return "".join(line + "\n" for line in self._slots[slot])

    def is_empty(self) -> bool:
        return not any(self._slots.values())

    def drain(self) -> dict[str, str]:
        """Detach every non-empty slot and reset it. Returns {slot: content}."""
        drained = {}
        for slot in SLOTS:
            lines = self._slots[slot]
            if lines:
                self._slots[slot] = []
                drained[slot] = "".join(line + "\n" for line in lines)
        return drained
