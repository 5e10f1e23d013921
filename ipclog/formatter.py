"""Line formatter — fixed-width plain lines for files, ANSI-colored lines for the console."""

from datetime import datetime
from typing import NamedTuple

from ipclog.models import Severity, parse_severity

CLUSTER_WIDTH = 2
SYSTEM_WIDTH = 7
SEVERITY_WIDTH = 5
TRUNCATION_MARKER = "-"
SEPARATOR = "|"
MASTER_TAG = "M"

# ANSI color codes
RESET = "\033[0m"
BRIGHT = "\033[1m"
DIM = "\033[2m"
BLACK = "\033[30m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
CYAN = "\033[36m"
WHITE = "\033[37m"

COLORS = {
    Severity.DEBUG: BLUE,
    Severity.INFO: GREEN,
    Severity.WARN: YELLOW,
    Severity.ERROR: RED,
    Severity.FATAL: CYAN,
}


class FormattedLine(NamedTuple):
    plain: str
    color: str


def align_text(text: str, width: int, fill: str) -> str:
    """Left-pad text with fill to width; over-length text keeps width-1 chars plus the marker."""
    if len(text) <= width:
        return fill * (width - len(text)) + text
    return text[:width - 1] + TRUNCATION_MARKER


def align_right(text: str, width: int, fill: str = " ") -> str:
    """Like align_text but pads on the right."""
    if len(text) <= width:
        return text + fill * (width - len(text))
    return text[:width - 1] + TRUNCATION_MARKER


def cluster_tag(cluster) -> str:
    """Display tag for a cluster id. Shard 0 is shown as the master tag."""
    tag = str(cluster)
    return MASTER_TAG if tag == "0" else tag


def format_line(severity, system: str, cluster, message: str,
                now: datetime | None = None) -> FormattedLine:
    """Render one log line in both plain and colored form."""
    severity = parse_severity(severity)
    now = now or datetime.now()
    stamp = now.strftime("%Y-%m-%d %H:%M:%S")
    tag = cluster_tag(cluster)

    aligned_cluster = align_text(tag, CLUSTER_WIDTH, "0")
    aligned_system = align_text(system.upper(), SYSTEM_WIDTH, "-")
    aligned_severity = align_right(severity.value.upper(), SEVERITY_WIDTH)

    plain = (
        f"{stamp} {SEPARATOR} [{aligned_cluster}] {aligned_system} "
        f"{SEPARATOR} {aligned_severity} {SEPARATOR} {message}"
    )

    frame = BLACK + BRIGHT
    cluster_style = BRIGHT if tag == MASTER_TAG else DIM
    color = (
        f"{frame}{stamp} {SEPARATOR} {RESET}{cluster_style}{CYAN}[{aligned_cluster}] {aligned_system} "
        f"{RESET}{frame}{SEPARATOR} {RESET}{COLORS[severity]}{aligned_severity} "
        f"{frame}{SEPARATOR} {RESET}{WHITE}{message}{RESET}"
    )
    return FormattedLine(plain, color)


def printable(text: str) -> str:
    """Escape characters UTF-8 cannot encode (lone surrogates) so console writes never fail."""
    return text.encode("utf-8", "backslashreplace").decode("utf-8")
