"""Platform detection and executable resolution."""

import os
import shutil
import sys
from pathlib import Path

from servicekit.service.base import ServiceError

SYSTEMD_RUN_DIR = Path("/run/systemd/system")
INIT_COMM = Path("/proc/1/comm")
PLATFORM_SYSTEMD = "linux-systemd"


class UnsupportedPlatformError(ServiceError):
    """Raised on hosts without a supported init system."""


def is_systemd() -> bool:
    """Return True when systemd is the running init system."""
    if SYSTEMD_RUN_DIR.exists():
        return True
    if not shutil.which("systemctl"):
        return False
    try:
        return INIT_COMM.read_text().strip() == "systemd"
    except OSError:
        return False


def detect_platform() -> str:
    """Return the platform tag for this host. Raises when unsupported."""
    if sys.platform.startswith("linux") and is_systemd():
        return PLATFORM_SYSTEMD
    raise UnsupportedPlatformError(
        f"Service management is not supported on {sys.platform} without systemd. "
        "Use 'servicekit run' to host the program in the foreground."
    )


def resolve_executable(executable: str = "") -> str:
    """Absolute path of the program the unit should execute.

    Falls back to the running interpreter when *executable* is empty.
    """
    if executable:
        return os.path.abspath(executable)
    return sys.executable
