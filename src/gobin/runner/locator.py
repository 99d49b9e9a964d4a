"""Binary location for prebuilt platform binaries.

Resolves ``<base_dir>/<goos>-<goarch>/<cmd>[.exe]`` for the current host,
matching the layout the build orchestrator writes.
"""

from pathlib import Path
from typing import Optional

from ..platform_utils import HostIdentifier, PlatformDetector


def binary_filename(cmd: str, host: HostIdentifier) -> str:
    """Return the filename of ``cmd`` on ``host`` (.exe appended on Windows)."""
    if host.is_windows and not cmd.lower().endswith(".exe"):
        return f"{cmd}.exe"
    return cmd


class BinaryLocator:
    """Resolves where the binary for the current host lives."""

    def __init__(self, host: Optional[HostIdentifier] = None):
        """Initialize the locator.

        Args:
            host: Host identifier (default: detected lazily on first use)
        """
        self._host = host

    @property
    def host(self) -> HostIdentifier:
        """Host identifier.

        Raises:
            PlatformError: If the current host is not in the platform mapping
        """
        if self._host is None:
            self._host = PlatformDetector.detect_host()
        return self._host

    def binary_dir(self, base_dir: Path) -> Path:
        """Return the platform-qualified directory under ``base_dir``."""
        return Path(base_dir) / self.host.target

    def binary_path(self, base_dir: Path, cmd: str) -> Path:
        """Return the full path of ``cmd`` for the current host."""
        return self.binary_dir(base_dir) / binary_filename(cmd, self.host)
