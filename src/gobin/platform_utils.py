"""Platform Detection and Build Matrix Utilities.

This module maps the host Python reports (``sys.platform`` and
``platform.machine()``) onto Go's ``$GOOS``/``$GOARCH`` identifiers and
enumerates the cross-compilation matrix.

Build Matrix:
    GOOS:    darwin, freebsd, linux, windows
    GOARCH:  arm, arm64, 386, amd64, mips64le, ppc64

Excluded Combinations:
    - darwin, freebsd: 386, arm, mips64le, ppc64
    - windows: arm, arm64, mips64le, ppc64
    - linux: none
"""

import platform
import sys
from dataclasses import dataclass
from typing import Iterator, Optional


class PlatformError(Exception):
    """Raised when platform detection fails or platform is unsupported."""

    pass


# Host OS (sys.platform, prefix-matched) -> Go's "$GOOS"
GOOS_MAPPING = {
    "darwin": "darwin",
    "freebsd": "freebsd",
    "linux": "linux",
    "win32": "windows",
}

# Host CPU (platform.machine(), lowercased) -> Go's "$GOARCH"
HOST_ARCH_MAPPING = {
    "arm": "arm",
    "armv6l": "arm",
    "armv7l": "arm",
    "arm64": "arm64",
    "aarch64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "x86_64": "amd64",
    "amd64": "amd64",
    "mips64": "mips64le",
    "mips64el": "mips64le",
    "mips64le": "mips64le",
    "ppc64": "ppc64",
}

# Enumeration order of the matrix: OS-major, architecture-minor
GOOS_ORDER = ("darwin", "freebsd", "linux", "windows")
GOARCH_ORDER = ("arm", "arm64", "386", "amd64", "mips64le", "ppc64")

EXCLUDED_ARCHES: dict[str, frozenset[str]] = {
    "darwin": frozenset({"386", "arm", "mips64le", "ppc64"}),
    "freebsd": frozenset({"386", "arm", "mips64le", "ppc64"}),
    "windows": frozenset({"arm", "arm64", "mips64le", "ppc64"}),
    "linux": frozenset(),
}


@dataclass(frozen=True)
class TargetSpec:
    """A (GOOS, GOARCH) pair the compiler is asked to build for.

    Attributes:
        goos: Go operating system identifier (e.g., "linux")
        goarch: Go architecture identifier (e.g., "amd64")
    """

    goos: str
    goarch: str

    @property
    def target(self) -> str:
        """Build-target string, also the artifact subdirectory name."""
        return f"{self.goos}-{self.goarch}"

    @property
    def is_windows(self) -> bool:
        return self.goos == "windows"

    def executable_name(self, bin_name: str) -> str:
        """Return the binary filename for this target (.exe on Windows)."""
        if self.is_windows:
            return f"{bin_name}.exe"
        return bin_name

    @classmethod
    def from_string(cls, value: str) -> "TargetSpec":
        """Parse a "goos-goarch" string and validate it against the matrix.

        Raises:
            PlatformError: If the string is malformed or names an excluded target
        """
        goos, sep, goarch = value.partition("-")
        if not sep or goos not in GOOS_ORDER or goarch not in GOARCH_ORDER:
            raise PlatformError(f"Unknown build target: {value!r}")

        spec = cls(goos, goarch)
        if is_excluded(spec):
            raise PlatformError(f"Build target {value!r} is not supported by the matrix")
        return spec

    def __str__(self) -> str:
        return self.target


@dataclass(frozen=True)
class HostIdentifier(TargetSpec):
    """The (GOOS, GOARCH) pair of the machine running this process."""

    def as_target(self) -> TargetSpec:
        """Return the build target matching this host."""
        return TargetSpec(self.goos, self.goarch)


def is_excluded(spec: TargetSpec) -> bool:
    """Check whether a target matches an exclusion rule."""
    return spec.goarch in EXCLUDED_ARCHES.get(spec.goos, frozenset())


def iter_targets() -> Iterator[TargetSpec]:
    """Yield every valid target in matrix declaration order."""
    for goos in GOOS_ORDER:
        for goarch in GOARCH_ORDER:
            spec = TargetSpec(goos, goarch)
            if is_excluded(spec):
                continue
            yield spec


def valid_targets() -> list[TargetSpec]:
    """Return the full build matrix minus the excluded combinations."""
    return list(iter_targets())


class PlatformDetector:
    """Detects the current host and maps it onto Go identifiers."""

    @staticmethod
    def normalize_os(system: str) -> Optional[str]:
        """Map a ``sys.platform`` value onto a GOOS value (None if unknown)."""
        system = system.lower()
        for prefix, goos in GOOS_MAPPING.items():
            if system.startswith(prefix):
                return goos
        return None

    @staticmethod
    def normalize_arch(machine: str) -> Optional[str]:
        """Map a ``platform.machine()`` value onto a GOARCH value (None if unknown)."""
        return HOST_ARCH_MAPPING.get(machine.lower())

    @staticmethod
    def detect_host(system: Optional[str] = None, machine: Optional[str] = None) -> HostIdentifier:
        """Detect the host identifier.

        Args:
            system: Override for ``sys.platform`` (testing)
            machine: Override for ``platform.machine()`` (testing)

        Returns:
            HostIdentifier for the current host

        Raises:
            PlatformError: If the host OS or architecture is not in the mapping
        """
        system = system if system is not None else sys.platform
        machine = machine if machine is not None else platform.machine()

        goos = PlatformDetector.normalize_os(system)
        goarch = PlatformDetector.normalize_arch(machine)

        if goos is None or goarch is None:
            raise PlatformError(f"Unsupported platform: {system} {machine}")

        return HostIdentifier(goos, goarch)

    @staticmethod
    def get_platform_info() -> dict:
        """Get detailed information about the current platform.

        Returns:
            Dictionary with raw host values and the mapped Go target (None if unsupported)
        """
        try:
            target: Optional[str] = PlatformDetector.detect_host().target
        except PlatformError:
            target = None

        return {
            "system": sys.platform,
            "machine": platform.machine(),
            "platform": platform.platform(),
            "python_version": platform.python_version(),
            "go_target": target,
        }
