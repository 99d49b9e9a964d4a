"""Configuration for gobin.

Values come from environment variables, overridable by CLI flags:

    GOBIN_GO                   Go compiler executable (default: "go")
    GOBIN_HEAP_MULTIPLIER      Heap multiplier, multiplied by 1024 (default: 4096)
    GOBIN_LOG_FILE             Optional rotating log file
    GOBIN_NO_COLOR / NO_COLOR  Disable ANSI colors
    GOBIN_TERMINATE_TIMEOUT    Seconds before a supervised child is force-killed (default: 3)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_GO_EXECUTABLE = "go"
DEFAULT_HEAP_MULTIPLIER = 4096
DEFAULT_TERMINATE_TIMEOUT = 3.0


class ConfigError(ValueError):
    """Raised when an environment value cannot be parsed."""

    pass


def _positive_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def _positive_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


@dataclass
class GobinConfig:
    """Resolved gobin settings.

    Attributes:
        go_executable: Compiler command used for builds
        heap_multiplier: Default heap multiplier for builds and runs
        log_file: Optional path of the rotating log file
        color: Whether labels are colored with ANSI codes
        terminate_timeout: Grace period before supervised children are killed
    """

    go_executable: str = DEFAULT_GO_EXECUTABLE
    heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER
    log_file: Optional[Path] = None
    color: bool = True
    terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GobinConfig":
        """Create a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigError: If a numeric variable is malformed
        """
        if environ is None:
            environ = os.environ

        log_file = environ.get("GOBIN_LOG_FILE")
        no_color = "GOBIN_NO_COLOR" in environ or "NO_COLOR" in environ

        return cls(
            go_executable=environ.get("GOBIN_GO") or DEFAULT_GO_EXECUTABLE,
            heap_multiplier=_positive_int(environ, "GOBIN_HEAP_MULTIPLIER", DEFAULT_HEAP_MULTIPLIER),
            log_file=Path(log_file) if log_file else None,
            color=not no_color,
            terminate_timeout=_positive_float(environ, "GOBIN_TERMINATE_TIMEOUT", DEFAULT_TERMINATE_TIMEOUT),
        )
