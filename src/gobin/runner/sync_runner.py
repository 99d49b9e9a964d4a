"""Synchronous execution of the host's prebuilt binary."""

import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from ..cli_utils import Colors
from ..config import DEFAULT_HEAP_MULTIPLIER
from ..platform_utils import PlatformError
from .locator import BinaryLocator
from .timing import log_timing_payload


def heap_size_flag(heap_multiplier: int) -> str:
    """Return the memory-limit flag appended to every supervised binary invocation."""
    return f"--max-old-space-size={1024 * heap_multiplier}"


def build_argv(binary_path: Path, args: List[str], heap_multiplier: int) -> List[str]:
    return [str(binary_path), *args, heap_size_flag(heap_multiplier)]


def run_platform_bin(
    cmd: str,
    cwd: Path,
    args: List[str],
    log_label: str = "",
    heap_multiplier: int = DEFAULT_HEAP_MULTIPLIER,
    locator: Optional[BinaryLocator] = None,
    color: bool = True,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    legacy_timing: bool = False,
) -> Tuple[str, str]:
    """Run ``cmd`` from ``<cwd>/<goos>-<goarch>/`` and wait for it to exit.

    The child's stdout is echoed prefixed with ``log_label``. When a label is
    given, stderr is parsed for a timing marker (see ``runner.timing``).

    Args:
        cmd: Binary name (".exe" is appended on Windows)
        cwd: Base directory holding the platform subdirectories; also the child's cwd
        args: Arguments for the binary
        log_label: Prefix for echoed output (e.g., "[compiler]")
        heap_multiplier: Multiplied by 1024 for the --max-old-space-size flag
        locator: Binary locator (default: BinaryLocator())
        color: Colorize echoed output
        stdout: Stream for echoed output (default: sys.stdout)
        stderr: Stream for error lines (default: sys.stderr)
        legacy_timing: Display timing markers with the legacy fixed-offset splice

    Returns:
        (stdout, stderr) text of the child, ("", "") if it could not be run.
        The exit code is not interpreted.
    """
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    locator = locator or BinaryLocator()

    try:
        binary_path = locator.binary_path(Path(cwd), cmd)
    except PlatformError as e:
        logging.error(f"Cannot locate {cmd}: {e}")
        return "", ""

    if not binary_path.exists():
        logging.warning(f"Binary not found, skipping run: {binary_path}")
        return "", ""

    try:
        result = subprocess.run(
            build_argv(binary_path, list(args), heap_multiplier),
            cwd=str(cwd),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except KeyboardInterrupt:
        raise
    except Exception as e:
        logging.error(f"Failed to run {binary_path}: {e}")
        return "", ""

    child_stdout = result.stdout or ""
    child_stderr = result.stderr or ""
    logging.debug(f"{binary_path} exited with code {result.returncode}")

    if child_stdout:
        out.write(f"{Colors.blue(log_label, color)} {child_stdout}\n")
        out.flush()

    if child_stderr and log_label:
        log_timing_payload(child_stderr, log_label, out=out, err=err, color=color, legacy=legacy_timing)

    return child_stdout, child_stderr
